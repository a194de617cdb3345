"""
GreenWatt - Smart Home Energy Core

A FastAPI service that keeps the live device registry of a smart home, samples it
into a rolling usage series and turns the aggregates into trends and savings insights.
"""

__version__ = "1.0.0"
__author__ = "Smart Home Energy Team"
__description__ = "Real-time energy usage aggregation, trends and insights for smart home dashboards"
