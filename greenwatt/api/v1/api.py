from fastapi import APIRouter

from greenwatt.api.v1.endpoints import dashboard, devices, insights

api_router = APIRouter()

# Include device registry endpoints
api_router.include_router(devices.router, prefix="/devices", tags=["devices"])

# Include aggregate endpoints
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

# Include insight endpoints
api_router.include_router(insights.router, prefix="/insights", tags=["insights"])
