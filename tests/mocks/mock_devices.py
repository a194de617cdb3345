from datetime import datetime

from greenwatt.models.device import Device, DeviceCategory

START = datetime(2026, 3, 10, 12, 0)


def make_device(name="Desk Lamp", room="Office", category=DeviceCategory.LIGHTING,
                watts=60.0, is_on=False, **fields):
    """Device drawing its average while on and nothing while off"""
    return Device(
        name=name,
        room=room,
        category=category,
        is_on=is_on,
        current_usage=watts if is_on else 0.0,
        average_usage=watts,
        last_updated=START,
        **fields
    )


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers the delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
