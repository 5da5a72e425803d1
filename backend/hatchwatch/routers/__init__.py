from hatchwatch.routers.devices import router as devices_router
from hatchwatch.routers.state import router as state_router
from hatchwatch.routers.charts import router as charts_router
from hatchwatch.routers.alerts import router as alerts_router
from hatchwatch.routers.cycles import router as cycles_router
from hatchwatch.routers.live import router as live_router

__all__ = [
    "devices_router", "state_router", "charts_router",
    "alerts_router", "cycles_router", "live_router",
]
