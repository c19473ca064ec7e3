from fastapi import APIRouter
from migrator.api.routes_health import router as health_router
from migrator.api.routes_runs import router as runs_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(runs_router, tags=["runs"])
