from fastapi import APIRouter

from scheduling_pool.api.routes.health import router as health_router
from scheduling_pool.api.routes.scheduling import router as scheduling_router

api_router = APIRouter()
v1_router = APIRouter(prefix="/v1")

api_router.include_router(health_router)

# Unversioned routes kept for existing booking widgets.
api_router.include_router(scheduling_router)

v1_router.include_router(scheduling_router)
api_router.include_router(v1_router)
