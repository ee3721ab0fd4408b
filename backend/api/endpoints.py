from fastapi import APIRouter

from api.routers.datex import router as datex_router
from api.routers.system import router as system_router

router = APIRouter()
router.include_router(datex_router)
router.include_router(system_router)
