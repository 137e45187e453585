from fastapi import APIRouter

from app.api.files import router as files_router
from app.api.health import router as health_router

router = APIRouter()
router.include_router(health_router)
router.include_router(files_router)
