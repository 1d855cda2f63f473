from fastapi import APIRouter
from .tables_router import router as tables_router
from .points_router import router as points_router

router = APIRouter()

router.include_router(tables_router)
router.include_router(points_router)
