from fastapi import APIRouter

from app.api.boosters import router as boosters_router
from app.api.maintenance import router as maintenance_router
from app.api.predictions import router as predictions_router

api_router = APIRouter()
api_router.include_router(predictions_router)
api_router.include_router(boosters_router)

api_router.include_router(maintenance_router)
