from fastapi import APIRouter
from stats_keeper.api.v1.statistics import router as statistics_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include routers
api_router.include_router(statistics_router)
