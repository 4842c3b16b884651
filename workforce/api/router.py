"""
Main API router
"""
from fastapi import APIRouter

from workforce.api.v1 import (
    health,
    version,
    auth,
    master,
    company,
    attendance,
    inventory,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(master.router, prefix="/master", tags=["master"])
api_router.include_router(company.router, prefix="/company", tags=["company"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
