"""
API routes split by domain.

Each sub-module defines its own APIRouter which is composed
into the top-level router exposed by this package.
"""
from fastapi import APIRouter

from .health import router as health_router
from .analytics import router as analytics_router
from .success import router as success_router
from .stores import router as stores_router

router = APIRouter(tags=["api"])

router.include_router(health_router)
router.include_router(analytics_router)
router.include_router(success_router)
router.include_router(stores_router)
