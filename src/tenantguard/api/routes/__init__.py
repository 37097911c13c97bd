"""
API routes aggregation.
"""

from fastapi import APIRouter

from .policies import router as policies_router
from .system import router as system_router
from .tenants import router as tenants_router
from .tokens import router as tokens_router

router = APIRouter()

router.include_router(tenants_router, prefix="/tenants", tags=["authorization"])
router.include_router(tokens_router, prefix="/tenants", tags=["tokens"])
router.include_router(policies_router, prefix="/tenants", tags=["policies"])
router.include_router(system_router, prefix="/system", tags=["system"])
