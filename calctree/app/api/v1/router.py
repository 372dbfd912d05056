"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from calctree.app.api.v1.endpoints import auth, calculations

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Calculation trees
router.include_router(calculations.router)
