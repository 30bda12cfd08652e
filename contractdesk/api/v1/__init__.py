"""API v1 routes."""

from fastapi import APIRouter

from contractdesk.api.v1 import auth, client, contracts, status

router = APIRouter()
router.include_router(auth.router, tags=["auth"])
router.include_router(contracts.router, prefix="/contracts", tags=["contracts"])
router.include_router(client.router, prefix="/client", tags=["client"])
router.include_router(status.router, prefix="/status", tags=["status"])
