"""API v1 router.

Every route below is mounted under ``/api`` and passes through the
Credential Gate first.
"""

from fastapi import APIRouter, Depends

from riskvisio.api.dependencies import authenticate
from riskvisio.api.v1.api_keys import router as api_keys_router
from riskvisio.api.v1.meta import api_index
from riskvisio.api.v1.meta import router as meta_router
from riskvisio.api.v1.records import router as records_router

router = APIRouter(dependencies=[Depends(authenticate)])

# Order matters: fixed paths before the /{kind} routes
router.add_api_route("", api_index, methods=["GET"], tags=["meta"])
router.include_router(meta_router, tags=["meta"])
router.include_router(api_keys_router, prefix="/api-keys", tags=["api-keys"])
router.include_router(records_router, tags=["records"])
