"""Cross-system endpoints called by the peer application.

Everything under /api/external sits behind ExternalAccessMiddleware, so the
handlers here only run for requests with a valid key and rate limit budget.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from crosslink.app.core.logging import get_log_context, get_logger
from crosslink.app.db.dependencies import WorkRequestLookupDep
from crosslink.app.exceptions import MissingIdentifierError
from crosslink.app.middleware.request_id import get_request_id
from crosslink.app.services.verification import (
    VerificationResult,
    extract_work_request_id,
    verify_work_request,
)

router = APIRouter(prefix="/api/external", tags=["external"])
logger = get_logger(__name__)


@router.post("/work-requests/verify", response_model=VerificationResult)
async def verify_work_request_endpoint(
    request: Request,
    lookup: WorkRequestLookupDep,
):
    """Verify that a work request exists.

    Body: {"work_request_id": 123} (``workRequestId`` is also accepted).
    Returns {exists, valid, data, error}; ``data`` is a summary or null.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise MissingIdentifierError()

    try:
        return await verify_work_request(lookup, extract_work_request_id(body))
    except SQLAlchemyError:
        logger.exception(
            "Database error verifying work request",
            extra=get_log_context(request_id=get_request_id(request)),
        )
        return JSONResponse(
            status_code=500,
            content={"exists": False, "valid": False, "error": "Internal server error"},
        )
