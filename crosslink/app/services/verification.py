"""Work request verification.

Lets the peer system confirm that a work request ID is real before linking
to it. Only a small summary of the record is returned.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import BaseModel

from crosslink.app.core.utils import is_numeric_id
from crosslink.app.exceptions import MalformedIdentifierError, MissingIdentifierError

WORK_REQUEST_ID_FIELD = "work_request_id"
WORK_REQUEST_ID_ALIAS = "workRequestId"


class WorkRequestSummary(BaseModel):
    """Read-only projection of a work request."""

    id: int
    description: Optional[str] = None
    status: Optional[str] = None
    status_id: Optional[int] = None
    request_date: Union[datetime, date, None] = None
    created_date: Union[datetime, date, None] = None
    complaint_type: Optional[str] = None


class VerificationResult(BaseModel):
    """Answer to a verification request.

    ``exists`` and ``valid`` always agree today; both are kept so a later
    state such as a soft-deleted record can tell them apart.
    """

    exists: bool
    valid: bool
    data: Optional[WorkRequestSummary] = None
    error: Optional[str] = None

    @classmethod
    def not_found(cls) -> "VerificationResult":
        return cls(exists=False, valid=False, data=None)

    @classmethod
    def found(cls, summary: WorkRequestSummary) -> "VerificationResult":
        return cls(exists=True, valid=True, data=summary)


class WorkRequestLookup(Protocol):
    """Source of work request summaries."""

    async def fetch_summary(self, work_request_id: int) -> Optional[Mapping[str, Any]]:
        """Return the summary row for an ID, or None if there is none."""
        ...


def extract_work_request_id(body: Mapping[str, Any]) -> Any:
    """Read the ID from a request body, accepting the camelCase alias."""
    value = body.get(WORK_REQUEST_ID_FIELD)
    if value is None or value == "":
        value = body.get(WORK_REQUEST_ID_ALIAS)
    return value


def parse_work_request_id(raw: Any) -> int:
    """Validate a work request ID.

    Raises:
        MissingIdentifierError: raw is None or blank
        MalformedIdentifierError: raw is not an integer or integer string
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise MissingIdentifierError(WORK_REQUEST_ID_FIELD)
    if not is_numeric_id(raw):
        raise MalformedIdentifierError(WORK_REQUEST_ID_FIELD, raw)
    try:
        return int(raw.strip()) if isinstance(raw, str) else int(raw)
    except ValueError as exc:
        # Digit strings past the interpreter's int conversion limit
        raise MalformedIdentifierError(WORK_REQUEST_ID_FIELD, raw) from exc


async def verify_work_request(lookup: WorkRequestLookup, raw_id: Any) -> VerificationResult:
    """Check whether a work request exists.

    The ID is validated before the lookup runs.
    """
    work_request_id = parse_work_request_id(raw_id)
    row = await lookup.fetch_summary(work_request_id)
    if row is None:
        return VerificationResult.not_found()
    return VerificationResult.found(WorkRequestSummary.model_validate(dict(row)))
