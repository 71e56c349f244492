"""Database dependencies for FastAPI dependency injection.

Usage:
    from crosslink.app.db.dependencies import WorkRequestLookupDep

    @router.post("/work-requests/verify")
    async def verify(lookup: WorkRequestLookupDep):
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crosslink.app.db.async_session import get_db
from crosslink.app.db.work_requests import SqlWorkRequestLookup
from crosslink.app.services.verification import WorkRequestLookup

SessionDep = Annotated[AsyncSession, Depends(get_db)]


def get_work_request_lookup(session: SessionDep) -> WorkRequestLookup:
    return SqlWorkRequestLookup(session)


WorkRequestLookupDep = Annotated[WorkRequestLookup, Depends(get_work_request_lookup)]

__all__ = ["SessionDep", "WorkRequestLookupDep", "get_work_request_lookup"]
