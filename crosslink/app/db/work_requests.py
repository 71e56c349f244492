"""Read-only queries against the video-archiving work request tables."""

from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

WORK_REQUEST_SUMMARY_QUERY = text(
    """
    SELECT
        wr.id,
        wr.description,
        wr.status_id,
        s.name AS status,
        wr.request_date,
        wr.created_date,
        ct.type_name AS complaint_type
    FROM work_requests wr
    LEFT JOIN status s ON wr.status_id = s.id
    LEFT JOIN complaint_types ct ON wr.complaint_type_id = ct.id
    WHERE wr.id = :work_request_id
    """
)


class SqlWorkRequestLookup:
    """Work request summaries from PostgreSQL."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_summary(self, work_request_id: int) -> Optional[Mapping[str, Any]]:
        result = await self.session.execute(
            WORK_REQUEST_SUMMARY_QUERY, {"work_request_id": work_request_id}
        )
        row = result.mappings().first()
        return dict(row) if row is not None else None
