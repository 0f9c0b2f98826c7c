"""Report ownership checks."""

from ultramagnus.db import ReportRepository

from .errors import Forbidden


class OwnershipGuard:
    """Sole authorization checkpoint. Consulted on every call, never cached."""

    def __init__(self, reports: ReportRepository):
        self.reports = reports

    async def assert_ownership(self, report_id: str, user_id: str) -> None:
        owner_id = await self.reports.get_owner(report_id)
        if owner_id is None or owner_id != user_id:
            raise Forbidden("Report not found or forbidden")
