"""Quarterly risk report workflow service."""

import asyncio
import calendar
import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from app.api.services import pdf_service
from app.api.services.email_service import report_email
from app.api.services.risk import calculate_risk_scores
from app.core.notifications import send_email
from app.models.report import Report, ReportRecipient

logger = logging.getLogger(__name__)

REPORT_STATUSES = ["new", "reviewed", "analyst_ready", "manager_ready", "sent"]

MONTH_TO_QUARTER = {
    name: (index - 1) // 3 + 1
    for index, name in enumerate(calendar.month_name)
    if name
}

# Fields a plain update may touch; status and analyst notes have their own paths
UPDATABLE_FIELDS = {"title", "summary", "recommendations", "analyst_comments", "approved_by"}


def quarter_for_month(month: str | None) -> int:
    """Quarter number for an English month name, Q1 when unknown."""
    return MONTH_TO_QUARTER.get((month or "").strip().capitalize(), 1)


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    """First and last day of a calendar quarter."""
    first_month = (quarter - 1) * 3 + 1
    last_month = first_month + 2
    return (
        date(year, first_month, 1),
        date(year, last_month, calendar.monthrange(year, last_month)[1]),
    )


def normalize_security_data(security_data: dict[str, Any] | None) -> dict[str, Any]:
    """Unwrap a doubly nested ``securityData`` payload."""
    data = dict(security_data or {})
    nested = data.get("securityData")
    if isinstance(nested, dict):
        logger.debug("Unwrapping doubly nested securityData")
        data = dict(nested)
    return data


class ReportDeliveryError(Exception):
    """No recipient of a report could be emailed."""


def can_transition(current: str, target: str) -> bool:
    """A report moves forward one status at a time or back to ``new``."""
    if target not in REPORT_STATUSES or current not in REPORT_STATUSES:
        return False
    if target == "new":
        return True
    return REPORT_STATUSES.index(target) == REPORT_STATUSES.index(current) + 1


class ReportService:
    """Service for quarterly report CRUD and the review workflow."""

    def __init__(self, db: Session):
        self.db = db

    def create_report(
        self,
        tenant_id: str,
        title: str,
        year: int,
        security_data: dict[str, Any],
        month: str | None = None,
        quarter: int | None = None,
        summary: str | None = None,
        recommendations: str | None = None,
        created_by: str | None = None,
    ) -> Report:
        """Create a report, scoring risk from the supplied security data."""
        security_data = normalize_security_data(security_data)
        quarter = quarter or quarter_for_month(month)
        start_date, end_date = quarter_bounds(year, quarter)

        report = Report(
            tenant_id=tenant_id,
            title=title,
            month=month,
            quarter=quarter,
            year=year,
            start_date=start_date,
            end_date=end_date,
            security_data=security_data,
            summary=summary,
            recommendations=recommendations,
            created_by=created_by,
            status="new",
            **calculate_risk_scores(security_data),
        )
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)

        logger.info(f"Created report {report.id} for tenant {tenant_id} (Q{quarter} {year})")
        return report

    def list_reports(self, tenant_id: str) -> list[Report]:
        """Reports for a tenant, newest year then quarter first."""
        reports = self.db.query(Report).filter(Report.tenant_id == tenant_id).all()
        for report in reports:
            if not report.quarter:
                report.quarter = quarter_for_month(report.month)
        return sorted(reports, key=lambda r: (r.year, r.quarter or 1), reverse=True)

    def get_report(self, report_id: int, tenant_id: str | None = None) -> Report | None:
        query = self.db.query(Report).filter(Report.id == report_id)
        if tenant_id is not None:
            query = query.filter(Report.tenant_id == tenant_id)
        return query.first()

    def update_report(self, report: Report, changes: dict[str, Any]) -> Report:
        """Apply editable fields; new security data re-scores the report."""
        for field, value in changes.items():
            if field in UPDATABLE_FIELDS:
                setattr(report, field, value)

        if changes.get("security_data") is not None:
            report.security_data = normalize_security_data(changes["security_data"])
            for field, value in calculate_risk_scores(report.security_data).items():
                setattr(report, field, value)

        report.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(report)
        return report

    def set_status(self, report: Report, status: str, user_id: str | None = None) -> Report:
        """Move a report through the review workflow.

        Raises:
            ValueError: If the transition is not allowed
        """
        if not can_transition(report.status, status):
            raise ValueError(f"Cannot move report from {report.status} to {status}")

        report.status = status
        if status == "manager_ready":
            report.approved_by = user_id
        if status == "sent":
            report.sent_at = datetime.utcnow()
        report.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(report)

        logger.info(f"Report {report.id} moved to {status}")
        return report

    def set_analyst_notes(self, report: Report, notes: str | None) -> Report:
        report.analyst_notes = notes
        report.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(report)
        return report

    async def send_report(self, report: Report, tenant_name: str) -> tuple[Report, list[str]]:
        """Email the risk report PDF to every recipient and mark it sent.

        Each recipient is stamped when their email is accepted for delivery.
        The report moves to ``sent`` once at least one email went out.

        Returns:
            The report and the addresses that could not be emailed

        Raises:
            ValueError: If the report is not manager approved or has no recipients
            ReportDeliveryError: If no recipient could be emailed
        """
        if not can_transition(report.status, "sent"):
            raise ValueError(f"Cannot move report from {report.status} to sent")

        recipients = self.list_recipients(report)
        if not recipients:
            raise ValueError("Report has no recipients")

        content = pdf_service.render_risk_report(report, tenant_name)
        filename = pdf_service.risk_report_filename(tenant_name, report)
        results = await asyncio.gather(*(
            send_email(report_email(report, recipient, tenant_name, content, filename))
            for recipient in recipients
        ))

        delivered_at = datetime.utcnow()
        failed = []
        for recipient, result in zip(recipients, results):
            if result.get("success"):
                recipient.sent_at = delivered_at
            else:
                failed.append(recipient.email)

        if len(failed) == len(recipients):
            raise ReportDeliveryError(f"Report {report.id} could not be emailed to any recipient")

        if failed:
            logger.warning(f"Report {report.id} not delivered to {len(failed)} recipient(s)")
        return self.set_status(report, "sent"), failed

    def delete_report(self, report: Report) -> None:
        self.db.delete(report)
        self.db.commit()

    def add_recipient(self, report: Report, email: str, name: str | None = None) -> ReportRecipient:
        recipient = ReportRecipient(report_id=report.id, email=email, name=name)
        self.db.add(recipient)
        self.db.commit()
        self.db.refresh(recipient)
        return recipient

    def list_recipients(self, report: Report) -> list[ReportRecipient]:
        return (
            self.db.query(ReportRecipient)
            .filter(ReportRecipient.report_id == report.id)
            .order_by(ReportRecipient.created_at)
            .all()
        )

    def remove_recipient(self, report: Report, recipient_id: int) -> bool:
        recipient = (
            self.db.query(ReportRecipient)
            .filter(ReportRecipient.id == recipient_id, ReportRecipient.report_id == report.id)
            .first()
        )
        if recipient is None:
            return False
        self.db.delete(recipient)
        self.db.commit()
        return True
