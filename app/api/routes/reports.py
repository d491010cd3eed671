"""Quarterly report and PDF download API routes.

Tenant-scoped collection routes live under ``/api/v1/tenants/{tenant_id}``;
single reports are addressed as ``/api/v1/reports/{report_id}`` and checked
against the caller's tenant access after loading.
"""

import logging
import re
import unicodedata
from datetime import date
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.services import pdf_service
from app.api.services.audit_service import log_action
from app.api.services.graph_client import GraphAPIError, MissingConnectionError
from app.api.services.maturity import get_last_three_months, split_score_data
from app.api.services.report_service import ReportDeliveryError, ReportService
from app.api.services.risk import get_risk_level
from app.api.services.score_service import ScoreService, score_to_dict
from app.api.services.widget_service import WidgetService
from app.core.auth import (
    ROLE_ACCOUNT_MANAGER,
    ROLE_ANALYST,
    ROLE_ANALYST_NOTES,
    User,
    get_current_user,
    require_roles,
)
from app.core.authorization import (
    TenantAuthorization,
    get_authorized_tenant,
    get_tenant_authorization,
)
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.report import Report
from app.models.tenant import Tenant
from app.schemas.report import (
    AnalystNotesUpdate,
    RecipientCreate,
    RecipientResponse,
    ReportCreate,
    ReportResponse,
    ReportStatusUpdate,
    ReportUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["reports"],
    dependencies=[Depends(get_current_user)],
)

require_report_editor = require_roles([ROLE_ANALYST, ROLE_ACCOUNT_MANAGER])
require_account_manager = require_roles([ROLE_ACCOUNT_MANAGER])
require_analyst_notes = require_roles([ROLE_ANALYST_NOTES])

PDF_MEDIA_TYPE = "application/pdf"


def _report_response(report: Report) -> ReportResponse:
    response = ReportResponse.model_validate(report)
    response.risk_level = get_risk_level(report.overall_risk_score)
    return response


def content_disposition(filename: str) -> str:
    """Attachment header that survives any tenant name.

    Header values must be latin-1, so the plain ``filename`` is an ASCII
    approximation and the exact name travels in ``filename*`` (RFC 6266).
    """
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = re.sub(r'[\x00-\x1f\x7f"\\]', "", ascii_name).strip() or "report.pdf"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )


def _tenant_name(db: Session, report: Report) -> str:
    tenant = db.query(Tenant).filter(Tenant.id == report.tenant_id).first()
    return tenant.name if tenant else report.tenant_id


async def get_authorized_report(
    report_id: int,
    db: Session = Depends(get_db),
    authz: TenantAuthorization = Depends(get_tenant_authorization),
) -> Report:
    """Route dependency resolving ``{report_id}`` to a report the caller may see."""
    report = ReportService(db).get_report(report_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report {report_id} not found",
        )
    authz.validate_access(report.tenant_id)
    return report


# =============================================================================
# Tenant reports
# =============================================================================


@router.get(
    "/tenants/{tenant_id}/reports",
    response_model=list[ReportResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_reports(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    """Reports for a tenant, newest year and quarter first."""
    return [_report_response(r) for r in ReportService(db).list_reports(tenant.id)]


@router.post(
    "/tenants/{tenant_id}/reports",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("reports"))],
)
async def create_report(
    payload: ReportCreate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    """Create a report; risk scores are calculated from ``security_data``."""
    report = ReportService(db).create_report(
        tenant_id=tenant.id,
        title=payload.title,
        year=payload.year,
        security_data=payload.security_data,
        month=payload.month,
        quarter=payload.quarter,
        summary=payload.summary,
        recommendations=payload.recommendations,
        created_by=current_user.id,
    )

    log_action(
        db, current_user.id, "create_report", tenant_id=tenant.id,
        details=f"{report.title} (Q{report.quarter} {report.year})",
        entity_type="report", entity_id=report.id,
    )
    return _report_response(report)


@router.get(
    "/reports/{report_id}",
    response_model=ReportResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def get_report(report: Report = Depends(get_authorized_report)):
    return _report_response(report)


@router.patch(
    "/reports/{report_id}",
    response_model=ReportResponse,
    dependencies=[Depends(rate_limit("reports"))],
)
async def update_report(
    payload: ReportUpdate,
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    """Edit report text; new ``security_data`` re-scores the report."""
    changes = payload.model_dump(exclude_unset=True)
    report = ReportService(db).update_report(report, changes)

    log_action(
        db, current_user.id, "update_report", tenant_id=report.tenant_id,
        details={"fields": sorted(changes)}, entity_type="report", entity_id=report.id,
    )
    return _report_response(report)


@router.delete(
    "/reports/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("reports"))],
)
async def delete_report(
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    tenant_id, report_id, title = report.tenant_id, report.id, report.title
    ReportService(db).delete_report(report)

    log_action(
        db, current_user.id, "delete_report", tenant_id=tenant_id,
        details=title, entity_type="report", entity_id=report_id,
    )


@router.patch(
    "/reports/{report_id}/status",
    response_model=ReportResponse,
    dependencies=[Depends(rate_limit("reports"))],
)
async def update_report_status(
    payload: ReportStatusUpdate,
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    """Advance the review workflow one step, or send it back to ``new``."""
    previous = report.status
    try:
        report = ReportService(db).set_status(report, payload.status, user_id=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    log_action(
        db, current_user.id, "update_report_status", tenant_id=report.tenant_id,
        details=f"{previous} -> {report.status}", entity_type="report", entity_id=report.id,
    )
    return _report_response(report)


@router.patch(
    "/reports/{report_id}/analyst-notes",
    response_model=ReportResponse,
    dependencies=[Depends(rate_limit("reports"))],
)
async def update_analyst_notes(
    payload: AnalystNotesUpdate,
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_analyst_notes),
):
    """Internal analyst notes. Requires the analyst_notes role."""
    report = ReportService(db).set_analyst_notes(report, payload.analyst_notes)

    log_action(
        db, current_user.id, "update_analyst_notes", tenant_id=report.tenant_id,
        entity_type="report", entity_id=report.id,
    )
    return _report_response(report)


@router.post(
    "/reports/{report_id}/send",
    response_model=ReportResponse,
    dependencies=[Depends(rate_limit("reports"))],
)
async def send_report(
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_account_manager),
):
    """Email a manager-approved report to its recipients and mark it sent."""
    try:
        report, failed = await ReportService(db).send_report(report, _tenant_name(db, report))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ReportDeliveryError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Report email delivery failed")

    log_action(
        db, current_user.id, "send_report", tenant_id=report.tenant_id,
        details={
            "delivered": [r.email for r in report.recipients if r.email not in failed],
            "failed": failed,
        },
        entity_type="report", entity_id=report.id,
    )
    return _report_response(report)


# =============================================================================
# Recipients
# =============================================================================


@router.get(
    "/reports/{report_id}/recipients",
    response_model=list[RecipientResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_recipients(
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
):
    return ReportService(db).list_recipients(report)


@router.post(
    "/reports/{report_id}/recipients",
    response_model=RecipientResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def add_recipient(
    payload: RecipientCreate,
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    recipient = ReportService(db).add_recipient(report, payload.email, payload.name)

    log_action(
        db, current_user.id, "add_report_recipient", tenant_id=report.tenant_id,
        details=payload.email, entity_type="report", entity_id=report.id,
    )
    return recipient


@router.delete(
    "/reports/{report_id}/recipients/{recipient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def remove_recipient(
    recipient_id: int,
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_report_editor),
):
    if not ReportService(db).remove_recipient(report, recipient_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recipient {recipient_id} not found",
        )

    log_action(
        db, current_user.id, "remove_report_recipient", tenant_id=report.tenant_id,
        details={"recipientId": recipient_id}, entity_type="report", entity_id=report.id,
    )


# =============================================================================
# PDF downloads
# =============================================================================


@router.get(
    "/reports/{report_id}/pdf",
    dependencies=[Depends(rate_limit("reports"))],
)
async def download_risk_report(
    report: Report = Depends(get_authorized_report),
    db: Session = Depends(get_db),
):
    """Single-page executive risk report for a stored report."""
    tenant_name = _tenant_name(db, report)
    content = pdf_service.render_risk_report(report, tenant_name)
    return _pdf(content, pdf_service.risk_report_filename(tenant_name, report))


@router.get(
    "/tenants/{tenant_id}/executive-report",
    dependencies=[Depends(rate_limit("reports"))],
)
async def download_executive_report(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    """Executive report built from the stored daily score snapshots."""
    records = [score_to_dict(row) for row in ScoreService(db).get_recent_scores(tenant.id)]
    current: dict[str, Any] = {}
    if records:
        current = {
            "maturityPct": records[0]["totalScorePct"],
            "secureScorePct": records[0]["microsoftSecureScorePct"],
        }
    series = split_score_data(get_last_three_months(records))

    today = date.today()
    content = pdf_service.render_executive_report(
        tenant.name, current, series["maturity"], series["secure"], today=today
    )
    return _pdf(content, pdf_service.executive_report_filename(tenant.name, today))


@router.get(
    "/tenants/{tenant_id}/tender-insurer-pack",
    dependencies=[Depends(rate_limit("reports"))],
)
async def download_tender_insurer_pack(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    """Implemented-controls pack from the live maturity breakdown."""
    try:
        client = ScoreService(db).get_client(tenant.id)
        breakdown = await WidgetService(db).get_live_maturity(tenant.id, client)
    except MissingConnectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except GraphAPIError as e:
        logger.error(f"Graph error building tender pack for {tenant.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    today = date.today()
    content = pdf_service.render_tender_insurer_pack(tenant.name, breakdown, today=today)
    return _pdf(content, pdf_service.tender_insurer_pack_filename(tenant.name, today))
