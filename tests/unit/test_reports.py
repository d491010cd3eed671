"""Tests for quarterly reports and PDF downloads."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.api.routes.reports import content_disposition
from app.api.services.report_service import (
    ReportDeliveryError,
    ReportService,
    can_transition,
    normalize_security_data,
    quarter_bounds,
    quarter_for_month,
)
from app.api.services.score_service import ScoreService
from app.core.auth import User
from app.models.report import ReportRecipient
from app.models.score import TenantScore

SECURITY_DATA = {
    "identityMetrics": {"mfaNotEnabled": 3, "globalAdmins": 4},
    "threatMetrics": {"identityThreats": 1},
}

DELIVERED = {"success": True}
UNDELIVERED = {"success": False, "error": "Recipient refused"}


@pytest.fixture
def service(db_session):
    return ReportService(db_session)


@pytest.fixture
def report(service, tenant):
    return service.create_report(tenant.id, "Q2 Review", 2025, SECURITY_DATA, month="May")


def _advance(service, report, *statuses):
    for status in statuses:
        report = service.set_status(report, status, user_id="manager-1")
    return report


class TestHelpers:
    @pytest.mark.parametrize("month,quarter", [("January", 1), ("may", 2), ("September", 3), ("December", 4)])
    def test_quarter_for_month(self, month, quarter):
        assert quarter_for_month(month) == quarter

    def test_unknown_month_is_first_quarter(self):
        assert quarter_for_month(None) == 1
        assert quarter_for_month("Smarch") == 1

    def test_quarter_bounds(self):
        assert quarter_bounds(2024, 1) == (date(2024, 1, 1), date(2024, 3, 31))
        assert quarter_bounds(2025, 4) == (date(2025, 10, 1), date(2025, 12, 31))

    def test_nested_security_data_is_unwrapped(self):
        assert normalize_security_data({"securityData": {"identityMetrics": {}}}) == {"identityMetrics": {}}
        assert normalize_security_data(None) == {}

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            ("new", "reviewed", True),
            ("reviewed", "analyst_ready", True),
            ("manager_ready", "sent", True),
            ("new", "analyst_ready", False),
            ("sent", "reviewed", False),
            ("analyst_ready", "new", True),
            ("new", "archived", False),
        ],
    )
    def test_transitions(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestReportService:
    def test_create_scores_risk(self, report):
        assert report.quarter == 2
        assert report.start_date == date(2025, 4, 1)
        assert report.end_date == date(2025, 6, 30)
        assert report.status == "new"
        assert report.identity_risk_score == 100
        assert report.threat_risk_score == 25

    def test_list_newest_first(self, service, tenant):
        service.create_report(tenant.id, "Old", 2024, {}, quarter=4)
        service.create_report(tenant.id, "Newest", 2025, {}, quarter=3)
        service.create_report(tenant.id, "Middle", 2025, {}, month="February")

        assert [r.title for r in service.list_reports(tenant.id)] == ["Newest", "Middle", "Old"]

    def test_update_rescoring(self, service, report):
        updated = service.update_report(report, {"summary": "Better", "security_data": {}, "status": "sent"})
        assert updated.summary == "Better"
        assert updated.identity_risk_score == 60
        # status only moves through set_status
        assert updated.status == "new"

    def test_workflow(self, service, report):
        report = _advance(service, report, "reviewed", "analyst_ready", "manager_ready")
        assert report.approved_by == "manager-1"

        with pytest.raises(ValueError):
            service.set_status(report, "reviewed")

        report = service.set_status(report, "new")
        assert report.status == "new"

    @pytest.mark.asyncio
    async def test_send_requires_manager_ready(self, service, report):
        service.add_recipient(report, "ceo@contoso.com")
        with pytest.raises(ValueError):
            await service.send_report(report, "Contoso")

    @pytest.mark.asyncio
    async def test_send_requires_recipients(self, service, report):
        report = _advance(service, report, "reviewed", "analyst_ready", "manager_ready")
        with pytest.raises(ValueError, match="no recipients"):
            await service.send_report(report, "Contoso")

    @pytest.mark.asyncio
    async def test_send_emails_pdf_and_stamps_recipients(self, service, report):
        service.add_recipient(report, "ceo@contoso.com", "CEO")
        report = _advance(service, report, "reviewed", "analyst_ready", "manager_ready")

        with patch("app.api.services.report_service.send_email", AsyncMock(return_value=DELIVERED)) as send:
            report, failed = await service.send_report(report, "Contoso")

        assert failed == []
        assert report.status == "sent"
        assert report.sent_at is not None
        assert all(r.sent_at is not None for r in service.list_recipients(report))

        email = send.await_args.args[0]
        assert email.to == "ceo@contoso.com"
        assert email.subject == "Cyber Risk Report - Contoso - May 2025"
        assert email.attachments[0].filename == "Contoso-Risk-Report-Q2-2025.pdf"
        assert email.attachments[0].content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_send_partial_failure_stamps_delivered_only(self, service, report):
        service.add_recipient(report, "ceo@contoso.com")
        service.add_recipient(report, "bounce@contoso.com")
        report = _advance(service, report, "reviewed", "analyst_ready", "manager_ready")

        async def deliver(email):
            return UNDELIVERED if email.to.startswith("bounce") else DELIVERED

        with patch("app.api.services.report_service.send_email", deliver):
            report, failed = await service.send_report(report, "Contoso")

        assert failed == ["bounce@contoso.com"]
        assert report.status == "sent"
        stamped = {r.email: r.sent_at for r in service.list_recipients(report)}
        assert stamped["ceo@contoso.com"] is not None
        assert stamped["bounce@contoso.com"] is None

    @pytest.mark.asyncio
    async def test_send_fails_when_nobody_is_emailed(self, service, report):
        service.add_recipient(report, "ceo@contoso.com")
        report = _advance(service, report, "reviewed", "analyst_ready", "manager_ready")

        # No SMTP server is configured in tests
        with pytest.raises(ReportDeliveryError):
            await service.send_report(report, "Contoso")

        assert report.status == "manager_ready"
        assert report.sent_at is None

    def test_delete_removes_recipients(self, service, db_session, report):
        service.add_recipient(report, "ceo@contoso.com")
        service.delete_report(report)
        assert db_session.query(ReportRecipient).count() == 0


def _user(role, tenant):
    return User(id=f"{role}-1", email=f"{role}@example.com", roles=[role], tenant_ids=[tenant.id])


class TestReportRoutes:
    def test_create_and_get(self, client, tenant):
        response = client.post(
            f"/api/v1/tenants/{tenant.id}/reports",
            json={"title": "Q1", "year": 2025, "month": "March", "security_data": SECURITY_DATA},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["quarter"] == 1
        assert created["overall_risk_score"] == 92
        assert created["risk_level"] == "High"

        fetched = client.get(f"/api/v1/reports/{created['id']}").json()
        assert fetched["title"] == "Q1"
        assert client.get(f"/api/v1/tenants/{tenant.id}/reports").json()[0]["id"] == created["id"]

    def test_missing_report(self, client):
        assert client.get("/api/v1/reports/999").status_code == 404

    def test_report_of_other_tenant_forbidden(self, as_user, make_tenant, service, tenant):
        other = make_tenant(name="Other Co")
        report = service.create_report(other.id, "Hidden", 2025, {})
        response = as_user(_user("analyst", tenant)).get(f"/api/v1/reports/{report.id}")
        assert response.status_code == 403

    def test_plain_user_cannot_create(self, as_user, tenant):
        response = as_user(_user("user", tenant)).post(
            f"/api/v1/tenants/{tenant.id}/reports",
            json={"title": "Q1", "year": 2025},
        )
        assert response.status_code == 403

    def test_status_transition(self, as_user, tenant, report):
        analyst = as_user(_user("analyst", tenant))
        response = analyst.patch(f"/api/v1/reports/{report.id}/status", json={"status": "reviewed"})
        assert response.status_code == 200
        assert response.json()["status"] == "reviewed"

        response = analyst.patch(f"/api/v1/reports/{report.id}/status", json={"status": "sent"})
        assert response.status_code == 400

    def test_analyst_notes_role(self, as_user, tenant, report):
        response = as_user(_user("analyst", tenant)).patch(
            f"/api/v1/reports/{report.id}/analyst-notes", json={"analyst_notes": "Check MFA"}
        )
        assert response.status_code == 403

        response = as_user(_user("analyst_notes", tenant)).patch(
            f"/api/v1/reports/{report.id}/analyst-notes", json={"analyst_notes": "Check MFA"}
        )
        assert response.status_code == 200
        assert response.json()["analyst_notes"] == "Check MFA"

    def test_send_requires_account_manager(self, as_user, service, tenant, report):
        service.add_recipient(report, "ceo@contoso.com")
        _advance(service, report, "reviewed", "analyst_ready", "manager_ready")

        assert as_user(_user("analyst", tenant)).post(f"/api/v1/reports/{report.id}/send").status_code == 403

        with patch("app.api.services.report_service.send_email", AsyncMock(return_value=DELIVERED)):
            response = as_user(_user("account_manager", tenant)).post(f"/api/v1/reports/{report.id}/send")
        assert response.status_code == 200
        assert response.json()["status"] == "sent"

    def test_send_without_recipients(self, client, service, report):
        _advance(service, report, "reviewed", "analyst_ready", "manager_ready")
        response = client.post(f"/api/v1/reports/{report.id}/send")
        assert response.status_code == 400

    def test_send_delivery_failure(self, client, service, report):
        service.add_recipient(report, "ceo@contoso.com")
        _advance(service, report, "reviewed", "analyst_ready", "manager_ready")

        response = client.post(f"/api/v1/reports/{report.id}/send")

        assert response.status_code == 502
        assert client.get(f"/api/v1/reports/{report.id}").json()["status"] == "manager_ready"

    def test_recipients(self, client, report):
        base = f"/api/v1/reports/{report.id}/recipients"
        created = client.post(base, json={"email": "cfo@contoso.com", "name": "CFO"})
        assert created.status_code == 201

        assert [r["email"] for r in client.get(base).json()] == ["cfo@contoso.com"]
        assert client.delete(f"{base}/{created.json()['id']}").status_code == 204
        assert client.delete(f"{base}/{created.json()['id']}").status_code == 404

    def test_delete(self, client, report):
        assert client.delete(f"/api/v1/reports/{report.id}").status_code == 204
        assert client.get(f"/api/v1/reports/{report.id}").status_code == 404


class TestPdfDownloads:
    def test_risk_report(self, client, report):
        response = client.get(f"/api/v1/reports/{report.id}/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert 'filename="Contoso-Risk-Report-Q2-2025.pdf"' in response.headers["content-disposition"]

    def test_executive_report(self, client, db_session, tenant):
        db_session.add(TenantScore(
            tenant_id=tenant.id,
            score_date=date.today(),
            total_score=140,
            max_score=280,
            total_score_pct=50,
            microsoft_secure_score_pct=62.5,
        ))
        db_session.commit()

        response = client.get(f"/api/v1/tenants/{tenant.id}/executive-report")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert "Cyber-Risk-Executive_Report" in response.headers["content-disposition"]

    def test_executive_report_without_scores(self, client, tenant):
        response = client.get(f"/api/v1/tenants/{tenant.id}/executive-report")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_tender_pack_requires_connection(self, client, tenant):
        assert client.get(f"/api/v1/tenants/{tenant.id}/tender-insurer-pack").status_code == 404

    def test_tender_pack(self, client, connected_tenant):
        graph = MagicMock()
        graph.get_authentication_methods_policy = AsyncMock(return_value={})
        graph.get_named_locations = AsyncMock(return_value=[])
        graph.get_conditional_access_policies = AsyncMock(return_value=[])
        graph.get_managed_devices = AsyncMock(return_value=[])
        graph.get_device_compliance_policies = AsyncMock(return_value=[])

        with patch.object(ScoreService, "get_client", return_value=graph):
            response = client.get(f"/api/v1/tenants/{connected_tenant.id}/tender-insurer-pack")

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert "Tender_Insurer_Pack" in response.headers["content-disposition"]


class TestContentDisposition:
    def test_ascii_name(self):
        header = content_disposition("Contoso-Risk-Report-Q2-2025.pdf")
        assert header == (
            'attachment; filename="Contoso-Risk-Report-Q2-2025.pdf"; '
            "filename*=UTF-8''Contoso-Risk-Report-Q2-2025.pdf"
        )

    def test_non_latin_name(self):
        header = content_disposition("Łódź Logistics.pdf")
        assert 'filename="odz Logistics.pdf"' in header
        assert "filename*=UTF-8''%C5%81%C3%B3d%C5%BA%20Logistics.pdf" in header
        header.encode("latin-1")

    def test_quotes_dropped_from_fallback(self):
        header = content_disposition('Acme "North".pdf')
        assert 'filename="Acme North.pdf"' in header
        assert "%22North%22" in header

    def test_download_for_non_latin_tenant(self, client, make_tenant):
        tenant = make_tenant(name="Łódź Logistics")
        response = client.get(f"/api/v1/tenants/{tenant.id}/executive-report")
        assert response.status_code == 200
        assert "filename*=UTF-8''%C5%81%C3%B3d%C5%BA%20Logistics-Cyber-Risk" in response.headers["content-disposition"]
