"""Tests for the maturity breakdown and score history shaping."""

from datetime import date

import pytest

from app.api.services.maturity import (
    compute_data,
    compute_devices_and_infrastructure,
    compute_identities_and_people,
    compute_maturity_breakdown,
    get_last_three_months,
    shift_months,
    split_score_data,
)


def _ticks(section):
    return {item["name"]: item["tick"] for item in section["widgetBreakdown"]}


class TestShiftMonths:
    def test_back_across_year(self):
        assert shift_months(date(2025, 2, 10), -3) == date(2024, 11, 10)

    def test_clamps_to_month_end(self):
        assert shift_months(date(2025, 3, 31), -1) == date(2025, 2, 28)


class TestIdentities:
    def test_all_ticked(self):
        section = compute_identities_and_people(
            {
                "phishResistantMFA": {"toEnable": [], "toDisable": [], "enhance": [], "correct": [{}]},
                "trustedLocationExists": True,
                "riskySignInPolicyExists": True,
            },
            {"cyberSecurityTraining": True, "identityThreatDetection": True},
        )
        assert section["tickCount"] == 5
        assert section["total"] == 5
        assert section["percentage"] == 100

    def test_outstanding_mfa_methods_fail_the_tick(self):
        section = compute_identities_and_people(
            {"phishResistantMFA": {"toDisable": [{"id": "Sms"}]}, "riskySignInPolicyExists": True},
            {},
        )
        ticks = _ticks(section)
        assert ticks["Phish Resistant MFA"] is False
        assert ticks["Risky Sign In Policies"] is True
        assert ticks["Trusted Locations"] is False
        assert section["tickCount"] == 1


class TestDevices:
    def test_always_false_rows(self):
        section = compute_devices_and_infrastructure(
            {"unencryptedCount": 0, "compliancePolicyCount": 2},
            {
                "defenderDeployed": True,
                "devicesHardened": True,
                "firewallConfigured": True,
                "serversHardened": True,
                "managedDetectionResponse": True,
            },
        )
        ticks = _ticks(section)
        assert section["total"] == 9
        assert section["tickCount"] == 6
        assert ticks["Managed Detection Response"] is False
        assert ticks["Patch Compliance"] is False
        assert ticks["Unsupported Devices"] is False

    def test_unencrypted_devices_fail_the_tick(self):
        ticks = _ticks(compute_devices_and_infrastructure({"unencryptedCount": 3, "compliancePolicyCount": 0}, {}))
        assert ticks["Missing Device Encryption"] is False
        assert ticks["Compliance Policies"] is False


def test_data_rows_read_their_own_flags():
    section = compute_data({"backupTesting": True, "cloudAppProtection": False, "serverBackups": False})
    ticks = _ticks(section)
    assert section["total"] == 6
    assert ticks["Backup Testing"] is True
    assert ticks["Cloud App Protection"] is False
    assert ticks["Server Backups"] is False


def test_breakdown_totals():
    breakdown = compute_maturity_breakdown(
        {"trustedLocationExists": True},
        {"unencryptedCount": 0},
        {"sensitivityLabeling": True},
    )
    assert set(breakdown) >= {"identitiesAndPeople", "devicesAndInfrastructure", "data"}
    assert breakdown["total"] == 20
    # Empty phish groups count as nothing outstanding
    assert breakdown["implemented"] == 4
    assert breakdown["percentage"] == 20


class TestLastThreeMonths:
    def _record(self, day, pct=50):
        return {"scoreDate": day.isoformat(), "totalScorePct": pct, "microsoftSecureScorePct": pct}

    def test_latest_per_previous_month_newest_first(self):
        records = [
            self._record(date(2025, 6, 2), 99),  # current month, excluded
            self._record(date(2025, 5, 31), 60),
            self._record(date(2025, 5, 1), 55),
            self._record(date(2025, 4, 30), 50),
            self._record(date(2025, 3, 15), 40),
            self._record(date(2025, 2, 28), 30),
        ]
        result = get_last_three_months(records, today=date(2025, 6, 10))
        assert [r["totalScorePct"] for r in result] == [60, 50, 40]

    def test_missing_months_are_skipped(self):
        records = [self._record(date(2025, 4, 20))]
        assert len(get_last_three_months(records, today=date(2025, 6, 1))) == 1

    def test_accepts_orm_like_rows(self):
        class Row:
            score_date = date(2025, 5, 20)

        assert len(get_last_three_months([Row()], today=date(2025, 6, 1))) == 1


def test_split_score_data_skips_falsy_values():
    records = [
        {"lastUpdated": "a", "totalScorePct": 40, "microsoftSecureScorePct": 0},
        {"lastUpdated": "b", "totalScorePct": None, "microsoftSecureScorePct": 55.5},
    ]
    result = split_score_data(records)
    assert result["maturity"] == [{"lastUpdated": "a", "totalScorePct": 40}]
    assert result["secure"] == [{"lastUpdated": "b", "microsoftSecureScorePct": pytest.approx(55.5)}]
