"""Tests for Graph response evaluators."""

from datetime import datetime, timedelta, timezone

from app.api.services import evaluators

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _policy(*methods):
    return {
        "authenticationMethodConfigurations": [
            {"id": method_id, "state": state} for method_id, state in methods
        ]
    }


class TestPhishMethods:
    def test_recommendations(self):
        evaluated = {
            m["id"]: m["recommendation"]
            for m in evaluators.evaluate_phish_methods(_policy(
                ("Sms", "enabled"),
                ("Fido2", "disabled"),
                ("MicrosoftAuthenticator", "enabled"),
                ("X509Certificate", "enabled"),
                ("Voice", "disabled"),
            ))
        }
        assert evaluated == {
            "Sms": evaluators.RECOMMEND_DISABLE,
            "Fido2": evaluators.RECOMMEND_ENABLE,
            "MicrosoftAuthenticator": evaluators.RECOMMEND_ENHANCE,
            "X509Certificate": evaluators.RECOMMEND_OK,
            "Voice": evaluators.RECOMMEND_OK,
        }

    def test_unknown_method_treated_as_not_resistant(self):
        evaluated = evaluators.evaluate_phish_methods(_policy(("HardwareOath", "enabled")))
        assert evaluated[0]["displayName"] == "HardwareOath"
        assert evaluated[0]["recommendation"] == evaluators.RECOMMEND_DISABLE

    def test_grouped(self):
        grouped = evaluators.group_phish_methods(_policy(("Sms", "enabled"), ("Fido2", "enabled")))
        assert [m["id"] for m in grouped["toDisable"]] == ["Sms"]
        assert [m["id"] for m in grouped["correct"]] == ["Fido2"]
        assert grouped["toEnable"] == []
        assert grouped["enhance"] == []

    def test_percentage(self):
        policy = _policy(("Sms", "enabled"), ("Fido2", "enabled"), ("Voice", "disabled"), ("Email", "enabled"))
        assert evaluators.phish_resistant_percentage(policy) == 50

    def test_percentage_rounds_half_up(self):
        policy = _policy(("Fido2", "enabled"), *[("Sms", "enabled")] * 7)
        assert evaluators.phish_resistant_percentage(policy) == 13

    def test_percentage_without_methods(self):
        assert evaluators.phish_resistant_percentage(None) == 0
        assert evaluators.phish_resistant_percentage({}) == 0


class TestConditionalAccess:
    def test_enabled_policy_with_risk_levels(self):
        policies = [{"state": "enabled", "conditions": {"signInRiskLevels": ["high"]}}]
        assert evaluators.has_risk_based_sign_in_policy(policies) is True

    def test_report_only_policy_counts(self):
        policies = [{"state": "enabledForReportingButNotEnforced", "conditions": {"signInRiskLevels": ["Medium"]}}]
        assert evaluators.has_risk_based_sign_in_policy(policies) is True

    def test_disabled_policy_ignored(self):
        policies = [{"state": "disabled", "conditions": {"signInRiskLevels": ["high"]}}]
        assert evaluators.has_risk_based_sign_in_policy(policies) is False

    def test_policy_without_risk_levels(self):
        policies = [{"state": "enabled", "conditions": {"signInRiskLevels": ["none"]}}]
        assert evaluators.has_risk_based_sign_in_policy(policies) is False
        assert evaluators.has_risk_based_sign_in_policy(None) is False

    def test_trusted_ip_location(self):
        locations = [
            {"@odata.type": "#microsoft.graph.countryNamedLocation", "isTrusted": True},
            {"@odata.type": "#microsoft.graph.ipNamedLocation", "isTrusted": False},
        ]
        assert evaluators.has_trusted_ip_location(locations) is False
        locations.append({"@odata.type": "#microsoft.graph.ipNamedLocation", "isTrusted": True})
        assert evaluators.has_trusted_ip_location(locations) is True


class TestDevices:
    devices = [
        {"deviceName": "LAPTOP-1", "isEncrypted": True},
        {"deviceName": "LAPTOP-2", "isEncrypted": False, "userPrincipalName": "a@contoso.com",
         "operatingSystem": "Windows"},
        {"deviceName": "PHONE-1"},
        {"deviceName": "LAPTOP-3", "isEncrypted": False},
    ]

    def test_summary_lists_only_explicitly_unencrypted(self):
        summary = evaluators.summarise_unencrypted_devices(self.devices)
        assert summary["count"] == 2
        assert summary["devices"][0]["deviceName"] == "LAPTOP-2"
        assert summary["devices"][0]["user"] == "a@contoso.com"
        assert summary["devices"][0]["os"] == "Windows"

    def test_percentage(self):
        assert evaluators.unencrypted_percentage(self.devices) == 50

    def test_percentage_without_devices(self):
        assert evaluators.unencrypted_percentage([]) == 0


def test_count_admins_only_counts_admin_roles():
    roles = [
        {"role": "Global Administrator", "members": [{"id": "1"}, {"id": "2"}]},
        {"role": "Exchange Admin", "members": [{"id": "3"}]},
        {"role": "Directory Readers", "members": [{"id": "4"}]},
    ]
    assert evaluators.count_admins(roles) == 3


class TestSecureScore:
    def _entry(self, days_ago, current, maximum, average=None, controls=None):
        entry = {
            "createdDateTime": (NOW - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z"),
            "currentScore": current,
            "maxScore": maximum,
            "controlScores": controls or [],
        }
        if average is not None:
            entry["averageComparativeScores"] = [
                {"basis": "AllTenants", "averageScore": average},
                {"basis": "TotalSeats", "averageScore": 1.0},
            ]
        return entry

    def test_percentage(self):
        assert evaluators.secure_score_percentage({"currentScore": 30, "maxScore": 120}) == 25
        assert evaluators.secure_score_percentage({"currentScore": 30, "maxScore": 0}) == 0
        assert evaluators.secure_score_percentage(None) == 0

    def test_trend_is_oldest_first_and_windowed(self):
        entries = [
            self._entry(1, 60, 100, average=41.234),
            self._entry(3, 50, 100),
            self._entry(900, 10, 100),
        ]
        trend = evaluators.build_secure_score_trend(entries, NOW)
        assert [t["percentage"] for t in trend] == [50, 60]
        assert trend[0]["comparative"] == 0
        assert trend[1]["comparative"] == 41.23

    def test_latest(self):
        entries = [self._entry(5, 40, 100), self._entry(1, 70, 100)]
        assert evaluators.latest_secure_score(entries, NOW)["currentScore"] == 70
        assert evaluators.latest_secure_score([], NOW) is None

    def test_category_scores_sum_matching_controls(self):
        controls = [
            {"controlCategory": "Identity", "score": 5, "maxScore": 10},
            {"controlCategory": "identity", "score": 3, "maxScore": 10},
            {"controlCategory": "Data", "score": 9, "maxScore": 9},
        ]
        series = evaluators.build_category_scores([self._entry(1, 0, 0, controls=controls)], "Identity", NOW)
        assert series == [{
            "date": series[0]["date"],
            "score": 8,
            "maxScore": 20,
            "percentage": 40,
        }]

    def test_category_without_controls(self):
        series = evaluators.build_category_scores([self._entry(1, 0, 0)], "Apps", NOW)
        assert series[0]["percentage"] == 0

    def test_unparseable_dates_are_skipped(self):
        assert evaluators.build_secure_score_trend([{"createdDateTime": "yesterday"}], NOW) == []
