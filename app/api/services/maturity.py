"""Maturity rating breakdown and score history shaping.

A maturity section counts how many of its controls are in place ("ticks").
Inputs are the already-evaluated Graph facts plus the tenant's manual
widget flags keyed by widget key.
"""

import calendar
from datetime import date
from typing import Any

from app.api.services.scoring import round_half_up


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole months, clamping to the end of shorter months."""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _section(items: list[tuple[str, bool]]) -> dict[str, Any]:
    breakdown = [{"name": name, "tick": bool(tick)} for name, tick in items]
    tick_count = sum(1 for item in breakdown if item["tick"])
    total = len(breakdown)
    return {
        "tickCount": tick_count,
        "total": total,
        "percentage": tick_count / total * 100 if total else 0,
        "widgetBreakdown": breakdown,
    }


def compute_identities_and_people(identities: dict[str, Any], manual: dict[str, bool]) -> dict[str, Any]:
    """Identities & People section.

    Args:
        identities: ``phishResistantMFA`` (grouped methods),
            ``trustedLocationExists`` and ``riskySignInPolicyExists``
        manual: widget key -> enabled flag
    """
    grouped = identities.get("phishResistantMFA") or {}
    outstanding = sum(len(grouped.get(bucket) or []) for bucket in ("toEnable", "toDisable", "enhance"))

    return _section([
        ("Phish Resistant MFA", outstanding == 0),
        ("Trusted Locations", identities.get("trustedLocationExists")),
        ("Risky Sign In Policies", identities.get("riskySignInPolicyExists")),
        ("Cyber Security Training", manual.get("cyberSecurityTraining")),
        ("Identity Threat Detection", manual.get("identityThreatDetection")),
    ])


def compute_devices_and_infrastructure(devices: dict[str, Any], manual: dict[str, bool]) -> dict[str, Any]:
    """Devices & Infrastructure section.

    Args:
        devices: ``unencryptedCount`` and ``compliancePolicyCount``
        manual: widget key -> enabled flag
    """
    return _section([
        ("Missing Device Encryption", devices.get("unencryptedCount") == 0),
        ("Compliance Policies", (devices.get("compliancePolicyCount") or 0) > 0),
        ("Defender Deployed", manual.get("defenderDeployed")),
        ("Devices Hardened", manual.get("devicesHardened")),
        ("Firewall Configured", manual.get("firewallConfigured")),
        ("Servers Hardened", manual.get("serversHardened")),
        # Not yet measured
        ("Managed Detection Response", False),
        ("Patch Compliance", False),
        ("Unsupported Devices", False),
    ])


def compute_data(manual: dict[str, bool]) -> dict[str, Any]:
    return _section([
        ("Sensitivity Labeling", manual.get("sensitivityLabeling")),
        ("Data Loss Prevention", manual.get("dataLossPrevention")),
        ("Microsoft 365 Backups", manual.get("microsoft365Backups")),
        ("Server Backups", manual.get("serverBackups")),
        ("Backup Testing", manual.get("backupTesting")),
        ("Cloud App Protection", manual.get("cloudAppProtection")),
    ])


def compute_maturity_breakdown(
    identities: dict[str, Any],
    devices: dict[str, Any],
    manual: dict[str, bool],
) -> dict[str, Any]:
    """All three sections plus the overall implemented/total count."""
    sections = {
        "identitiesAndPeople": compute_identities_and_people(identities, manual),
        "devicesAndInfrastructure": compute_devices_and_infrastructure(devices, manual),
        "data": compute_data(manual),
    }
    implemented = sum(s["tickCount"] for s in sections.values())
    total = sum(s["total"] for s in sections.values())

    return {
        **sections,
        "implemented": implemented,
        "total": total,
        "percentage": round_half_up(implemented / total * 100, 2) if total else 0,
    }


def _record_date(record: Any) -> date:
    value = record["scoreDate"] if isinstance(record, dict) else record.score_date
    return date.fromisoformat(value) if isinstance(value, str) else value


def get_last_three_months(records: list[Any], today: date | None = None) -> list[Any]:
    """Latest record in each of the three previous calendar months.

    The current month is excluded; the newest month comes first. Months
    without a record are skipped.
    """
    today = today or date.today()
    ordered = sorted(records, key=_record_date, reverse=True)

    result = []
    for offset in (1, 2, 3):
        target = shift_months(today.replace(day=1), -offset)
        match = next(
            (
                r for r in ordered
                if (_record_date(r).year, _record_date(r).month) == (target.year, target.month)
            ),
            None,
        )
        if match is not None:
            result.append(match)
    return result


def split_score_data(records: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Separate chart series for maturity and secure score percentages."""
    maturity = []
    secure = []

    for record in records:
        if record.get("totalScorePct"):
            maturity.append({
                "lastUpdated": record.get("lastUpdated"),
                "totalScorePct": record["totalScorePct"],
            })
        if record.get("microsoftSecureScorePct"):
            secure.append({
                "lastUpdated": record.get("lastUpdated"),
                "microsoftSecureScorePct": record["microsoftSecureScorePct"],
            })

    return {"maturity": maturity, "secure": secure}
