"""Pure functions that turn raw Microsoft Graph JSON into posture facts.

Nothing in here performs I/O. Callers fetch with ``GraphClient`` and pass
the decoded payloads in, which keeps scoring, the maturity breakdown and
the Microsoft 365 endpoints on one interpretation of each response.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from app.api.services.scoring import round_half_up

# Graph only keeps ~90 days of secure scores but older tenants may have
# exported history; anything beyond two years is ignored.
SECURE_SCORE_WINDOW = timedelta(days=2 * 365)

PROTECTING_POLICY_STATES = {"enabled", "enabledForReportingButNotEnforced"}
PROTECTED_RISK_LEVELS = {"high", "medium", "low"}
IP_NAMED_LOCATION = "#microsoft.graph.ipNamedLocation"

SECURE_SCORE_CATEGORIES = ("Identity", "Data", "Apps")

# Authentication method id -> (display name, phish resistance)
# Phish resistance is True, False or "partial".
PHISH_METHOD_CATALOGUE: dict[str, tuple[str, bool | str]] = {
    "Fido2": ("FIDO2 Security Key", True),
    "MicrosoftAuthenticator": ("Microsoft Authenticator", "partial"),
    "TemporaryAccessPass": ("Temporary Access Pass", True),
    "X509Certificate": ("X.509 Certificate", True),
    "SoftwareOath": ("Software OATH (TOTP)", False),
    "Sms": ("SMS", False),
    "Voice": ("Voice", False),
    "Email": ("Email OTP", False),
}

RECOMMEND_DISABLE = "Disable this method"
RECOMMEND_ENABLE = "Enable this method"
RECOMMEND_ENHANCE = "Enhance with number matching"
RECOMMEND_OK = "OK"


def parse_graph_datetime(value: str | None) -> datetime | None:
    """Parse a Graph ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utc(now: datetime | None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


# =============================================================================
# Phish-resistant MFA
# =============================================================================


def evaluate_phish_methods(policy: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Attach a recommendation to each configured authentication method."""
    configurations = (policy or {}).get("authenticationMethodConfigurations") or []
    evaluated = []

    for method in configurations:
        method_id = method.get("id")
        state = method.get("state")
        display_name, resistance = PHISH_METHOD_CATALOGUE.get(method_id, (method_id, False))

        if not resistance and state == "enabled":
            recommendation = RECOMMEND_DISABLE
        elif resistance is True and state == "disabled":
            recommendation = RECOMMEND_ENABLE
        elif resistance == "partial":
            recommendation = RECOMMEND_ENHANCE
        else:
            recommendation = RECOMMEND_OK

        evaluated.append({
            "id": method_id,
            "displayName": display_name,
            "state": state,
            "isPhishResistant": resistance,
            "recommendation": recommendation,
        })

    return evaluated


def group_phish_methods(policy: dict[str, Any] | None) -> dict[str, list[dict[str, Any]]]:
    """Bucket evaluated methods by the action an analyst should take."""
    buckets = {
        RECOMMEND_ENABLE: "toEnable",
        RECOMMEND_DISABLE: "toDisable",
        RECOMMEND_ENHANCE: "enhance",
        RECOMMEND_OK: "correct",
    }
    grouped: dict[str, list[dict[str, Any]]] = {name: [] for name in buckets.values()}

    for method in evaluate_phish_methods(policy):
        grouped[buckets[method["recommendation"]]].append(method)

    return grouped


def phish_resistant_percentage(policy: dict[str, Any] | None) -> int:
    """Share of configured methods already in the recommended state."""
    total = len((policy or {}).get("authenticationMethodConfigurations") or [])
    if total == 0:
        return 0
    correct = len(group_phish_methods(policy)["correct"])
    return round_half_up(correct / total * 100)


# =============================================================================
# Conditional access
# =============================================================================


def has_risk_based_sign_in_policy(policies: list[dict[str, Any]] | None) -> bool:
    """True when an active policy reacts to any sign-in risk level."""
    for policy in policies or []:
        if policy.get("state") not in PROTECTING_POLICY_STATES:
            continue
        risk_levels = ((policy.get("conditions") or {}).get("signInRiskLevels")) or []
        if any(str(level).lower() in PROTECTED_RISK_LEVELS for level in risk_levels):
            return True
    return False


def has_trusted_ip_location(named_locations: list[dict[str, Any]] | None) -> bool:
    return any(
        loc.get("@odata.type") == IP_NAMED_LOCATION and loc.get("isTrusted")
        for loc in named_locations or []
    )


# =============================================================================
# Devices
# =============================================================================


def summarise_unencrypted_devices(devices: list[dict[str, Any]] | None) -> dict[str, Any]:
    unencrypted = [d for d in devices or [] if d.get("isEncrypted") is False]
    return {
        "count": len(unencrypted),
        "devices": [
            {
                "deviceName": d.get("deviceName"),
                "user": d.get("userPrincipalName"),
                "os": d.get("operatingSystem"),
                "osVersion": d.get("osVersion"),
                "complianceState": d.get("complianceState"),
                "enrollmentType": d.get("enrollmentType"),
                "jailBroken": d.get("jailBroken"),
                "lastSyncDateTime": d.get("lastSyncDateTime"),
            }
            for d in unencrypted
        ],
    }


def unencrypted_percentage(devices: list[dict[str, Any]] | None) -> float:
    devices = devices or []
    if not devices:
        return 0
    unencrypted = sum(1 for d in devices if d.get("isEncrypted") is False)
    return unencrypted / len(devices) * 100


# =============================================================================
# Directory roles
# =============================================================================


def count_admins(roles_with_members: list[dict[str, Any]] | None) -> int:
    """Total members across roles whose name contains "admin".

    Accepts the ``[{"role": name, "members": [...]}]`` shape returned by
    ``GraphClient.get_admin_role_members``.
    """
    return sum(
        len(entry.get("members") or [])
        for entry in roles_with_members or []
        if "admin" in (entry.get("role") or "").lower()
    )


# =============================================================================
# Secure score
# =============================================================================


def secure_score_percentage(entry: dict[str, Any] | None) -> float:
    if not entry or not entry.get("maxScore"):
        return 0
    return (entry.get("currentScore") or 0) / entry["maxScore"] * 100


def _recent_entries(entries: list[dict[str, Any]] | None, now: datetime | None) -> list[tuple[datetime, dict]]:
    now = _utc(now)
    recent = []
    for entry in entries or []:
        created = parse_graph_datetime(entry.get("createdDateTime"))
        if created is None or now - created > SECURE_SCORE_WINDOW:
            continue
        recent.append((created, entry))
    recent.sort(key=lambda pair: pair[0])
    return recent


def build_secure_score_trend(
    entries: list[dict[str, Any]] | None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Daily percentage against the all-tenants average, oldest first."""
    trend = []
    for _, entry in _recent_entries(entries, now):
        comparative = next(
            (
                s.get("averageScore") or 0
                for s in entry.get("averageComparativeScores") or []
                if s.get("basis") == "AllTenants"
            ),
            0,
        )
        trend.append({
            "date": entry.get("createdDateTime"),
            "percentage": round_half_up(secure_score_percentage(entry), 2),
            "comparative": round_half_up(comparative, 2),
        })
    return trend


def latest_secure_score(
    entries: list[dict[str, Any]] | None,
    now: datetime | None = None,
) -> dict[str, Any] | None:
    recent = _recent_entries(entries, now)
    return recent[-1][1] if recent else None


def build_category_scores(
    entries: list[dict[str, Any]] | None,
    category: str,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Per-day secure score restricted to one control category."""
    wanted = category.lower()
    series = []

    for _, entry in _recent_entries(entries, now):
        controls = [
            c for c in entry.get("controlScores") or []
            if (c.get("controlCategory") or "").lower() == wanted
        ]
        score = sum(c.get("score") or 0 for c in controls)
        max_score = sum(c.get("maxScore") or 0 for c in controls)

        series.append({
            "date": entry.get("createdDateTime"),
            "score": round_half_up(score, 2),
            "maxScore": round_half_up(max_score, 2),
            "percentage": round_half_up(score / max_score * 100, 2) if max_score else 0,
        })

    return series
