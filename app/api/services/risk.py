"""Quarterly report risk scoring.

Risk is the inverse of maturity: every missing control adds points to its
category, categories are capped at 100, and the overall score is a
weighted blend of the five categories.
"""

from typing import Any

from app.api.services.scoring import round_half_up

# (metric, points) added to identity risk when the condition holds
IDENTITY_MISSING_CONTROLS = [
    ("phishResistantMfa", 20),
    ("riskBasedSignOn", 15),
    ("roleBasedAccessControl", 10),
    ("singleSignOn", 10),
    ("managedIdentityProtection", 5),
]

DEVICE_CONTROLS = [
    ("diskEncryption", 25),
    ("defenderForEndpoint", 25),
    ("deviceHardening", 20),
    ("softwareUpdated", 15),
    ("managedDetectionResponse", 15),
]

CLOUD_CONTROLS = [
    ("saasProtection", 10),
    ("sensitivityLabels", 10),
    ("backupArchiving", 15),
    ("dataLossPrevention", 10),
    ("defenderFor365", 15),
    ("suitableFirewall", 10),
    ("dkimPolicies", 5),
    ("dmarcPolicies", 5),
    ("conditionalAccess", 10),
    ("compliancePolicies", 5),
]

CATEGORY_WEIGHTS = {
    "identity": 0.3,
    "training": 0.2,
    "device": 0.2,
    "cloud": 0.2,
    "threat": 0.1,
}

# (exclusive lower bound on total threats, risk score), checked in order
THREAT_THRESHOLDS = [(10, 100), (5, 75), (2, 50), (0, 25)]


def _identity_risk(metrics: dict[str, Any]) -> int:
    score = 0
    if (metrics.get("mfaNotEnabled") or 0) > 0:
        score += 25
    if (metrics.get("globalAdmins") or 0) > 2:
        score += 15
    score += sum(points for key, points in IDENTITY_MISSING_CONTROLS if not metrics.get(key))
    return min(score, 100)


def _missing_controls_risk(metrics: dict[str, Any], controls: list[tuple[str, int]]) -> int:
    return sum(points for key, points in controls if not metrics.get(key))


def _threat_risk(metrics: dict[str, Any]) -> int:
    total = sum(
        metrics.get(key) or 0
        for key in ("identityThreats", "deviceThreats", "otherThreats")
    )
    for bound, score in THREAT_THRESHOLDS:
        if total > bound:
            return score
    return 0


def calculate_risk_scores(security_data: dict[str, Any]) -> dict[str, int]:
    """Category and overall risk scores (0-100, higher is riskier)."""
    identity = _identity_risk(security_data.get("identityMetrics") or {})

    # No training signal is collected yet, so training is always full risk
    training = 100

    device = min(_missing_controls_risk(security_data.get("deviceMetrics") or {}, DEVICE_CONTROLS), 100)

    cloud_metrics = security_data.get("cloudMetrics") or {}
    cloud = _missing_controls_risk(cloud_metrics, CLOUD_CONTROLS)
    if cloud_metrics.get("byodPolicies") is not True:
        cloud += 5
    cloud = min(cloud, 100)

    threat = _threat_risk(security_data.get("threatMetrics") or {})

    overall = round_half_up(
        identity * CATEGORY_WEIGHTS["identity"]
        + training * CATEGORY_WEIGHTS["training"]
        + device * CATEGORY_WEIGHTS["device"]
        + cloud * CATEGORY_WEIGHTS["cloud"]
        + threat * CATEGORY_WEIGHTS["threat"]
    )

    return {
        "overall_risk_score": overall,
        "identity_risk_score": identity,
        "training_risk_score": training,
        "device_risk_score": device,
        "cloud_risk_score": cloud,
        "threat_risk_score": threat,
    }


def get_risk_level(score: float) -> str:
    if score < 30:
        return "Low"
    if score < 70:
        return "Medium"
    return "High"


def get_guarantee_color(percentage: float) -> str:
    """Traffic-light colour for a guarantee/maturity percentage."""
    if percentage >= 75:
        return "green"
    if percentage >= 50:
        return "orange"
    return "red"
