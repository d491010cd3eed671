"""Seed catalogue of scored dashboard widgets."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from app.models.widget import Widget

logger = logging.getLogger(__name__)

CATEGORY_IDENTITIES = "Identities & People"
CATEGORY_DEVICES = "End-user devices"
CATEGORY_DATA = "Data"

# Widgets that are listed but do not contribute to the score yet
UNSCORED_WIDGET_KEYS = {"patchCompliance"}


@dataclass(frozen=True)
class WidgetDefinition:
    key: str
    name: str
    category: str
    points: int
    scoring_type: str = "yesno"
    config: dict[str, Any] = field(default_factory=dict)
    manual: bool = False
    description: str = ""

    @property
    def scoring_config(self) -> dict[str, Any]:
        if self.scoring_type == "yesno" and not self.config:
            return {"yesValue": self.points, "noValue": 0}
        return dict(self.config)


WIDGET_CATALOGUE: list[WidgetDefinition] = [
    # Identities & People
    WidgetDefinition(
        "cyberSecurityTraining", "Cyber Security Training", CATEGORY_IDENTITIES, 10, manual=True,
        description="Staff complete regular security awareness training.",
    ),
    WidgetDefinition(
        "identityThreatDetection", "Identity Threat Detection", CATEGORY_IDENTITIES, 10, manual=True,
        description="Identity-based attacks are detected and alerted on.",
    ),
    WidgetDefinition(
        "microsoft365Admins", "Microsoft 365 Admins", CATEGORY_IDENTITIES, 10, "range",
        {"min": 2, "max": 5, "points": 10, "fallback": 0},
        description="Between two and five accounts hold admin roles.",
    ),
    WidgetDefinition(
        "phishResistantMFA", "Phish Resistant MFA", CATEGORY_IDENTITIES, 20, "percentage",
        {"scale": 0.1, "maxPoints": 20},
        description="Authentication methods follow phish-resistant recommendations.",
    ),
    WidgetDefinition(
        "trustedLocations", "Trusted Locations", CATEGORY_IDENTITIES, 10,
        description="At least one trusted IP named location is defined.",
    ),
    WidgetDefinition(
        "riskySignInPolicies", "Risky Sign In Policies", CATEGORY_IDENTITIES, 20,
        description="A conditional access policy responds to sign-in risk.",
    ),
    # End-user devices
    WidgetDefinition(
        "defenderDeployed", "Defender Deployed", CATEGORY_DEVICES, 10, manual=True,
        description="Microsoft Defender for Endpoint is deployed to all devices.",
    ),
    WidgetDefinition(
        "managedDetectionResponse", "Managed Detection Response", CATEGORY_DEVICES, 10, manual=True,
        description="A managed detection and response service monitors endpoints.",
    ),
    WidgetDefinition(
        "noEncryption", "Missing Device Encryption", CATEGORY_DEVICES, 10, "percentageInverse",
        {"scale": 0.1, "maxPoints": 10},
        description="Share of managed devices without disk encryption.",
    ),
    WidgetDefinition(
        "compliancePolicies", "Compliance Policies", CATEGORY_DEVICES, 20,
        description="Intune device compliance policies are configured.",
    ),
    WidgetDefinition(
        "devicesHardened", "Devices Hardened", CATEGORY_DEVICES, 10, manual=True,
        description="End-user devices follow a hardening baseline.",
    ),
    WidgetDefinition(
        "patchCompliance", "Patch Compliance", CATEGORY_DEVICES, 20, "percentage",
        {"scale": 0.1, "maxPoints": 20},
        description="Share of devices with current operating system patches.",
    ),
    WidgetDefinition(
        "unsupportedDevices", "Unsupported Devices", CATEGORY_DEVICES, 10, "percentageInverse",
        {"scale": 0.1, "maxPoints": 10}, manual=True,
        description="Percentage of devices on a supported operating system.",
    ),
    WidgetDefinition(
        "microsoftSecureScore", "Microsoft Secure Score", CATEGORY_DEVICES, 10, "percentage",
        {"scale": 0.1, "maxPoints": 10},
        description="Latest Microsoft Secure Score percentage.",
    ),
    WidgetDefinition(
        "firewallConfigured", "Firewall Configured", CATEGORY_DEVICES, 10, manual=True,
        description="A suitable, managed firewall protects the network edge.",
    ),
    WidgetDefinition(
        "serversHardened", "Servers Hardened", CATEGORY_DEVICES, 20, manual=True,
        description="Servers follow a hardening baseline.",
    ),
    # Data
    WidgetDefinition(
        "sensitivityLabeling", "Sensitivity Labeling", CATEGORY_DATA, 20, manual=True,
        description="Documents and mail carry sensitivity labels.",
    ),
    WidgetDefinition(
        "dataLossPrevention", "Data Loss Prevention", CATEGORY_DATA, 20, manual=True,
        description="DLP policies block sensitive data leaving the tenant.",
    ),
    WidgetDefinition(
        "microsoft365Backups", "Microsoft 365 Backups", CATEGORY_DATA, 10, manual=True,
        description="Mailboxes, OneDrive and SharePoint are backed up.",
    ),
    WidgetDefinition(
        "serverBackups", "Server Backups", CATEGORY_DATA, 10, manual=True,
        description="On-premises and cloud servers are backed up.",
    ),
    WidgetDefinition(
        "backupTesting", "Backup Testing", CATEGORY_DATA, 10, manual=True,
        description="Backups are restored on a schedule to prove they work.",
    ),
    WidgetDefinition(
        "cloudAppProtection", "Cloud App Protection", CATEGORY_DATA, 20, manual=True,
        description="SaaS applications are governed by Defender for Cloud Apps.",
    ),
]

WIDGETS_BY_KEY: dict[str, WidgetDefinition] = {w.key: w for w in WIDGET_CATALOGUE}


def seed_widgets(db: Session) -> dict[str, int]:
    """Insert or update every catalogue widget, matched by key.

    Returns:
        Counts of ``created`` and ``updated`` rows
    """
    existing = {w.key: w for w in db.query(Widget).all()}
    created = updated = 0

    for definition in WIDGET_CATALOGUE:
        widget = existing.get(definition.key)
        if widget is None:
            widget = Widget(id=str(uuid.uuid4()), key=definition.key)
            db.add(widget)
            created += 1
        else:
            updated += 1

        widget.name = definition.name
        widget.description = definition.description
        widget.category = definition.category
        widget.manual = definition.manual
        widget.scoring_type = definition.scoring_type
        widget.scoring_config = definition.scoring_config
        widget.points_available = definition.points

    db.commit()
    logger.info(f"Widget catalogue seeded: {created} created, {updated} updated")
    return {"created": created, "updated": updated}
