"""Graph-backed value fetchers for automatically scored widgets.

Each fetcher takes a ``GraphClient`` and returns the single value that the
widget's scoring type expects (see ``app.api.services.scoring``).
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.api.services import evaluators
from app.api.services.graph_client import GraphAPIError, GraphClient

logger = logging.getLogger(__name__)

Fetcher = Callable[[GraphClient], Awaitable[Any]]


async def fetch_admin_count(client: GraphClient) -> int:
    return evaluators.count_admins(await client.get_admin_role_members())


async def fetch_has_compliance_policies(client: GraphClient) -> bool:
    try:
        policies = await client.get_device_compliance_policies()
    except GraphAPIError as e:
        logger.error(f"Graph API error fetching compliance policies: {e.status_code}")
        return False
    return len(policies) > 0


async def fetch_has_risky_sign_in_policy(client: GraphClient) -> bool:
    try:
        policies = await client.get_conditional_access_policies()
    except GraphAPIError as e:
        logger.error(f"Graph API error fetching sign-in policies: {e.status_code}")
        return False
    return evaluators.has_risk_based_sign_in_policy(policies)


async def fetch_secure_score_percentage(client: GraphClient) -> float:
    return evaluators.secure_score_percentage(await client.get_latest_secure_score())


async def fetch_unencrypted_percentage(client: GraphClient) -> float:
    return evaluators.unencrypted_percentage(await client.get_managed_devices())


async def fetch_phish_resistant_percentage(client: GraphClient) -> int:
    return evaluators.phish_resistant_percentage(await client.get_authentication_methods_policy())


async def fetch_has_trusted_location(client: GraphClient) -> bool:
    return evaluators.has_trusted_ip_location(await client.get_named_locations())


SCORING_DATA_FETCHERS: dict[str, Fetcher] = {
    "microsoft365Admins": fetch_admin_count,  # range
    "compliancePolicies": fetch_has_compliance_policies,  # yesno
    "riskySignInPolicies": fetch_has_risky_sign_in_policy,  # yesno
    "microsoftSecureScore": fetch_secure_score_percentage,  # percentage
    "noEncryption": fetch_unencrypted_percentage,  # percentageInverse
    "phishResistantMFA": fetch_phish_resistant_percentage,  # percentage
    "trustedLocations": fetch_has_trusted_location,  # yesno
}
