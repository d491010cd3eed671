"""Microsoft Graph API client for security posture reads."""

import logging
from typing import Any

import httpx
from azure.identity import ClientSecretCredential

from app.core.config import get_settings
from app.core.retry import GRAPH_API_POLICY, retry_with_backoff

logger = logging.getLogger(__name__)
settings = get_settings()

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]


class GraphAPIError(Exception):
    """Graph answered with a non-success status."""

    def __init__(self, status_code: int, endpoint: str, message: str = "") -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"Graph API error {status_code} on {endpoint}: {message[:200]}")


class MissingConnectionError(Exception):
    """Tenant has no Microsoft 365 connection configured."""

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"No Microsoft 365 connection found for tenant {tenant_id}")


class GraphClient:
    """Microsoft Graph API client wrapper.

    Uses app-only (client credentials) auth against the customer tenant.
    Every method returns raw Graph JSON; interpretation lives in
    ``app.api.services.evaluators``.
    """

    def __init__(
        self,
        tenant_domain: str,
        client_id: str | None = None,
        client_secret: str | None = None,
    ):
        self.tenant_domain = tenant_domain
        self.client_id = client_id or settings.azure_client_id
        self.client_secret = client_secret or settings.azure_client_secret
        self._credential: ClientSecretCredential | None = None

    @classmethod
    def for_connection(cls, connection) -> "GraphClient":
        """Build a client from a stored Microsoft365Connection row."""
        return cls(
            tenant_domain=connection.tenant_domain,
            client_id=connection.client_id,
            client_secret=connection.client_secret,
        )

    def _get_credential(self) -> ClientSecretCredential:
        if not self._credential:
            self._credential = ClientSecretCredential(
                tenant_id=self.tenant_domain,
                client_id=self.client_id,
                client_secret=self.client_secret,
            )
        return self._credential

    def _get_token(self) -> str:
        """Get access token for Graph API."""
        return self._get_credential().get_token(*GRAPH_SCOPES).token

    @retry_with_backoff(GRAPH_API_POLICY)
    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make authenticated request to Graph API.

        ``endpoint`` may be a path relative to the API base or an absolute
        ``@odata.nextLink`` URL.

        Raises:
            GraphAPIError: On any non-2xx response
        """
        headers = {
            "Authorization": f"Bearer {self._get_token()}",
            "Content-Type": "application/json",
        }
        url = endpoint if endpoint.startswith("http") else f"{settings.graph_api_base}{endpoint}"

        async with httpx.AsyncClient(timeout=settings.graph_timeout_seconds) as client:
            response = await client.request(method=method, url=url, headers=headers, params=params)

        if not response.is_success:
            logger.warning(f"Graph request failed: {method} {endpoint} -> {response.status_code}")
            raise GraphAPIError(response.status_code, endpoint, response.text)

        return response.json()

    async def _get_all(self, endpoint: str, params: dict[str, Any] | None = None) -> list[dict]:
        """GET a collection, following @odata.nextLink until exhausted."""
        items: list[dict] = []
        next_endpoint: str | None = endpoint

        while next_endpoint:
            data = await self._request("GET", next_endpoint, params)
            items.extend(data.get("value", []))
            next_endpoint = data.get("@odata.nextLink")
            params = None  # nextLink already carries the query string

        return items

    async def get_directory_roles(self) -> list[dict]:
        """Activated directory roles in the tenant."""
        return await self._get_all("/directoryRoles")

    async def get_directory_role_members(self, role_id: str) -> list[dict]:
        return await self._get_all(f"/directoryRoles/{role_id}/members")

    async def get_admin_role_members(self) -> list[dict]:
        """Members of every role whose name contains "admin".

        Returns:
            ``[{"role": displayName, "members": [...]}, ...]``
        """
        roles = await self.get_directory_roles()
        admin_roles = [r for r in roles if "admin" in (r.get("displayName") or "").lower()]

        result = []
        for role in admin_roles:
            members = await self.get_directory_role_members(role["id"])
            result.append({"role": role.get("displayName"), "members": members})
        return result

    async def get_conditional_access_policies(self) -> list[dict]:
        return await self._get_all("/identity/conditionalAccess/policies")

    async def get_named_locations(self) -> list[dict]:
        return await self._get_all("/identity/conditionalAccess/namedLocations")

    async def get_authentication_methods_policy(self) -> dict:
        """Tenant authentication methods policy (single object, not a collection)."""
        return await self._request("GET", "/policies/authenticationMethodsPolicy")

    async def get_managed_devices(self) -> list[dict]:
        """Intune managed devices."""
        return await self._get_all("/deviceManagement/managedDevices")

    async def get_device_compliance_policies(self) -> list[dict]:
        return await self._get_all("/deviceManagement/deviceCompliancePolicies")

    async def get_secure_scores(self, top: int = 500) -> list[dict]:
        """Daily secure score entries, newest first as Graph returns them."""
        data = await self._request("GET", "/security/secureScores", {"$top": top})
        return data.get("value", [])

    async def get_latest_secure_score(self) -> dict | None:
        data = await self._request("GET", "/security/secureScores", {"$top": 1})
        entries = data.get("value", [])
        return entries[0] if entries else None

    async def get_organization(self) -> dict | None:
        """Organization profile; used to verify a connection works."""
        data = await self._request("GET", "/organization")
        entries = data.get("value", [])
        return entries[0] if entries else None
