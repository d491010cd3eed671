"""Tests for the Microsoft Graph client."""

from unittest.mock import AsyncMock

import httpx
import pytest

from app.api.services import graph_client
from app.api.services.graph_client import GraphAPIError, GraphClient


class FakeAsyncClient:
    """Stands in for httpx.AsyncClient, replaying canned responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, *args, **kwargs):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def request(self, method, url, headers=None, params=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "params": params})
        return self.responses.pop(0)


@pytest.fixture
def client(monkeypatch):
    graph = GraphClient("contoso.onmicrosoft.com", "client-id", "client-secret")
    monkeypatch.setattr(graph, "_get_token", lambda: "fake-token")
    return graph


@pytest.fixture
def fake_http(monkeypatch):
    def _install(*responses):
        fake = FakeAsyncClient(responses)
        monkeypatch.setattr(graph_client.httpx, "AsyncClient", fake)
        return fake

    return _install


def test_for_connection_uses_stored_credentials():
    class Connection:
        tenant_domain = "fabrikam.onmicrosoft.com"
        client_id = "abc"
        client_secret = "shh"

    graph = GraphClient.for_connection(Connection())
    assert graph.tenant_domain == "fabrikam.onmicrosoft.com"
    assert graph.client_id == "abc"
    assert graph.client_secret == "shh"


@pytest.mark.asyncio
async def test_get_all_follows_next_link(client, fake_http):
    fake = fake_http(
        httpx.Response(200, json={
            "value": [{"id": "1"}],
            "@odata.nextLink": "https://graph.microsoft.com/v1.0/deviceManagement/managedDevices?$skiptoken=x",
        }),
        httpx.Response(200, json={"value": [{"id": "2"}]}),
    )

    devices = await client.get_managed_devices()

    assert [d["id"] for d in devices] == ["1", "2"]
    assert fake.calls[0]["url"].endswith("/deviceManagement/managedDevices")
    assert fake.calls[1]["url"].endswith("$skiptoken=x")
    assert fake.calls[1]["params"] is None
    assert fake.calls[0]["headers"]["Authorization"] == "Bearer fake-token"


@pytest.mark.asyncio
async def test_error_status_raises(client, fake_http):
    fake_http(httpx.Response(403, text="Forbidden"))

    with pytest.raises(GraphAPIError) as exc_info:
        await client.get_conditional_access_policies()

    assert exc_info.value.status_code == 403
    assert exc_info.value.endpoint == "/identity/conditionalAccess/policies"


@pytest.mark.asyncio
async def test_throttling_is_retried(client, fake_http, monkeypatch):
    monkeypatch.setattr("app.core.retry.asyncio.sleep", AsyncMock())
    fake = fake_http(
        httpx.Response(429, text="Too many requests"),
        httpx.Response(200, json={"value": [{"id": "loc"}]}),
    )

    locations = await client.get_named_locations()

    assert locations == [{"id": "loc"}]
    assert len(fake.calls) == 2


@pytest.mark.asyncio
async def test_latest_secure_score(client, fake_http):
    fake = fake_http(httpx.Response(200, json={"value": [{"currentScore": 42}]}))

    latest = await client.get_latest_secure_score()

    assert latest == {"currentScore": 42}
    assert fake.calls[0]["params"] == {"$top": 1}


@pytest.mark.asyncio
async def test_latest_secure_score_empty(client, fake_http):
    fake_http(httpx.Response(200, json={"value": []}))
    assert await client.get_latest_secure_score() is None


@pytest.mark.asyncio
async def test_admin_role_members_only_admin_roles(client, monkeypatch):
    monkeypatch.setattr(client, "get_directory_roles", AsyncMock(return_value=[
        {"id": "r1", "displayName": "Global Administrator"},
        {"id": "r2", "displayName": "Directory Readers"},
    ]))
    members = AsyncMock(return_value=[{"id": "u1"}])
    monkeypatch.setattr(client, "get_directory_role_members", members)

    result = await client.get_admin_role_members()

    assert result == [{"role": "Global Administrator", "members": [{"id": "u1"}]}]
    members.assert_awaited_once_with("r1")
