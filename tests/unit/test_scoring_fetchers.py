"""Tests for Graph-backed widget value fetchers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.api.services.graph_client import GraphAPIError
from app.api.services.scoring import calculate_widget_score
from app.api.services.scoring_fetchers import SCORING_DATA_FETCHERS
from app.api.services.widget_catalogue import WIDGETS_BY_KEY


@pytest.fixture
def graph():
    return MagicMock()


def _points(key, value):
    widget = WIDGETS_BY_KEY[key]
    return calculate_widget_score(widget.scoring_type, widget.scoring_config, value)


@pytest.mark.asyncio
@pytest.mark.parametrize("key, method, endpoint", [
    ("compliancePolicies", "get_device_compliance_policies", "/deviceManagement/deviceCompliancePolicies"),
    ("riskySignInPolicies", "get_conditional_access_policies", "/identity/conditionalAccess/policies"),
])
async def test_graph_error_counts_as_missing_control(graph, key, method, endpoint):
    setattr(graph, method, AsyncMock(side_effect=GraphAPIError(403, endpoint, "Forbidden")))

    value = await SCORING_DATA_FETCHERS[key](graph)

    assert value is False
    assert _points(key, value) == 0


@pytest.mark.asyncio
async def test_compliance_policies_present(graph):
    graph.get_device_compliance_policies = AsyncMock(return_value=[{"id": "windows-baseline"}])

    value = await SCORING_DATA_FETCHERS["compliancePolicies"](graph)

    assert value is True
    assert _points("compliancePolicies", value) == 20


@pytest.mark.asyncio
async def test_other_fetchers_propagate_graph_errors(graph):
    graph.get_managed_devices = AsyncMock(side_effect=GraphAPIError(500, "/deviceManagement/managedDevices"))

    with pytest.raises(GraphAPIError):
        await SCORING_DATA_FETCHERS["noEncryption"](graph)


def test_every_automatic_widget_has_a_fetcher():
    automatic = {
        key for key, widget in WIDGETS_BY_KEY.items()
        if not widget.manual and key != "patchCompliance"
    }
    assert automatic == set(SCORING_DATA_FETCHERS)
