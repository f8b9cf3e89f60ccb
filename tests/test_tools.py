"""Tests for the tool catalog and dispatcher."""

import json

import pytest

from conftest import json_transport, make_settings
from whalebone_mcp.client import WhaleboneClient
from whalebone_mcp.errors import (
    InvalidParameter,
    MissingRequiredParameter,
    RemoteApiError,
    UnknownOperation,
    format_error,
)
from whalebone_mcp.tools import TOOLS, ToolDispatcher, enabled_tools

DEFAULT_TOOLS = {
    "search_events",
    "get_events_timeline",
    "get_events_stats",
    "get_dns_timeline",
    "get_dnssec_timeline",
    "get_ioc_count",
    "get_resolver_metrics",
    "analyze_domain",
}


def dispatcher(transport, **overrides) -> ToolDispatcher:
    settings = make_settings(**overrides)
    return ToolDispatcher(settings, WhaleboneClient(settings, transport=transport))


class TestCatalog:

    def test_ten_tools_declared(self):
        assert len(TOOLS) == 10
        assert len({t.name for t in TOOLS}) == 10

    def test_privacy_tools_disabled_by_default(self):
        names = {t.name for t in enabled_tools(make_settings())}
        assert names == DEFAULT_TOOLS

    def test_privacy_tools_opt_in(self):
        names = {
            t.name
            for t in enabled_tools(
                make_settings(whalebone_enable_audit_logs=True, whalebone_enable_idp_incidents=True)
            )
        }
        assert names == DEFAULT_TOOLS | {"get_audit_logs", "get_idp_incidents"}

    def test_list_tools_is_stable(self):
        d = dispatcher(json_transport({}))
        assert d.list_tools() == d.list_tools()


class TestInvoke:

    @pytest.mark.asyncio
    async def test_invoke_returns_serialized_json(self):
        transport = json_transport({"malware": 3})
        text = await dispatcher(transport).invoke("get_ioc_count", {})
        assert json.loads(text) == {"malware": 3}

    @pytest.mark.asyncio
    async def test_invoke_drops_none_arguments(self):
        transport = json_transport([])
        await dispatcher(transport).invoke(
            "search_events", {"domain": "example.com", "device_id": ["a", "b"], "days": None}
        )
        url = transport.requests[0].url
        assert "domain=example.com&device_id=a&device_id=b" in str(url)
        assert "days" not in url.params

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        transport = json_transport({})
        with pytest.raises(UnknownOperation, match="Unknown tool: nope"):
            await dispatcher(transport).invoke("nope", {})
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_disabled_tool_is_unknown(self):
        transport = json_transport({})
        with pytest.raises(UnknownOperation):
            await dispatcher(transport).invoke("get_audit_logs", {})
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_enabled_privacy_tool(self):
        transport = json_transport({"logs": []})
        d = dispatcher(transport, whalebone_enable_audit_logs=True)
        await d.invoke("get_audit_logs", {"user": "admin"})
        assert transport.requests[0].url.path.endswith("/audit/logs")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [{}, {"fqdn": ""}, {"fqdn": None}, None])
    async def test_analyze_domain_requires_fqdn(self, arguments):
        transport = json_transport({})
        with pytest.raises(MissingRequiredParameter, match="fqdn"):
            await dispatcher(transport).invoke("analyze_domain", arguments)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_wrong_type_is_invalid_parameter(self):
        transport = json_transport({})
        with pytest.raises(InvalidParameter, match="resolver_id"):
            await dispatcher(transport).invoke("get_resolver_metrics", {"resolver_id": "not-a-number"})
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_null_list_item_is_invalid_not_missing(self):
        transport = json_transport({})
        with pytest.raises(InvalidParameter, match="device_id"):
            await dispatcher(transport).invoke("search_events", {"device_id": ["a", None]})
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_ranges_are_advisory(self):
        transport = json_transport({})
        await dispatcher(transport).invoke("search_events", {"days": 999, "threat_type": "other"})
        params = transport.requests[0].url.params
        assert params["days"] == "999"
        assert params["threat_type"] == "other"

    @pytest.mark.asyncio
    async def test_unknown_arguments_ignored(self):
        transport = json_transport({})
        await dispatcher(transport).invoke("get_resolver_metrics", {"resolver_id": 1, "bogus": "x"})
        assert "bogus" not in transport.requests[0].url.params


class TestFormatError:

    def test_remote_error_message(self):
        text = format_error(RemoteApiError(503, "Service Unavailable"))
        assert text == "Error: Whalebone API error: 503 Service Unavailable"
        assert "results" not in text

    def test_size_hint_appended(self):
        text = format_error(RuntimeError("Response size exceeded"))
        assert "use more specific filters or pagination" in text

    def test_truncation_hint_appended(self):
        text = format_error(RuntimeError("output was truncated"))
        assert "use more specific filters or pagination" in text

    def test_no_hint_otherwise(self):
        assert "pagination" not in format_error(MissingRequiredParameter("fqdn"))
