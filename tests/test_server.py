"""End-to-end tests through the FastMCP protocol layer (in-memory client)."""

import json

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from conftest import json_transport, make_settings
from whalebone_mcp.server import create_server
from whalebone_mcp.shaper import TRUNCATION_MARKER


@pytest.mark.asyncio
async def test_list_tools_default_catalog():
    server = create_server(make_settings(), transport=json_transport({}))
    async with Client(server) as client:
        tools = {t.name: t for t in await client.list_tools()}

    assert "get_audit_logs" not in tools
    assert "get_idp_incidents" not in tools
    assert len(tools) == 8
    assert tools["analyze_domain"].inputSchema["required"] == ["fqdn"]
    assert "device_id" in tools["search_events"].inputSchema["properties"]
    assert tools["get_ioc_count"].inputSchema.get("properties", {}) == {}


@pytest.mark.asyncio
async def test_list_tools_with_privacy_tools_enabled():
    settings = make_settings(whalebone_enable_audit_logs=True, whalebone_enable_idp_incidents=True)
    server = create_server(settings, transport=json_transport({}))
    async with Client(server) as client:
        names = {t.name for t in await client.list_tools()}

    assert {"get_audit_logs", "get_idp_incidents"} <= names
    assert len(names) == 10


@pytest.mark.asyncio
async def test_call_returns_bounded_json_text():
    transport = json_transport({"description": "x" * 3000, "malware": 12})
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        result = await client.call_tool("get_ioc_count", {})

    payload = json.loads(result.content[0].text)
    assert payload["malware"] == 12
    assert payload["description"].endswith(TRUNCATION_MARKER)
    assert transport.requests[0].url.path.endswith("/ioc/count")


@pytest.mark.asyncio
async def test_call_forwards_list_arguments():
    transport = json_transport([])
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        await client.call_tool("search_events", {"domain": "example.com", "device_id": ["a", "b"]})

    assert "domain=example.com&device_id=a&device_id=b" in str(transport.requests[0].url)


@pytest.mark.asyncio
async def test_remote_error_becomes_tool_error():
    transport = json_transport({"detail": "maintenance"}, status_code=503)
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        with pytest.raises(ToolError, match="503"):
            await client.call_tool("get_events_stats", {})


@pytest.mark.asyncio
async def test_server_survives_failed_call():
    transport = json_transport({}, status_code=500)
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        with pytest.raises(ToolError):
            await client.call_tool("get_ioc_count", {})
        tools = await client.list_tools()

    assert tools


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [{}, {"fqdn": ""}])
async def test_analyze_domain_without_fqdn_is_rejected_locally(arguments):
    transport = json_transport({})
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        with pytest.raises(ToolError) as info:
            await client.call_tool("analyze_domain", arguments)

    assert "Error: fqdn parameter is required" in str(info.value)
    assert transport.requests == []


@pytest.mark.asyncio
async def test_wrong_argument_type_reported_as_invalid_parameter():
    transport = json_transport({})
    server = create_server(make_settings(), transport=transport)
    async with Client(server) as client:
        with pytest.raises(ToolError) as info:
            await client.call_tool("get_resolver_metrics", {"resolver_id": "abc"})

    assert "Error: Invalid value for resolver_id" in str(info.value)
    assert transport.requests == []
