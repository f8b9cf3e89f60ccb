# whalebone_mcp/server.py
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from .client import WhaleboneClient
from .errors import WhaleboneError, format_error
from .models import (
    Action,
    Answer,
    AssetType,
    AssetValue,
    AuditCategory,
    AuditEvent,
    AuditResult,
    AuditRw,
    AuditUser,
    ClientIp,
    Days,
    DeviceIds,
    Dga,
    DnsAggregate,
    DnsDays,
    DnsHours,
    DnssecAggregate,
    Domain,
    EventAggregate,
    EventStatsAggregate,
    Fqdn,
    Hours,
    IdpSubscriptionId,
    Interval,
    Language,
    Limit,
    MetricsInterval,
    Query,
    QueryType,
    ResolverId,
    Scroll,
    ScrollToken,
    SecondLevelDomain,
    Sort,
    SubscriptionId,
    ThreatType,
    Tld,
)
from .settings import Settings, get_settings
from .tools import ToolDispatcher

logger = structlog.get_logger(__name__)


class ArgumentValidation(Middleware):
    """Validate tool arguments with the request models ahead of FastMCP's
    signature check, so rejected calls come back as ``Error: ...`` text."""

    def __init__(self, dispatcher: ToolDispatcher):
        self.dispatcher = dispatcher

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        name = context.message.name
        try:
            self.dispatcher.validate(name, context.message.arguments)
        except WhaleboneError as exc:
            logger.warning("tool_call_rejected", tool=name, error=str(exc))
            raise ToolError(format_error(exc)) from exc
        return await call_next(context)


def create_server(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastMCP:
    """Build the Whalebone MCP server.

    ``transport`` is handed to the underlying httpx client; tests use it to
    plug in an ``httpx.MockTransport``.
    """
    settings = settings or get_settings()
    client = WhaleboneClient(settings, transport=transport)
    dispatcher = ToolDispatcher(settings, client)
    enabled = {t.name: t for t in dispatcher.list_tools()}

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await client.close()

    mcp = FastMCP("Whalebone MCP", lifespan=lifespan)
    mcp.add_middleware(ArgumentValidation(dispatcher))

    async def _call(name: str, arguments: dict[str, Any]) -> str:
        try:
            return await dispatcher.invoke(name, arguments)
        except WhaleboneError as exc:
            logger.warning("tool_call_failed", tool=name, error=str(exc))
            raise ToolError(format_error(exc)) from exc

    def _tool(name: str):
        return mcp.tool(name=name, description=enabled[name].description)

    # -------------------- Events --------------------
    @_tool("search_events")
    async def search_events(
        client_ip: ClientIp = None,
        threat_type: ThreatType = None,
        resolver_id: ResolverId = None,
        domain: Domain = None,
        device_id: DeviceIds = None,
        subscription_id: SubscriptionId = None,
        action: Action = None,
        days: Days = None,
        hours: Hours = None,
        scroll: Scroll = None,
        sort: Sort = None,
    ) -> str:
        return await _call("search_events", {
            "client_ip": client_ip, "threat_type": threat_type, "resolver_id": resolver_id,
            "domain": domain, "device_id": device_id, "subscription_id": subscription_id,
            "action": action, "days": days, "hours": hours, "scroll": scroll, "sort": sort,
        })

    @_tool("get_events_timeline")
    async def get_events_timeline(
        client_ip: ClientIp = None,
        threat_type: ThreatType = None,
        resolver_id: ResolverId = None,
        domain: Domain = None,
        device_id: DeviceIds = None,
        subscription_id: SubscriptionId = None,
        action: Action = None,
        days: Days = None,
        hours: Hours = None,
        aggregate: EventAggregate = None,
        interval: Interval = None,
    ) -> str:
        return await _call("get_events_timeline", {
            "client_ip": client_ip, "threat_type": threat_type, "resolver_id": resolver_id,
            "domain": domain, "device_id": device_id, "subscription_id": subscription_id,
            "action": action, "days": days, "hours": hours,
            "aggregate": aggregate, "interval": interval,
        })

    @_tool("get_events_stats")
    async def get_events_stats(
        client_ip: ClientIp = None,
        threat_type: ThreatType = None,
        resolver_id: ResolverId = None,
        domain: Domain = None,
        device_id: DeviceIds = None,
        subscription_id: SubscriptionId = None,
        action: Action = None,
        days: Days = None,
        hours: Hours = None,
        aggregate: EventStatsAggregate = None,
    ) -> str:
        return await _call("get_events_stats", {
            "client_ip": client_ip, "threat_type": threat_type, "resolver_id": resolver_id,
            "domain": domain, "device_id": device_id, "subscription_id": subscription_id,
            "action": action, "days": days, "hours": hours, "aggregate": aggregate,
        })

    # -------------------- DNS --------------------
    @_tool("get_dns_timeline")
    async def get_dns_timeline(
        client_ip: ClientIp = None,
        query_type: QueryType = None,
        domain: SecondLevelDomain = None,
        query: Query = None,
        days: DnsDays = None,
        hours: DnsHours = None,
        resolver_id: ResolverId = None,
        device_id: DeviceIds = None,
        answer: Answer = None,
        dga: Dga = None,
        tld: Tld = None,
        aggregate: DnsAggregate = None,
        interval: Interval = None,
    ) -> str:
        return await _call("get_dns_timeline", {
            "client_ip": client_ip, "query_type": query_type, "domain": domain, "query": query,
            "days": days, "hours": hours, "resolver_id": resolver_id, "device_id": device_id,
            "answer": answer, "dga": dga, "tld": tld, "aggregate": aggregate, "interval": interval,
        })

    @_tool("get_dnssec_timeline")
    async def get_dnssec_timeline(
        query_type: QueryType = None,
        domain: SecondLevelDomain = None,
        query: Query = None,
        days: DnsDays = None,
        hours: DnsHours = None,
        resolver_id: ResolverId = None,
        tld: Tld = None,
        aggregate: DnssecAggregate = None,
        interval: Interval = None,
    ) -> str:
        return await _call("get_dnssec_timeline", {
            "query_type": query_type, "domain": domain, "query": query, "days": days,
            "hours": hours, "resolver_id": resolver_id, "tld": tld,
            "aggregate": aggregate, "interval": interval,
        })

    # -------------------- Threat intelligence / resolvers --------------------
    @_tool("get_ioc_count")
    async def get_ioc_count() -> str:
        return await _call("get_ioc_count", {})

    @_tool("get_resolver_metrics")
    async def get_resolver_metrics(
        resolver_id: ResolverId = None,
        days: Days = None,
        hours: Hours = None,
        interval: MetricsInterval = None,
    ) -> str:
        return await _call("get_resolver_metrics", {
            "resolver_id": resolver_id, "days": days, "hours": hours, "interval": interval,
        })

    @_tool("analyze_domain")
    async def analyze_domain(fqdn: Fqdn) -> str:
        return await _call("analyze_domain", {"fqdn": fqdn})

    # -------------------- Privacy-sensitive (opt-in) --------------------
    if "get_audit_logs" in enabled:
        @_tool("get_audit_logs")
        async def get_audit_logs(
            resolver_id: ResolverId = None,
            days: Days = None,
            hours: Hours = None,
            event: AuditEvent = None,
            category: AuditCategory = None,
            result: AuditResult = None,
            rw: AuditRw = None,
            sort: Sort = None,
            user: AuditUser = None,
        ) -> str:
            return await _call("get_audit_logs", {
                "resolver_id": resolver_id, "days": days, "hours": hours, "event": event,
                "category": category, "result": result, "rw": rw, "sort": sort, "user": user,
            })

    if "get_idp_incidents" in enabled:
        @_tool("get_idp_incidents")
        async def get_idp_incidents(
            subscription_id: IdpSubscriptionId = None,
            asset_type: AssetType = None,
            asset_value: AssetValue = None,
            language: Language = None,
            limit: Limit = None,
            scroll_token: ScrollToken = None,
        ) -> str:
            return await _call("get_idp_incidents", {
                "subscription_id": subscription_id, "asset_type": asset_type,
                "asset_value": asset_value, "language": language,
                "limit": limit, "scroll_token": scroll_token,
            })

    # -------------------- Health --------------------
    @mcp.resource("health://ready")
    def health_ready() -> str:
        return "ok"

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        return PlainTextResponse("OK")

    logger.info("server_created", tools=sorted(enabled))
    return mcp
