"""Tool catalog and dispatch.

Every MCP tool maps 1:1 to a ``WhaleboneClient`` method and a request
model. ``ToolDispatcher.invoke`` is the single entry point used by the
server: name lookup, argument validation, one outbound call, serialization.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from .client import WhaleboneClient
from .errors import InvalidParameter, MissingRequiredParameter, UnknownOperation
from .models import (
    AnalyzeDomainParams,
    AuditLogsParams,
    DnssecTimelineParams,
    DnsTimelineParams,
    EventsStatsParams,
    EventsTimelineParams,
    IdpIncidentsParams,
    IocCountParams,
    QueryParams,
    ResolverMetricsParams,
    SearchEventsParams,
)
from .settings import Settings
from .shaper import serialize


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    params_model: type[QueryParams]
    method: str
    privacy_sensitive: bool = False


TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        "search_events",
        "Search for security events detected by Whalebone (threats blocked, logged or allowed "
        "by the resolvers). Filter by client IP, threat type, domain, device, action and time range.",
        SearchEventsParams,
        "search_events",
    ),
    ToolDescriptor(
        "get_events_timeline",
        "Get a timeline of security events, optionally aggregated by a parameter and bucketed by interval.",
        EventsTimelineParams,
        "get_events_timeline",
    ),
    ToolDescriptor(
        "get_events_stats",
        "Get aggregated statistics for security events.",
        EventsStatsParams,
        "get_events_stats",
    ),
    ToolDescriptor(
        "get_dns_timeline",
        "Get DNS traffic timeline (max 14 days back).",
        DnsTimelineParams,
        "get_dns_timeline",
    ),
    ToolDescriptor(
        "get_dnssec_timeline",
        "Get DNSSEC traffic timeline (max 14 days back).",
        DnssecTimelineParams,
        "get_dnssec_timeline",
    ),
    ToolDescriptor(
        "get_ioc_count",
        "Get counts of active Indicators of Compromise (IOCs) per threat type. Takes no parameters.",
        IocCountParams,
        "get_ioc_count",
    ),
    ToolDescriptor(
        "get_resolver_metrics",
        "Get timeline metrics of client resolvers.",
        ResolverMetricsParams,
        "get_resolver_metrics",
    ),
    ToolDescriptor(
        "analyze_domain",
        "Get domain analysis including threats and content categories for a fully qualified domain name.",
        AnalyzeDomainParams,
        "analyze_domain",
    ),
    ToolDescriptor(
        "get_audit_logs",
        "Get audit logs of the Whalebone portal (who changed what and when).",
        AuditLogsParams,
        "get_audit_logs",
        privacy_sensitive=True,
    ),
    ToolDescriptor(
        "get_idp_incidents",
        "List Identity Protection incidents (breached credentials) grouped by assets.",
        IdpIncidentsParams,
        "get_idp_incidents",
        privacy_sensitive=True,
    ),
)


def enabled_tools(settings: Settings) -> list[ToolDescriptor]:
    opt_in = {
        "get_audit_logs": settings.whalebone_enable_audit_logs,
        "get_idp_incidents": settings.whalebone_enable_idp_incidents,
    }
    return [t for t in TOOLS if not t.privacy_sensitive or opt_in.get(t.name, False)]


def parse_arguments(descriptor: ToolDescriptor, arguments: Mapping[str, Any]) -> QueryParams:
    try:
        return descriptor.params_model.model_validate(dict(arguments))
    except ValidationError as exc:
        errors = exc.errors()
        for error in errors:
            # absent, explicit null and empty string all count as "not given",
            # but only for the top-level field itself, never for list items
            top_level = len(error["loc"]) == 1
            if error["type"] == "missing" or (
                top_level and (error["type"] == "string_too_short" or error.get("input") is None)
            ):
                raise MissingRequiredParameter(str(error["loc"][0])) from exc
        first = errors[0]
        raise InvalidParameter(".".join(str(p) for p in first["loc"]), first["msg"]) from exc


class ToolDispatcher:
    def __init__(self, settings: Settings, client: WhaleboneClient):
        self.client = client
        self._tools = {t.name: t for t in enabled_tools(settings)}

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownOperation(name) from None

    def validate(self, name: str, arguments: Mapping[str, Any] | None = None) -> QueryParams:
        """Look up ``name`` and check ``arguments`` before any request is built."""
        return parse_arguments(self.get(name), arguments or {})

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None = None) -> str:
        params = self.validate(name, arguments)
        result = await getattr(self.client, self.get(name).method)(params)
        return serialize(result)
