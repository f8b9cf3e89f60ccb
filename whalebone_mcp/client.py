from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from .errors import MalformedResponseError, RemoteApiError, TransportError
from .models import (
    AnalyzeDomainParams,
    AuditLogsParams,
    DnssecTimelineParams,
    DnsTimelineParams,
    EventsStatsParams,
    EventsTimelineParams,
    IdpIncidentsParams,
    IocCountParams,
    ResolverMetricsParams,
    SearchEventsParams,
)
from .settings import Settings
from .shaper import ResponseShaper

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "whalebone-mcp/1.0",
    "Accept": "application/json",
    "Content-Type": "application/json",
}
ACCESS_KEY_HEADER = "Wb-Access-Key"
SECRET_KEY_HEADER = "Wb-Secret-Key"


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query(arguments: Mapping[str, Any] | BaseModel | None) -> list[tuple[str, str]]:
    """Turn an argument bag into ordered query pairs.

    ``None`` values are dropped, lists repeat the key once per element.
    """
    if arguments is None:
        return []
    if isinstance(arguments, BaseModel):
        arguments = arguments.model_dump()
    pairs: list[tuple[str, str]] = []
    for key, value in arguments.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _to_str(v)) for v in value)
        else:
            pairs.append((key, _to_str(value)))
    return pairs


class WhaleboneClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = settings.whalebone_base_url.rstrip("/")
        self.shaper = ResponseShaper(settings)
        self._headers = {
            **DEFAULT_HEADERS,
            ACCESS_KEY_HEADER: settings.whalebone_access_key,
            SECRET_KEY_HEADER: settings.whalebone_secret_key,
        }
        self._timeout = settings.whalebone_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(base_url=self.base_url,
                                                 headers=self._headers,
                                                 timeout=self._timeout,
                                                 transport=self._transport)

    async def close(self) -> None:
        async with self._lock:
            if self._client:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self) -> WhaleboneClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get(self, path: str, params: Mapping[str, Any] | BaseModel | None = None) -> Any:
        if self._client is None:
            await self.start()
        assert self._client, "client not started"

        query = build_query(params)
        logger.info("whalebone_request", path=path, params=[k for k, _ in query])
        try:
            r = await self._client.get(path, params=query)
        except httpx.RequestError as exc:
            logger.error("whalebone_transport_error", path=path, error=repr(exc))
            raise TransportError(f"Request to Whalebone API failed: {exc!r}") from exc

        if not r.is_success:
            logger.warning("whalebone_api_error", path=path, status=r.status_code)
            raise RemoteApiError(r.status_code, r.reason_phrase)

        try:
            data = r.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Whalebone API returned a non-JSON body for {path} (status {r.status_code})"
            ) from exc

        report = self.shaper.shape_report(data)
        logger.debug("response_shaped", path=path, raw_bytes=len(r.content),
                     size=report.size, limited=report.limited)
        return report.payload

    # ---- endpoints ----
    async def search_events(self, params: SearchEventsParams) -> Any:
        return await self._get("/events/search", params)

    async def get_events_timeline(self, params: EventsTimelineParams) -> Any:
        return await self._get("/events/timeline", params)

    async def get_events_stats(self, params: EventsStatsParams) -> Any:
        return await self._get("/events/stats", params)

    async def get_dns_timeline(self, params: DnsTimelineParams) -> Any:
        return await self._get("/dns/timeline", params)

    async def get_dnssec_timeline(self, params: DnssecTimelineParams) -> Any:
        return await self._get("/dnssec/timeline", params)

    async def get_ioc_count(self, params: IocCountParams | None = None) -> Any:
        return await self._get("/ioc/count")

    async def get_resolver_metrics(self, params: ResolverMetricsParams) -> Any:
        return await self._get("/resolver/metrics", params)

    async def analyze_domain(self, params: AnalyzeDomainParams) -> Any:
        return await self._get("/domain/analysis", {"fqdn": params.fqdn})

    async def get_audit_logs(self, params: AuditLogsParams) -> Any:
        return await self._get("/audit/logs", params)

    async def get_idp_incidents(self, params: IdpIncidentsParams) -> Any:
        return await self._get("/idp/incidents", params)
