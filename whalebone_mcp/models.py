from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

# ---- Advisory enumerations (published in the schema, not enforced) ----
THREAT_TYPES = ["c&c", "blacklist", "malware", "phishing", "spam", "coinminer", "compromised"]
ACTIONS = ["log", "block", "allow"]
SORT_ORDERS = ["asc", "desc"]
INTERVALS = ["hour", "day", "week", "month"]
EVENT_AGGREGATES = [
    "client_ip", "action", "threat_type", "resolver_id",
    "domain", "device_id", "subscription_id", "country",
]
DNS_AGGREGATES = ["client_ip", "tld", "domain", "query", "answer", "query_type", "device_id", "country"]
DNSSEC_AGGREGATES = ["tld", "domain", "query", "query_type"]
QUERY_TYPES = [
    "a", "aaaa", "afsdb", "apl", "caa", "cdnskey", "cds", "cert", "cname", "dhcid",
    "dlv", "dname", "dnskey", "ds", "hip", "ipseckey", "key", "kx", "loc", "mx",
    "naptr", "ns", "nsec", "nsec3", "nsec3param", "openpgpkey", "ptr", "rrsig", "rp",
    "sig", "soa", "srv", "sshfp", "ta", "tkey", "tlsa", "tsig", "txt", "uri", "aname",
]
AUDIT_RESULTS = ["success", "failure"]
AUDIT_RW = ["read", "write"]
ASSET_TYPES = ["email", "phone", "domain"]


def _enum(description: str, values: list[str]) -> Any:
    return Field(description=description, json_schema_extra={"enum": values})


def _range(description: str, minimum: int, maximum: int) -> Any:
    return Field(description=description, json_schema_extra={"minimum": minimum, "maximum": maximum})


# ---- Parameter types, shared by the request models and the MCP tool signatures ----
ClientIp = Annotated[str | None, Field(description="Source IP address (supports * wildcard)")]
ThreatType = Annotated[str | None, _enum("Type of threat to filter by", THREAT_TYPES)]
ResolverId = Annotated[int | None, Field(description="ID of the resolver")]
Domain = Annotated[str | None, Field(description="Domain name (supports * wildcard)")]
SecondLevelDomain = Annotated[str | None, Field(description="Second level domain name (supports * wildcard)")]
DeviceIds = Annotated[list[str] | None, Field(description="Device identifiers")]
SubscriptionId = Annotated[str | None, Field(description="Subscription identifier")]
Action = Annotated[str | None, _enum("Event action", ACTIONS)]
Days = Annotated[int | None, _range("Number of days to look back", 1, 220)]
Hours = Annotated[int | None, _range("Number of hours to look back", 1, 5280)]
DnsDays = Annotated[int | None, _range("Number of days to look back", 1, 14)]
DnsHours = Annotated[int | None, _range("Number of hours to look back", 1, 336)]
Sort = Annotated[str | None, _enum("Sort order", SORT_ORDERS)]
Interval = Annotated[str | None, _enum("Timeline bucket size", INTERVALS)]
Scroll = Annotated[bool | None, Field(description="Enable scrolling for large result sets")]
EventAggregate = Annotated[str | None, _enum("Aggregate timeline buckets by parameter", EVENT_AGGREGATES)]
EventStatsAggregate = Annotated[str | None, _enum("Aggregate statistics by parameter", EVENT_AGGREGATES)]
QueryType = Annotated[str | None, _enum("Type of DNS query", QUERY_TYPES)]
Query = Annotated[str | None, Field(description="Complete query string (supports * wildcard)")]
Answer = Annotated[str | None, Field(description="Filter by answer content (supports * wildcard)")]
Dga = Annotated[bool | None, Field(description="Filter only DGA domains")]
Tld = Annotated[str | None, Field(description="Filter by TLD (supports * wildcard)")]
DnsAggregate = Annotated[str | None, _enum("Aggregate timeline buckets by parameter", DNS_AGGREGATES)]
DnssecAggregate = Annotated[str | None, _enum("Aggregate timeline buckets by parameter", DNSSEC_AGGREGATES)]
MetricsInterval = Annotated[str | None, _enum("Timeline interval size", INTERVALS)]
Fqdn = Annotated[str, Field(min_length=1, description="Fully Qualified Domain Name (max 253 characters)")]
AuditEvent = Annotated[str | None, Field(description="Filter by event type (supports * wildcard)")]
AuditCategory = Annotated[str | None, Field(description="Filter by category (supports * wildcard)")]
AuditResult = Annotated[str | None, _enum("Filter by result", AUDIT_RESULTS)]
AuditRw = Annotated[str | None, _enum("Filter by action type", AUDIT_RW)]
AuditUser = Annotated[str | None, Field(description="Filter by user")]
IdpSubscriptionId = Annotated[
    str | None, Field(description="Subscription identifier (required for email/phone asset types)")
]
AssetType = Annotated[str | None, _enum("Type of asset to filter incidents", ASSET_TYPES)]
AssetValue = Annotated[str | None, Field(description="Specific asset value to filter by")]
Language = Annotated[str | None, Field(description="Language code for breach description (default: en)")]
Limit = Annotated[int | None, _range("Number of rows to return (default: 50)", 1, 500)]
ScrollToken = Annotated[str | None, Field(description="Token for pagination")]


class QueryParams(BaseModel):
    """Base for per-tool query parameters. Field order is query-string order."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---- Events ----
class EventFilters(QueryParams):
    client_ip: ClientIp = None
    threat_type: ThreatType = None
    resolver_id: ResolverId = None
    domain: Domain = None
    device_id: DeviceIds = None
    subscription_id: SubscriptionId = None
    action: Action = None
    days: Days = None
    hours: Hours = None


class SearchEventsParams(EventFilters):
    scroll: Scroll = None
    sort: Sort = None


class EventsTimelineParams(EventFilters):
    aggregate: EventAggregate = None
    interval: Interval = None


class EventsStatsParams(EventFilters):
    aggregate: EventStatsAggregate = None


# ---- DNS ----
class DnsTimelineParams(QueryParams):
    client_ip: ClientIp = None
    query_type: QueryType = None
    domain: SecondLevelDomain = None
    query: Query = None
    days: DnsDays = None
    hours: DnsHours = None
    resolver_id: ResolverId = None
    device_id: DeviceIds = None
    answer: Answer = None
    dga: Dga = None
    tld: Tld = None
    aggregate: DnsAggregate = None
    interval: Interval = None


class DnssecTimelineParams(QueryParams):
    query_type: QueryType = None
    domain: SecondLevelDomain = None
    query: Query = None
    days: DnsDays = None
    hours: DnsHours = None
    resolver_id: ResolverId = None
    tld: Tld = None
    aggregate: DnssecAggregate = None
    interval: Interval = None


# ---- Threat intelligence / resolvers ----
class IocCountParams(QueryParams):
    pass


class ResolverMetricsParams(QueryParams):
    resolver_id: ResolverId = None
    days: Days = None
    hours: Hours = None
    interval: MetricsInterval = None


class AnalyzeDomainParams(QueryParams):
    fqdn: Fqdn


# ---- Privacy-sensitive ----
class AuditLogsParams(QueryParams):
    resolver_id: ResolverId = None
    days: Days = None
    hours: Hours = None
    event: AuditEvent = None
    category: AuditCategory = None
    result: AuditResult = None
    rw: AuditRw = None
    sort: Sort = None
    user: AuditUser = None


class IdpIncidentsParams(QueryParams):
    subscription_id: IdpSubscriptionId = None
    asset_type: AssetType = None
    asset_value: AssetValue = None
    language: Language = None
    limit: Limit = None
    scroll_token: ScrollToken = None
