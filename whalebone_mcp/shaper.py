"""Response size control.

Whalebone endpoints return unbounded JSON. Before anything is handed back
to an MCP caller it goes through three stages, always in this order:

1. result-count limiting: lists longer than ``max_results`` are replaced by
   a wrapper object holding the first ``max_results`` items. Mappings have
   their direct list values limited (one level deep only).
2. string truncation: strings longer than ``MAX_STRING_LENGTH`` are cut
   and marked.
3. total-size enforcement: if the serialized value is still larger than
   ``max_response_size``, lists are cut down to an estimated item budget
   and anything else gets a second, more aggressive string pass.

Stages 2 and 3 only run when truncation is enabled. Nothing here performs
I/O; the shaper is safe to call on any JSON value.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .settings import Settings

MAX_STRING_LENGTH = 1000
AGGRESSIVE_STRING_LENGTH = 200
TRUNCATION_MARKER = "... [truncated]"
# share of max_response_size the size-enforcing cut aims for
SAFE_BUDGET_RATIO = 0.8


def serialize(value: Any) -> str:
    """Render a value the way it is sent to the caller (and measured)."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def truncate_strings(value: Any, limit: int = MAX_STRING_LENGTH) -> Any:
    if isinstance(value, str):
        if len(value) > limit:
            return value[:limit] + TRUNCATION_MARKER
        return value
    if isinstance(value, list):
        return [truncate_strings(item, limit) for item in value]
    if isinstance(value, dict):
        return {key: truncate_strings(item, limit) for key, item in value.items()}
    return value


def _wrap(items: list[Any], keep: int, message: str) -> dict[str, Any]:
    return {
        "results": items[:keep],
        "total_available": len(items),
        "returned": keep,
        "truncated": True,
        "message": message,
    }


@dataclass(frozen=True)
class ShapeResult:
    payload: Any
    size: int
    # a list was replaced by a results wrapper
    limited: bool


def _replaced_lists(before: Any, after: Any) -> bool:
    if isinstance(before, list):
        return after is not before
    if isinstance(before, dict):
        return any(after[key] is not item for key, item in before.items() if isinstance(item, list))
    return False


class ResponseShaper:
    def __init__(self, settings: Settings):
        self.max_results = settings.whalebone_max_results
        self.max_response_size = settings.whalebone_max_response_size
        self.enable_truncation = settings.whalebone_enable_truncation

    def shape(self, value: Any) -> Any:
        return self.shape_report(value).payload

    def shape_report(self, value: Any) -> ShapeResult:
        limited = self.limit_results(value)
        was_limited = _replaced_lists(value, limited)
        if self.enable_truncation:
            truncated = truncate_strings(limited)
            bounded = self.enforce_size(truncated)
            was_limited = was_limited or (isinstance(truncated, list) and not isinstance(bounded, list))
        else:
            bounded = limited
        return ShapeResult(bounded, len(serialize(bounded)), was_limited)

    # ---- stage 1 ----
    def _limit_list(self, items: list[Any]) -> Any:
        if len(items) <= self.max_results:
            return items
        return _wrap(
            items,
            self.max_results,
            f"Showing first {self.max_results} of {len(items)} results. "
            "Use more specific filters to narrow down the results.",
        )

    def limit_results(self, value: Any) -> Any:
        if isinstance(value, list):
            return self._limit_list(value)
        if isinstance(value, dict):
            return {
                key: self._limit_list(item) if isinstance(item, list) else item
                for key, item in value.items()
            }
        return value

    # ---- stage 3 ----
    def enforce_size(self, value: Any) -> Any:
        size = len(serialize(value))
        if size <= self.max_response_size:
            return value

        if isinstance(value, list) and value:
            average = size / len(value)
            budget = max(1, int(self.max_response_size * SAFE_BUDGET_RATIO / average))
            return _wrap(
                value,
                budget,
                f"Response truncated to {budget} of {len(value)} items to stay "
                f"within the {self.max_response_size} character size limit. "
                "Use more specific filters or pagination.",
            )

        # best effort: may still exceed max_response_size
        return truncate_strings(value, AGGRESSIVE_STRING_LENGTH)
