"""Errors reported back to MCP callers.

Every failure of a tool call is one of the classes below. They are raised
by the client and the dispatcher and converted to a text payload with
``isError`` set only at the MCP boundary (see ``server.py``).
"""

from __future__ import annotations

SIZE_HINT = (
    "Tip: use more specific filters or pagination to reduce the response "
    "size (domain, client_ip, threat_type or a shorter time range)."
)


class WhaleboneError(RuntimeError):
    """Base class for all tool call failures."""


class RemoteApiError(WhaleboneError):
    def __init__(self, status: int, reason: str):
        super().__init__(f"Whalebone API error: {status} {reason}".rstrip())
        self.status = status
        self.reason = reason


class MalformedResponseError(WhaleboneError):
    pass


class TransportError(WhaleboneError):
    pass


class MissingRequiredParameter(WhaleboneError):
    def __init__(self, parameter: str):
        super().__init__(f"{parameter} parameter is required")
        self.parameter = parameter


class InvalidParameter(WhaleboneError):
    def __init__(self, parameter: str, detail: str):
        super().__init__(f"Invalid value for {parameter}: {detail}")
        self.parameter = parameter


class UnknownOperation(WhaleboneError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


def format_error(exc: BaseException) -> str:
    message = str(exc)
    text = f"Error: {message}"
    lowered = message.lower()
    if "size" in lowered or "truncat" in lowered:
        text = f"{text}\n\n{SIZE_HINT}"
    return text
