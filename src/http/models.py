"""Typed outcomes of an outbound request."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.exceptions import InvalidTargetError, NetworkError, SafeFetchError


class FailureKind(str, Enum):
    INVALID_TARGET = "invalid_target"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class TransportResponse:
    """Raw response handed back by a transport.

    ``headers`` keeps repeated headers (``Set-Cookie``) as separate pairs.
    """

    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""


@dataclass(frozen=True)
class Success:
    """Transport returned a response, whatever its status code."""

    status: int
    headers: list[tuple[str, str]]
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)

    def header(self, name: str) -> str | None:
        """First value of header ``name`` (case-insensitive), or None."""
        values = self.header_list(name)
        return values[0] if values else None

    def header_list(self, name: str) -> list[str]:
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]


@dataclass(frozen=True)
class Failure:
    """Request did not produce a response."""

    kind: FailureKind
    message: str

    def to_error(self) -> SafeFetchError:
        """Matching exception value for the API error envelope."""
        if self.kind is FailureKind.INVALID_TARGET:
            return InvalidTargetError(self.message)
        return NetworkError(self.message)


RequestOutcome = Success | Failure
