"""Shared security utilities: SSRF validation for outbound URLs.

Matching is done on the hostname text as written in the URL (after the same
IPv4/IPv6 normalisation a browser URL parser applies). Nothing is resolved
through DNS here, so a public name that resolves to a private address is
not caught.
"""

import ipaddress
import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from src.exceptions import InvalidTargetError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = frozenset({
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
    "0.0.0.0",
})

# Private/reserved IPv4 ranges
BLOCKED_IPV4_NETS = [
    ipaddress.ip_network("127.0.0.0/8"),  # loopback
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local / cloud metadata
    ipaddress.ip_network("0.0.0.0/8"),  # current network
]

BLOCKED_IPV6_NETS = [
    ipaddress.ip_network("::1/128"),  # loopback
    ipaddress.ip_network("::/128"),  # unspecified, reaches localhost on most stacks
    ipaddress.ip_network("::ffff:0:0/96"),  # IPv4-mapped
    ipaddress.ip_network("fc00::/7"),  # unique local
    ipaddress.ip_network("fe80::/10"),  # link-local
]

_DEFAULT_PORTS = {"http": 80, "https": 443}

_DECIMAL = re.compile(r"^[0-9]+$")
_OCTAL = re.compile(r"^[0-7]*$")
_HEX = re.compile(r"^[0-9a-fA-F]*$")


@dataclass(frozen=True)
class GuardedURL:
    """A URL that passed ``guard_url``. Build it only through that function."""

    url: str
    scheme: str
    hostname: str
    port: int | None = None

    @property
    def origin(self) -> tuple[str, str, int]:
        """(scheme, host, port) with the scheme's default port filled in."""
        port = self.port if self.port is not None else _DEFAULT_PORTS[self.scheme]
        return (self.scheme, self.hostname, port)

    def __str__(self) -> str:
        return self.url


def _parse_ipv4_number(part: str) -> int | None:
    if part[:2] in ("0x", "0X"):
        digits = part[2:]
        if not _HEX.match(digits):
            return None
        return int(digits, 16) if digits else 0
    if len(part) > 1 and part.startswith("0"):
        if not _OCTAL.match(part[1:]):
            return None
        return int(part, 8)
    # No IPv4 number needs more than 10 decimal digits.
    if len(part) > 10 or not _DECIMAL.match(part):
        return None
    return int(part)


def _parse_legacy_ipv4(host: str) -> str | None:
    """Normalise shorthand IPv4 forms (``2130706433``, ``0x7f.1``, ``127.1``).

    Returns the dotted-quad form, or None when ``host`` is not numeric.
    Socket libraries accept these spellings, so they must be matched against
    the same ranges as the canonical form.
    """
    parts = host.split(".")
    if len(parts) > 1 and parts[-1] == "":
        parts = parts[:-1]
    if not parts or len(parts) > 4 or any(p == "" for p in parts):
        return None

    numbers = []
    for part in parts:
        number = _parse_ipv4_number(part)
        if number is None:
            return None
        numbers.append(number)

    if any(n > 255 for n in numbers[:-1]):
        return None
    if numbers[-1] >= 256 ** (5 - len(numbers)):
        return None

    value = numbers[-1]
    for index, number in enumerate(numbers[:-1]):
        value += number * 256 ** (3 - index)
    return str(ipaddress.IPv4Address(value))


def _normalize_host(hostname: str) -> str:
    host = hostname.lower().strip("[]")
    if host.endswith(".") and len(host) > 1:
        host = host[:-1]

    if ":" in host:
        try:
            return ipaddress.IPv6Address(host.split("%", 1)[0]).compressed
        except ValueError:
            return host

    return _parse_legacy_ipv4(host) or host


def _blocked_reason(host: str) -> str | None:
    """Return why ``host`` is blocked, or None if it may be contacted."""
    if host in BLOCKED_HOSTNAMES:
        return f"blocked hostname: {host}"

    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return None

    nets = BLOCKED_IPV4_NETS if addr.version == 4 else BLOCKED_IPV6_NETS
    if any(addr in net for net in nets):
        return f"blocked private/reserved address: {host}"
    return None


def guard_url(raw: str) -> GuardedURL | InvalidTargetError:
    """Check ``raw`` against scheme and address-class rules.

    Returns a ``GuardedURL`` on success. Rejections are returned, not raised,
    as an ``InvalidTargetError`` whose message names the reason.
    """
    try:
        parsed = urlparse(raw)
        port = parsed.port
    except ValueError:
        return InvalidTargetError("malformed URL")

    if not parsed.scheme:
        return InvalidTargetError("malformed URL")

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return InvalidTargetError(f"unsupported URL scheme: {parsed.scheme}")

    # Parsers disagree on which "@" ends the userinfo part.
    if not parsed.hostname or parsed.netloc.count("@") > 1:
        return InvalidTargetError("malformed URL")

    host = _normalize_host(parsed.hostname)
    reason = _blocked_reason(host)
    if reason:
        logger.warning("ssrf_blocked", extra={"host": host, "reason": reason})
        return InvalidTargetError(reason)

    return GuardedURL(url=raw, scheme=scheme, hostname=host, port=port)

