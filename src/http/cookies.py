"""In-memory cookie jar: captures Set-Cookie tokens and replays them.

Only the leading ``name=value`` token of each Set-Cookie line is kept.
Domain, Path, Expires, Max-Age, Secure, HttpOnly and SameSite are dropped,
so a single jar must only ever talk to one origin. ``OriginCookieJars``
keeps one jar per (scheme, host, port) for clients that talk to several.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str


def parse_set_cookie(line: str) -> Cookie | None:
    """Extract the ``name=value`` token of a Set-Cookie line, or None if malformed."""
    token = line.split(";", 1)[0]
    if "=" not in token:
        return None
    name, value = token.split("=", 1)
    name = name.strip()
    if not name:
        return None
    return Cookie(name=name, value=value.strip())


class CookieJar:
    """Name-keyed cookie store. Last write wins, first insertion keeps its position."""

    def __init__(self) -> None:
        self._cookies: dict[str, str] = {}

    def ingest(self, set_cookie_values: Iterable[str]) -> None:
        """Upsert every well-formed Set-Cookie line; malformed lines are skipped."""
        for line in set_cookie_values:
            cookie = parse_set_cookie(line)
            if cookie is None:
                logger.debug("set_cookie_skipped")
                continue
            self._cookies[cookie.name] = cookie.value

    def header(self) -> str | None:
        """Render the Cookie request header, or None when the jar is empty."""
        if not self._cookies:
            return None
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def cookies(self) -> list[Cookie]:
        return [Cookie(name=name, value=value) for name, value in self._cookies.items()]

    def clear(self) -> None:
        self._cookies.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __len__(self) -> int:
        return len(self._cookies)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(self.cookies())


class OriginCookieJars:
    """One ``CookieJar`` per origin, created on first use."""

    def __init__(self) -> None:
        self._jars: dict[tuple[str, str, int], CookieJar] = {}

    def jar_for(self, origin: tuple[str, str, int]) -> CookieJar:
        jar = self._jars.get(origin)
        if jar is None:
            jar = self._jars[origin] = CookieJar()
        return jar

    def origins(self) -> list[tuple[str, str, int]]:
        return list(self._jars)

    def clear(self) -> None:
        self._jars.clear()
