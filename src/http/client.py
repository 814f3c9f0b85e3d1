"""Guarded HTTP client with a per-instance cookie jar and layered headers.

A request passes through, in order: URL guard, header layering
(defaults < option headers < override headers), cookie injection, transport,
Set-Cookie capture. Failures come back as ``Failure`` values; nothing raised
by the transport escapes ``execute``.

One client per logical session. Concurrent calls on the same instance share
the jar and the last Set-Cookie processed wins.
"""

import json
import logging
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from src.exceptions import InvalidTargetError
from src.http.cookies import CookieJar, OriginCookieJars
from src.http.models import Failure, FailureKind, RequestOutcome, Success
from src.http.transport import HttpxTransport, Transport
from src.utils.redact import redact_headers
from src.utils.security import GuardedURL, guard_url

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
GENERIC_NETWORK_ERROR = "network request failed"


def layer_headers(*layers: Mapping[str, str] | None) -> httpx.Headers:
    """Merge header layers, later layers winning on case-insensitive name clashes."""
    headers = httpx.Headers()
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            headers[key] = value
    return headers


class RequestClient:
    """Outbound HTTP client that refuses SSRF-prone targets."""

    def __init__(
        self,
        default_headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        scope_cookies_by_origin: bool = False,
    ) -> None:
        self._default_headers = dict(default_headers or {})
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()
        self._cookie_jar = CookieJar()
        self._origin_jars = OriginCookieJars() if scope_cookies_by_origin else None

    @property
    def default_headers(self) -> dict[str, str]:
        return dict(self._default_headers)

    @property
    def cookie_jar(self) -> CookieJar:
        """Shared jar used when cookies are not scoped by origin."""
        return self._cookie_jar

    def cookie_jar_for(self, target: GuardedURL) -> CookieJar:
        if self._origin_jars is None:
            return self._cookie_jar
        return self._origin_jars.jar_for(target.origin)

    async def execute(
        self,
        url: str,
        method: str,
        option_headers: Mapping[str, str] | None = None,
        override_headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> RequestOutcome:
        """Send one request and return ``Success`` or ``Failure``.

        Any HTTP status, 4xx and 5xx included, is a ``Success``.
        """
        target = guard_url(url)
        if isinstance(target, InvalidTargetError):
            return Failure(FailureKind.INVALID_TARGET, target.message)

        headers = layer_headers(self._default_headers, option_headers, override_headers)

        jar = self.cookie_jar_for(target)
        cookie_header = jar.header()
        if cookie_header and "cookie" not in headers:
            headers["Cookie"] = cookie_header

        log_extra = {"method": method, "host": target.hostname}
        try:
            response = await self._transport.execute(method, target.url, headers, body)
        except Exception as e:
            message = str(e) or GENERIC_NETWORK_ERROR
            logger.error(
                "outbound_request_failed",
                extra={**log_extra, "exc_type": type(e).__name__, "detail": message},
            )
            return Failure(FailureKind.NETWORK_ERROR, message)

        set_cookies = [v for k, v in response.headers if k.lower() == "set-cookie"]
        if set_cookies:
            jar.ingest(set_cookies)

        logger.debug(
            "outbound_request",
            extra={
                **log_extra,
                "status": response.status,
                "headers": redact_headers(headers.items()),
            },
        )
        return Success(
            status=response.status,
            headers=list(response.headers),
            body=response.body,
        )

    async def get(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> RequestOutcome:
        return await self.execute(url, "GET", override_headers=headers)

    async def post_json(
        self,
        url: str,
        body: Any,
        headers: Mapping[str, str] | None = None,
        *,
        method: str = "POST",
    ) -> RequestOutcome:
        """Send ``body`` serialized as JSON, with POST unless ``method`` says otherwise."""
        return await self.execute(
            url,
            method,
            option_headers={"Content-Type": JSON_CONTENT_TYPE},
            override_headers=headers,
            body=json.dumps(body),
        )

    async def submit_form(
        self,
        url: str,
        form: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
        *,
        method: str = "POST",
    ) -> RequestOutcome:
        """POST ``form`` URL-encoded, fields joined with ``&``."""
        return await self.execute(
            url,
            method,
            option_headers={"Content-Type": FORM_CONTENT_TYPE},
            override_headers=headers,
            body=urlencode(form),
        )

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    async def __aenter__(self) -> "RequestClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_http_client(
    default_headers: Mapping[str, str] | None = None,
) -> RequestClient:
    return RequestClient(default_headers=default_headers)
