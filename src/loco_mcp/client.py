"""
HTTP adapter for the Loco (localise.biz) REST API.

Every tool call goes through `LocoClient.call`, which:
- attaches `Authorization: Loco <key>` (the key is resolved per call),
- sends either a JSON body or an opaque text body,
- turns non-2xx answers into `ApiError` and connection failures into `TransportError`,
- returns the body as `ParsedJson` when it parses, `RawText` otherwise.

There are no retries and no shared session: one request per call.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Union
from urllib.parse import quote

import requests

from loco_common.errors import ApiError, TransportError
from loco_config.settings import api_base_url, api_key, http_timeout

logger = logging.getLogger(__name__)

AUTH_SCHEME = "Loco"

# Same set of characters JavaScript's encodeURIComponent leaves alone.
_PATH_SAFE = "!~*'()"


def encode_path_segment(value: str) -> str:
    """Percent-encode a user supplied value for use as a single path segment."""
    return quote(value, safe=_PATH_SAFE)


@dataclass(frozen=True)
class ParsedJson:
    value: Any


@dataclass(frozen=True)
class RawText:
    text: str


ApiResult = Union[ParsedJson, RawText]


def parse_body(text: str) -> ApiResult:
    try:
        return ParsedJson(json.loads(text))
    except ValueError:
        return RawText(text)


@dataclass(frozen=True)
class LocoClientConfig:
    base_url: str = field(default_factory=api_base_url)
    timeout: float | None = field(default_factory=http_timeout)


class LocoClient:
    """A thin wrapper around `requests.request` bound to the Loco API."""

    def __init__(
        self,
        *,
        config: LocoClientConfig | None = None,
        key_provider: Callable[[], str] = api_key,
    ) -> None:
        self.config = config or LocoClientConfig()
        self._key_provider = key_provider

    def call(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        body: str | None = None,
        raw_body: bool = False,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        expect_json: bool = True,
    ) -> ApiResult:
        """
        Issue one request against ``base_url + endpoint``.

        ``body`` is sent as-is. With ``raw_body=False`` it must already be a
        serialized JSON document and the JSON content type is set; with
        ``raw_body=True`` no content type is added. ``expect_json=False``
        skips the JSON parse attempt on success.
        """
        # Credential first: a missing key must fail before any network I/O.
        req_headers = {"Authorization": f"{AUTH_SCHEME} {self._key_provider()}"}
        if headers:
            req_headers.update(headers)
        if not raw_body:
            req_headers["Content-Type"] = "application/json"

        url = f"{self.config.base_url}{endpoint}"
        method = method.upper()
        data = body.encode("utf-8") if body is not None else None

        t0 = time.perf_counter()
        try:
            resp = requests.request(
                method,
                url,
                headers=req_headers,
                params=dict(params) if params else None,
                data=data,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            ms = int((time.perf_counter() - t0) * 1000)
            logger.warning("HTTP %s %s failed (ms=%s): %s", method, url, ms, e)
            raise TransportError(f"Loco API request failed: {e}") from e

        text = resp.text
        if not resp.ok:
            ms = int((time.perf_counter() - t0) * 1000)
            logger.warning("HTTP %s %s failed (status=%s, ms=%s)", method, url, resp.status_code, ms)
            raise ApiError(resp.status_code, text)

        logger.debug("HTTP %s %s -> %s", method, url, resp.status_code)
        if not expect_json:
            return RawText(text)
        return parse_body(text)
