from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Sequence, Union
from urllib.parse import quote, unquote, urljoin, urlsplit

import requests

from streamseries.errors import BadRequestError, UpstreamError

logger = logging.getLogger(__name__)

RELAY_PATH = "/video-proxy"
REDIRECT_STATUSES = frozenset({301, 302, 307, 308})
DEFAULT_CONTENT_TYPE = "video/mp4"
PASSTHROUGH_HEADERS = ("Content-Length", "Content-Range")


def encode_uri_component(value: str) -> str:
    return quote(value, safe="!~*'()")


def proxy_path(url: str, base: str = RELAY_PATH) -> str:
    return f"{base}?url={encode_uri_component(url)}"


@dataclass(slots=True)
class RelayRedirect:
    location: str

    @property
    def proxy_location(self) -> str:
        return proxy_path(self.location)


@dataclass(slots=True)
class RelayResponse:
    status: int
    headers: Dict[str, str]
    body: Iterable[bytes] = ()
    _upstream: Optional[requests.Response] = field(default=None, repr=False)

    def close(self) -> None:
        upstream, self._upstream = self._upstream, None
        if upstream is not None:
            upstream.close()


class StreamRelay:
    """Forwards a playback request to an origin server and streams the answer back.

    One upstream attempt per call. Redirects are handed back to the caller
    instead of being followed, and the body is read chunk by chunk as the
    consumer pulls it.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        user_agent: str = "Mozilla/5.0",
        connect_timeout: float = 10,
        read_timeout: float = 30,
        chunk_size: int = 64 * 1024,
        allowed_domains: Sequence[str] = (),
    ):
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.timeout = (connect_timeout, read_timeout)
        self.chunk_size = chunk_size
        self.allowed_domains = tuple(d.strip().lower().lstrip(".") for d in allowed_domains if d.strip())

    def validate(self, target_url: Optional[str]) -> str:
        if not target_url:
            raise BadRequestError("missing url parameter")
        url = unquote(target_url).strip()
        try:
            parts = urlsplit(url)
            host = parts.hostname
            parts.port  # raises ValueError for a non-numeric or out-of-range port
        except ValueError as exc:
            raise BadRequestError(f"malformed url: {exc}") from exc
        if parts.scheme not in ("http", "https") or not host:
            raise BadRequestError(f"unsupported url: {url!r}")
        if self.allowed_domains and not self._host_allowed(host):
            raise BadRequestError(f"host not allowed: {host}")
        return url

    def _host_allowed(self, host: str) -> bool:
        host = host.lower()
        return any(host == d or host.endswith("." + d) for d in self.allowed_domains)

    def request_headers(self, range_header: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "*/*",
            "Accept-Encoding": "identity",
        }
        if range_header:
            headers["Range"] = range_header
        return headers

    def open(self, target_url: Optional[str], range_header: Optional[str] = None) -> Union[RelayResponse, RelayRedirect]:
        url = self.validate(target_url)
        try:
            upstream = self.session.get(
                url,
                headers=self.request_headers(range_header),
                stream=True,
                allow_redirects=False,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Upstream request to %s failed: %s", url, exc)
            raise UpstreamError(str(exc), target=url) from exc

        location = upstream.headers.get("Location")
        if upstream.status_code in REDIRECT_STATUSES and location:
            upstream.close()
            resolved = urljoin(url, location)
            logger.debug("Upstream %s redirected (%d) to %s", url, upstream.status_code, resolved)
            return RelayRedirect(location=resolved)

        headers = {
            "Content-Type": upstream.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
            "Accept-Ranges": "bytes",
        }
        for name in PASSTHROUGH_HEADERS:
            value = upstream.headers.get(name)
            if value:
                headers[name] = value

        response = RelayResponse(status=upstream.status_code, headers=headers, _upstream=upstream)
        response.body = self._iter_body(response, upstream, url)
        return response

    def _iter_body(self, response: RelayResponse, upstream: requests.Response, url: str) -> Iterator[bytes]:
        try:
            for chunk in upstream.iter_content(chunk_size=self.chunk_size):
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            logger.warning("Upstream stream from %s aborted: %s", url, exc)
        finally:
            response.close()
