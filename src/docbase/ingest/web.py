"""Web page loading for ``url`` sources.

Before a request is made, every address the host resolves to must be public.
Responses are limited to text/html or text/plain, at most 5 MB and 3
redirects. HTML pages keep their ``<title>`` as a leading line, which the
document base turns into the source title.
"""

from __future__ import annotations

import html
import ipaddress
import re
import socket
import urllib.error
import urllib.parse
import urllib.request

from docbase.ingest.epub import html_to_text

_USER_AGENT = "docbase/0.1"
_MAX_BYTES = 5 * 1024 * 1024
_TIMEOUT = 30
_MAX_REDIRECTS = 3
_SCHEMES = ("http", "https")
_CONTENT_TYPES = ("text/html", "text/plain")

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class SsrfError(ValueError):
    """A URL resolved to a private, loopback or otherwise reserved address."""


def is_web_url(origin: str) -> bool:
    return urllib.parse.urlparse(origin).scheme in _SCHEMES


def fetch_page_text(url: str) -> str:
    """Return the text of the page at *url* (see module docstring for limits)."""
    validate_scheme(url)
    check_ssrf(url)
    body, content_type = _fetch(url)
    return to_plain_text(body, content_type)


def validate_scheme(url: str) -> None:
    scheme = urllib.parse.urlparse(url).scheme
    if scheme not in _SCHEMES:
        raise ValueError(f"Unsupported URL scheme '{scheme}' (use http:// or https://)")


def _is_public(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return True
    return ip.is_global and not ip.is_multicast


def check_ssrf(url: str) -> None:
    host = urllib.parse.urlparse(url).hostname
    if not host:
        raise ValueError(f"URL has no hostname: {url}")
    try:
        infos = socket.getaddrinfo(host, None)
    except socket.gaierror as exc:
        raise ValueError(f"DNS resolution failed for '{host}': {exc}") from exc

    for info in infos:
        address = info[4][0]
        if not _is_public(address):
            raise SsrfError(f"'{host}' resolves to private address {address}")


def _fetch(url: str) -> tuple[bytes, str]:
    """GET *url*; returns the body and its bare content type."""
    opener = urllib.request.build_opener(_LimitedRedirectHandler(_MAX_REDIRECTS))
    request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        response = opener.open(request, timeout=_TIMEOUT)
    except urllib.error.URLError as exc:
        raise RuntimeError(f"Failed to fetch URL '{url}': {exc}") from exc

    with response:
        content_type = response.headers.get("Content-Type", "text/html")
        content_type = content_type.partition(";")[0].strip().lower()
        if content_type not in _CONTENT_TYPES:
            raise ValueError(f"Unsupported Content-Type '{content_type}' for '{url}'")
        body = response.read(_MAX_BYTES + 1)

    if len(body) > _MAX_BYTES:
        raise ValueError(f"Response from '{url}' exceeds {_MAX_BYTES // (1024 * 1024)} MB")
    return body, content_type


def to_plain_text(body: bytes, content_type: str) -> str:
    text = body.decode("utf-8", errors="replace")
    if content_type == "text/plain":
        return text

    content = html_to_text(text)
    match = _TITLE_RE.search(text)
    title = " ".join(html.unescape(match.group(1)).split()) if match else ""
    return f"<title>{title}</title>\n\n{content}" if title else content


class _LimitedRedirectHandler(urllib.request.HTTPRedirectHandler):
    def __init__(self, max_redirects: int) -> None:
        self._max_redirects = max_redirects
        self._count = 0

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        self._count += 1
        if self._count > self._max_redirects:
            raise RuntimeError(f"Too many redirects (>{self._max_redirects}) for '{req.full_url}'")
        return super().redirect_request(req, fp, code, msg, headers, newurl)
