"""URL scraping service for fetching and extracting bookmark metadata from web pages."""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from bs4.element import Tag
from pypdf import PdfReader

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; LinkStack/1.0)'
DEFAULT_TIMEOUT = 10.0


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


class HostResolutionError(Exception):
    """Raised when a URL's hostname does not resolve; the target is unreachable."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # If we can't parse it, block it to be safe
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, preventing
    DNS rebinding attacks where a hostname resolves to an internal IP.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed.
        HostResolutionError: If the hostname cannot be resolved.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname

    if parsed.scheme not in ('http', 'https'):
        raise ValueError(f"Unsupported URL scheme: {url}")
    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise HostResolutionError(f"Could not resolve hostname: {hostname}") from e

    for _family, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw content before extraction)."""

    content: str | bytes | None  # str for HTML/text, bytes for PDF
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None

    @property
    def is_pdf(self) -> bool:
        """Check if the content type indicates a PDF."""
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())

    @property
    def is_html(self) -> bool:
        """Check if the content type indicates HTML (or is missing, which servers often do)."""
        if not self.content_type:
            return True
        content_type = self.content_type.lower()
        return 'text/html' in content_type or 'application/xhtml' in content_type


@dataclass
class PageMetadata:
    """Metadata shown on a bookmark card. The title is never empty."""

    page_title: str
    meta_description: str
    preview_img: str


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch content from a URL (HTML or PDF).

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL. The SSRF check is done by the
    caller before fetching; the final URL is re-checked after redirects.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Returns:
        FetchResult containing content or error info.
    """
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)

            final_url_str = str(response.url)
            if final_url_str != url:
                try:
                    validate_url_not_private(final_url_str)
                except (SSRFBlockedError, HostResolutionError, ValueError) as e:
                    return FetchResult(
                        content=None,
                        final_url=final_url_str,
                        status_code=response.status_code,
                        content_type=None,
                        error=f"Redirect blocked: {e}",
                    )

            content_type = response.headers.get('content-type', '')

            if not response.is_success:
                return FetchResult(
                    content=None,
                    final_url=final_url_str,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"HTTP {response.status_code}",
                )

            if 'application/pdf' in content_type.lower():
                content: str | bytes = response.content
            else:
                content = response.text
            return FetchResult(
                content=content,
                final_url=final_url_str,
                status_code=response.status_code,
                content_type=content_type,
                error=None,
            )
    except httpx.TimeoutException:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
    except httpx.RequestError as e:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=f"Request failed: {e}",
        )


def _clean(value: object) -> str:
    """Trim a scraped value; non-strings (missing attributes) become empty."""
    return value.strip() if isinstance(value, str) else ''


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find('meta', attrs=attrs)
    if isinstance(tag, Tag):
        return _clean(tag.get('content'))
    return ''


def _title_text(soup: BeautifulSoup, selector: str) -> str:
    tag = soup.select_one(selector)
    return _clean(tag.get_text()) if tag is not None else ''


def first_non_empty(*candidates: str) -> str:
    """Return the first candidate that is not empty after trimming."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ''


def extract_html_metadata(html: str, url: str) -> PageMetadata:
    """
    Extract title, description and preview image from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title extraction priority:
    1. <meta property="og:title">
    2. <meta name="twitter:title">
    3. <title> inside <head>
    4. <title> inside <body> (malformed markup)
    5. <title> anywhere
    6. The URL itself

    Description extraction priority:
    1. <meta property="og:description">
    2. <meta name="twitter:description">
    3. <meta name="description">

    Preview image extraction priority:
    1. <meta property="og:image">
    2. <meta name="twitter:image">

    Args:
        html:
            Raw HTML string to parse.
        url:
            The requested URL, used as the last-resort title.

    Returns:
        PageMetadata; description and image are empty strings when not found.
    """
    soup = BeautifulSoup(html, 'lxml')

    page_title = first_non_empty(
        _meta_content(soup, property='og:title'),
        _meta_content(soup, name='twitter:title'),
        _title_text(soup, 'head > title'),
        _title_text(soup, 'body > title'),
        _title_text(soup, 'title'),
        url,
    )
    meta_description = first_non_empty(
        _meta_content(soup, property='og:description'),
        _meta_content(soup, name='twitter:description'),
        _meta_content(soup, name='description'),
    )
    preview_img = first_non_empty(
        _meta_content(soup, property='og:image'),
        _meta_content(soup, name='twitter:image'),
    )

    return PageMetadata(
        page_title=page_title,
        meta_description=meta_description,
        preview_img=preview_img,
    )


def extract_pdf_metadata(pdf_bytes: bytes, url: str) -> PageMetadata:
    """
    Extract title and description from PDF document metadata.

    Uses PDF metadata fields:
    - title: from /Title metadata (falls back to the URL)
    - description: from /Subject metadata

    Note: PDF metadata is often missing or auto-generated junk.
    Unreadable PDFs produce the URL fallback.
    """
    title = description = ''
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        meta = reader.metadata
        if meta is not None:
            title = _clean(meta.title)
            description = _clean(meta.subject)
    except Exception:
        logger.warning("Could not read PDF metadata for %s", url, exc_info=True)

    return PageMetadata(
        page_title=first_non_empty(title, url),
        meta_description=description,
        preview_img='',
    )


def fallback_metadata(url: str) -> PageMetadata:
    """Metadata for content that cannot be parsed: the URL stands in for the title."""
    return PageMetadata(page_title=url, meta_description='', preview_img='')


def extract_metadata(result: FetchResult, url: str) -> PageMetadata:
    """
    Route fetched content to the matching extractor.

    Parse errors propagate to the caller.
    """
    if result.is_pdf and isinstance(result.content, bytes):
        return extract_pdf_metadata(result.content, url)
    if result.is_html and isinstance(result.content, str):
        return extract_html_metadata(result.content, url)
    return fallback_metadata(url)
