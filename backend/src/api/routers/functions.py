"""
Metadata scrape function consumed by the add-bookmark form.

Served under the same path the browser client calls on the serverless host, with its
own access-control headers (the application-wide CORS middleware skips this prefix).
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from core.config import Settings, get_settings
from schemas.bookmark import BookmarkMetadataResponse
from services.url_scraper import (
    HostResolutionError,
    SSRFBlockedError,
    extract_metadata,
    fetch_url,
    validate_url_not_private,
)

logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/.netlify/functions"

router = APIRouter(prefix=FUNCTIONS_PREFIX, tags=["functions"])


def cors_headers(origin: str | None, settings: Settings) -> dict[str, str]:
    """
    Build access-control headers for the metadata function.

    A caller origin on the allow-list is reflected; any other caller gets the first
    allow-list entry instead of a rejection.
    """
    allowed = settings.cors_origins
    if origin and origin in allowed:
        allow_origin = origin
    else:
        allow_origin = allowed[0] if allowed else ""
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def truncate(value: str, max_length: int) -> str:
    """Cut a scraped value to a field limit, dropping trailing whitespace left at the cut."""
    if len(value) <= max_length:
        return value
    return value[:max_length].rstrip()


def _error(status_code: int, message: str, headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@router.options("/get-bookmark-data")
async def get_bookmark_data_preflight(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    """Answer the CORS pre-flight with an empty body."""
    return Response(
        status_code=204,
        headers=cors_headers(request.headers.get("origin"), settings),
    )


@router.get("/get-bookmark-data", response_model=BookmarkMetadataResponse)
async def get_bookmark_data(
    request: Request,
    url: str | None = None,
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Fetch a page and return its title, description and preview image.

    Response keys are camelCase (pageTitle, metaDescription, previewImg). Title and
    description are cut to the bookmark field limits so the result can always be
    saved. Failures are reported as `{"error": message}`:
    - 400 when `url` is missing, malformed or targets a private address
    - 500 when the page cannot be reached, fetched or parsed
    """
    headers = cors_headers(request.headers.get("origin"), settings)

    if not url or not url.strip():
        return _error(400, "URL parameter is required", headers)
    url = url.strip()

    try:
        validate_url_not_private(url)
    except HostResolutionError as e:
        logger.info("Metadata fetch failed for %s: %s", url, e)
        return _error(500, f"Failed to fetch URL: {e}", headers)
    except (SSRFBlockedError, ValueError) as e:
        logger.warning("Rejected metadata request for %s: %s", url, e)
        return _error(400, str(e), headers)

    result = await fetch_url(url, timeout=settings.scraper_timeout)
    if result.error is not None:
        logger.info("Metadata fetch failed for %s: %s", url, result.error)
        return _error(500, f"Failed to fetch URL: {result.error}", headers)

    try:
        metadata = extract_metadata(result, url)
    except Exception as e:
        logger.exception("Metadata extraction failed for %s", url)
        return _error(500, str(e), headers)

    body = BookmarkMetadataResponse(
        page_title=truncate(metadata.page_title, settings.max_title_length),
        meta_description=truncate(metadata.meta_description, settings.max_description_length),
        preview_img=metadata.preview_img,
    )
    return JSONResponse(content=body.model_dump(by_alias=True), headers=headers)
