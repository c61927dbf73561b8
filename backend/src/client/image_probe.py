"""Check that a preview image URL actually serves an image."""
import logging

import httpx

logger = logging.getLogger(__name__)


async def probe_image(http: httpx.AsyncClient, src: str) -> bool:
    """
    Return True when `src` answers 2xx with an image content type.

    Only the response headers are read. An empty src fails without a request.
    No timeout beyond the client's own is applied.
    """
    if not src or not src.strip():
        return False
    try:
        async with http.stream("GET", src.strip(), follow_redirects=True) as response:
            content_type = response.headers.get("content-type", "").lower()
            return response.is_success and content_type.startswith("image/")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.info("Preview image %s failed to load: %s", src, e)
        return False
