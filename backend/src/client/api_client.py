"""HTTP client for the LinkStack API and the metadata function."""
import logging
from typing import Any, Protocol
from uuid import UUID

import httpx

from client.api_errors import ApiError, MetadataFetchError, translate_error
from schemas.bookmark import BookmarkMetadataResponse, BookmarkResponse, BookmarkSort

logger = logging.getLogger(__name__)

METADATA_PATH = "/.netlify/functions/get-bookmark-data"


class BookmarkStore(Protocol):
    """Bookmark operations the UI components depend on."""

    async def get_top_level(self, sort_by: BookmarkSort = ...) -> list[BookmarkResponse]: ...

    async def get_children(
        self, parent_id: UUID, sort_by: BookmarkSort = ...,
    ) -> list[BookmarkResponse]: ...

    async def get_by_id(self, bookmark_id: UUID) -> BookmarkResponse | None: ...

    async def create(self, data: dict[str, Any]) -> BookmarkResponse: ...

    async def update(self, bookmark_id: UUID, fields: dict[str, Any]) -> BookmarkResponse: ...

    async def delete(self, bookmark_id: UUID) -> None: ...

    async def toggle_read_status(self, bookmark_id: UUID, is_read: bool) -> BookmarkResponse: ...

    async def count_unread(self) -> int: ...

    async def fetch_metadata(self, url: str) -> BookmarkMetadataResponse: ...


def create_http_client(base_url: str) -> httpx.AsyncClient:
    """Create the shared HTTP client. Timeouts are left at httpx defaults."""
    return httpx.AsyncClient(base_url=base_url, http2=True)


class LinkStackClient:
    """
    Bookmark CRUD facade over the REST API.

    Every failure is raised as a client error (see client.api_errors): transport
    problems as NetworkError, 409 as DuplicateBookmarkError, everything else as
    ApiError. `get_by_id` reports a missing bookmark as None instead.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str | None = None,
    ) -> None:
        self._http = http
        self.token = token

    def set_token(self, token: str | None) -> None:
        self.token = token

    async def aclose(self) -> None:
        await self._http.aclose()

    def _get_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._get_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise translate_error(e, entity_type="bookmark") from e
        return response

    async def _get_list(
        self, path: str, params: dict[str, Any] | None = None,
    ) -> list[BookmarkResponse]:
        response = await self._request("GET", path, params=params)
        return [BookmarkResponse.model_validate(item) for item in response.json()]

    async def fetch_all(self) -> list[BookmarkResponse]:
        """All bookmarks for the current user, newest first."""
        return await self._get_list("/bookmarks/")

    get_all = fetch_all

    async def get_top_level(
        self, sort_by: BookmarkSort = BookmarkSort.NEWEST,
    ) -> list[BookmarkResponse]:
        return await self._get_list("/bookmarks/top-level", {"sort": str(sort_by)})

    async def get_children(
        self, parent_id: UUID, sort_by: BookmarkSort = BookmarkSort.NEWEST,
    ) -> list[BookmarkResponse]:
        return await self._get_list(f"/bookmarks/{parent_id}/children", {"sort": str(sort_by)})

    async def get_by_id(self, bookmark_id: UUID) -> BookmarkResponse | None:
        """Fetch one bookmark; None when it does not exist."""
        try:
            response = await self._request("GET", f"/bookmarks/{bookmark_id}")
        except ApiError as e:
            if e.category == "not_found":
                return None
            raise
        return BookmarkResponse.model_validate(response.json())

    async def create(self, data: dict[str, Any]) -> BookmarkResponse:
        response = await self._request("POST", "/bookmarks/", json=data)
        return BookmarkResponse.model_validate(response.json())

    async def update(self, bookmark_id: UUID, fields: dict[str, Any]) -> BookmarkResponse:
        """Partially update a bookmark. A missing bookmark raises ApiError(not_found)."""
        response = await self._request("PATCH", f"/bookmarks/{bookmark_id}", json=fields)
        return BookmarkResponse.model_validate(response.json())

    async def delete(self, bookmark_id: UUID) -> None:
        await self._request("DELETE", f"/bookmarks/{bookmark_id}")

    async def toggle_read_status(self, bookmark_id: UUID, is_read: bool) -> BookmarkResponse:
        response = await self._request(
            "PATCH", f"/bookmarks/{bookmark_id}/read-status", json={"is_read": is_read},
        )
        return BookmarkResponse.model_validate(response.json())

    async def count_unread(self) -> int:
        response = await self._request("GET", "/bookmarks/unread-count")
        return int(response.json()["count"])

    async def get_me(self) -> dict[str, Any]:
        """The authenticated user, as returned by GET /users/me."""
        response = await self._request("GET", "/users/me")
        return response.json()

    async def fetch_metadata(self, url: str) -> BookmarkMetadataResponse:
        """
        Ask the metadata function to scrape a page.

        Raises:
            MetadataFetchError: The function answered 5xx (target unreachable or unparsable).
            ApiError: The function rejected the request (4xx).
            NetworkError: The function itself could not be reached.
        """
        try:
            response = await self._request("GET", METADATA_PATH, params={"url": url})
        except ApiError as e:
            if e.status_code is not None and e.status_code >= 500:
                raise MetadataFetchError(e.parsed) from e
            raise
        return BookmarkMetadataResponse.model_validate(response.json())
