"""Shared exceptions for service layer operations."""


class DuplicateUrlError(Exception):
    """Raised when a bookmark with the same URL already exists for the user."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"A bookmark with URL '{url}' already exists")


class InvalidParentError(Exception):
    """
    Raised when a parent_id cannot be used for a bookmark.

    The parent must exist, belong to the same user, be top-level itself, and
    differ from the bookmark. A bookmark that already has children cannot be
    moved under another bookmark.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
