"""Tests for preview image probing."""
from collections.abc import AsyncGenerator, Generator

import httpx
import pytest
import respx
from httpx import Response

from client.image_probe import probe_image

IMAGE_URL = "https://cdn.example.com/og.png"


@pytest.fixture
def mock_cdn() -> Generator[respx.MockRouter]:
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def http(mock_cdn: respx.MockRouter) -> AsyncGenerator[httpx.AsyncClient]:  # noqa: ARG001
    async with httpx.AsyncClient() as client:
        yield client


async def test__probe_image__image_response(
    mock_cdn: respx.MockRouter, http: httpx.AsyncClient,
) -> None:
    mock_cdn.get(IMAGE_URL).mock(
        return_value=Response(200, headers={"Content-Type": "image/png"}, content=b"\x89PNG"),
    )
    assert await probe_image(http, IMAGE_URL) is True


async def test__probe_image__html_response(
    mock_cdn: respx.MockRouter, http: httpx.AsyncClient,
) -> None:
    mock_cdn.get(IMAGE_URL).mock(
        return_value=Response(200, headers={"Content-Type": "text/html"}, text="<html></html>"),
    )
    assert await probe_image(http, IMAGE_URL) is False


async def test__probe_image__error_status(
    mock_cdn: respx.MockRouter, http: httpx.AsyncClient,
) -> None:
    mock_cdn.get(IMAGE_URL).mock(
        return_value=Response(404, headers={"Content-Type": "image/png"}),
    )
    assert await probe_image(http, IMAGE_URL) is False


async def test__probe_image__connection_error(
    mock_cdn: respx.MockRouter, http: httpx.AsyncClient,
) -> None:
    mock_cdn.get(IMAGE_URL).mock(side_effect=httpx.ConnectError("refused"))
    assert await probe_image(http, IMAGE_URL) is False


@pytest.mark.parametrize("src", ["", "   "])
async def test__probe_image__empty_src_makes_no_request(
    mock_cdn: respx.MockRouter, http: httpx.AsyncClient, src: str,
) -> None:
    assert await probe_image(http, src) is False
    assert not mock_cdn.calls
