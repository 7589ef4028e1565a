"""Tests for the content generation backends."""

import httpx
import pytest

from genjobs.config import Settings
from genjobs.models.jobs import GenerationRequest
from genjobs.services.generation_service import (
    GenerationError,
    PlaceholderImageGenerator,
    ScreenshotGenerator,
    _thumbnail_size,
    build_generator,
)


def _request(**kwargs) -> GenerationRequest:
    kwargs.setdefault("prompt", "example.com")
    kwargs.setdefault("width", 1280)
    kwargs.setdefault("height", 1024)
    return GenerationRequest(**kwargs)


def _screenshot_generator(handler, token: str = "secret") -> ScreenshotGenerator:
    generator = ScreenshotGenerator("https://shots.test/", token)
    generator._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return generator


class TestPlaceholderImageGenerator:
    @pytest.mark.asyncio
    async def test_returns_requested_count(self):
        assets = await PlaceholderImageGenerator().generate(_request(count=2))
        assert len(assets) == 2
        assert assets[0].fullsize.url != assets[1].fullsize.url

    @pytest.mark.asyncio
    async def test_cycles_through_images(self):
        generator = PlaceholderImageGenerator()
        assets = await generator.generate(_request(count=5))
        assert assets[4].fullsize.url == assets[0].fullsize.url

    @pytest.mark.asyncio
    async def test_thumbnail_smaller_than_fullsize(self):
        (asset,) = await PlaceholderImageGenerator().generate(_request())
        assert asset.thumbnail.width < asset.fullsize.width
        assert asset.thumbnail.height < asset.fullsize.height


class TestScreenshotGenerator:
    @pytest.mark.asyncio
    async def test_success(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"iurl": "https://shots.test/img/abc.png"})

        generator = _screenshot_generator(handler)
        (asset,) = await generator.generate(_request(width=1280, height=1024))
        await generator.close()

        params = seen[0].url.params
        assert params["url"] == "example.com"
        assert params["width"] == "1280"
        assert params["height"] == "1024"
        assert params["tkn"] == "secret"
        assert asset.fullsize.url == "https://shots.test/img/abc.png"
        assert (asset.fullsize.width, asset.fullsize.height) == (1280, 1024)
        assert (asset.thumbnail.width, asset.thumbnail.height) == (640, 512)

    @pytest.mark.asyncio
    async def test_missing_token(self):
        generator = ScreenshotGenerator("https://shots.test/", "")
        with pytest.raises(GenerationError, match="SCREENSHOT_API_TOKEN"):
            await generator.generate(_request())

    @pytest.mark.asyncio
    async def test_http_error(self):
        generator = _screenshot_generator(lambda request: httpx.Response(502))
        with pytest.raises(GenerationError, match="request failed"):
            await generator.generate(_request())

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        generator = _screenshot_generator(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(GenerationError, match="invalid JSON"):
            await generator.generate(_request())

    @pytest.mark.asyncio
    async def test_missing_image_url(self):
        generator = _screenshot_generator(lambda request: httpx.Response(200, json={"error": "bad url"}))
        with pytest.raises(GenerationError, match="no image URL"):
            await generator.generate(_request())


class TestThumbnailSize:
    def test_small_images_unchanged(self):
        assert _thumbnail_size(320, 200) == (320, 200)

    def test_scales_to_max_width(self):
        assert _thumbnail_size(1920, 1080) == (640, 360)


class TestBuildGenerator:
    def test_default_is_placeholder(self):
        s = Settings(_env_file=None)
        assert isinstance(build_generator(s), PlaceholderImageGenerator)

    def test_screenshot_backend(self):
        s = Settings(_env_file=None, generator_backend="screenshot", screenshot_api_token="t")
        assert isinstance(build_generator(s), ScreenshotGenerator)
