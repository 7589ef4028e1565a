"""Content generation backends invoked by the job store.

The placeholder backend returns canned artwork left over from the image
generation demo. The screenshot backend captures a URL through an external
screenshot provider and returns a single image.
"""

import logging
from typing import Protocol

import httpx

from genjobs.config import Settings
from genjobs.models.jobs import GenerationRequest, ImageAsset, ImageRepresentation

logger = logging.getLogger(__name__)

# Largest thumbnail width handed back to the client
_THUMBNAIL_MAX_WIDTH = 640

# In a real deployment these would point to dynamically generated images
_PLACEHOLDER_IMAGES: tuple[tuple[str, str], ...] = (
    (
        "https://cdn.pixabay.com/photo/2023/02/03/05/11/youtube-background-7764170_1280.jpg",
        "https://cdn.pixabay.com/photo/2023/02/03/05/11/youtube-background-7764170_640.jpg",
    ),
    (
        "https://cdn.pixabay.com/photo/2023/02/03/05/12/youtube-background-7764172_1280.jpg",
        "https://cdn.pixabay.com/photo/2023/02/03/05/12/youtube-background-7764172_640.jpg",
    ),
    (
        "https://cdn.pixabay.com/photo/2023/02/03/05/07/colorful-7764162_1280.jpg",
        "https://cdn.pixabay.com/photo/2023/02/03/05/07/colorful-7764162_640.jpg",
    ),
    (
        "https://cdn.pixabay.com/photo/2023/02/03/04/57/swirls-7764142_1280.jpg",
        "https://cdn.pixabay.com/photo/2023/02/03/04/57/swirls-7764142_640.jpg",
    ),
)


class GenerationError(RuntimeError):
    """Raised when a backend cannot produce content for a request."""


class ContentGenerator(Protocol):
    async def generate(self, request: GenerationRequest) -> list[ImageAsset]: ...


def _thumbnail_size(width: int, height: int) -> tuple[int, int]:
    """Scale dimensions down so the width fits the thumbnail limit."""
    if width <= _THUMBNAIL_MAX_WIDTH:
        return width, height
    ratio = _THUMBNAIL_MAX_WIDTH / width
    return _THUMBNAIL_MAX_WIDTH, max(1, round(height * ratio))


class PlaceholderImageGenerator:
    """Return stock images instead of generating anything."""

    async def generate(self, request: GenerationRequest) -> list[ImageAsset]:
        assets: list[ImageAsset] = []
        for i in range(request.count):
            fullsize_url, thumbnail_url = _PLACEHOLDER_IMAGES[i % len(_PLACEHOLDER_IMAGES)]
            assets.append(ImageAsset(
                fullsize=ImageRepresentation(width=1280, height=853, url=fullsize_url),
                thumbnail=ImageRepresentation(width=640, height=427, url=thumbnail_url),
            ))
        return assets


class ScreenshotGenerator:
    """Capture the page named by the prompt through a screenshot API."""

    def __init__(self, api_url: str, api_token: str, timeout: float = 60) -> None:
        self._api_url = api_url
        self._api_token = api_token
        self._timeout = timeout
        self._http: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def generate(self, request: GenerationRequest) -> list[ImageAsset]:
        if not self._api_token:
            raise GenerationError("SCREENSHOT_API_TOKEN is not set")

        logger.info(
            "Capturing screenshot of %.80s at %dx%d",
            request.prompt, request.width, request.height,
        )
        try:
            resp = await self._client().get(
                self._api_url,
                params={
                    "tkn": self._api_token,
                    "url": request.prompt,
                    "width": request.width,
                    "height": request.height,
                    "response_type": "json",
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise GenerationError(f"Screenshot request failed: {e}") from e
        except ValueError as e:
            raise GenerationError("Screenshot provider returned invalid JSON") from e

        image_url = data.get("iurl") if isinstance(data, dict) else None
        if not image_url:
            raise GenerationError("Screenshot provider returned no image URL")

        thumb_width, thumb_height = _thumbnail_size(request.width, request.height)
        return [ImageAsset(
            fullsize=ImageRepresentation(
                width=request.width, height=request.height, url=image_url,
            ),
            thumbnail=ImageRepresentation(
                width=thumb_width, height=thumb_height, url=image_url,
            ),
        )]

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None


def build_generator(settings: Settings) -> ContentGenerator:
    """Pick the content generator configured for this process."""
    if settings.generator_backend == "screenshot":
        return ScreenshotGenerator(
            settings.screenshot_api_url,
            settings.screenshot_api_token,
            timeout=settings.generation_timeout_seconds,
        )
    return PlaceholderImageGenerator()
