"""Image inputs for vision model requests.

Photos reach the vision model either as a URL the provider fetches itself
or inline as base64 data. Local files and ``data:`` URLs are inlined;
``http(s)`` URLs are passed through untouched.

Example:
    >>> from vintagevision.analysis.images import load_image, openai_image_block
    >>> image = load_image("furniture/eames.jpg", image_dir=Path("images"))
    >>> openai_image_block(image)["type"]
    'image_url'
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<media_type>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)

SUPPORTED_MEDIA_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


class ImageLoadError(Exception):
    """Raised when an image cannot be read or is not a supported type."""

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


@dataclass(frozen=True)
class ImageSource:
    """One image for a vision request.

    Exactly one of ``url`` or ``data`` is set.

    Attributes:
        url: Remote URL the provider downloads.
        data: Base64-encoded image bytes.
        media_type: MIME type of ``data``.
        label: Human-readable origin, for logs and traces.
    """

    url: str | None = None
    data: str | None = None
    media_type: str = "image/jpeg"
    label: str = ""

    @property
    def is_remote(self) -> bool:
        return self.url is not None

    @property
    def data_url(self) -> str:
        """The image as a URL: the remote URL, or an inline ``data:`` URL."""
        if self.url is not None:
            return self.url
        return f"data:{self.media_type};base64,{self.data}"


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_image(source: str | Path, image_dir: Path | None = None) -> ImageSource:
    """Resolve an image reference into an ImageSource.

    Args:
        source: ``http(s)`` URL, ``data:`` URL or file path.
        image_dir: Base directory for relative file paths.

    Returns:
        ImageSource ready for a provider request.

    Raises:
        ImageLoadError: If the file is missing or not a supported image type.
    """
    text = str(source)

    if _is_remote(text):
        return ImageSource(url=text, label=text)

    match = DATA_URL_PATTERN.match(text)
    if match:
        return ImageSource(
            data=match.group("data"),
            media_type=match.group("media_type"),
            label="inline data URL",
        )

    path = Path(text)
    if not path.is_absolute() and image_dir is not None:
        path = image_dir / path

    if not path.is_file():
        raise ImageLoadError(f"Image file not found: {path}", source=text)

    media_type, _ = mimetypes.guess_type(path.name)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise ImageLoadError(f"Unsupported image type {media_type!r} for {path}", source=text)

    data = base64.standard_b64encode(path.read_bytes()).decode("ascii")
    logger.debug(f"Loaded image {path} ({media_type}, {len(data)} base64 chars)")
    return ImageSource(data=data, media_type=media_type, label=str(path))


def openai_image_block(image: ImageSource, detail: str = "high") -> dict[str, Any]:
    """Chat Completions content block for one image."""
    return {"type": "image_url", "image_url": {"url": image.data_url, "detail": detail}}


def anthropic_image_block(image: ImageSource) -> dict[str, Any]:
    """Messages API content block for one image."""
    if image.url is not None:
        return {"type": "image", "source": {"type": "url", "url": image.url}}
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": image.media_type, "data": image.data},
    }
