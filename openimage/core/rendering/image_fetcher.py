"""
Image Fetcher
=============

Concurrent retrieval of image sources for the remote rasterizer. Sources may
be http(s) URLs or base64 data URIs; each is decoded with Pillow and a
failure affects only that source.
"""

import asyncio
import base64
import binascii
import io
from typing import Any, Dict, Iterable, Optional
from urllib.parse import unquote_to_bytes, urlparse

import aiohttp
from PIL import Image

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings

logger = get_logger(__name__)

ALLOWED_SCHEMES = {"http", "https"}


class ImageFetchFailure(Exception):
    """Exception raised when an image source cannot be loaded."""

    pass


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes into an RGBA bitmap."""
    try:
        with Image.open(io.BytesIO(data)) as header_check:
            header_check.verify()
        image = Image.open(io.BytesIO(data))
        image.load()
    except Exception as e:
        raise ImageFetchFailure(f"Undecodable image data: {e}") from e
    return image.convert("RGBA")


def read_data_uri(src: str) -> bytes:
    """Payload bytes of a data: URI."""
    header, sep, payload = src[5:].partition(",")
    if not sep:
        raise ImageFetchFailure("Data URI has no payload")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageFetchFailure(f"Invalid base64 data URI: {e}") from e
    return unquote_to_bytes(payload)


class ImageFetcher:
    """Loads image sources over HTTP with size and time limits."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        max_redirects: Optional[int] = None,
    ):
        self.settings = get_settings()
        self.timeout = timeout if timeout is not None else self.settings.image_fetch_timeout
        self.max_bytes = max_bytes if max_bytes is not None else self.settings.image_max_bytes
        self.max_redirects = (
            max_redirects if max_redirects is not None else self.settings.image_max_redirects
        )
        self.logger: Any = logger.bind(component="image_fetcher")
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "ImageFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def fetch(self, src: str) -> Image.Image:
        """
        Load one image source.

        Raises:
            ImageFetchFailure: On an unsupported scheme, network error,
                non-200 response, oversized body or undecodable bytes
        """
        if src.startswith("data:"):
            return await asyncio.to_thread(decode_image, read_data_uri(src))

        try:
            scheme = urlparse(src).scheme.lower()
            if scheme not in ALLOWED_SCHEMES:
                raise ImageFetchFailure(f"Unsupported image scheme: {scheme or 'none'}")

            session = await self._get_session()
            async with session.get(
                src, allow_redirects=True, max_redirects=self.max_redirects
            ) as response:
                if response.status != 200:
                    raise ImageFetchFailure(f"Image request returned {response.status}")
                if response.content_length and response.content_length > self.max_bytes:
                    raise ImageFetchFailure("Image exceeds size limit")

                body = bytearray()
                async for chunk in response.content.iter_chunked(64 * 1024):
                    body.extend(chunk)
                    if len(body) > self.max_bytes:
                        raise ImageFetchFailure("Image exceeds size limit")
        except ImageFetchFailure:
            raise
        except ValueError as e:
            raise ImageFetchFailure(f"Invalid image URL: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ImageFetchFailure(f"Image request failed: {e}") from e

        return await asyncio.to_thread(decode_image, bytes(body))

    async def _fetch_or_none(self, src: str) -> Optional[Image.Image]:
        try:
            return await self.fetch(src)
        except ImageFetchFailure as e:
            self.logger.warning("Image unavailable, leaving area blank", src=src[:200], error=str(e))
            return None
        except Exception as e:
            self.logger.error(
                "Unexpected image fetch error, leaving area blank",
                src=src[:200],
                error=str(e),
                exc_info=True,
            )
            return None

    async def fetch_many(self, srcs: Iterable[str]) -> Dict[str, Optional[Image.Image]]:
        """Fetch distinct sources concurrently; failures map to None."""
        unique = list(dict.fromkeys(srcs))
        if not unique:
            return {}
        results = await asyncio.gather(*(self._fetch_or_none(src) for src in unique))
        return dict(zip(unique, results))
