"""
Outbound retrieval of images and magic URL documents.

Performs exactly one request per call and classifies the result into the
FetchError taxonomy. Caching and backoff live in the callers.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from ..errors import FetchError, FetchErrorKind
from .base import Image


class MagicTarget(BaseModel):
    """Target named by a magic URL document."""

    url: str = Field(description="Resolved image URL")
    status_code: int = Field(description="HTTP status of the magic URL response")


class Fetcher:
    """Fetches images and magic URL documents with a fixed Referer."""

    def __init__(
        self,
        referer: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the fetcher.

        Args:
            referer: Referer header sent with every request
            timeout: HTTP request timeout in seconds
            client: Optional preconfigured client (mainly for tests)
        """
        self.referer = referer
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def _send(self, url: str) -> httpx.Response:
        try:
            request = self.client.build_request("GET", url, headers={"Referer": self.referer})
            return await self.client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Request to {} failed: {}", url[:80], e)
            raise FetchError(FetchErrorKind.REQUEST_FAILED) from e

    @staticmethod
    def _check(response: httpx.Response) -> str:
        """Validate status and content type, returning the content type."""
        if not response.is_success:
            raise FetchError(FetchErrorKind.UPSTREAM_STATUS, response.status_code)
        content_type = response.headers.get("content-type", "")
        if not content_type:
            raise FetchError(FetchErrorKind.UNSUPPORTED_CONTENT_TYPE)
        return content_type

    async def fetch_image(self, url: str) -> Image:
        """
        Fetch an image.

        Args:
            url: Fully qualified upstream URL

        Returns:
            Image with the upstream content type and body

        Raises:
            FetchError: REQUEST_FAILED, UPSTREAM_STATUS, UNSUPPORTED_CONTENT_TYPE
                or BODY_READ_FAILED
        """
        logger.info("Fetching {}", url[:120])
        response = await self._send(url)
        try:
            content_type = self._check(response)
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise FetchError(FetchErrorKind.BODY_READ_FAILED) from e
        finally:
            await response.aclose()

        logger.debug("Fetched image: {} bytes, type={}", len(body), content_type)
        return Image(content_type=content_type, body=body)

    async def fetch_magic(self, url: str) -> MagicTarget:
        """
        Fetch a magic URL document.

        The response must be text/plain; its body is the target URL.
        Only 2xx responses resolve; any other status raises UPSTREAM_STATUS,
        so the reported status_code is always in the 200-299 range.

        Args:
            url: Magic URL

        Returns:
            MagicTarget with the resolved URL and the response status code

        Raises:
            FetchError: REQUEST_FAILED, UPSTREAM_STATUS, UNSUPPORTED_CONTENT_TYPE
                or TEXT_READ_FAILED
        """
        logger.info("Fetching magic url {}", url[:120])
        response = await self._send(url)
        try:
            content_type = self._check(response)
            if not content_type.startswith("text/plain"):
                raise FetchError(FetchErrorKind.UNSUPPORTED_CONTENT_TYPE)
            try:
                body = await response.aread()
                text = body.decode(response.charset_encoding or "utf-8")
            except (httpx.HTTPError, UnicodeDecodeError, LookupError) as e:
                raise FetchError(FetchErrorKind.TEXT_READ_FAILED) from e
        finally:
            await response.aclose()

        return MagicTarget(url=text.strip(), status_code=response.status_code)
