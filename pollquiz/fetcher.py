"""
Fetches question definitions from user-supplied URLs.
"""
import asyncio
import json
import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from aiohttp import ClientError, ClientSession

APPLICATION_JSON = "application/json"
DEFAULT_MAX_CONTENT_LENGTH = 1024

# https://cdn.discordapp.com/attachments/{snowflake}/{snowflake}/{name}.json
_ATTACHMENT_PATH = re.compile(r"^/attachments/\d+/\d+/[^/]+\.json$")


class FetchError(Exception):
    """Raised when a question URL cannot be retrieved or decoded."""
    pass


def is_allowed_url(url: str) -> bool:
    """Whether the URL points at a JSON attachment on Discord's CDN."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return (
        parts.scheme == "https"
        and parts.hostname == "cdn.discordapp.com"
        and bool(_ATTACHMENT_PATH.match(parts.path))
    )


def decode_body(body: bytes, content_type: Optional[str]) -> Any:
    """
    Decode a response body.

    JSON content types are parsed; anything else is returned as text.

    Raises:
        FetchError: If the body is not valid UTF-8 or not valid JSON
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FetchError(f"Response is not UTF-8 text: {e}") from e

    if content_type and content_type.startswith(APPLICATION_JSON):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise FetchError(f"Invalid JSON: {e}") from e
    return text


class QuestionFetcher:
    """Retrieves raw question content over HTTP."""

    def __init__(self, max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
                 trusted_urls_only: bool = False, session: Optional[ClientSession] = None):
        """
        Initialize the fetcher.

        Args:
            max_content_length: Largest accepted response body in bytes
            trusted_urls_only: Only accept Discord CDN JSON attachments
            session: Shared aiohttp session; one is created lazily if omitted
        """
        self.logger = logging.getLogger(__name__)
        self.max_content_length = max_content_length
        self.trusted_urls_only = trusted_urls_only
        self.session = session
        self._owns_session = session is None

    async def fetch(self, url: str) -> Any:
        """
        Fetch and decode the content at ``url``.

        Returns:
            Decoded JSON for JSON responses, text otherwise

        Raises:
            FetchError: On invalid URLs, HTTP errors, oversized or undecodable bodies
        """
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise FetchError(f"Invalid URL: {url!r}") from e
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise FetchError(f"Not an HTTP URL: {url!r}")
        if self.trusted_urls_only and not is_allowed_url(url):
            raise FetchError(f"URL is not a trusted attachment: {url}")

        if self.session is None:
            self.session = ClientSession()

        try:
            async with self.session.get(url, headers={"Accept": APPLICATION_JSON}) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(f"HTTP {resp.status} from {url}")
                if resp.content_length is not None and resp.content_length > self.max_content_length:
                    raise FetchError(f"Response of {resp.content_length} bytes is too large")
                body = await self._read_limited(resp)
                content_type = resp.content_type
        except (ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Failed to fetch question from {url}: {e}")
            raise FetchError(str(e)) from e

        self.logger.debug(f"Fetched {len(body)} bytes of {content_type} from {url}")
        return decode_body(body, content_type)

    async def _read_limited(self, resp) -> bytes:
        """Read the body in chunks, stopping once it passes max_content_length."""
        body = bytearray()
        async for chunk in resp.content.iter_chunked(self.max_content_length + 1):
            body.extend(chunk)
            if len(body) > self.max_content_length:
                raise FetchError(f"Response exceeds {self.max_content_length} bytes")
        return bytes(body)

    async def close(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
