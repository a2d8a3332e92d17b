"""
Document retrieval utilities

This module fetches remote guide documents over HTTP with retry logic.
"""
from dataclasses import dataclass
import asyncio
import gzip
import logging

import httpx


logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True, slots=True)
class FetchedDocument:
    """Downloaded body plus the size the server announced for it"""
    url: str
    content: bytes
    expected_length: int | None = None

    @property
    def total_bytes(self) -> int:
        """Announced length, or the real body size when the server gave none"""
        if self.expected_length and self.expected_length > 0:
            return self.expected_length
        return len(self.content)


def _content_length(response: httpx.Response) -> int | None:
    value = response.headers.get("content-length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length > 0 else None


def _maybe_decompress(url: str, content: bytes) -> tuple[bytes, bool]:
    """Inflate gzip bodies (*.xml.gz guides served without Content-Encoding)"""
    if not content.startswith(GZIP_MAGIC):
        return content, False
    try:
        return gzip.decompress(content), True
    except (OSError, EOFError) as e:
        logger.warning(f"Body of {url} looks gzipped but could not be inflated: {e}")
        return content, False


async def _get_once(client: httpx.AsyncClient, url: str) -> FetchedDocument:
    response = await client.get(url)
    response.raise_for_status()

    content, inflated = _maybe_decompress(url, response.content)
    # an announced length describes the compressed body, not what gets parsed
    expected_length = None if inflated else _content_length(response)

    logger.info(f"Downloaded {len(content) / (1024 * 1024):.2f} MB from {url}")
    return FetchedDocument(url=url, content=content, expected_length=expected_length)


async def fetch_document(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0
) -> FetchedDocument:
    """
    Fetch a document from URL with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx responses.
    Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        url: URL to download from
        client: Optional shared client (a new one is created per attempt otherwise)
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)

    Returns:
        FetchedDocument with the body and the announced content length

    Raises:
        httpx.HTTPError: If download fails after all retries
    """
    logger.info(f"Downloading document from {url}...")

    last_error: Exception | None = None
    attempts = max(1, max_retries)

    for attempt in range(attempts):
        try:
            if client is not None:
                return await _get_once(client, url)
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                return await _get_once(own_client, url)

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            # Transient network errors - retry
            last_error = e
            if attempt < attempts - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{attempts} failed (transient error): {type(e).__name__}. "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {attempts} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error): {e}")
                raise

            # 5xx server error - retry
            last_error = e
            if attempt < attempts - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{attempts} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {attempts} attempts (HTTP {e.response.status_code})")

    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to download {url} after {attempts} attempts")
