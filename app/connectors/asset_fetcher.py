"""
app/connectors/asset_fetcher.py

HTTP download of binary assets referenced from CSV rows.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import requests

from app.config import AssetHTTPSettings, get_asset_http_settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class AssetFetchError(RuntimeError):
    """
    Raised when an asset cannot be downloaded after retries.
    """


@dataclass(frozen=True)
class FetchedAsset:
    content: bytes
    content_type: str | None
    url: str


class AssetFetcher(Protocol):
    def fetch(self, url: str) -> FetchedAsset:
        ...


class HTTPAssetFetcher:
    """
    Download assets with a shared session, timeouts and exponential backoff.
    """

    def __init__(
        self,
        *,
        http_settings: AssetHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        self._headers = {"User-Agent": http_settings.user_agent}

    def fetch(self, url: str) -> FetchedAsset:
        if not url.lower().startswith(("http://", "https://")):
            raise AssetFetchError(f"Unsupported asset URL: {url}")

        response = self._request(url)
        content_type = response.headers.get("Content-Type")
        return FetchedAsset(
            content=response.content,
            content_type=content_type.split(";", 1)[0].strip() if content_type else None,
            url=url,
        )

    def _request(self, url: str) -> requests.Response:
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.get(url, headers=self._headers, timeout=self._timeout_seconds)
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    logger.error("Asset download failed status=%s url=%s error=%s", status_code, url, exc)
                    raise AssetFetchError(f"Unable to download {url} (HTTP {status_code}).") from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
            except requests.RequestException as exc:
                # Malformed URLs, redirect loops and broken bodies do not improve on retry.
                logger.error("Asset download failed url=%s error=%s", url, exc)
                raise AssetFetchError(f"Unable to download {url}: {exc}") from exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Asset download retry attempt=%s/%s wait_seconds=%.2f url=%s",
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error("Asset download exhausted retries url=%s error=%s", url, last_error)
        raise AssetFetchError(f"Unable to download {url} after retries.") from last_error


@lru_cache(maxsize=1)
def get_asset_fetcher() -> HTTPAssetFetcher:
    """
    Return a shared HTTP asset fetcher configured from environment variables.
    """

    return HTTPAssetFetcher(http_settings=get_asset_http_settings())
