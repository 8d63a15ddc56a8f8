"""Async HTTP client for the Google Drive v3 API.

Handles bearer-token injection, retry logic and rate limiting. The session pushes
the current token in through ``set_credential``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from gdrive_appdata.errors import ApiError, NotSignedInError

logger = logging.getLogger(__name__)

DRIVE_FILES_PATH = "drive/v3/files"
DRIVE_UPLOAD_PATH = "upload/drive/v3/files"


class AppDataClient:
    """HTTP client for the Drive API with retry and credential handling."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = "https://www.googleapis.com/",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        verbose: bool = False,
    ) -> None:
        self._http = http
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._verbose = verbose
        self._token: str | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        self._base_url = value if value.endswith("/") else value + "/"

    @property
    def has_credential(self) -> bool:
        return self._token is not None

    def set_credential(self, token: str | None) -> None:
        """Set or clear the bearer token used for every request."""
        self._token = token

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: str | bytes | None = None,
        content_type: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated API request with retry logic.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            path: API path relative to the Drive root (e.g. "drive/v3/files").
            params: Query parameters.
            json: JSON request body.
            content: Raw request body (multipart uploads).
            content_type: Override Content-Type header.
            extra_headers: Additional headers to include.

        Returns:
            The httpx.Response object.

        Raises:
            NotSignedInError: No credential has been set.
            ApiError: Non-retryable HTTP error, or retries exhausted.
        """
        url = self._base_url + path.lstrip("/")

        for attempt in range(1, self._max_retries + 1):
            headers = self._build_headers(content_type, extra_headers)

            if self._verbose:
                logger.info(f"[Attempt {attempt}/{self._max_retries}] {method} {url}")

            try:
                response = await self._http.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                    content=content,
                )
            except httpx.HTTPError as e:
                if attempt == self._max_retries:
                    raise ApiError(0, f"Request failed after {self._max_retries} attempts: {e}") from e
                wait = self._backoff(attempt)
                logger.warning(f"HTTP error: {e}. Retrying in {wait:.1f}s...")
                await asyncio.sleep(wait)
                continue

            if self._verbose:
                logger.info(f"Response: {response.status_code}")

            # 429 and 403 rateLimitExceeded: exponential backoff
            if _is_rate_limited(response) and attempt < self._max_retries:
                wait = self._backoff(attempt)
                logger.warning(f"Rate limited ({response.status_code}). Waiting {wait:.1f}s...")
                await asyncio.sleep(wait)
                continue

            if 500 <= response.status_code < 600 and attempt < self._max_retries:
                wait = self._backoff(attempt)
                logger.warning(f"Server error ({response.status_code}). Waiting {wait:.1f}s...")
                await asyncio.sleep(wait)
                continue

            if response.status_code >= 400:
                raise ApiError(response.status_code, _error_detail(response))

            return response

        raise ApiError(0, f"Request to {url} failed after {self._max_retries} attempts")

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    def _build_headers(
        self,
        content_type: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Build request headers with the current bearer token."""
        if not self._token:
            raise NotSignedInError("No access token; sign in first")

        headers = {"Authorization": f"Bearer {self._token}"}
        if content_type:
            headers["Content-Type"] = content_type
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        return self._retry_delay * (2 ** (attempt - 1))


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return response.status_code == 403 and "ratelimitexceeded" in response.text.lower()


def _error_detail(response: httpx.Response) -> str:
    """Pull the message out of a Drive error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message", response.text)
    return response.text
