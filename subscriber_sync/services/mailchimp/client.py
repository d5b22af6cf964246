"""
Mailchimp Marketing API client.
Handles HTTP client setup, authentication, retry with backoff and the mapping
of API failures onto a typed exception hierarchy.
"""

import asyncio
from typing import Any

import httpx

from subscriber_sync.config import Settings
from subscriber_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class MailchimpError(Exception):
    """Custom exception for Mailchimp API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        title: str | None = None,
        detail: str | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.response_data = response_data or {}


class MailchimpNotFoundError(MailchimpError):
    """The requested list, category, interest or member does not exist."""


class MailchimpValidationError(MailchimpError):
    """Mailchimp rejected the request payload (400/422)."""


class MailchimpNetworkError(MailchimpError):
    """The API could not be reached after retries."""


class MailchimpClient:
    """
    Thin async wrapper around the Mailchimp Marketing API v3.

    Paths are relative to the data-center base URL, e.g. ``/lists``.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = settings.mailchimp_base_url()
        self.max_retries = max(1, settings.MAILCHIMP_MAX_RETRIES)
        self.backoff_factor = settings.MAILCHIMP_BACKOFF_FACTOR
        self._client = self._create_client(settings, transport)

    def _create_client(
        self, settings: Settings, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        """Create async HTTP client for the Mailchimp API."""
        timeout = httpx.Timeout(settings.MAILCHIMP_REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=("anystring", settings.MAILCHIMP_API_KEY),
            headers={"Accept": "application/json"},
            timeout=timeout,
            limits=limits,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request_with_retry(
        self, method: str, path: str, *, retry: bool = True, **kwargs
    ) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        attempts = self.max_retries if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < attempts:
                    backoff = self.backoff_factor * (2 ** (attempt - 1))
                    logger.debug(
                        "Mailchimp API retrying request",
                        method=method,
                        path=path,
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= attempts:
                    logger.error(
                        "Mailchimp API unreachable",
                        method=method,
                        path=path,
                        attempts=attempt,
                        error=str(e),
                    )
                    raise MailchimpNetworkError(f"Mailchimp API unreachable: {e}") from e
                backoff = self.backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Mailchimp API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Mailchimp API retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate a Mailchimp API response.

        Mailchimp reports errors as RFC 7807 problem documents
        (``type``, ``title``, ``status``, ``detail``, ``instance``).

        Raises:
            MailchimpNotFoundError: On 404
            MailchimpValidationError: On 400/422
            MailchimpError: On any other failure
        """
        logger.debug(
            f"Mailchimp API {operation} response",
            status_code=response.status_code,
            response_size=len(response.content),
        )

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Failed to parse Mailchimp {operation} response", error=str(e))
                raise MailchimpError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}

        title = error_data.get("title") or response.reason_phrase
        detail = error_data.get("detail") or response.text[:200]

        logger.error(
            f"Mailchimp API {operation} failed",
            status_code=response.status_code,
            title=title,
            detail=detail,
        )

        error_class = self._error_class_for(response.status_code)
        raise error_class(
            f"Mailchimp {operation} failed ({response.status_code} {title}): {detail}",
            status_code=response.status_code,
            title=title,
            detail=detail,
            response_data=error_data,
        )

    def _error_class_for(self, status_code: int) -> type[MailchimpError]:
        if status_code == 404:
            return MailchimpNotFoundError
        if status_code in (400, 422):
            return MailchimpValidationError
        return MailchimpError

    async def _call(
        self, method: str, path: str, operation: str, *, retry: bool = True, **kwargs
    ) -> dict[str, Any]:
        response = await self._request_with_retry(method, path, retry=retry, **kwargs)
        return self._handle_api_response(response, operation)

    async def get(self, path: str, params: dict | None = None) -> dict[str, Any]:
        return await self._call("GET", path, f"GET {path}", params=params)

    async def post(self, path: str, payload: dict, *, retry: bool = True) -> dict[str, Any]:
        return await self._call("POST", path, f"POST {path}", retry=retry, json=payload)

    async def put(self, path: str, payload: dict) -> dict[str, Any]:
        return await self._call("PUT", path, f"PUT {path}", json=payload)

    async def delete(self, path: str) -> dict[str, Any]:
        return await self._call("DELETE", path, f"DELETE {path}")

    async def ping(self) -> bool:
        """Check API reachability and credentials via ``GET /ping``."""
        try:
            data = await self.get("/ping")
            return "health_status" in data
        except MailchimpError as e:
            logger.error("Mailchimp ping failed", error=str(e))
            return False
