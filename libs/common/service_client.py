"""Async HTTP helper for calls to collaborator services (e.g. the ledger).

Cross-service calls go through here so request IDs and the caller name are
always forwarded.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Default timeout for internal calls (seconds).
_DEFAULT_TIMEOUT = 10.0


async def internal_request(
    *,
    service_url: str,
    method: str,
    path: str,
    calling_service: str,
    json: Any = None,
    params: Optional[dict] = None,
    timeout: float = _DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """Make an internal service-to-service HTTP call.

    Args:
        service_url: Base URL of the target service (e.g. settings.LEDGER_SERVICE_URL).
        method: HTTP method (GET, POST, …).
        path: URL path on the target service (e.g. "/ledger/transfer").
        calling_service: Name of the calling service, sent as X-Caller-Service.
        json: Optional JSON body.
        params: Optional query parameters.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests to mock the peer).

    Returns:
        The httpx.Response object.

    Raises:
        httpx.RequestError on connection failures.
    """
    url = f"{service_url}{path}"
    headers = {"X-Caller-Service": calling_service}
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
        )
    logger.debug("%s %s -> %d", method, url, response.status_code)
    return response


async def internal_post(
    *,
    service_url: str,
    path: str,
    calling_service: str,
    json: Any = None,
    timeout: float = _DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """Convenience wrapper for POST requests."""
    return await internal_request(
        service_url=service_url,
        method="POST",
        path=path,
        calling_service=calling_service,
        json=json,
        timeout=timeout,
        transport=transport,
    )
