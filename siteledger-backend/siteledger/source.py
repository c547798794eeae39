import logging
from typing import Dict, Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)

# created in app lifespan, lazily elsewhere (scripts, tests)
_client: Optional[httpx.AsyncClient] = None


def _headers() -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if settings.ledger_api_token:
        headers["Authorization"] = f"Bearer {settings.ledger_api_token}"
    return headers


def open_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=settings.ledger_api_url,
            headers=_headers(),
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )
        logger.info("Ledger source client opened for %s", settings.ledger_api_url)
    return _client


async def close_client() -> None:
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None


def get_client() -> httpx.AsyncClient:
    return open_client()
