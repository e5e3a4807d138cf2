# momcare/fetch.py
import logging
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import AsyncGenerator, Optional

import httpx

from .config import FETCH_TIMEOUT
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Cache-Control": "no-store",
    # Some government sites reject default client user agents
    "User-Agent": "VNX-MomCare/1.0 (+https://example.com)",
}


def make_client(**kwargs) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=FETCH_TIMEOUT, headers=DEFAULT_HEADERS, follow_redirects=True, **kwargs)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Dependency: one outbound client per request, closed afterwards."""
    async with make_client() as client:
        yield client


async def _request(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        raise UpstreamFailure(f"Request to {url} timed out after {FETCH_TIMEOUT}s") from e
    except httpx.HTTPError as e:
        raise UpstreamFailure(f"Request to {url} failed: {e}") from e
    return response


async def fetch_json(client: httpx.AsyncClient, url: str, params: dict = None):
    response = await _request(client, "GET", url, params=params)
    try:
        data = response.json()
    except ValueError:
        data = None
    if response.is_error:
        detail = None
        if isinstance(data, dict):
            detail = data.get("reason") or data.get("message") or data.get("error")
        raise UpstreamFailure(detail or f"Request failed ({response.status_code})")
    return data


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    response = await _request(client, "GET", url)
    if response.is_error:
        raise UpstreamFailure(f"Request failed ({response.status_code})")
    return response.text


def _parse_http_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


async def get_last_modified(client: httpx.AsyncClient, url: str) -> Optional[str]:
    """Best-effort Last-Modified of a URL: HEAD first, then a plain GET. None if neither says."""
    for method in ("HEAD", "GET"):
        try:
            response = await _request(client, method, url)
        except UpstreamFailure as e:
            logger.debug("%s %s for last-modified failed: %s", method, url, e)
            continue
        stamp = _parse_http_date(response.headers.get("last-modified"))
        if stamp:
            return stamp
    return None
