"""
Gateway Base Module
===================

Shared plumbing for every external lookup:

1. ``degrade_to`` turns transport and parsing failures of one public
   gateway coroutine into its documented neutral value.
2. ``optional_signal`` is what the calculators await lookups through,
   so an injected collaborator that fails yields ``None``.
3. ``SourceClient`` owns the HTTP client and the signal cache and knows
   how to GET a JSON document from an upstream open-data API.
"""

import copy
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from spotscore.core.config import settings
from spotscore.core.exceptions import GatewayException
from spotscore.gateway.cache import SignalCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "this upstream is unavailable right now"
UNAVAILABLE_ERRORS = (
    httpx.HTTPError,
    GatewayException,
    ValueError,
    KeyError,
    TypeError,
    IndexError,
    AttributeError,
    OSError,
)


def degrade_to(default: Any) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator: return a copy of ``default`` when the lookup fails.

    Args:
        default: Neutral value documented for the lookup (None, an empty
            list, or a "not found" result).
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except UNAVAILABLE_ERRORS as e:
                logger.warning(f"{func.__name__} unavailable: {e}")
                return copy.deepcopy(default)

        return wrapper

    return decorator


async def optional_signal(lookup: Awaitable[Optional[T]], source: str) -> Optional[T]:
    """
    Await one lookup and map any failure to ``None``.

    The calculators treat ``None`` as "signal unavailable" and apply the
    neutral default for that rule.
    """
    try:
        return await lookup
    except Exception as e:
        logger.warning(f"Signal '{source}' unavailable: {e}")
        return None


def build_http_client() -> httpx.AsyncClient:
    """HTTP client shared by all sources, with the bounded upstream timeout."""
    return httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        headers={"User-Agent": settings.HTTP_USER_AGENT},
        follow_redirects=True,
    )


def bbox_around(lat: float, lon: float, delta: float) -> str:
    """WFS bounding box ``minLon,minLat,maxLon,maxLat,EPSG:4326``."""
    return f"{lon - delta},{lat - delta},{lon + delta},{lat + delta},EPSG:4326"


class SourceClient:
    """
    Base class for upstream clients.

    Holds the shared ``httpx.AsyncClient`` and ``SignalCache``. Hub'Eau
    answers 206 (partial content) for paginated results, so 200 and 206
    are both treated as success.
    """

    def __init__(self, http: httpx.AsyncClient, cache: SignalCache):
        self.http = http
        self.cache = cache

    async def get_json(
        self,
        source: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        missing_ok: bool = False,
    ) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Args:
            source: Source name, used in errors and logs.
            url: Absolute endpoint URL.
            params: Query parameters.
            missing_ok: Return None on 404 instead of raising.

        Raises:
            GatewayException: On any other non-success status.
        """
        response = await self.http.get(url, params=params)
        if response.status_code == 404 and missing_ok:
            return None
        if response.status_code not in (200, 206):
            raise GatewayException(
                source=source,
                message=f"{source} returned HTTP {response.status_code}",
                details={"url": str(response.url)},
            )
        return response.json()
