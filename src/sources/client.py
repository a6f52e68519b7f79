"""
HTTP clients for the location list and the per-user interaction state.

Both talk to the mobile API with httpx. Transient failures (5xx,
timeouts, connection errors) are retried with exponential backoff and
jitter; client errors (4xx) are not.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from src.clustering.models import Point
from src.state.merger import InteractionState

from .errors import LocationFetchError
from .payloads import decode_interaction_states, decode_locations_page, dedupe_points

logger = logging.getLogger(__name__)

LOCATIONS_PATH = "/api/mobile/locations"
INTERACTION_STATE_PATH = "/api/mobile/locations/interaction-state"

# Retry configuration
BACKOFF_BASE = 2
BACKOFF_MAX = 8

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class SourceSettings:
    """Connection settings for the mobile API."""

    base_url: str = "https://sacavia.com"
    page_size: int = 50
    max_pages: int = 20
    timeout_s: float = 30.0
    max_retries: int = 3
    interaction_batch_size: int = 100
    token: Optional[str] = None
    """Bearer token; falls back to MAP_API_TOKEN at request time."""

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SourceSettings":
        source_cfg = config.get("source", {}) or {}
        interactions_cfg = config.get("interactions", {}) or {}
        defaults = cls()
        return cls(
            base_url=source_cfg.get("base_url", defaults.base_url),
            page_size=int(source_cfg.get("page_size", defaults.page_size)),
            max_pages=int(source_cfg.get("max_pages", defaults.max_pages)),
            timeout_s=float(source_cfg.get("timeout_s", defaults.timeout_s)),
            max_retries=int(source_cfg.get("max_retries", defaults.max_retries)),
            interaction_batch_size=int(
                interactions_cfg.get("batch_size", defaults.interaction_batch_size)
            ),
        )


def exponential_backoff_with_jitter(attempt: int) -> float:
    """
    Calculate backoff time with exponential growth and jitter.

    Formula: min(BACKOFF_BASE^attempt + random(0,1), BACKOFF_MAX)
    """
    base_delay = BACKOFF_BASE ** attempt
    jitter = random.random()
    return min(base_delay + jitter, BACKOFF_MAX)


def _auth_headers(token: Optional[str]) -> Dict[str, str]:
    token = token or os.getenv("MAP_API_TOKEN", "")
    if not token:
        return {}
    return {
        "Authorization": f"Bearer {token}",
        "Cookie": f"payload-token={token}",
    }


async def _request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int,
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Send a request and return the decoded JSON body, retrying transient failures."""
    attempts = max(1, max_retries)
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500 or attempt >= attempts - 1:
                raise
            last_error: Exception = e
        except httpx.TransportError as e:
            if attempt >= attempts - 1:
                raise
            last_error = e

        delay = exponential_backoff_with_jitter(attempt)
        logger.debug("Retrying %s %s in %.1fs after %r", method, url, delay, last_error)
        await sleep(delay)
        attempt += 1


class _ApiSource:
    """Shared connection handling for the mobile API sources."""

    def __init__(
        self,
        settings: Optional[SourceSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or SourceSettings()
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_s,
            headers=_auth_headers(self.settings.token),
            transport=self._transport,
        )


class LocationSource(_ApiSource):
    """Paged reader of the location list."""

    async def fetch_all(self) -> List[Point]:
        """
        Fetch every page and decode it into points.

        Malformed records and bodies are skipped. Duplicate ids keep the
        first occurrence.

        Raises:
            LocationFetchError: If a page cannot be fetched after retries
        """
        settings = self.settings
        points: List[Point] = []

        async with self._client() as client:
            for page in range(1, settings.max_pages + 1):
                try:
                    payload = await _request_json(
                        client,
                        "GET",
                        LOCATIONS_PATH,
                        params={"page": page, "limit": settings.page_size},
                        max_retries=settings.max_retries,
                        sleep=self._sleep,
                    )
                except httpx.HTTPStatusError as exc:
                    raise LocationFetchError(
                        f"Location fetch failed with HTTP {exc.response.status_code}",
                        status_code=exc.response.status_code,
                    ) from exc
                except httpx.HTTPError as exc:
                    raise LocationFetchError(f"Location fetch failed: {exc!r}") from exc
                except ValueError:
                    logger.warning("Locations page %d is not valid JSON", page)
                    payload = None

                decoded = decode_locations_page(payload)
                points.extend(decoded.points)
                logger.debug(
                    "Fetched locations page %d: %d records, %d skipped",
                    page, decoded.num_records, decoded.num_skipped,
                )

                if decoded.has_more is False:
                    break
                if decoded.has_more is None and decoded.num_records < settings.page_size:
                    break

        return dedupe_points(points)


class InteractionStateSource(_ApiSource):
    """Batched reader of saved/subscribed flags for a set of location ids."""

    async def fetch(self, ids: Sequence[str]) -> Dict[str, InteractionState]:
        """
        Fetch interaction state for ``ids``.

        Ids missing from the response are simply absent from the result.

        Raises:
            httpx.HTTPError: On transport or HTTP failures
            InteractionStateError: On an unusable response body
        """
        settings = self.settings
        batch_size = max(1, settings.interaction_batch_size)
        states: Dict[str, InteractionState] = {}

        async with self._client() as client:
            for start in range(0, len(ids), batch_size):
                batch = list(ids[start:start + batch_size])
                payload = await _request_json(
                    client,
                    "POST",
                    INTERACTION_STATE_PATH,
                    json={"locationIds": batch},
                    max_retries=settings.max_retries,
                    sleep=self._sleep,
                )
                states.update(decode_interaction_states(payload))

        return states
