from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
import time

import httpx


logger = logging.getLogger(__name__)


class SubgraphError(RuntimeError):
    pass


@dataclass(frozen=True)
class GraphqlClientSettings:
    url: str
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int


class GraphqlClient:
    def __init__(self, settings: GraphqlClientSettings):
        if not settings.url:
            raise SubgraphError("Subgraph url is required.")
        self._settings = settings
        self._lock = Lock()
        self._last_request_at = 0.0

    @property
    def url(self) -> str:
        return self._settings.url

    def post(self, *, query: str, variables: dict | None = None) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._respect_rate_limit()
            try:
                with httpx.Client(timeout=self._settings.timeout_seconds) as client:
                    response = client.post(
                        self._settings.url,
                        json={"query": query, "variables": variables or {}},
                    )
                    response.raise_for_status()
                    payload = response.json()

                errors = payload.get("errors") or []
                if errors:
                    message = " | ".join(str(err.get("message", err)) for err in errors)
                    raise SubgraphError(message)
                if not isinstance(payload.get("data"), dict):
                    raise SubgraphError("GraphQL response without data.")

                return payload["data"]
            except (httpx.HTTPError, SubgraphError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "graphql_client: retry attempt=%s/%s url=%s error=%s",
                    attempt,
                    attempts,
                    self._settings.url,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

        raise SubgraphError(f"GraphQL request failed after retries: {last_exc}") from last_exc

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_at
            if elapsed < min_interval:
                time.sleep(min_interval - elapsed)
            self._last_request_at = time.monotonic()
