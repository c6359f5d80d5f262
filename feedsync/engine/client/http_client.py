"""JSON-over-HTTP source client."""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import structlog
from pydantic import ValidationError

from ...config import ClientConfig
from ...errors import AuthError, SourceError
from ..records import Item, Profile
from .base import BaseSourceClient

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class HttpSourceClient(BaseSourceClient):
    """Talk to an account API exposing ``/session``, ``/accounts/{id}`` and ``/accounts/{id}/items``."""

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("feedsync.client")
        self._sleep = sleep
        token = config.resolved_token()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=config.base_url.rstrip("/"),
            headers=headers,
            timeout=config.timeout,
            follow_redirects=True,
            transport=transport,
        )
        self._initialised = False

    def close(self) -> None:
        self._client.close()

    def init(self) -> None:
        try:
            response = self._request("GET", "/session", source="session")
        except SourceError as exc:
            raise AuthError(f"Session check failed: {exc}") from exc
        if response.status_code in {401, 403}:
            raise AuthError(f"Credentials rejected with status {response.status_code}")
        if response.status_code >= 400:
            raise AuthError(f"Session check returned status {response.status_code}")
        self._initialised = True
        self.logger.info("client_session_ready", base_url=self.config.base_url)

    def get_profile(self, source_id: str) -> Profile | None:
        response = self._request("GET", f"/accounts/{source_id}", source=source_id)
        if response.status_code == 404:
            return None
        payload = self._json(response, source_id)
        if not payload:
            return None
        try:
            return Profile.model_validate(payload)
        except ValidationError as exc:
            raise SourceError(source_id, f"invalid profile payload: {exc}") from exc

    def get_items(self, source_id: str) -> list[Item | None]:
        response = self._request(
            "GET",
            f"/accounts/{source_id}/items",
            source=source_id,
            params={"limit": self.config.items_limit},
        )
        if response.status_code == 404:
            return []
        payload = self._json(response, source_id)
        if isinstance(payload, dict):
            payload = payload.get("items")
        if not payload:
            return []
        if not isinstance(payload, list):
            raise SourceError(source_id, "items payload is not a list")
        items: list[Item | None] = []
        for entry in payload:
            if not isinstance(entry, dict):
                items.append(None)
                continue
            try:
                items.append(Item.model_validate(entry))
            except ValidationError as exc:
                self.logger.warning(
                    "item_payload_invalid", source=source_id, item=entry, error=str(exc)
                )
                items.append(None)
        return items

    # ------------------------------------------------------------------
    def _request(
        self, method: str, url: str, *, source: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        attempts = self.config.max_retries + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.request(method, url, params=params)
            except httpx.TransportError as exc:
                last_error = exc
                self.logger.warning(
                    "fetch_error", url=url, source=source, attempt=attempt, error=str(exc)
                )
            else:
                if response.status_code not in _RETRYABLE_STATUS:
                    if response.status_code >= 400 and response.status_code not in {401, 403, 404}:
                        raise SourceError(source, f"{method} {url} returned {response.status_code}")
                    return response
                last_error = RuntimeError(f"Unexpected status {response.status_code}")
                self.logger.warning(
                    "fetch_retryable_status",
                    url=url,
                    source=source,
                    attempt=attempt,
                    status=response.status_code,
                )
            if attempt < attempts:
                self._sleep(self.config.backoff_base * (2 ** (attempt - 1)))
        raise SourceError(source, f"{method} {url} failed after {attempts} attempts: {last_error}")

    @staticmethod
    def _json(response: httpx.Response, source: str) -> Any:
        if response.status_code in {401, 403}:
            raise SourceError(source, f"not authorised (status {response.status_code})")
        try:
            return response.json()
        except ValueError as exc:
            raise SourceError(source, f"response is not JSON: {exc}") from exc


__all__ = ["HttpSourceClient"]
