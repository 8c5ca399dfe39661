"""Shared plumbing for the synchronous HTTP clients.

Every call has a bounded timeout.  Transport errors, timeouts and 5xx
answers become a transient CollaboratorError; idempotent calls get one
retry after a short backoff, everything else is tried exactly once.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from fulfillment.domain.exceptions import CollaboratorError, EntityNotFoundError

logger = structlog.get_logger(__name__)


class ServiceClient:

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        retry_backoff: float = 0.2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
            headers["X-Worker-Request"] = "true"
        self._retry_backoff = retry_backoff
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # --- Requests -------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        idempotent: bool = False,
        not_found: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request and map failures to domain errors.

        A 404 becomes EntityNotFoundError when *not_found* is given.
        """
        attempts = 2 if idempotent else 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as exc:
                error = CollaboratorError(
                    self.service_name, f"{method} {path} timed out", transient=True
                )
                cause: Exception = exc
            except httpx.TransportError as exc:
                error = CollaboratorError(
                    self.service_name, f"{method} {path} failed: {exc}", transient=True
                )
                cause = exc
            else:
                if response.status_code < 500:
                    return self._check(response, method, path, not_found)
                error = CollaboratorError(
                    self.service_name,
                    f"{method} {path} answered {response.status_code}",
                    transient=True,
                )
                cause = None

            if attempt < attempts:
                logger.warning(
                    "Retrying collaborator call",
                    service=self.service_name,
                    method=method,
                    path=path,
                    error=str(error),
                )
                time.sleep(self._retry_backoff)
                continue
            raise error from cause
        raise AssertionError("unreachable")

    def _check(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        not_found: str | None,
    ) -> httpx.Response:
        if response.status_code == 404 and not_found is not None:
            raise EntityNotFoundError(not_found)
        if response.status_code >= 400:
            raise CollaboratorError(
                self.service_name,
                f"{method} {path} answered {response.status_code}: {self._error_message(response)}",
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            details = body.get("details")
            if isinstance(details, list) and details and isinstance(details[0], dict):
                return str(details[0].get("description") or details[0].get("issue"))
            for key in ("message", "error_description", "error"):
                if body.get(key):
                    return str(body[key])
        return response.text[:200]

    def _json(self, response: httpx.Response) -> dict:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise CollaboratorError(self.service_name, "answered with invalid JSON") from exc
        if not isinstance(body, dict):
            raise CollaboratorError(self.service_name, "answered with an unexpected payload")
        return body
