"""
AI Core HTTP client
===================

Authenticated JSON calls against one instance's AI Core API or one of
its deployment URLs. Every request carries the instance's bearer token
and resource group header; non-2xx responses become ``UpstreamError``
with the upstream status and body attached.
"""

import time
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from devportal.core.exceptions import UpstreamError
from devportal.core.structured_logger import get_logger
from devportal.observability.metrics import MetricsCollector, get_metrics

from .credentials import CredentialStore

logger = get_logger("AICoreClient")

RESOURCE_GROUP_HEADER = "AI-Resource-Group"

ModelT = TypeVar("ModelT", bound=BaseModel)


class AICoreClient:
    """Shared HTTP session plus per-instance authentication for AI Core."""

    def __init__(
        self,
        credential_store: CredentialStore,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.credentials = credential_store
        self._timeout = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._metrics = metrics or get_metrics()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AICoreClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _headers(self, team: str) -> dict[str, str]:
        creds = self.credentials.resolve(team)
        token = await self.credentials.get_token(team)
        return {
            "Authorization": f"Bearer {token}",
            RESOURCE_GROUP_HEADER: creds.resource_group,
            "Content-Type": "application/json",
        }

    def api_url(self, team: str, path: str) -> str:
        """Absolute URL of an ``/v2/lm`` path on a team's API host."""
        return f"{self.credentials.resolve(team).api_url}{path}"

    async def request(
        self,
        team: str,
        method: str,
        url: str,
        *,
        operation: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send one authenticated request and return the successful response.

        Raises:
            ConfigurationError: If the team has no credentials
            TokenAcquisitionError: If no token could be obtained
            UpstreamError: On transport failure or a non-2xx status
        """
        headers = await self._headers(team)
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, url, headers=headers, json=json, params=params, timeout=self._timeout
            )
        except httpx.HTTPError as e:
            self._metrics.record_upstream_request(operation, "error", time.perf_counter() - start)
            logger.error("Upstream request failed", team=team, operation=operation, error=str(e))
            raise UpstreamError(f"{operation} request to AI Core failed: {e}") from e

        self._metrics.record_upstream_request(operation, response.status_code, time.perf_counter() - start)
        if not response.is_success:
            logger.warning(
                "Upstream returned an error status",
                team=team,
                operation=operation,
                status=response.status_code,
            )
            raise UpstreamError(f"{operation} failed", response.status_code, response.text)
        return response

    async def get_json(
        self,
        team: str,
        url: str,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
        response_model: type[ModelT] | None = None,
    ) -> Any:
        response = await self.request(team, "GET", url, operation=operation, params=params)
        return _decode(response, operation, response_model)

    async def post_json(
        self, team: str, url: str, payload: Any, *, operation: str, response_model: type[ModelT] | None = None
    ) -> Any:
        response = await self.request(team, "POST", url, operation=operation, json=payload)
        return _decode(response, operation, response_model)

    async def patch_json(
        self, team: str, url: str, payload: Any, *, operation: str, response_model: type[ModelT] | None = None
    ) -> Any:
        response = await self.request(team, "PATCH", url, operation=operation, json=payload)
        return _decode(response, operation, response_model)

    async def delete_json(
        self, team: str, url: str, *, operation: str, response_model: type[ModelT] | None = None
    ) -> Any:
        response = await self.request(team, "DELETE", url, operation=operation)
        return _decode(response, operation, response_model)


def _decode(response: httpx.Response, operation: str, response_model: type[ModelT] | None = None) -> Any:
    """
    Decode a successful response, optionally into ``response_model``.

    A 2xx body that is not JSON, or does not fit the model, is an
    upstream fault and raises ``UpstreamError``.
    """
    if not response.content:
        payload: Any = {}
    else:
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{operation} returned a non-JSON body", response.status_code, response.text
            ) from e

    if response_model is None:
        return payload
    try:
        return response_model.model_validate(payload)
    except PydanticValidationError as e:
        raise UpstreamError(
            f"{operation} returned an unexpected response", response.status_code, response.text[:500]
        ) from e
