"""
Credential Store - per-instance credentials and OAuth token cache
==================================================================

Credentials are injected once at construction and never change. Tokens
are acquired with the OAuth client-credentials grant and cached per
team until shortly before their reported expiry. Concurrent callers for
the same team share a single refresh (one lock per team); reads of a
still-valid token take no lock.
"""

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import httpx
from pydantic import ValidationError as PydanticValidationError

from devportal.config.settings import AICoreCredentials
from devportal.core.exceptions import (
    CredentialsNotConfiguredError,
    CredentialsNotFoundError,
    TokenAcquisitionError,
)
from devportal.core.structured_logger import get_logger
from devportal.observability.metrics import MetricsCollector, get_metrics

from .models import OAuthTokenResponse

logger = get_logger("CredentialStore")


@dataclass(frozen=True)
class CachedToken:
    """An access token and the wall-clock time after which it must not be used"""
    value: str
    expires_at: float

    def is_valid(self, now: float, leeway: float = 0.0) -> bool:
        return now < self.expires_at - leeway


class CredentialStore:
    """Resolves credentials by team and hands out cached access tokens."""

    def __init__(
        self,
        credentials: Iterable[AICoreCredentials],
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
        expiry_leeway_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._credentials: dict[str, AICoreCredentials] = {c.team: c for c in credentials}
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._leeway = expiry_leeway_seconds
        self._clock = clock
        self._metrics = metrics or get_metrics()
        self._tokens: dict[str, CachedToken] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        logger.info("Credential store initialized", instances=len(self._credentials))

    @property
    def configured(self) -> bool:
        """True when at least one instance has credentials."""
        return bool(self._credentials)

    @property
    def teams(self) -> list[str]:
        """Configured instance names, in configuration order."""
        return list(self._credentials)

    def has(self, team: str) -> bool:
        return team in self._credentials

    def resolve(self, team: str) -> AICoreCredentials:
        """
        Return the credentials of a team. Pure lookup, no I/O.

        Raises:
            CredentialsNotConfiguredError: If no credentials are configured at all
            CredentialsNotFoundError: If this team has none
        """
        if not self._credentials:
            raise CredentialsNotConfiguredError()
        try:
            return self._credentials[team]
        except KeyError:
            raise CredentialsNotFoundError(team) from None

    def filter_configured(self, teams: Iterable[str]) -> list[str]:
        """Keep only teams with credentials, preserving order."""
        return [t for t in teams if t in self._credentials]

    def cached_token(self, team: str) -> CachedToken | None:
        return self._tokens.get(team)

    def invalidate(self, team: str) -> None:
        """Drop a cached token, forcing the next call to refresh."""
        self._tokens.pop(team, None)

    async def get_token(self, team: str) -> str:
        """
        Return a valid access token for a team, refreshing it when needed.

        Raises:
            ConfigurationError: If the team has no credentials
            TokenAcquisitionError: If the token endpoint fails or answers garbage
        """
        credentials = self.resolve(team)

        cached = self._tokens.get(team)
        if cached is not None and cached.is_valid(self._clock(), self._leeway):
            return cached.value

        lock = self._locks.setdefault(team, asyncio.Lock())
        async with lock:
            # Another waiter may have refreshed while we were queued
            cached = self._tokens.get(team)
            if cached is not None and cached.is_valid(self._clock(), self._leeway):
                return cached.value

            token = await self._fetch_token(credentials)
            self._tokens[team] = token
            return token.value

    async def _fetch_token(self, credentials: AICoreCredentials) -> CachedToken:
        team = credentials.team
        requested_at = self._clock()
        try:
            response = await self._post_token_request(credentials)
        except httpx.HTTPError as e:
            self._metrics.record_token_acquisition("transport_error")
            logger.error("Token request failed", team=team, error=str(e))
            raise TokenAcquisitionError(team, f"token request failed: {e}") from e

        if not response.is_success:
            self._metrics.record_token_acquisition("rejected")
            logger.error("Token endpoint rejected credentials", team=team, status=response.status_code)
            raise TokenAcquisitionError(
                team, "token endpoint returned an error", response.status_code, response.text
            )

        try:
            payload = OAuthTokenResponse.model_validate_json(response.content)
        except PydanticValidationError as e:
            self._metrics.record_token_acquisition("malformed")
            raise TokenAcquisitionError(team, f"malformed token response: {e.error_count()} error(s)") from e

        self._metrics.record_token_acquisition("success")
        logger.info("Access token acquired", team=team, expires_in=payload.expires_in)
        return CachedToken(value=payload.access_token, expires_at=requested_at + payload.expires_in)

    async def _post_token_request(self, credentials: AICoreCredentials) -> httpx.Response:
        data = {"grant_type": "client_credentials"}
        auth = (credentials.client_id, credentials.client_secret.get_secret_value())
        if self._http_client is not None:
            return await self._http_client.post(
                credentials.oauth_url, data=data, auth=auth, timeout=self._timeout
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(credentials.oauth_url, data=data, auth=auth)
