"""Sign-in and token renewal for the Abode cloud."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from . import api
from .models import AbodeSession

if TYPE_CHECKING:
    from .models import AbodeCredentials, AbodeSessionState

_LOGGER = logging.getLogger(__name__)


class AbodeAuthClient:
    """Owns every write to the session state.

    Full sign-in publishes a complete session/API key/OAuth triple or leaves
    the state cleared. Renewal replaces the session and OAuth token only.
    Writers are serialized so a renewal never interleaves with a sign-in.
    """

    def __init__(
        self,
        gateway: api.AbodeRequestGateway,
        credentials: AbodeCredentials,
    ) -> None:
        self._gateway = gateway
        self._state: AbodeSessionState = gateway.state
        self._credentials = credentials
        self._lock = asyncio.Lock()

    @property
    def session(self) -> AbodeSession:
        """Return the current session snapshot."""
        return self._state.current

    async def async_authenticate(self) -> AbodeSession:
        """Sign in and publish a fresh session triple.

        Returns:
            The published session.

        Raises:
            AbodeMissingCredentialsError: If email or password is empty.
            AbodeAuthError: If any step of the sign-in fails.
            AbodeTransportError: If a request fails at the network level.

        """
        if not self._credentials.email or not self._credentials.password:
            error_msg = "Missing credentials"
            raise api.AbodeMissingCredentialsError(error_msg)

        async with self._lock:
            self._state.clear()

            _LOGGER.info("Signing into Abode account")
            try:
                candidate = await api.async_login(self._gateway, self._credentials)
                oauth_token = await api.async_get_oauth_token(
                    self._gateway, tokens=candidate
                )
            except api.AbodeApiClientError as err:
                _LOGGER.error("Failed to sign into Abode account: %s", err)
                raise

            session = AbodeSession(
                session=candidate.session,
                api_key=candidate.api_key,
                oauth_token=oauth_token,
            )
            self._state.replace(session)

        _LOGGER.debug("Signed into Abode account")
        return session

    async def async_refresh_oauth_token(
        self, tokens: AbodeSession | None = None
    ) -> str:
        """Request a new OAuth token without publishing it."""
        return await api.async_get_oauth_token(self._gateway, tokens=tokens)

    async def async_refresh_session_token(self) -> str:
        """Request the current session identifier without publishing it."""
        return await api.async_get_session(self._gateway)

    async def async_renew(self) -> AbodeSession:
        """Renew the session and OAuth tokens, keeping the API key.

        Both tokens must renew; the state is only updated when they do.

        Raises:
            AbodeAuthError: If either refresh fails or credentials are missing.
            AbodeTransportError: If a request fails at the network level.

        """
        async with self._lock:
            _LOGGER.debug("Renewing Abode session")
            current = self._state.current
            session = await self.async_refresh_session_token()
            oauth_token = await self.async_refresh_oauth_token(
                AbodeSession(
                    session=session,
                    api_key=current.api_key,
                    oauth_token=current.oauth_token,
                )
            )
            return self._state.renew(session, oauth_token)
