"""
Delegated calendar access tokens from a rotating refresh token.

Microsoft issues a new refresh token on every exchange and the stored value
must always be the latest one. Two invocations can read the same stored token
at once; the store's compare-and-swap keeps the later writer from clobbering a
newer value, and an exchange rejected because someone else already rotated the
token is retried once with the fresh value.
"""

import logging
import sqlite3

import httpx

from core.config import Settings
from core.database import BookingStore

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Refresh token could not be read or exchanged."""


class CredentialBroker:
    """Hands out short-lived Graph access tokens for the calendar mailbox."""

    def __init__(
        self,
        store: BookingStore,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store
        self.settings = settings
        self._transport = transport

    def _read_refresh_token(self) -> str:
        try:
            value = self.store.get_secret(self.settings.refresh_token_key)
        except sqlite3.Error as e:
            raise CredentialError(f"Could not read refresh token: {e}") from e
        if not value:
            raise CredentialError("No refresh token stored")
        return value

    async def _exchange(self, refresh_token: str) -> dict:
        """POST the refresh token to the token endpoint and return the token payload."""
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.settings.token_url,
                    data={
                        "client_id": self.settings.graph_app_id,
                        "client_secret": self.settings.graph_client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                        "scope": self.settings.token_scope,
                    },
                )
        except httpx.HTTPError as e:
            raise CredentialError(f"Token endpoint unreachable: {e}") from e

        try:
            tokens = response.json()
        except ValueError:
            tokens = {}
        if not isinstance(tokens, dict):
            tokens = {}

        if response.status_code != 200 or not tokens.get("access_token"):
            # Never log the token payload itself
            reason = tokens.get("error_description") or tokens.get("error") or response.text[:200]
            raise CredentialError(
                f"Token exchange rejected ({response.status_code}): {reason}"
            )
        return tokens

    async def get_access_token(self) -> str:
        """
        Exchange the stored refresh token for an access token.

        Raises:
            CredentialError: token unreadable, or the provider rejected the exchange
        """
        refresh_token = self._read_refresh_token()

        try:
            tokens = await self._exchange(refresh_token)
        except CredentialError:
            current = self._read_refresh_token()
            if current == refresh_token:
                raise
            logger.info("Refresh token was rotated concurrently, retrying with the new value")
            refresh_token = current
            tokens = await self._exchange(refresh_token)

        new_refresh_token = tokens.get("refresh_token")
        if new_refresh_token and new_refresh_token != refresh_token:
            try:
                swapped = self.store.compare_and_swap_secret(
                    self.settings.refresh_token_key, refresh_token, new_refresh_token
                )
            except sqlite3.Error as e:
                raise CredentialError(f"Could not store rotated refresh token: {e}") from e
            if swapped:
                logger.info("Refresh token rotated")
            else:
                logger.warning(
                    "Refresh token changed during exchange; keeping the newer stored value"
                )

        return tokens["access_token"]
