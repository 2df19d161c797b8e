"""
API authentication using GiveWP's own key/token pairs.

GiveWP (Tools -> API) issues each user a public key, a secret key and a
token, where ``token = md5(secret_key + public_key)``.  Callers pass ``key``
and ``token`` as query parameters; we recompute the token from the stored
secret and compare in constant time.

Outcomes:
  - GiveWP data unavailable, or a lookup fails -> 503 ServiceUnavailable
  - key or token missing       -> 401 MissingCredentials
  - key/token do not verify    -> 403 InvalidCredentials

Every verification attempt is logged on the ``give_api.auth`` logger with the
resolved user id.  Keys, secrets and tokens are never logged.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import sqlite3
from typing import Optional

from fastapi import Depends, Query

from give_api.database import get_store
from give_api.errors import InvalidCredentials, MissingCredentials, ServiceUnavailable
from give_store.queries import GiveStore

logger = logging.getLogger("give_api.auth")


def expected_token(secret: str, public_key: str) -> str:
    """Token GiveWP issues for a key pair: md5(secret . public)."""
    return hashlib.md5((secret + public_key).encode("utf-8")).hexdigest()


class CredentialVerifier:
    """Check key/token pairs against the GiveWP usermeta table."""

    def __init__(self, store: Optional[GiveStore]) -> None:
        self.store = store

    def available(self) -> bool:
        """Return True if the GiveWP credential table can be read."""
        if self.store is None:
            return False
        try:
            return self.store.has_tables(["usermeta"])
        except sqlite3.Error:
            logger.error("GiveWP credential store could not be read", exc_info=True)
            return False

    def verify(self, public_key: str, token: str) -> bool:
        """Return True if ``token`` matches the one GiveWP issued for ``public_key``.

        Fails closed (False) when the credential store is unavailable.

        Raises:
            ServiceUnavailable: the key or secret lookup hit a database error.
        """
        if not self.available():
            logger.error("GiveWP credential store unavailable")
            return False

        try:
            user_id = self.store.user_id_for_public_key(public_key)
        except sqlite3.Error:
            logger.error("Credential lookup failed at stage=user", exc_info=True)
            raise ServiceUnavailable("GiveWP plugin is not active.")
        if not user_id:
            logger.warning("No user found for API key")
            return False

        try:
            secret = self.store.secret_key_for_user(user_id)
        except sqlite3.Error:
            logger.error(
                "Credential lookup failed at stage=secret for user %s", user_id,
                exc_info=True, extra={"user_id": user_id},
            )
            raise ServiceUnavailable("GiveWP plugin is not active.")
        if not secret:
            logger.warning("No secret key for user %s", user_id, extra={"user_id": user_id})
            return False

        valid = hmac.compare_digest(
            expected_token(secret, public_key).encode("utf-8"),
            token.encode("utf-8"),
        )
        logger.info(
            "%s - User %s", "SUCCESS" if valid else "FAILED", user_id,
            extra={"user_id": user_id},
        )
        return valid


def require_credentials(
    key: Optional[str] = Query(None, description="GiveWP API public key"),
    token: Optional[str] = Query(None, description="GiveWP API token"),
    store: GiveStore = Depends(get_store),
) -> None:
    """FastAPI dependency guarding every resource route."""
    verifier = CredentialVerifier(store)
    if not verifier.available():
        raise ServiceUnavailable("GiveWP plugin is not active.")
    if not key or not token:
        raise MissingCredentials()
    if not verifier.verify(key, token):
        raise InvalidCredentials()
