from __future__ import annotations

import logging
import time

import jwt

from ride_sync.application.ports.storage import KeyValueStore
from ride_sync.config import settings

logger = logging.getLogger(__name__)


class StoredTokenProvider:
    """Reads the bearer token the auth layer persisted.

    The token is opaque to this package. When it happens to be a JWT its
    ``exp`` claim is honoured so an expired token never reaches the server;
    the signature is not checked here, the server does that.
    """

    def __init__(self, store: KeyValueStore, key: str = settings.AUTH_TOKEN_KEY) -> None:
        self._store = store
        self._key = key

    async def get_token(self) -> str | None:
        token = await self._store.get(self._key)
        if not token:
            return None
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.DecodeError:
            return token
        exp = claims.get("exp")
        if isinstance(exp, (int, float)) and exp <= time.time():
            logger.info("Stored token expired, treating as signed out")
            return None
        return token

    async def set_token(self, token: str) -> None:
        await self._store.set(self._key, token)
