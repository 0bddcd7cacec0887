from __future__ import annotations

from typing import AsyncGenerator

import httpx

from ride_sync.application.ports.auth import TokenProvider


class BearerTokenAuth(httpx.Auth):
    """Looks the token up per request, so a refreshed token is picked up immediately."""

    def __init__(self, tokens: TokenProvider) -> None:
        self._tokens = tokens

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._tokens.get_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request
