from __future__ import annotations

from typing import Protocol


class LocalNotifier(Protocol):
    async def schedule(self, title: str, body: str) -> None: ...
