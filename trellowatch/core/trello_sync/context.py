import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from trellowatch.core.trello_sync.recorder import PayloadRecorder
from trellowatch.core.trello_sync.schemas import Board
from trellowatch.core.trello_sync.webhook_manager import WebhookManager
from trellowatch.integrations.trello import TrelloClient


class ProjectLocks:
    """One asyncio.Lock per project card id, held while it is in use.

    A card's lock is dropped once no task holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def __call__(self, card_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(card_id, asyncio.Lock())
        self._users[card_id] = self._users.get(card_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[card_id] -= 1
            if not self._users[card_id]:
                del self._users[card_id]
                del self._locks[card_id]


@dataclass
class SyncContext:
    """Everything a webhook event needs to reconcile the board."""

    client: TrelloClient
    board: Board
    webhooks: WebhookManager
    recorder: PayloadRecorder
    project_locks: ProjectLocks = field(default_factory=ProjectLocks)
