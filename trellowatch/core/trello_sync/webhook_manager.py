import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from trellowatch.common.enums import ModelType
from trellowatch.common.exceptions import WatcherError
from trellowatch.common.logging import get_logger
from trellowatch.core.trello_sync.schemas import Webhook
from trellowatch.integrations.trello import TrelloClient

logger = get_logger("trello_sync.webhook_manager")


def make_callback_url(scheme: str, host: str, model_type: str, model_id: str) -> str:
    return f"{scheme}://{host}/{model_type}/{model_id}"


class WebhookManager:
    """Registry of the watcher's webhooks, at most one per watched model.

    Webhooks are created once and afterwards only toggled, never deleted.
    """

    def __init__(self, client: TrelloClient, host: str, scheme: str = "https"):
        self.client = client
        self.host = host
        self.scheme = scheme
        self._webhooks: dict[str, Webhook] = {}
        self._ensure_lock = asyncio.Lock()
        self._suspensions: dict[str, int] = {}
        self._toggle_locks: dict[str, asyncio.Lock] = {}

    @property
    def webhooks(self) -> list[Webhook]:
        return list(self._webhooks.values())

    async def load(self) -> None:
        webhooks = await self.client.list_webhooks()
        for webhook in webhooks:
            self._webhooks.setdefault(webhook.id_model, webhook)
        logger.info("Loaded %d registered webhooks", len(self._webhooks))

    def register(self, webhook: Webhook) -> None:
        self._webhooks[webhook.id_model] = webhook

    def find(self, model_id: str) -> Webhook | None:
        return self._webhooks.get(model_id)

    def callback_url(self, model_type: ModelType | str, model_id: str) -> str:
        return make_callback_url(self.scheme, self.host, ModelType(model_type).value, model_id)

    async def ensure(self, model_type: ModelType | str, model_id: str) -> Webhook:
        async with self._ensure_lock:
            existing = self._webhooks.get(model_id)
            if existing is not None:
                return existing

            model_type = ModelType(model_type)
            webhook = await self.client.create_webhook(
                f"{model_type.value}: {model_id}",
                self.callback_url(model_type, model_id),
                model_id,
            )
            self._webhooks[model_id] = webhook
            return webhook

    async def activate(self, model_id: str) -> None:
        await self._set_active(model_id, True)

    async def deactivate(self, model_id: str) -> None:
        await self._set_active(model_id, False)

    async def _set_active(self, model_id: str, active: bool) -> None:
        webhook = self._webhooks.get(model_id)
        if webhook is None:
            logger.debug("No webhook registered for %s, skipping active=%s", model_id, active)
            return
        updated = await self.client.set_webhook_active(webhook.id, active)
        self._webhooks[model_id] = webhook.model_copy(update={"active": updated.active})

    @asynccontextmanager
    async def suspended(self, model_id: str) -> AsyncIterator[None]:
        """Keep notifications for ``model_id`` off while the block runs.

        Nested or concurrent suspensions of the same model share one
        deactivate/activate pair; the webhook comes back when the last one exits.
        Entrants wait until the webhook is actually off before running.
        """
        toggle_lock = self._toggle_locks.setdefault(model_id, asyncio.Lock())

        async with toggle_lock:
            count = self._suspensions.get(model_id, 0)
            if count == 0:
                await self.deactivate(model_id)
            self._suspensions[model_id] = count + 1

        try:
            yield
        except BaseException:
            async with toggle_lock:
                if self._release(model_id):
                    try:
                        await self.activate(model_id)
                    except WatcherError as e:
                        logger.error("Failed to reactivate webhook for %s: %s", model_id, e)
            raise
        else:
            async with toggle_lock:
                if self._release(model_id):
                    await self.activate(model_id)

    def _release(self, model_id: str) -> bool:
        remaining = self._suspensions[model_id] - 1
        if remaining:
            self._suspensions[model_id] = remaining
            return False
        del self._suspensions[model_id]
        return True
