from trellowatch.common.enums import ModelType
from trellowatch.common.logging import get_logger
from trellowatch.config import Settings
from trellowatch.core.trello_sync.board_manager import load_board
from trellowatch.core.trello_sync.context import SyncContext
from trellowatch.core.trello_sync.reconcile import ReconcileResult, activate_project
from trellowatch.core.trello_sync.recorder import PayloadRecorder
from trellowatch.core.trello_sync.webhook_manager import WebhookManager
from trellowatch.integrations.trello import TrelloClient

logger = get_logger("trello_sync.service")


class TrelloWatchService:
    def __init__(self, settings: Settings, client: TrelloClient | None = None):
        self.settings = settings
        self.client = client or TrelloClient(
            api_key=settings.TRELLO_KEY, token=settings.TRELLO_TOKEN,
        )

    async def build_context(self) -> SyncContext:
        """Load the board and the existing webhooks.

        Raises ConfigurationError when a required list is missing and
        ExternalServiceError when Trello cannot be reached; both are fatal.
        """
        board = await load_board(self.client, self.settings.TRELLO_BOARD_ID)

        webhooks = WebhookManager(self.client, self.settings.HOST, self.settings.CALLBACK_SCHEME)
        await webhooks.load()

        return SyncContext(
            client=self.client,
            board=board,
            webhooks=webhooks,
            recorder=PayloadRecorder(self.settings.LOG_DIR),
        )

    async def setup_initial_webhooks(self, ctx: SyncContext) -> None:
        for list_id in (ctx.board.active.id, ctx.board.done.id):
            await ctx.webhooks.ensure(ModelType.LIST, list_id)
            await ctx.webhooks.activate(list_id)

        for card in await self.client.get_list_cards(ctx.board.active.id):
            await ctx.webhooks.ensure(ModelType.CARD, card.id)
            await ctx.webhooks.activate(card.id)

    async def run_startup(self, ctx: SyncContext) -> dict[str, ReconcileResult]:
        """Register webhooks and backfill every active project.

        Catches up on checklist changes made while the watcher was offline.
        """
        await self.setup_initial_webhooks(ctx)

        results = {}
        for card in await self.client.get_list_cards(ctx.board.active.id):
            results[card.id] = await activate_project(card, ctx)

        logger.info("Startup complete: %d active projects reconciled", len(results))
        return results
