import asyncio
import itertools

import pytest
from httpx import ASGITransport, AsyncClient

from trellowatch.common.exceptions import ExternalServiceError, NotFoundError
from trellowatch.config import Settings
from trellowatch.core.trello_sync.schemas import Card, CheckItem, Checklist, TrelloList, Webhook
from trellowatch.core.trello_sync.service import TrelloWatchService
from trellowatch.integrations.trello import TrelloClient

BOARD_LISTS = ["Ideas", "Projects", "Active", "To Do", "Done", "Storage"]


class FakeTrello(TrelloClient):
    """In-memory stand-in for the Trello API."""

    def __init__(self) -> None:
        super().__init__(api_key="test-key", token="test-token")
        self._ids = itertools.count(1)
        self.lists: dict[str, TrelloList] = {}
        self.cards: dict[str, Card] = {}
        self.checklists: dict[str, list[Checklist]] = {}
        self.hooks: dict[str, Webhook] = {}
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}

        for name in BOARD_LISTS:
            lst = TrelloList(id=self._next_id("list"), name=name)
            self.lists[lst.id] = lst

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    async def _check(self, method: str) -> None:
        if method in self.delays:
            await asyncio.sleep(self.delays[method])
        if method in self.failing:
            raise ExternalServiceError("trello", f"{method} failed")

    # ---------- test helpers ----------

    def list_id(self, name: str) -> str:
        return next(lst.id for lst in self.lists.values() if lst.name == name)

    def add_card(self, list_name: str, name: str) -> Card:
        card = Card(id=self._next_id("card"), name=name, idList=self.list_id(list_name))
        self.cards[card.id] = card
        return card

    def add_checklist(self, card: Card, items: dict[str, str], name: str = "Tasks") -> Checklist:
        checklist_id = self._next_id("checklist")
        checklist = Checklist(
            id=checklist_id,
            name=name,
            idCard=card.id,
            checkItems=[
                CheckItem(id=self._next_id("item"), name=item, state=state, idChecklist=checklist_id)
                for item, state in items.items()
            ],
        )
        self.checklists.setdefault(card.id, []).append(checklist)
        return checklist

    def add_webhook(self, model_id: str, active: bool = True) -> Webhook:
        webhook = Webhook(id=self._next_id("hook"), idModel=model_id, callbackURL="", active=active)
        self.hooks[webhook.id] = webhook
        return webhook

    def names_in(self, list_name: str) -> list[str]:
        list_id = self.list_id(list_name)
        return sorted(card.name for card in self.cards.values() if card.id_list == list_id)

    def item_state(self, card: Card, name: str) -> str:
        for checklist in self.checklists.get(card.id, []):
            for item in checklist.check_items:
                if item.name == name:
                    return item.state
        raise KeyError(name)

    def hook_for(self, model_id: str) -> Webhook | None:
        return next((wh for wh in self.hooks.values() if wh.id_model == model_id), None)

    def calls_to(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    # ---------- TrelloClient API ----------

    async def health_check(self) -> bool:
        return True

    async def get_board_lists(self, board_id):
        await self._check("get_board_lists")
        return list(self.lists.values())

    async def get_list_cards(self, list_id):
        await self._check("get_list_cards")
        return [card.model_copy() for card in self.cards.values() if card.id_list == list_id]

    async def get_card(self, card_id):
        await self._check("get_card")
        if card_id not in self.cards:
            raise NotFoundError("Card", card_id)
        return self.cards[card_id].model_copy()

    async def get_card_checklists(self, card_id):
        await self._check("get_card_checklists")
        return [cl.model_copy(deep=True) for cl in self.checklists.get(card_id, [])]

    async def create_card(self, list_id, name, description=""):
        await self._check("create_card")
        card = Card(id=self._next_id("card"), name=name, idList=list_id)
        self.cards[card.id] = card
        self.calls.append(("create_card", list_id, name))
        return card.model_copy()

    async def move_card(self, card_id, list_id):
        await self._check("move_card")
        card = self.cards[card_id].model_copy(update={"id_list": list_id})
        self.cards[card_id] = card
        self.calls.append(("move_card", card_id, list_id))
        return card.model_copy()

    async def set_check_item_state(self, card_id, check_item_id, state):
        await self._check("set_check_item_state")
        for checklist in self.checklists.get(card_id, []):
            for item in checklist.check_items:
                if item.id == check_item_id:
                    item.state = state
        self.calls.append(("set_check_item_state", card_id, check_item_id, state))

    async def list_webhooks(self):
        await self._check("list_webhooks")
        return list(self.hooks.values())

    async def create_webhook(self, description, callback_url, model_id):
        await self._check("create_webhook")
        webhook = Webhook(
            id=self._next_id("hook"), idModel=model_id, callbackURL=callback_url,
            description=description, active=True,
        )
        self.hooks[webhook.id] = webhook
        self.calls.append(("create_webhook", model_id, callback_url))
        return webhook

    async def set_webhook_active(self, webhook_id, active):
        await self._check("set_webhook_active")
        webhook = self.hooks[webhook_id].model_copy(update={"active": active})
        self.hooks[webhook_id] = webhook
        self.calls.append(("set_webhook_active", webhook.id_model, active))
        return webhook


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        TRELLO_BOARD_ID="board1",
        TRELLO_KEY="test-key",
        TRELLO_TOKEN="test-token",
        HOST="watch.example.com",
        PORT=8080,
        LOG_DIR=str(tmp_path),
        STARTUP_DELAY_SECONDS=0,
    )


@pytest.fixture
def trello():
    return FakeTrello()


@pytest.fixture
def service(test_settings, trello):
    return TrelloWatchService(test_settings, client=trello)


@pytest.fixture
async def ctx(service, trello):
    # The watcher always has list webhooks on Active and Done while running.
    trello.add_webhook(trello.list_id("Active"))
    trello.add_webhook(trello.list_id("Done"))
    return await service.build_context()


@pytest.fixture
async def client(ctx):
    from trellowatch.main import app

    app.state.context = ctx
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
