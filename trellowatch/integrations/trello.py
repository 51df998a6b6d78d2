"""Trello REST API client.

Thin async wrapper over the handful of endpoints the watcher needs: board
lists, list cards, card checklists, card moves and webhook management.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from trellowatch.common.exceptions import ExternalServiceError, NotFoundError
from trellowatch.config import settings
from trellowatch.core.trello_sync.schemas import Card, Checklist, TrelloList, Webhook
from trellowatch.integrations.base import BaseIntegration

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ExternalServiceError("trello", f"unexpected {model.__name__} payload: {e.error_count()} errors") from e


def _parse_many(model: type[ModelT], data: Any) -> list[ModelT]:
    if not isinstance(data, list):
        raise ExternalServiceError("trello", f"expected a list of {model.__name__}")
    return [_parse(model, item) for item in data]


class TrelloClient(BaseIntegration):
    def __init__(
        self,
        api_key: str | None = None,
        token: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("trello")
        self.api_key = api_key if api_key is not None else settings.TRELLO_KEY
        self.token = token if token is not None else settings.TRELLO_TOKEN
        self.api_url = (api_url or settings.TRELLO_API_URL).rstrip("/")
        self._transport = transport

    def _params(self) -> dict[str, str]:
        return {"key": self.api_key, "token": self.token}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        params = {**self._params(), **kwargs.pop("params", {})}
        try:
            async with httpx.AsyncClient(timeout=settings.TRELLO_TIMEOUT, transport=self._transport) as client:
                resp = await client.request(method, f"{self.api_url}{path}", params=params, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except ValueError as e:
            raise ExternalServiceError("trello", f"{method} {path} returned invalid JSON") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError("Trello resource", path) from e
            raise ExternalServiceError(
                "trello", f"{method} {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError("trello", f"{method} {path} failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/members/me")
            return True
        except ExternalServiceError as e:
            self.logger.error("Trello health check failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Boards & Lists
    # ------------------------------------------------------------------

    async def get_board_lists(self, board_id: str) -> list[TrelloList]:
        lists = _parse_many(TrelloList, await self._request("GET", f"/boards/{board_id}/lists"))
        self.logger.debug("Fetched %d lists for board %s", len(lists), board_id)
        return lists

    async def get_list_cards(self, list_id: str) -> list[Card]:
        cards = await self._request("GET", f"/lists/{list_id}/cards")
        return _parse_many(Card, cards)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def get_card(self, card_id: str) -> Card:
        return _parse(Card, await self._request("GET", f"/cards/{card_id}"))

    async def get_card_checklists(self, card_id: str) -> list[Checklist]:
        checklists = await self._request("GET", f"/cards/{card_id}/checklists")
        return _parse_many(Checklist, checklists)

    async def create_card(self, list_id: str, name: str, description: str = "") -> Card:
        card = await self._request(
            "POST", "/cards", json={"name": name, "desc": description, "idList": list_id},
        )
        created = _parse(Card, card)
        self.logger.info("Created card '%s' (id=%s) in list %s", name, created.id, list_id)
        return created

    async def move_card(self, card_id: str, list_id: str) -> Card:
        card = await self._request("PUT", f"/cards/{card_id}", json={"idList": list_id})
        self.logger.info("Moved card %s -> list %s", card_id, list_id)
        return _parse(Card, card)

    async def set_check_item_state(self, card_id: str, check_item_id: str, state: str) -> None:
        await self._request(
            "PUT", f"/cards/{card_id}/checkItem/{check_item_id}", json={"state": state},
        )
        self.logger.info("Marked check item %s on card %s %s", check_item_id, card_id, state)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def list_webhooks(self) -> list[Webhook]:
        webhooks = await self._request("GET", f"/tokens/{self.token}/webhooks")
        return _parse_many(Webhook, webhooks)

    async def create_webhook(self, description: str, callback_url: str, model_id: str) -> Webhook:
        webhook = await self._request(
            "POST", "/webhooks",
            json={"description": description, "callbackURL": callback_url, "idModel": model_id},
        )
        self.logger.info("Created webhook for model %s -> %s", model_id, callback_url)
        return _parse(Webhook, webhook)

    async def set_webhook_active(self, webhook_id: str, active: bool) -> Webhook:
        webhook = await self._request("PUT", f"/webhooks/{webhook_id}", json={"active": active})
        self.logger.info("Set webhook %s active=%s", webhook_id, active)
        return _parse(Webhook, webhook)
