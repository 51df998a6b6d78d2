import json

import httpx
import pytest

from trellowatch.common.exceptions import ExternalServiceError, NotFoundError
from trellowatch.integrations.trello import TrelloClient


def make_client(handler) -> TrelloClient:
    return TrelloClient(
        api_key="key123", token="tok456", api_url="https://trello.test/1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_list_cards_sends_credentials():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, json=[
            {"id": "c1", "name": "A", "idList": "l1", "desc": "ignored"},
        ])

    cards = await make_client(handler).get_list_cards("l1")

    assert seen["url"].path == "/1/lists/l1/cards"
    assert seen["url"].params["key"] == "key123"
    assert seen["url"].params["token"] == "tok456"
    assert cards[0].name == "A"
    assert cards[0].id_list == "l1"


@pytest.mark.asyncio
async def test_get_card_checklists():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{
            "id": "cl1", "name": "Tasks", "idCard": "c1",
            "checkItems": [{"id": "i1", "name": "A", "state": "complete", "idChecklist": "cl1"}],
        }])

    checklists = await make_client(handler).get_card_checklists("c1")

    assert checklists[0].check_items[0].is_complete
    assert checklists[0].all_complete


@pytest.mark.asyncio
async def test_set_webhook_active_sends_flag():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "w1", "idModel": "l1", "callbackURL": "https://x/list/l1", "active": False})

    webhook = await make_client(handler).set_webhook_active("w1", False)

    assert (seen["method"], seen["path"]) == ("PUT", "/1/webhooks/w1")
    assert seen["body"] == {"active": False}
    assert webhook.active is False


@pytest.mark.asyncio
async def test_list_webhooks_uses_token_path():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/1/tokens/tok456/webhooks"
        return httpx.Response(200, json=[{"id": "w1", "idModel": "m1", "callbackURL": "u", "active": True}])

    webhooks = await make_client(handler).list_webhooks()

    assert webhooks[0].id_model == "m1"


@pytest.mark.asyncio
async def test_not_found_maps_to_not_found_error():
    client = make_client(lambda request: httpx.Response(404, text="model not found"))

    with pytest.raises(NotFoundError):
        await client.get_card("missing")


@pytest.mark.asyncio
async def test_server_error_maps_to_external_service_error():
    client = make_client(lambda request: httpx.Response(500))

    with pytest.raises(ExternalServiceError):
        await client.move_card("c1", "l1")


@pytest.mark.asyncio
async def test_transport_error_maps_to_external_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(ExternalServiceError):
        await client.get_board_lists("b1")
    assert await client.health_check() is False


@pytest.mark.asyncio
async def test_invalid_json_maps_to_external_service_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(ExternalServiceError):
        await client.get_card("c1")


@pytest.mark.asyncio
async def test_unexpected_shape_maps_to_external_service_error():
    client = make_client(lambda request: httpx.Response(200, json={"name": "no id"}))

    with pytest.raises(ExternalServiceError):
        await client.get_card("c1")
    with pytest.raises(ExternalServiceError):
        await client.get_list_cards("l1")
    with pytest.raises(ExternalServiceError):
        await client.create_card("l1", "A")
