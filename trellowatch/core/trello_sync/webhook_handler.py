import json

from trellowatch.common.enums import CheckItemState, ModelType
from trellowatch.common.exceptions import NotFoundError
from trellowatch.common.logging import get_logger
from trellowatch.core.trello_sync.board_manager import find_card
from trellowatch.core.trello_sync.context import SyncContext
from trellowatch.core.trello_sync.reconcile import (
    activate_project,
    deactivate_project,
    set_active_check_item,
)
from trellowatch.core.trello_sync.schemas import CheckItemChange, ListChange, parse_event

logger = get_logger("trello_sync.webhook_handler")

HANDLED = "handled"
IGNORED = "ignored"
RECORDED = "recorded"

# The kind of event each watched model is expected to deliver
EVENT_SOURCES = {
    ListChange: ModelType.LIST,
    CheckItemChange: ModelType.CARD,
}


async def handle_webhook_event(obj_type: str, obj_id: str, body: bytes, ctx: SyncContext) -> str:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None

    event = parse_event(payload)
    if event is None:
        ctx.recorder.record(obj_type, obj_id, body)
        return RECORDED

    if EVENT_SOURCES[type(event)] != ModelType(obj_type):
        logger.debug("Ignoring %s delivered to %s %s", type(event).__name__, obj_type, obj_id)
        return IGNORED

    if isinstance(event, ListChange):
        await handle_list_change(event, ctx)
    else:
        await handle_check_item_change(event, ctx)
    return HANDLED


async def handle_list_change(event: ListChange, ctx: SyncContext) -> None:
    board = ctx.board
    before, after = event.before_name, event.after_name
    logger.info("ListChange for card %s: %s -> %s", event.card.id, before, after)

    if before is None or after is None:
        return

    # Moves to and from Storage are the watcher's own bookkeeping.
    if board.storage.name in (before, after):
        return

    if (before, after) == (board.projects.name, board.active.name):
        card = await ctx.client.get_card(event.card.id)
        await activate_project(card, ctx)
    elif (before, after) == (board.active.name, board.projects.name):
        card = await ctx.client.get_card(event.card.id)
        await deactivate_project(card, ctx)
    elif (before, after) == (board.todo.name, board.done.name):
        card = await ctx.client.get_card(event.card.id)
        await set_active_check_item(card.name, CheckItemState.COMPLETE, ctx)
    elif (before, after) == (board.done.name, board.todo.name):
        card = await ctx.client.get_card(event.card.id)
        await set_active_check_item(card.name, CheckItemState.INCOMPLETE, ctx)
    else:
        logger.debug("No transition for %s -> %s", before, after)


async def handle_check_item_change(event: CheckItemChange, ctx: SyncContext) -> None:
    board = ctx.board
    name, state = event.item_name, event.item_state
    logger.info("CheckItemChange made with name %s and state %s", name, state)

    if state == CheckItemState.COMPLETE.value:
        card = find_card(await ctx.client.get_list_cards(board.todo.id), name)
        async with ctx.webhooks.suspended(board.done.id):
            await ctx.client.move_card(card.id, board.done.id)

    elif state == CheckItemState.INCOMPLETE.value:
        done_cards = await ctx.client.get_list_cards(board.done.id)
        try:
            card = find_card(done_cards, name)
        except NotFoundError:
            todo_cards = await ctx.client.get_list_cards(board.todo.id)
            if any(c.name == name for c in todo_cards):
                return
            await ctx.client.create_card(board.todo.id, name)
            return

        async with ctx.webhooks.suspended(board.done.id):
            await ctx.client.move_card(card.id, board.todo.id)
