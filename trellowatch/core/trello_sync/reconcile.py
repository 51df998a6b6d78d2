"""Bulk reconciliation of tracking cards when a project changes state.

Activation pulls a project's tracking cards out of Storage (or creates the
missing ones) into To Do / Done according to its checklist; deactivation
parks them back in Storage. Both runs are idempotent.
"""

from dataclasses import dataclass, field

from trellowatch.common.enums import CheckItemState, ModelType
from trellowatch.common.exceptions import NotFoundError
from trellowatch.common.logging import get_logger
from trellowatch.core.trello_sync.context import SyncContext
from trellowatch.core.trello_sync.schemas import Card, CheckItem

logger = get_logger("trello_sync.reconcile")


@dataclass
class ReconcileResult:
    moved: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _take(cards: list[Card], name: str) -> Card | None:
    for idx, card in enumerate(cards):
        if card.name == name:
            return cards.pop(idx)
    return None


def _has(cards: list[Card], name: str) -> bool:
    return any(card.name == name for card in cards)


async def activate_project(card: Card, ctx: SyncContext) -> ReconcileResult:
    async with ctx.project_locks(card.id):
        return await _activate(card, ctx)


async def deactivate_project(card: Card, ctx: SyncContext) -> ReconcileResult:
    async with ctx.project_locks(card.id):
        return await _deactivate(card, ctx)


async def _activate(card: Card, ctx: SyncContext) -> ReconcileResult:
    board = ctx.board
    result = ReconcileResult()
    logger.info("Activating project card '%s' (%s)", card.name, card.id)

    checklists = await ctx.client.get_card_checklists(card.id)
    storage_cards = await ctx.client.get_list_cards(board.storage.id)
    todo_cards = await ctx.client.get_list_cards(board.todo.id)
    done_cards = await ctx.client.get_list_cards(board.done.id)

    async with ctx.webhooks.suspended(board.done.id):
        for checklist in checklists:
            if checklist.all_complete:
                logger.debug("Checklist '%s' is complete, no tracking cards needed", checklist.name)
                continue

            for item in checklist.check_items:
                target, placed = (board.done, done_cards) if item.is_complete else (board.todo, todo_cards)

                stored = _take(storage_cards, item.name)
                if stored is not None:
                    moved = await ctx.client.move_card(stored.id, target.id)
                    placed.append(moved)
                    result.moved.append(item.name)
                elif _has(todo_cards, item.name) or _has(done_cards, item.name):
                    result.skipped.append(item.name)
                else:
                    created = await ctx.client.create_card(target.id, item.name)
                    placed.append(created)
                    result.created.append(item.name)

    await ctx.webhooks.ensure(ModelType.CARD, card.id)
    await ctx.webhooks.activate(card.id)

    logger.info(
        "Activated '%s': moved=%d created=%d skipped=%d",
        card.name, len(result.moved), len(result.created), len(result.skipped),
    )
    return result


async def _deactivate(card: Card, ctx: SyncContext) -> ReconcileResult:
    board = ctx.board
    result = ReconcileResult()
    logger.info("Deactivating project card '%s' (%s)", card.name, card.id)

    checklists = await ctx.client.get_card_checklists(card.id)
    tracked = await ctx.client.get_list_cards(board.todo.id)
    tracked += await ctx.client.get_list_cards(board.done.id)

    async with ctx.webhooks.suspended(board.done.id):
        for checklist in checklists:
            for item in checklist.check_items:
                found = _take(tracked, item.name)
                if found is None:
                    # Recreated on the next activation if still needed.
                    result.skipped.append(item.name)
                    continue
                await ctx.client.move_card(found.id, board.storage.id)
                result.moved.append(item.name)

    await ctx.webhooks.deactivate(card.id)

    logger.info("Stored '%s': moved=%d missing=%d", card.name, len(result.moved), len(result.skipped))
    return result


async def find_active_check_item(name: str, ctx: SyncContext) -> tuple[Card, CheckItem]:
    """Find the check item named ``name`` on any project card in Active.

    Returns the owning project card with it; first match wins.
    """
    for card in await ctx.client.get_list_cards(ctx.board.active.id):
        for checklist in await ctx.client.get_card_checklists(card.id):
            for item in checklist.check_items:
                if item.name == name:
                    return card, item
    raise NotFoundError("CheckItem", name)


async def set_active_check_item(name: str, state: CheckItemState, ctx: SyncContext) -> None:
    project, item = await find_active_check_item(name, ctx)
    async with ctx.webhooks.suspended(project.id):
        await ctx.client.set_check_item_state(project.id, item.id, state.value)
