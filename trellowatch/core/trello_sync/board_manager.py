from collections.abc import Iterable

from trellowatch.common.enums import ListName
from trellowatch.common.exceptions import ConfigurationError, NotFoundError
from trellowatch.common.logging import get_logger
from trellowatch.core.trello_sync.schemas import Board, Card, TrelloList
from trellowatch.integrations.trello import TrelloClient

logger = get_logger("trello_sync.board_manager")


async def load_board(client: TrelloClient, board_id: str) -> Board:
    """Fetch the board's lists and pick out the five the watcher works with.

    Lists with any other name are ignored.
    """
    lists = await client.get_board_lists(board_id)

    by_name: dict[str, TrelloList] = {}
    for lst in lists:
        by_name.setdefault(lst.name, lst)

    found = {}
    for list_name in ListName:
        lst = by_name.get(list_name.value)
        if lst is None:
            raise ConfigurationError(f"The board needs a list named {list_name.value!r}")
        found[list_name] = lst

    logger.info("Loaded board %s (%d lists, %d watched)", board_id, len(lists), len(found))
    return Board(
        id=board_id,
        projects=found[ListName.PROJECTS],
        active=found[ListName.ACTIVE],
        todo=found[ListName.TODO],
        done=found[ListName.DONE],
        storage=found[ListName.STORAGE],
    )


def find_card(cards: Iterable[Card], name: str) -> Card:
    for card in cards:
        if card.name == name:
            return card
    raise NotFoundError("Card", name)
