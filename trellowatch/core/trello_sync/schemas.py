from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trellowatch.common.enums import ActionType, CheckItemState


class TrelloModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------- Board resources ----------


class TrelloList(TrelloModel):
    id: str
    name: str


class Card(TrelloModel):
    id: str
    name: str
    id_list: str = Field("", alias="idList")


class CheckItem(TrelloModel):
    id: str
    name: str
    state: str = CheckItemState.INCOMPLETE.value
    id_checklist: str = Field("", alias="idChecklist")

    @property
    def is_complete(self) -> bool:
        return self.state == CheckItemState.COMPLETE.value


class Checklist(TrelloModel):
    id: str
    name: str = ""
    id_card: str = Field("", alias="idCard")
    check_items: list[CheckItem] = Field(default_factory=list, alias="checkItems")

    @property
    def all_complete(self) -> bool:
        return all(item.is_complete for item in self.check_items)


class Webhook(TrelloModel):
    id: str
    id_model: str = Field(alias="idModel")
    callback_url: str = Field("", alias="callbackURL")
    description: str = ""
    active: bool = True


class Board(TrelloModel):
    id: str
    projects: TrelloList
    active: TrelloList
    todo: TrelloList
    done: TrelloList
    storage: TrelloList


# ---------- Webhook payloads ----------


class ModelRef(TrelloModel):
    id: str = ""
    name: str = ""


class ListRef(TrelloModel):
    id: str = ""
    name: str = ""


class MovedCard(TrelloModel):
    id: str
    id_list: str = Field("", alias="idList")
    name: str = ""


class OldValues(TrelloModel):
    id_list: str = Field("", alias="idList")


class ListChangeData(TrelloModel):
    list_after: ListRef | None = Field(None, alias="listAfter")
    list_before: ListRef | None = Field(None, alias="listBefore")
    card: MovedCard
    old: OldValues = Field(default_factory=OldValues)


class ListChangeAction(TrelloModel):
    type: str
    data: ListChangeData


class ListChange(TrelloModel):
    """A card was updated; a move between lists carries listBefore/listAfter."""

    model: ModelRef = Field(default_factory=ModelRef)
    action: ListChangeAction

    @property
    def card(self) -> MovedCard:
        return self.action.data.card

    @property
    def before_name(self) -> str | None:
        before = self.action.data.list_before
        return before.name if before else None

    @property
    def after_name(self) -> str | None:
        after = self.action.data.list_after
        return after.name if after else None


class CheckItemRef(TrelloModel):
    id: str = ""
    name: str
    state: str


class ChecklistRef(TrelloModel):
    id: str = ""
    name: str = ""


class CheckItemChangeData(TrelloModel):
    card: ModelRef
    check_item: CheckItemRef = Field(alias="checkItem")
    checklist: ChecklistRef = Field(default_factory=ChecklistRef)


class CheckItemChangeAction(TrelloModel):
    type: str
    data: CheckItemChangeData


class CheckItemChange(TrelloModel):
    """A check item on a watched card changed state."""

    model: ModelRef = Field(default_factory=ModelRef)
    action: CheckItemChangeAction

    @property
    def item_name(self) -> str:
        return self.action.data.check_item.name

    @property
    def item_state(self) -> str:
        return self.action.data.check_item.state


WebhookEvent = ListChange | CheckItemChange

EVENT_TYPES: dict[str, type[ListChange] | type[CheckItemChange]] = {
    ActionType.UPDATE_CARD.value: ListChange,
    ActionType.UPDATE_CHECK_ITEM_STATE.value: CheckItemChange,
}


def parse_event(payload: object) -> WebhookEvent | None:
    """Decode a webhook payload by its ``action.type``.

    Returns ``None`` when the type is unknown or the body does not have the
    shape that type requires.
    """
    if not isinstance(payload, dict):
        return None
    action = payload.get("action")
    if not isinstance(action, dict):
        return None

    event_type = EVENT_TYPES.get(action.get("type", ""))
    if event_type is None:
        return None

    try:
        return event_type.model_validate(payload)
    except ValidationError:
        return None
