import enum


class ListName(str, enum.Enum):
    PROJECTS = "Projects"
    ACTIVE = "Active"
    TODO = "To Do"
    DONE = "Done"
    STORAGE = "Storage"


class ModelType(str, enum.Enum):
    LIST = "list"
    CARD = "card"


class CheckItemState(str, enum.Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class ActionType(str, enum.Enum):
    UPDATE_CARD = "updateCard"
    UPDATE_CHECK_ITEM_STATE = "updateCheckItemStateOnCard"
