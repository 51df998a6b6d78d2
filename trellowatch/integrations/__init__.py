"""Clients for the remote services the watcher talks to."""

from trellowatch.integrations.base import BaseIntegration
from trellowatch.integrations.trello import TrelloClient

__all__ = [
    "BaseIntegration",
    "TrelloClient",
]
