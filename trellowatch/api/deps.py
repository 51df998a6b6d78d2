from fastapi import Request

from trellowatch.core.trello_sync.context import SyncContext


def get_context(request: Request) -> SyncContext:
    return request.app.state.context
