import re

from fastapi import APIRouter, Depends, Request, Response, status

from trellowatch.api.deps import get_context
from trellowatch.common.enums import ModelType
from trellowatch.common.exceptions import WatcherError
from trellowatch.common.logging import get_logger
from trellowatch.core.trello_sync.context import SyncContext
from trellowatch.core.trello_sync.webhook_handler import handle_webhook_event

logger = get_logger("api.webhooks")

router = APIRouter(tags=["Webhooks"])

# The last path segment is the model id, the one before it the model type.
CALLBACK_PATH = re.compile(r"^/?(?:.*/)?(?P<obj_type>[^/]+)/(?P<obj_id>[^/]+)/?$")

WATCHED_TYPES = {t.value for t in ModelType}


def parse_callback_path(path: str) -> tuple[str, str] | None:
    match = CALLBACK_PATH.match(path)
    if not match or match["obj_type"] not in WATCHED_TYPES:
        return None
    return match["obj_type"], match["obj_id"]


@router.api_route("/{path:path}", methods=["HEAD", "POST"], include_in_schema=False)
async def trello_callback(request: Request, path: str, ctx: SyncContext = Depends(get_context)):
    # Trello sends a HEAD request to verify a webhook callback URL
    if request.method == "HEAD":
        ctx.recorder.mark_activated(request.url.path)
        return Response(status_code=status.HTTP_200_OK)

    parsed = parse_callback_path(request.url.path)
    if parsed is None:
        logger.warning("Invalid callback path: %s", request.url.path)
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    obj_type, obj_id = parsed
    body = await request.body()

    try:
        outcome = await handle_webhook_event(obj_type, obj_id, body, ctx)
    except WatcherError as e:
        logger.error("Failed to handle %s %s event: %s", obj_type, obj_id, e)
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.debug("Webhook for %s %s %s", obj_type, obj_id, outcome)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
