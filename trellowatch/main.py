import asyncio
import signal
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from trellowatch.api.deps import get_context
from trellowatch.api.middleware import AccessLogMiddleware
from trellowatch.api.webhooks import router as webhooks_router
from trellowatch.common.logging import get_logger, setup_logging
from trellowatch.config import settings
from trellowatch.core.trello_sync.context import SyncContext
from trellowatch.core.trello_sync.service import TrelloWatchService

logger = get_logger("main")


async def _initial_pass(service: TrelloWatchService, ctx: SyncContext) -> None:
    # Webhook creation needs the listener up to answer Trello's HEAD probe.
    await asyncio.sleep(settings.STARTUP_DELAY_SECONDS)
    try:
        await service.run_startup(ctx)
    except Exception:
        logger.critical("Initial webhook setup failed, shutting down", exc_info=True)
        signal.raise_signal(signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    settings.require()

    service = TrelloWatchService(settings)
    ctx = await service.build_context()
    app.state.service = service
    app.state.context = ctx

    task = asyncio.create_task(_initial_pass(service, ctx))
    logger.info("Starting server...")
    yield
    task.cancel()


app = FastAPI(
    title="Trello Watch",
    description="Keeps a Trello board's lists in step with active project checklists",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

app.add_middleware(AccessLogMiddleware)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "trellowatch",
        "version": "1.0.0",
        "board_id": settings.TRELLO_BOARD_ID,
    }


@app.get("/webhooks")
async def list_webhooks(ctx: SyncContext = Depends(get_context)):
    return [wh.model_dump(by_alias=True) for wh in ctx.webhooks.webhooks]


# Registered last: it matches every path.
app.include_router(webhooks_router)
