import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatdesk.api.deps import get_preferences, get_repository
from chatdesk.api.routes_conversation import router as conversation_router
from chatdesk.api.routes_logs import LOG_FORMAT, log_handler, router as logs_router
from chatdesk.api.routes_preferences import router as preferences_router
from chatdesk.config import get_config

__version__ = "0.3.0"

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=get_config().log_level,
    format=LOG_FORMAT,
    stream=sys.stdout,
)
logging.getLogger().addHandler(log_handler)


def prepare_storage() -> None:
    """Create the data directories and default files, then report drift."""
    repo = get_repository()
    repo.ensure()
    get_preferences().ensure_defaults()

    report = repo.find_inconsistencies()
    if report.orphan_files:
        logger.warning(
            "%d conversation files are not indexed: %s",
            len(report.orphan_files), ", ".join(report.orphan_files),
        )
    if report.dangling_entries:
        logger.warning(
            "%d index entries have no file: %s",
            len(report.dangling_entries), ", ".join(report.dangling_entries),
        )
    logger.info("Conversation storage ready at %s", repo.directory)


@asynccontextmanager
async def lifespan(app):
    prepare_storage()
    yield


app = FastAPI(title="Chatdesk Storage", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(conversation_router)
app.include_router(preferences_router)
app.include_router(logs_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)
