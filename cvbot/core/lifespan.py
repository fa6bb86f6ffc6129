import json
import logging
from contextlib import asynccontextmanager

from cvbot.services.chat_service import build_chat_pipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    # Knowledge base, interview bank and boundary rules load once per process.
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = build_chat_pipeline()
    logger.info(json.dumps({"event": "pipeline_ready", **app.state.pipeline.stats()}))
    yield
    app.state.pipeline.history.clear()
