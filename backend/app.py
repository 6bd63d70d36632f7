import logging
import os
import time
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from violet_eightfold.llm import ChatCompletionsClient, CompletionClient
from violet_eightfold.storage import ProfileStore

from backend.auth import UserRegistry
from backend.config import get_config
from backend.routes import router

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def create_app(
    data_dir: Path | None = None,
    llm: CompletionClient | None = None,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    resolved.mkdir(parents=True, exist_ok=True)
    config = get_config(resolved)

    app = FastAPI(title="The Violet Eightfold")
    app.state.config = config
    app.state.started = time.monotonic()
    app.state.users = UserRegistry(config["users"])
    app.state.profiles = ProfileStore(resolved)
    if llm is None:
        settings = config["llm"]
        if not settings["api_key"]:
            logger.warning("no upstream API key configured")
        llm = ChatCompletionsClient(
            provider_url=settings["provider_url"],
            api_key=settings["api_key"],
            model=settings["model"],
            temperature=settings["temperature"],
            timeout=settings["timeout"],
        )
    app.state.llm = llm
    app.include_router(router, prefix="/api")

    # Flat JSON errors: dict details pass through, strings become {"error": ...}
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    logger.info("app ready data_dir=%s users=%d", resolved, len(config["users"]))
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
