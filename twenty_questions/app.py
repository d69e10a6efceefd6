import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from twenty_questions.config import Settings
from twenty_questions.llm.functions import Searcher
from twenty_questions.llm.registry import ProviderRegistry
from twenty_questions.orchestrator import TurnOrchestrator
from twenty_questions.routes import router
from twenty_questions.search import SearchClient
from twenty_questions.storage import JsonStorage

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid {field}: {first.get('msg', 'bad request')}" if field else "Invalid request body"
    return JSONResponse({"error": message}, status_code=400)


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    data_dir: Path | None = None,
    registry: ProviderRegistry | None = None,
    search: Searcher | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if data_dir is not None:
        settings = settings.model_copy(update={"data_dir": Path(data_dir)})

    storage = JsonStorage(settings.data_dir)
    storage.purge_finished(timedelta(hours=settings.purge_after_hours))
    registry = registry or ProviderRegistry(timeout=settings.llm_request_timeout)
    search = search or SearchClient(timeout=settings.search_timeout)

    app = FastAPI(title="20 Questions")
    app.state.orchestrator = TurnOrchestrator(storage, registry, search, settings=settings)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unexpected_error)
    app.include_router(router, prefix="/api")

    logger.info("20 Questions app ready, data dir %s", settings.data_dir)
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
