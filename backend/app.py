import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.routes import router
from glutton.config import Settings, load_settings
from glutton.generation import TextGenerator
from glutton.pipeline import StoryEngine
from glutton.providers import LLMProvider, build_providers
from glutton.storage import Storage

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


def create_app(
    data_dir: Path | None = None,
    settings: Settings | None = None,
    providers: list[LLMProvider] | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    resolved = data_dir or settings.data_dir
    storage = Storage(resolved)
    providers = providers if providers is not None else build_providers(settings)
    generator = TextGenerator(providers, storage, primary=settings.primary_provider)

    available = [p.name for p in providers if p.available]
    logger.info("data dir %s, providers available: %s", resolved, available or "none")

    app = FastAPI(title="Word Glutton")
    app.state.storage = storage
    app.state.generator = generator
    app.state.engine = StoryEngine(storage, generator)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
