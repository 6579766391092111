"""Runtime settings and model catalogue.

Settings come from environment variables (a `.env` file at the repo root is
loaded by the app factory and the launcher). Missing provider keys are not an
error: the provider is simply reported as unavailable and the orchestrator
routes around it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from glutton.models import ModelTier

ProviderName = Literal["gemini", "groq"]

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

# Ordered candidates per tier. Quota errors rotate through them in order.
GEMINI_MODELS: dict[ModelTier, list[str]] = {
    "fast": ["gemini-2.0-flash-lite", "gemini-2.0-flash", "gemini-1.5-flash"],
    "advanced": ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-pro"],
}

GROQ_MODELS: dict[ModelTier, list[str]] = {
    "fast": ["llama-3.1-8b-instant"],
    "advanced": ["llama-3.3-70b-versatile"],
}


class Settings(BaseModel):
    gemini_api_key: str = ""
    groq_api_key: str = ""
    primary_provider: ProviderName = "gemini"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    llm_timeout: float = 60.0
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    fields: dict[str, object] = {
        "gemini_api_key": os.getenv("GEMINI_API_KEY", ""),
        "groq_api_key": os.getenv("GROQ_API_KEY", ""),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }
    optional = {
        "primary_provider": "PRIMARY_PROVIDER",
        "gemini_base_url": "GEMINI_BASE_URL",
        "groq_base_url": "GROQ_BASE_URL",
        "llm_timeout": "LLM_TIMEOUT",
        "data_dir": "DATA_DIR",
    }
    for field, env_key in optional.items():
        value = os.getenv(env_key)
        if value:
            fields[field] = value
    return Settings.model_validate(fields)


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure the root logger at settings.log_level."""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
