"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class EatBody(BaseModel):
    text: str
    id: str | None = None


class GenerateStoryBody(BaseModel):
    identity: str


class CheckUnlockBody(BaseModel):
    words: list[str]


class VocabBody(BaseModel):
    vocab: list[str] = []


class GenerateParagraphsBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int = 3
    worm_id: str | None = Field(None, alias="wormId")
    theme_override: str | None = Field(None, alias="themeOverride")
