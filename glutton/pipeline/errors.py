"""Story pipeline error taxonomy.

Only StoryGenerationError subclasses ever reach the HTTP layer; everything
else (quota, unavailable providers, coverage gaps, stale outlines) is
recovered inside the pipeline.
"""


class StoryGenerationError(Exception):
    """A story could not be generated. Nothing was persisted."""


class InvalidOutline(StoryGenerationError):
    """Phase 1 produced no usable outline."""


class InsufficientMaterial(StoryGenerationError):
    """Phase 2 produced too few keyword-bearing passages."""


class ParseFailure(ValueError):
    """Generated text did not contain the expected JSON structure."""
