"""Tests for Handlebars prompt rendering and the generation prompt templates."""

import pytest

from glutton.prompts import (
    BACKGROUND_PROMPT,
    NAME_PROMPT,
    OUTLINE_PROMPT,
    STREAM_PROMPT,
    THOUGHT_PROMPT,
    PromptError,
    render_prompt,
)


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    result = render_prompt("Hello {{name}}!", {"name": "World"})
    assert result == "Hello World!"


def test_render_triple_stash_is_unescaped():
    result = render_prompt("{{{text}}} / {{text}}", {"text": "a & b"})
    assert result == "a & b / a &amp; b"


def test_render_missing_variable():
    result = render_prompt("Hello {{name}}!", {})
    assert result == "Hello !"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── Templates ────────────────────────────────────────────────


def test_outline_prompt_includes_identity_and_budget():
    result = render_prompt(OUTLINE_PROMPT, {"identity": "a worm who fears mirrors"})
    assert '"a worm who fears mirrors"' in result
    assert "EXACTLY 10" in result
    assert "13 keywords" in result
    assert "{{" not in result


def test_background_prompt_lists_keywords():
    ctx = {"title": "The Mirror", "setting": "An attic.", "keywords": "mirror, shadow"}
    result = render_prompt(BACKGROUND_PROMPT, ctx)
    assert "Story: The Mirror" in result
    assert "mirror, shadow" in result
    assert "at least TWO" in result


def test_stream_prompt_renders_title():
    result = render_prompt(STREAM_PROMPT, {"title": "The Mirror", "setting": "An attic."})
    assert "Story: The Mirror" in result
    assert "15" in result


def test_vocab_prompts():
    thought = render_prompt(THOUGHT_PROMPT, {"vocab": "apple, rain"})
    name = render_prompt(NAME_PROMPT, {"vocab": "apple, rain"})
    assert "[apple, rain]" in thought
    assert "[apple, rain]" in name
