"""ExtractionConfig clamping, chunking settings from env, per-call options, prompt selection."""
from __future__ import annotations

import pytest
from templex.extraction.config import ChunkingSettings, ExtractionConfig, ExtractionOptions
from templex.extraction.prompt import (
    ANALYSIS_SYSTEM_EN,
    ANALYSIS_SYSTEM_JA,
    MERGE_PROMPT_EN,
    SUPPLEMENT_PROMPT_JA,
    PromptBuilder,
    build_analysis_messages,
)


# ---- ExtractionConfig ----
def test_defaults():
    config = ExtractionConfig()
    assert config.model == "gpt-4"
    assert config.max_depth == 3
    assert config.min_confidence == 0.7
    assert config.language == "ja"
    assert config.extract_patterns and config.extract_keywords and config.extract_metadata
    assert config.use_iterative_refinement is False


@pytest.mark.parametrize("value,expected", [(0, 1), (-5, 1), (11, 10), (4.7, 4), ("deep", 3), (None, 3)])
def test_max_depth_is_clamped(value, expected):
    assert ExtractionConfig(max_depth=value).max_depth == expected


@pytest.mark.parametrize("value,expected", [(1.5, 1.0), (-0.1, 0.0), (float("nan"), 0.7), ("x", 0.7)])
def test_min_confidence_is_clamped(value, expected):
    assert ExtractionConfig(min_confidence=value).min_confidence == expected


def test_other_fields_default_instead_of_failing():
    config = ExtractionConfig(model="  ", language="fr", extract_keywords=None)
    assert config.model == "gpt-4"
    assert config.language == "ja"
    assert config.extract_keywords is True


def test_assignment_is_clamped_too():
    config = ExtractionConfig()
    config.max_depth = 99
    assert config.max_depth == 10


# ---- ChunkingSettings / ExtractionOptions ----
def test_chunking_settings_from_env(monkeypatch):
    monkeypatch.setenv("TEMPLEX_CHUNK_CHUNK_SIZE", "500")
    monkeypatch.setenv("TEMPLEX_CHUNK_CONCURRENCY", "2")
    settings = ChunkingSettings()
    assert settings.chunk_size == 500
    assert settings.concurrency == 2
    assert settings.overlap_size == 200


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"chunk_size": 0}, {"chunk_size": 1}),
        ({"chunk_size": -50, "concurrency": 0}, {"chunk_size": 1, "concurrency": 1}),
        ({"overlap_size": -1, "max_retries": -3}, {"overlap_size": 0, "max_retries": 0}),
        ({"timeout_s": 0}, {"timeout_s": 30.0}),
        ({"timeout_s": float("nan"), "chunk_size": "big"}, {"timeout_s": 30.0, "chunk_size": 2000}),
    ],
)
def test_chunking_settings_clamp_nonsense(overrides, expected):
    settings = ChunkingSettings(**overrides)
    for name, value in expected.items():
        assert getattr(settings, name) == value


def test_chunking_settings_clamp_env_values(monkeypatch):
    monkeypatch.setenv("TEMPLEX_CHUNK_CHUNK_SIZE", "-10")
    monkeypatch.setenv("TEMPLEX_CHUNK_TIMEOUT_S", "abc")
    settings = ChunkingSettings()
    assert settings.chunk_size == 1
    assert settings.timeout_s == 30.0


def test_options_resolve_overrides():
    base = ChunkingSettings(chunk_size=2000, overlap_size=200, max_retries=3, timeout_s=30)
    resolved = ExtractionOptions(chunk_size=1000, overlap_ratio=0.1, timeout_s=5, retries=0).resolve(base)
    assert resolved.chunk_size == 1000
    assert resolved.overlap_size == 100
    assert resolved.timeout_s == 5
    assert resolved.max_retries == 0
    # the base settings are untouched
    assert base.chunk_size == 2000


def test_options_resolve_keeps_defaults():
    base = ChunkingSettings(chunk_size=100, overlap_size=500)
    resolved = ExtractionOptions().resolve(base)
    assert resolved.chunk_size == 100
    assert resolved.overlap_size == 99
    assert resolved.max_retries == base.max_retries


def test_options_clamp_out_of_range_values():
    options = ExtractionOptions(chunk_size=0, overlap_ratio=1.5, timeout_s=-1, retries=-2)
    assert options.chunk_size == 1
    assert options.overlap_ratio == 0.9
    assert options.timeout_s is None
    assert options.retries == 0
    assert ExtractionOptions(overlap_ratio=-0.2).overlap_ratio == 0.0
    assert ExtractionOptions(chunk_size="many", overlap_ratio=float("nan")).chunk_size is None


def test_clamped_options_still_resolve():
    base = ChunkingSettings(chunk_size=100, overlap_size=10, timeout_s=30)
    resolved = ExtractionOptions(overlap_ratio=1.5, timeout_s=0).resolve(base)
    assert resolved.overlap_size == 90
    assert resolved.timeout_s == 30


# ---- Prompts ----
def test_prompt_builder_languages():
    builder = PromptBuilder()
    assert builder.analysis_prompt() == ANALYSIS_SYSTEM_JA
    assert builder.supplement_prompt() == SUPPLEMENT_PROMPT_JA
    builder.set_language("en")
    assert builder.analysis_prompt() == ANALYSIS_SYSTEM_EN
    assert builder.merge_prompt() == MERGE_PROMPT_EN
    builder.set_language("xx")
    assert builder.language == "ja"


def test_custom_prompts_take_precedence():
    builder = PromptBuilder("en", {"analysis": "custom", "merge": ""})
    assert builder.analysis_prompt() == "custom"
    assert builder.merge_prompt() == MERGE_PROMPT_EN
    builder.set_custom_prompts({})
    assert builder.analysis_prompt() == ANALYSIS_SYSTEM_EN


def test_analysis_messages():
    messages = build_analysis_messages(PromptBuilder("en"), "Some text")
    assert messages == [
        {"role": "system", "content": ANALYSIS_SYSTEM_EN},
        {"role": "user", "content": "Some text"},
    ]
