"""Shared fixtures: fake completion providers and canned model responses. No network."""
from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import pytest

from templex.extraction.config import ChunkingSettings
from templex.extraction.schema import StructuralElement


class FakeProvider:
    """CompletionProvider that answers from a callable(user_prompt) -> str and records calls."""

    def __init__(self, respond: Callable[[str], str], *, delay_s: float = 0.0) -> None:
        self._respond = respond
        self._delay_s = delay_s
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt, user_prompt, *, temperature=None, max_tokens=None):
        self.calls.append((system_prompt, user_prompt))
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        return self._respond(user_prompt)


class RaisingProvider:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc
        self.calls = 0

    async def complete(self, system_prompt, user_prompt, *, temperature=None, max_tokens=None):
        self.calls += 1
        raise self._exc


def analysis_payload(**overrides) -> dict:
    payload = {
        "abstractTemplate": {
            "name": "Problem-Solution",
            "formula": "[Problem] -> [Solution] -> [Call to Action]",
            "components": [
                {"name": "Hook", "purpose": "Grab attention", "examples": ["Ever lost a file?"],
                 "patterns": ["question"], "position": 1, "weight": 0.8},
            ],
            "flow": "Linear",
            "persuasionTechniques": ["social proof"],
        },
        "elements": [
            {"type": "heading", "level": 1, "content": "Intro", "intent": "set context"},
            {"type": "paragraph", "content": "Backups matter because disks fail.", "intent": "motivate"},
        ],
        "keywords": ["backup", {"term": "disk", "weight": 0.6}],
        "patterns": {"introduction": "question hook", "body": "problem then fix", "conclusion": "call to action"},
        "confidence": 0.8,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    def _make(respond: Callable[[str], str] | str | dict, *, delay_s: float = 0.0) -> FakeProvider:
        if isinstance(respond, dict):
            text = json.dumps(respond)
            return FakeProvider(lambda _: text, delay_s=delay_s)
        if isinstance(respond, str):
            return FakeProvider(lambda _: respond, delay_s=delay_s)
        return FakeProvider(respond, delay_s=delay_s)

    return _make


@pytest.fixture
def payload() -> Callable[..., dict]:
    return analysis_payload


@pytest.fixture
def raising_provider() -> Callable[[Exception], RaisingProvider]:
    return RaisingProvider


@pytest.fixture
def fast_chunking() -> ChunkingSettings:
    """No retries, short timeout: failures surface immediately."""
    return ChunkingSettings(chunk_size=2000, overlap_size=0, max_retries=0, timeout_s=5.0, concurrency=4)


@pytest.fixture
def el() -> Callable[..., StructuralElement]:
    """Element factory: el("heading", level=1, content="Intro")."""
    def _el(kind: str, **kwargs) -> StructuralElement:
        return StructuralElement(kind=kind, **kwargs)

    return _el
