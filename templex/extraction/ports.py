"""Port for the fragment/chunk processor the extractor plugs its callbacks into."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from templex.extraction.schema import FragmentAnalysis


@dataclass(frozen=True)
class ChunkCallbacks:
    """
    process_chunk: one fragment -> one analysis (wraps a completion call + repair).
    merge_results: pools the per-fragment analyses.
    key_of: identity used to drop duplicate analyses before pooling.
    """

    process_chunk: Callable[[str], Awaitable[FragmentAnalysis]]
    merge_results: Callable[[list[FragmentAnalysis]], list[FragmentAnalysis]]
    key_of: Callable[[FragmentAnalysis], str]


@runtime_checkable
class ChunkProcessor(Protocol):
    async def process(self, text: str, callbacks: ChunkCallbacks) -> list[FragmentAnalysis]:
        """Split text, run process_chunk per fragment, dedupe via key_of, return merge_results(...)."""
        ...
