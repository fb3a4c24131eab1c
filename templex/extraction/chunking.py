"""
Default fragment processor: paragraph-aware splitting with overlap, concurrent dispatch
under a semaphore, per-fragment timeout and retries, dedupe via key_of, then merge_results.
"""
from __future__ import annotations

import asyncio
import logging

from templex.extraction.config import ChunkingSettings
from templex.extraction.ports import ChunkCallbacks
from templex.extraction.schema import FragmentAnalysis
from templex.llm.errors import LLMError, LLMTimeout

logger = logging.getLogger(__name__)

RETRY_BACKOFF_BASE_S = 0.5
RETRY_BACKOFF_MAX_S = 8.0


def _split_long(paragraph: str, max_chars: int) -> list[str]:
    """Split by words so each piece stays <= max_chars; a single oversized word is cut hard."""
    out: list[str] = []
    buf: list[str] = []
    size = 0
    for word in paragraph.split():
        while len(word) > max_chars:
            if buf:
                out.append(" ".join(buf))
                buf, size = [], 0
            out.append(word[:max_chars])
            word = word[max_chars:]
        add = len(word) + (1 if buf else 0)
        if size + add > max_chars and buf:
            out.append(" ".join(buf))
            buf, size = [], 0
            add = len(word)
        if word:
            buf.append(word)
            size += add
    if buf:
        out.append(" ".join(buf))
    return out


def split_text(text: str, chunk_size: int, overlap: int = 0) -> list[str]:
    """
    Split by blank-line paragraphs, packing paragraphs up to chunk_size characters.
    Each fragment after the first is prefixed with the last `overlap` characters of the previous one.
    """
    if not text or not text.strip():
        return []
    parts = [p for p in text.replace("\r\n", "\n").split("\n\n") if p.strip()]
    chunks: list[str] = []
    buf: list[str] = []
    buf_size = 0
    for p in parts:
        n = len(p)
        if buf and buf_size + n + 2 > chunk_size:
            chunks.append("\n\n".join(buf))
            buf, buf_size = [], 0
        if n > chunk_size:
            chunks.extend(_split_long(p, chunk_size))
        else:
            buf.append(p)
            buf_size += n + (2 if buf_size else 0)
    if buf:
        chunks.append("\n\n".join(buf))
    if overlap <= 0 or len(chunks) < 2:
        return chunks
    out = [chunks[0]]
    for prev, cur in zip(chunks, chunks[1:]):
        out.append(prev[-overlap:] + "\n\n" + cur)
    return out


class FragmentProcessor:
    """Implements ChunkProcessor. One instance may serve concurrent process() calls."""

    def __init__(
        self,
        settings: ChunkingSettings | None = None,
        *,
        backoff_base_s: float = RETRY_BACKOFF_BASE_S,
        backoff_max_s: float = RETRY_BACKOFF_MAX_S,
    ) -> None:
        self.settings = settings or ChunkingSettings()
        self._backoff_base_s = backoff_base_s
        self._backoff_max_s = backoff_max_s

    def split(self, text: str) -> list[str]:
        return split_text(text, self.settings.chunk_size, self.settings.overlap_size)

    async def _run_one(self, index: int, fragment: str, callbacks: ChunkCallbacks) -> FragmentAnalysis:
        timeout_s = self.settings.timeout_s
        max_retries = self.settings.max_retries
        for attempt in range(max_retries + 1):
            try:
                return await asyncio.wait_for(callbacks.process_chunk(fragment), timeout=timeout_s)
            except asyncio.TimeoutError as e:
                err: LLMError = LLMTimeout(f"Fragment {index} timed out after {timeout_s}s")
                cause: BaseException = e
            except LLMError as e:
                if not e.retryable:
                    raise
                err, cause = e, e
            logger.warning(
                "fragment_retry",
                extra={"fragment": index, "attempt": attempt + 1, "error_code": err.code},
            )
            if attempt == max_retries:
                if err is cause:
                    raise err
                raise err from cause
            await asyncio.sleep(min(self._backoff_base_s * (2**attempt), self._backoff_max_s))
        raise LLMTimeout(f"Fragment {index} exhausted retries")

    async def process(self, text: str, callbacks: ChunkCallbacks) -> list[FragmentAnalysis]:
        fragments = self.split(text)
        if not fragments:
            return callbacks.merge_results([])
        logger.debug("fragments_split", extra={"fragments": len(fragments)})
        sem = asyncio.Semaphore(self.settings.concurrency)

        async def process_one(index: int, fragment: str) -> FragmentAnalysis:
            async with sem:
                return await self._run_one(index, fragment, callbacks)

        tasks = [asyncio.ensure_future(process_one(i, f)) for i, f in enumerate(fragments)]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            raise

        seen: set[str] = set()
        unique: list[FragmentAnalysis] = []
        for analysis in results:
            key = callbacks.key_of(analysis)
            if key in seen:
                continue
            seen.add(key)
            unique.append(analysis)
        if len(unique) < len(results):
            logger.debug("fragments_deduplicated", extra={"dropped": len(results) - len(unique)})
        return callbacks.merge_results(unique)
