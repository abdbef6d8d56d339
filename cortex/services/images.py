"""Image collaborators: local analysis and the image generation channel.

Neither capability lives in this package. Analysis is whatever implements
``ImageAnalyzer``; generation is whatever implements ``ImageGenerator`` and
is driven through ``ImageGenerationChannel``, which turns its completion
into results the conversation controller awaits or polls.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol

from loguru import logger


class ImageAnalyzer(Protocol):
    async def analyze(self, image: bytes) -> str: ...


class ImageGenerator(Protocol):
    @property
    def available(self) -> bool: ...

    async def generate(self, concept: str) -> bytes: ...


@dataclass(frozen=True, slots=True)
class ImageGenerationResult:
    concept: str
    image: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.image is not None


class ImageGenerationChannel:
    """Runs generation requests in the background and queues their results."""

    def __init__(self, generator: ImageGenerator | None = None):
        self._generator = generator
        self._results: asyncio.Queue[ImageGenerationResult] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()

    @property
    def available(self) -> bool:
        return self._generator is not None and self._generator.available

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def request(self, concept: str) -> asyncio.Task:
        if not self.available:
            raise RuntimeError("No image generator available")
        task = asyncio.create_task(self._run(concept))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, concept: str) -> None:
        assert self._generator is not None
        try:
            image = await self._generator.generate(concept)
        except Exception as exc:
            logger.warning(f"Image generation failed for {concept!r}: {exc!r}")
            result = ImageGenerationResult(concept=concept, error=str(exc) or type(exc).__name__)
        else:
            if image:
                result = ImageGenerationResult(concept=concept, image=image)
            else:
                result = ImageGenerationResult(concept=concept, error="empty image")
        await self._results.put(result)

    def poll(self) -> list[ImageGenerationResult]:
        """Return every result that has arrived, without waiting."""
        results: list[ImageGenerationResult] = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except asyncio.QueueEmpty:
                return results

    async def next_result(self, timeout: float | None = None) -> ImageGenerationResult | None:
        try:
            return await asyncio.wait_for(self._results.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
