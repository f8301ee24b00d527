"""Cancellable text-generation calls on top of the LLM client."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable

from manuscript_review.clients.llm_client import LLMClient
from manuscript_review.clients.prompts import build_prompt
from manuscript_review.errors import GenerationCancelledError, GenerationError
from manuscript_review.utils.json_parser import parse_string_list

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class GenerationRequest:
    """What to generate: target subsystem, action tag and free-form context."""

    agent_target: str
    action: str
    context: dict = field(default_factory=dict)


class GenerationCall:
    """One in-flight generation. Must be created inside a running event loop.

    ``status`` is pending until the call finishes; a cancelled call ends as
    failed with ``cancelled`` set.
    """

    def __init__(self, request: GenerationRequest, work: Awaitable[str]):
        self.request = request
        self.status = GenerationStatus.PENDING
        self.cancelled = False
        self.progress = 0
        self.message = "Queued"
        self.error: str | None = None
        self._task = asyncio.ensure_future(self._run(work))

    async def _run(self, work: Awaitable[str]) -> str:
        self.progress, self.message = 10, f"Running {self.request.action}"
        try:
            text = await work
        except asyncio.CancelledError:
            self._mark_cancelled()
            raise
        except Exception as exc:
            self.status = GenerationStatus.FAILED
            self.error = str(exc)
            self.message = "Generation failed"
            raise GenerationError(f"{self.request.action} failed: {exc}") from exc
        self.status = GenerationStatus.SUCCEEDED
        self.progress, self.message = 100, "Done"
        return text

    def _mark_cancelled(self) -> None:
        self.status = GenerationStatus.FAILED
        self.cancelled = True
        self.message = "Cancelled"

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        """Request cancellation; returns False if the call already finished."""
        if self._task.done():
            return False
        self._task.cancel()
        self._mark_cancelled()
        return True

    async def result(self) -> str:
        try:
            return await self._task
        except asyncio.CancelledError as exc:
            if not self.cancelled:
                raise
            raise GenerationCancelledError(f"{self.request.action} was cancelled") from exc


class GenerationService:
    """Turns generation requests into prompts and runs them as cancellable calls."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def start(self, request: GenerationRequest) -> GenerationCall:
        try:
            system, prompt = build_prompt(request.action, request.context)
        except KeyError as exc:
            raise GenerationError(f"Unknown generation action: {request.action}") from exc
        logger.info("Starting generation %s/%s", request.agent_target, request.action)
        return GenerationCall(request, self._complete(prompt, system))

    async def _complete(self, prompt: str, system: str) -> str:
        response = await self.llm.generate(prompt=prompt, system=system)
        return response.text

    async def generate(self, request: GenerationRequest) -> str:
        return await self.start(request).result()

    async def generate_list(self, request: GenerationRequest, default: list[str]) -> list[str]:
        """Generate and parse a list of strings; unparseable output yields ``default``."""
        text = await self.generate(request)
        return parse_string_list(text, default)
