"""Conversation turn controller.

Owns the current transcript, the archived threads and the generator
session. A turn goes from a user submission to a terminal assistant message:
image requests are handed to the image generation channel, everything else
gathers context (direct link, web search, image analysis), assembles one
prompt and asks the generator. Only one turn runs at a time; a submission
arriving while a turn is in flight is rejected, not queued.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable

from loguru import logger

from cortex.config import settings
from cortex.llm_client import GeneratorSession, SessionFactory, default_session_factory
from cortex.models.chat import Message, Thread
from cortex.services import logger as log_service
from cortex.services.images import ImageAnalyzer, ImageGenerationChannel, ImageGenerationResult
from cortex.services.intent_rules import extract_image_subject, is_image_request, should_search_web
from cortex.services.prompt_assembler import assemble_prompt, image_prompt
from cortex.services.prompt_store import render_prompt
from cortex.services.web_context import WebContextBuilder
from cortex.tools.page_fetcher import PageFetcher
from cortex.tools.web_utils import first_url

TITLE_CONTEXT_MESSAGES = 10
TITLE_MAX_CHARS = 60


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_GENERATION = "awaiting_generation"


class ConversationController:
    """State machine for one conversation and its archived history."""

    def __init__(
        self,
        *,
        session_factory: SessionFactory = default_session_factory,
        fetcher: PageFetcher | None = None,
        web_context_builder: WebContextBuilder | None = None,
        image_analyzer: ImageAnalyzer | None = None,
        image_channel: ImageGenerationChannel | None = None,
        allow_web_access: bool | None = None,
        web_search_mode: str | None = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.web_context_builder = web_context_builder or WebContextBuilder(self.fetcher)
        self.image_analyzer = image_analyzer
        self.image_channel = image_channel or ImageGenerationChannel()
        self.allow_web_access = settings.allow_web_access if allow_web_access is None else allow_web_access

        mode = (web_search_mode or settings.web_search_mode).lower().strip()
        if mode not in {"always", "auto"}:
            raise ValueError(f"Unsupported WEB_SEARCH_MODE: {mode}")
        self.web_search_mode = mode

        self.messages: list[Message] = []
        self.history: list[Thread] = []
        self.is_responding = False
        self.availability_message: str | None = None
        self.pending_image_prompt: str | None = None

        self._session_factory = session_factory
        self._session: GeneratorSession | None = None
        self.check_availability()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> TurnState:
        return TurnState.AWAITING_GENERATION if self.is_responding else TurnState.IDLE

    @property
    def session(self) -> GeneratorSession | None:
        return self._session

    def check_availability(self) -> bool:
        """(Re)create the generator session; False when no model is available."""
        self._session = self._session_factory()
        if self._session is None:
            self.availability_message = render_prompt("errors.model_unavailable")
            logger.warning("Generator session unavailable")
            return False
        self.availability_message = None
        return True

    def reset(self) -> bool:
        """Clear the transcript and start a fresh generator session.

        Refused (returns False) while a turn is in flight.
        """
        if self.is_responding:
            logger.info("Reset rejected: a turn is already in flight")
            return False
        self.messages.clear()
        self.check_availability()
        return True

    # -- turns -------------------------------------------------------------

    async def submit(self, text: str, attachment: bytes | None = None) -> bool:
        """Run one turn. Returns False when the submission was rejected."""
        user_text = text.strip()
        if not user_text and not attachment:
            return False
        if self.is_responding:
            logger.info("Submission rejected: a turn is already in flight")
            return False

        if attachment is None and is_image_request(user_text):
            self._start_image_generation(user_text)
            return True

        session = self._session
        if session is None or session.is_busy():
            logger.info("Submission rejected: generator session unavailable or busy")
            return False

        self.is_responding = True
        try:
            if attachment:
                self.messages.append(Message.user_image(attachment, caption=user_text))
            else:
                self.messages.append(Message.user(user_text))
            await self._run_turn(session, user_text, attachment)
        finally:
            self.is_responding = False
        return True

    def _start_image_generation(self, user_text: str) -> None:
        subject = extract_image_subject(user_text)
        logger.info(f"Image request detected, subject: {subject!r}")
        self.messages.append(Message.user(user_text))

        if not self.image_channel.available:
            self.messages.append(Message.assistant(render_prompt("image.generation_unavailable")))
            return

        self.messages.append(Message.assistant(render_prompt("image.generation_ack")))
        self.pending_image_prompt = subject
        self.image_channel.request(subject)

    async def _run_turn(self, session: GeneratorSession, user_text: str, attachment: bytes | None) -> None:
        try:
            web_context: str | None = None
            if attachment and not user_text:
                body = render_prompt("image.no_caption")
            else:
                body = user_text
                web_context = await self._gather_web_context(user_text)

            if attachment:
                analysis = await self._analyze_image(attachment)
                if analysis:
                    body = image_prompt(analysis, user_text)
                    self.messages.append(Message.assistant(analysis))

            prompt = assemble_prompt(self.messages, body, web_context=web_context)
            logger.debug(
                f"Prompt assembled: {len(prompt)} chars "
                f"(web context: {len(web_context) if web_context else 0} chars)"
            )
            reply = await session.respond(prompt, temperature=settings.reply_temperature)
            self.messages.append(Message.assistant(reply))
            log_service.log_turn_step("reply", "completed", {"chars": len(reply)})
        except Exception as exc:
            logger.exception("Generator call failed")
            log_service.log_turn_step("reply", "failed", {"error": str(exc)})
            reason = str(exc) or type(exc).__name__
            self.messages.append(Message.assistant(render_prompt("errors.generation_failed", reason=reason)))

    async def _gather_web_context(self, user_text: str) -> str | None:
        url = first_url(user_text)
        if url:
            preview = await self.fetcher.fetch_text(url, max_chars=settings.direct_url_char_cap)
            log_service.log_turn_step("direct_url", "fetched" if preview else "empty", {"url": url})
            if not preview:
                return None
            return render_prompt("web.direct_url", url=url) + "\n\n" + preview

        if not self._wants_web_search(user_text):
            return None

        status = Message.assistant(render_prompt("web.searching"))
        self.messages.append(status)
        result = await self.web_context_builder.build(user_text)
        self._retract(status)

        if result is None:
            self.messages.append(Message.assistant(render_prompt("web.no_usable_results")))
            return None
        if result.is_advisory:
            self.messages.append(Message.assistant(result.text))
            return None

        if result.source_count == 1:
            annotation = render_prompt("web.found_one")
        else:
            annotation = render_prompt("web.found_many", count=result.source_count)
        self.messages.append(Message.assistant(annotation))
        return result.text

    def _wants_web_search(self, user_text: str) -> bool:
        if not self.allow_web_access:
            return False
        if self.web_search_mode == "auto":
            return should_search_web(user_text)
        return True

    def _retract(self, message: Message) -> None:
        if self.messages and self.messages[-1].id == message.id:
            self.messages.pop()

    async def _analyze_image(self, image: bytes) -> str | None:
        if self.image_analyzer is None:
            return None
        try:
            analysis = await self.image_analyzer.analyze(image)
        except Exception as exc:
            logger.warning(f"Image analysis failed: {exc!r}")
            return None
        analysis = (analysis or "").strip()
        log_service.log_turn_step("image_analysis", "completed" if analysis else "empty")
        return analysis or None

    # -- generated images -------------------------------------------------

    def _append_generated(self, result: ImageGenerationResult) -> Message:
        if result.ok:
            message = Message.assistant_image(result.image, caption=render_prompt("image.generation_done"))
        else:
            message = Message.assistant(render_prompt("image.generation_failed", reason=result.error))
        self.messages.append(message)
        if self.pending_image_prompt == result.concept:
            self.pending_image_prompt = None
        return message

    def collect_generated_images(self) -> list[Message]:
        """Append every finished image generation to the transcript."""
        return [self._append_generated(result) for result in self.image_channel.poll()]

    async def wait_for_generated_image(self, timeout: float | None = None) -> Message | None:
        result = await self.image_channel.next_result(timeout=timeout)
        if result is None:
            return None
        return self._append_generated(result)

    # -- history -----------------------------------------------------------

    async def new_chat(self) -> Thread | None:
        """Archive the current transcript (if any) and start over."""
        if self.is_responding:
            logger.info("New chat rejected: a turn is already in flight")
            return None
        if not self.messages:
            self.reset()
            return None

        title = await self.generate_title(self.messages)
        thread = Thread(title=title, messages=tuple(self.messages))
        self.history.insert(0, thread)
        log_service.log_event("thread_archived", title, messages=len(thread.messages))
        self.reset()
        return thread

    def load_chat(self, thread: Thread) -> bool:
        """Make an archived thread's messages current; the thread stays archived."""
        if self.is_responding:
            logger.info("Load rejected: a turn is already in flight")
            return False
        self.messages = list(thread.messages)
        return True

    def delete_chats(self, indexes: Iterable[int]) -> None:
        for index in sorted(set(indexes), reverse=True):
            if 0 <= index < len(self.history):
                del self.history[index]

    async def generate_title(self, messages: list[Message]) -> str:
        session = self._session
        if session is None or session.is_busy():
            return fallback_title(messages)

        lines = []
        for message in messages[-TITLE_CONTEXT_MESSAGES:]:
            role = render_prompt("context.user_label" if message.is_user else "context.assistant_label")
            text = message.text.strip() or render_prompt("title.empty_message")
            lines.append(f"[{role}] {text}")

        try:
            candidate = await session.respond(
                render_prompt("title.prompt", context="\n".join(lines)),
                temperature=settings.title_temperature,
            )
        except Exception as exc:
            logger.warning(f"Title generation failed: {exc!r}")
            return fallback_title(messages)

        candidate = candidate.strip().split("\n", 1)[0].strip()
        if not candidate:
            return fallback_title(messages)
        return candidate[:TITLE_MAX_CHARS]


def fallback_title(messages: list[Message], now: datetime | None = None) -> str:
    for message in messages:
        text = message.text.strip().split("\n", 1)[0].strip()
        if text:
            return text[:TITLE_MAX_CHARS]
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
    return render_prompt("title.fallback", timestamp=stamp)
