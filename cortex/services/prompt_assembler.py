from __future__ import annotations

from typing import Sequence

from cortex.models.chat import Message
from cortex.services.prompt_store import render_prompt

MAX_CONTEXT_MESSAGES = 6
WEB_CONTEXT_MESSAGES = 2
MESSAGE_CHAR_CAP = 300


def _render_message(message: Message) -> str:
    label = render_prompt("context.user_label" if message.is_user else "context.assistant_label")
    if message.has_image:
        line = f"[{label}] {render_prompt('context.attached_image')}"
        if message.text.strip():
            line += "\n" + render_prompt("context.caption", caption=message.text)
        return line
    return f"[{label}] {message.text[:MESSAGE_CHAR_CAP]}"


def context_window(messages: Sequence[Message], limit: int = MAX_CONTEXT_MESSAGES) -> str:
    """Render the most recent messages as a plain-text context block."""
    limit = max(min(limit, MAX_CONTEXT_MESSAGES), 0)
    recent = list(messages[-limit:]) if limit else []
    lines = [_render_message(message) for message in recent]
    header = render_prompt("context.header", count=len(recent))
    return header + "\n" + "\n\n".join(lines)


def image_prompt(analysis: str, user_text: str = "") -> str:
    prompt = render_prompt("image.analysis_intro") + "\n\n" + analysis
    if user_text.strip():
        prompt += "\n\nUser: " + user_text
    return prompt


def wrap_with_web_context(web_context: str, body: str) -> str:
    separator = render_prompt("web.separator")
    marker = render_prompt("web.user_marker")
    return f"{web_context}\n\n{separator}\n{marker} {body}"


def assemble_prompt(
    messages: Sequence[Message],
    body: str,
    *,
    web_context: str | None = None,
) -> str:
    """Build the final prompt: recent context, blank line, then the body.

    ``body`` is the user text, or the image-aware prompt built by
    ``image_prompt``. A web context shrinks the history window so retrieved
    material keeps most of the budget. Nothing is truncated here.
    """
    if web_context:
        body = wrap_with_web_context(web_context, body)
        limit = WEB_CONTEXT_MESSAGES
    else:
        limit = MAX_CONTEXT_MESSAGES
    return context_window(messages, limit) + "\n\n" + body
