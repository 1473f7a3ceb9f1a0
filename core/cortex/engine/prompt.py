"""Rendering of context, history and the new message into a single prompt."""

from typing import Iterable

from cortex.context.summarizer import ContextSummary
from cortex.conversation.models import Message

NO_CONTEXT_PLACEHOLDER = "No explicit context provided. Use available knowledge."
NO_HISTORY_PLACEHOLDER = "No previous conversation."

PREAMBLE = """You are Cortex AI, a helpful assistant for knowledge workspaces.
You must rely on the provided CONTEXT. If the answer cannot be found, ask clarifying questions or state that it is not available."""


def render_context(summaries: Iterable[ContextSummary]) -> str:
    blocks = [f"### {summary.title}\n{summary.body}" for summary in summaries]
    return "\n\n".join(blocks) or NO_CONTEXT_PLACEHOLDER


def render_history(messages: Iterable[Message]) -> str:
    lines = [f"{message.role.value.upper()}: {message.content}" for message in messages]
    return "\n\n".join(lines) or NO_HISTORY_PLACEHOLDER


def assemble(
    summaries: list[ContextSummary],
    prior_messages: list[Message],
    new_user_message: str,
) -> str:
    """
    Build the generation prompt.

    Sections always appear in the same order: context, then conversation
    history (chronological), then the new user message. Empty context and
    empty history are replaced by fixed placeholders.
    """
    return f"""{PREAMBLE}

CONTEXT:
{render_context(summaries)}

CONVERSATION HISTORY:
{render_history(prior_messages)}

USER QUESTION:
{new_user_message}
"""
