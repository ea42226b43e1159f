"""Chat service — relay a conversation plus project context to the model gateway."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.base import AuthUser, ChatModelGateway, UpstreamStream
from app.schemas.chat import ChatTurn
from app.services import context_service

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an AI Project Assistant for a Project Management System. You help users manage \
projects, tasks, and team productivity.

Your capabilities:
1. **Task Management**: Create tasks, suggest priorities, assign team members, set deadlines
2. **Project Insights**: Analyze project progress, identify risks, provide summaries
3. **Smart Recommendations**: Suggest task prioritization, workload balancing, timeline optimization
4. **Team Analytics**: Analyze team workload and productivity

When asked to perform actions, you must respond with a structured JSON action in your \
response when appropriate:
- To create a task: Include {"action": "create_task", "data": {"title": "...", \
"description": "...", "priority": "low|medium|high", "project_id": "..."}}
- To update a task: Include {"action": "update_task", "data": {"task_id": "...", \
"status": "todo|in_progress|done"}}

Current project context will be provided. Be helpful, concise, and action-oriented.
Always format your responses in a clear, readable way using markdown when helpful."""


def build_system_message(context: dict[str, Any], *, scoped: bool) -> dict[str, str]:
    """Append the context snapshot to the fixed instructions."""
    header = "Current Project Context" if scoped else "Workspace Context"
    body = json.dumps(context, indent=2)
    return {"role": "system", "content": f"{SYSTEM_PROMPT}\n\n{header}:\n{body}"}


def build_upstream_messages(
    context: dict[str, Any], transcript: list[ChatTurn], *, scoped: bool
) -> list[dict[str, Any]]:
    return [
        build_system_message(context, scoped=scoped),
        *(turn.model_dump() for turn in transcript),
    ]


async def open_relay(
    db: AsyncSession,
    gateway: ChatModelGateway,
    user: AuthUser,
    transcript: list[ChatTurn],
    project_id: str | None = None,
) -> UpstreamStream:
    """Assemble context and start the upstream stream.

    Every failure raises a ``RelayError`` subclass before any byte is sent
    to the caller. Nothing is retried.
    """
    context = await context_service.assemble_context(db, user.id, project_id)
    messages = build_upstream_messages(context, transcript, scoped=bool(project_id))
    logger.info(
        "Relaying %d message(s) for user %s (project %s)",
        len(transcript), user.id, project_id or "-",
    )
    return await gateway.open_stream(messages)


async def relay_bytes(upstream: UpstreamStream) -> AsyncIterator[bytes]:
    """Forward upstream bytes verbatim; always release the connection."""
    sent = 0
    try:
        async for chunk in upstream.aiter_bytes():
            sent += len(chunk)
            yield chunk
    finally:
        await upstream.aclose()
        logger.debug("Upstream stream closed after %d bytes", sent)
