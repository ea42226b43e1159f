"""Chat endpoint — streams assistant replies from the model gateway."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.base import AuthUser, ChatModelGateway
from app.database import get_db
from app.dependencies import get_current_user, get_gateway
from app.schemas.chat import ChatRequest, ContextResponse, ErrorResponse
from app.services import chat_service, context_service

router = APIRouter()

_ERRORS = {code: {"model": ErrorResponse} for code in (401, 402, 429, 500)}


@router.options("")
async def chat_preflight():
    return Response(status_code=200)


@router.post(
    "",
    responses={200: {"content": {"text/event-stream": {}}}, **_ERRORS},
)
async def chat(
    body: ChatRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: ChatModelGateway = Depends(get_gateway),
):
    """Relay the transcript to the model and stream the reply.

    ``action: "get_context"`` returns the context snapshot instead of
    calling the model.
    """
    if body.action == "get_context":
        context = await context_service.assemble_context(db, user.id, body.project_id)
        return ContextResponse(context=context)

    upstream = await chat_service.open_relay(
        db, gateway, user, body.messages, project_id=body.project_id
    )
    return StreamingResponse(
        chat_service.relay_bytes(upstream),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
