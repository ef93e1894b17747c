"""
Chat API: conversational goal creation plus thread history.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from legianos.errors import CollaboratorError, GoalValidationError
from legianos.schemas.chat import (
    ChatRequest,
    ChatResponse,
    HistoryMessage,
    HistoryResponse,
    ThreadsResponse,
    ThreadSummary,
)
from legianos.services.goal_agent import GoalAgent
from legianos.services.llm_client import LLMClient, get_llm_client
from legianos.services.memory import ConversationStore, get_conversation_store

logger = logging.getLogger("legianos")

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_goal_agent(
    store: ConversationStore = Depends(get_conversation_store),
    llm: LLMClient = Depends(get_llm_client),
) -> GoalAgent:
    return GoalAgent(store, llm)


@router.post("", response_model=ChatResponse)
async def chat(request: ChatRequest, agent: GoalAgent = Depends(get_goal_agent)):
    """One conversational turn through the goal workflow."""
    try:
        reply = await agent.process_goal_message(
            request.message,
            request.thread_id,
            request.user_id,
            attachments=request.attachments,
        )
    except GoalValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except CollaboratorError as e:
        logger.error("chat_request_failed", extra={"thread_id": request.thread_id, "error": str(e)})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process goal request", "hint": e.hint},
        )

    return ChatResponse(
        reply=reply.text,
        goal_profile=reply.goal_profile,
        export_content=reply.export_content,
        next_steps=reply.next_steps,
        confidence=reply.confidence,
        needs_more_info=reply.needs_more_info,
        suggested_questions=reply.suggested_questions,
        insights=reply.insights,
    )


@router.get("/history", response_model=HistoryResponse)
async def chat_history(
    thread_id: str = Query("legianos-thread", alias="threadId"),
    user_id: str = Query("legianos-user", alias="userId"),
    limit: int = Query(50, ge=1, le=500),
    store: ConversationStore = Depends(get_conversation_store),
):
    try:
        turns = await store.fetch_history(thread_id, user_id, limit)
    except CollaboratorError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return HistoryResponse(
        thread_id=thread_id,
        messages=[HistoryMessage(role=t.role, content=t.content, created_at=t.created_at) for t in turns],
    )


@router.get("/threads", response_model=ThreadsResponse)
async def chat_threads(
    user_id: str = Query("legianos-user", alias="userId"),
    store: ConversationStore = Depends(get_conversation_store),
):
    try:
        threads = await store.list_threads(user_id)
    except CollaboratorError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return ThreadsResponse(
        user_id=user_id,
        threads=[ThreadSummary(thread_id=t.thread_id, last_message_at=t.last_message_at) for t in threads],
    )
