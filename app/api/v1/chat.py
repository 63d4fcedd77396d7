from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...api.deps import get_chat_assistant, rate_limit_check
from ...services.assistant import ChatAssistant, UNAVAILABLE_RESPONSE
from ...services.errors import AssistantUnavailableError
from ...schemas.chat import ChatRequest, ChatResponse

router = APIRouter(prefix="/chat", tags=["Assistant"])

@router.post("", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest,
    assistant: ChatAssistant = Depends(get_chat_assistant),
    _: None = Depends(rate_limit_check)
):
    """Answer a health question in the context of the conversation so far."""
    try:
        answer = await assistant.chat(chat_request.message, chat_request.conversation)
    except AssistantUnavailableError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={
                "error": e.message,
                "kind": e.kind,
                "response": UNAVAILABLE_RESPONSE,
            }
        )
    return ChatResponse(response=answer)
