from fastapi import APIRouter, Depends

from lead_relay.api.deps import get_chat_relay
from lead_relay.models.chat import ChatRequest, ChatResponse
from lead_relay.services.chat_service import Relay, process_chat

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(payload: ChatRequest, relay: Relay = Depends(get_chat_relay)) -> ChatResponse:
    """Proxy a chat turn to the AI model."""
    return await process_chat(payload, relay)
