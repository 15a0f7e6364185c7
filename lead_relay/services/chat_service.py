import logging
from typing import Protocol

from lead_relay.core.errors import LeadRelayError, RelayError
from lead_relay.models.chat import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)


class Relay(Protocol):
    async def relay(self, history: list, message: str) -> str: ...


async def process_chat(payload: ChatRequest, relay: Relay) -> ChatResponse:
    """Forward a validated chat request to the model."""
    logger.info("Incoming chat: history_turns=%s message_len=%s", len(payload.history), len(payload.message))
    try:
        text = await relay.relay(payload.history, payload.message)
    except LeadRelayError:
        raise
    except Exception as e:
        logger.error("Unexpected error while relaying chat: %s", e, exc_info=True)
        raise RelayError("Unexpected relay failure") from e
    return ChatResponse(response=text)
