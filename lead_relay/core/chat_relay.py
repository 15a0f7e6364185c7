import logging
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from lead_relay.core.errors import RelayError
from lead_relay.core.settings import Settings

logger = logging.getLogger(__name__)

USER_ROLES = {"user", "human"}
MODEL_ROLES = {"model", "assistant", "ai", "bot"}


def _turn_text(turn: dict[str, Any]) -> str:
    """Text of a turn in either {"content": ...} or Gemini {"parts": [{"text": ...}]} form."""
    content = turn.get("content")
    if isinstance(content, str):
        return content

    parts = turn.get("parts")
    if isinstance(parts, list):
        texts = []
        for part in parts:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "".join(texts)

    if content is None and parts is None:
        return ""
    raise ValueError(f"Unsupported turn content: {type(content or parts).__name__}")


def to_lc_messages(history: list[Any]) -> list[BaseMessage]:
    """
    Convert client-supplied history into chat messages.

    System turns are refused so callers cannot replace the system instruction.

    Args:
        history: Turns oldest first

    Returns:
        list[BaseMessage]: Human and AI messages; empty turns are skipped

    Raises:
        ValueError: a turn is not an object or has an unknown role
    """
    messages: list[BaseMessage] = []
    for index, turn in enumerate(history):
        if not isinstance(turn, dict):
            raise ValueError(f"History turn {index} is not an object")

        role = str(turn.get("role") or "").lower()
        text = _turn_text(turn)
        if not text:
            continue

        if role in USER_ROLES:
            messages.append(HumanMessage(content=text))
        elif role in MODEL_ROLES:
            messages.append(AIMessage(content=text))
        else:
            raise ValueError(f"History turn {index} has unsupported role {role!r}")
    return messages


def _reply_text(reply: BaseMessage) -> str:
    content = reply.content
    if isinstance(content, str):
        return content
    chunks = []
    for block in content:
        if isinstance(block, str):
            chunks.append(block)
        elif isinstance(block, dict) and block.get("type", "text") == "text":
            chunks.append(str(block.get("text", "")))
    return "".join(chunks)


class ChatRelay:
    """Forwards chat turns to Gemini under a fixed system instruction."""

    def __init__(
        self,
        api_key: str,
        system_instruction: str,
        model: str = "gemini-2.5-flash",
        temperature: float | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._api_key = api_key
        self._system_instruction = system_instruction

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatRelay":
        return cls(
            api_key=settings.GOOGLE_API_KEY,
            system_instruction=settings.system_instruction(),
            model=settings.GEMINI_MODEL,
            temperature=settings.MODEL_TEMPERATURE,
        )

    @property
    def system_instruction(self) -> str:
        return self._system_instruction

    def _build_llm(self) -> ChatGoogleGenerativeAI:
        params: dict[str, Any] = {"model": self.model, "google_api_key": self._api_key}
        if self.temperature is not None:
            params["temperature"] = self.temperature
        return ChatGoogleGenerativeAI(**params)

    async def relay(self, history: list[Any], message: str) -> str:
        """
        Send the message in a fresh conversation seeded with history.

        Args:
            history: Previous turns supplied by the client
            message: New user message

        Returns:
            str: Model reply text

        Raises:
            RelayError: history is malformed or the model call failed
        """
        try:
            messages: list[BaseMessage] = [SystemMessage(content=self._system_instruction)]
            messages.extend(to_lc_messages(history))
            messages.append(HumanMessage(content=message))

            reply = await self._build_llm().ainvoke(messages)
        except Exception as e:
            logger.error("Error calling Gemini API: %s", e, exc_info=True)
            raise RelayError("Chat model call failed") from e

        text = _reply_text(reply)
        logger.info("Model replied with %s chars (history_turns=%s)", len(text), len(history))
        return text
