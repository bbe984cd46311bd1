"""
Core LLM abstractions and message data models.

Concrete LLM backends ('OpenAILLM') implement the 'LLM' ABC. The shared message
format ('LLMMessage') follows the OpenAI chat completions wire shape, so a
conversation received from the client can be validated into it, extended with
assistant and tool messages, and sent back to the model without conversion.

Round 1 of a tool exchange needs the complete assistant message, including its
structured tool calls, before anything can be branched on: that is 'generate'.
Round 2 only relays text: that is 'generate_stream'.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from openapi_tool_chat.tools.base import ToolDescription


class Roles(StrEnum):
    """Conversation roles as used by the OpenAI chat completions API."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    DEVELOPER = "developer"


class Function(BaseModel):
    """The function name and JSON-encoded arguments inside a tool call."""

    name: str
    arguments: str


class ToolCall(BaseModel):
    """A single tool invocation requested by the LLM."""

    id: str
    function: Function
    type: str = "function"


class LLMMessage(BaseModel):
    """
    A single message in a conversation sent to or received from an LLM.

    'tool_calls' is populated when the assistant requests one or more tool
    invocations. 'tool_call_id' and 'name' are set on the follow-up TOOL role
    message that carries the tool result back to the model. 'content' may be
    None on assistant messages that only carry tool calls, or a list of content
    parts (text, image_url, ...) on client messages; parts are forwarded as is.
    """

    model_config = ConfigDict(extra="ignore")

    content: str | list[dict[str, Any]] | None = ""
    role: Roles = Roles.ASSISTANT
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    def to_openai(self) -> dict[str, Any]:
        """Serialise to the chat completions request format, dropping unset fields."""
        payload = self.model_dump(mode="json", exclude_none=True)
        if self.role == Roles.ASSISTANT and self.tool_calls and self.content is None:
            payload["content"] = None
        if not self.tool_calls:
            payload.pop("tool_calls", None)
        return payload


class LLM(ABC):
    """
    Abstract base class for language model backends.

    Unlike a long-lived agent setup, the functions offered to the model are
    built fresh for every request from the supplied OpenAPI documents, so they
    are passed to 'generate' per call rather than stored on the instance.
    """

    @abstractmethod
    async def generate(
        self, conversation: list[LLMMessage], tools: list[ToolDescription] | None = None
    ) -> LLMMessage:
        """Return a single complete response for the given conversation."""
        pass

    @abstractmethod
    def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        """Yield response chunks as they arrive from the model."""
        pass

    async def aclose(self) -> None:
        """Release the backend's connections. Called once the request is finished."""
        pass
