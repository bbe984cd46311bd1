"""
OpenAI chat completions backend.

'OpenAILLM' adapts 'openai.AsyncOpenAI' to the 'LLM' interface. Any
OpenAI-compatible server can be targeted through 'base_url'. Errors raised by
the SDK are translated into 'TransportError'; HTTP status errors keep the
provider's message and status code so they reach the caller unchanged.
"""

from collections.abc import AsyncGenerator
from typing import Any

import openai
from loguru import logger
from openai import AsyncOpenAI

from openapi_tool_chat.errors import TransportError
from openapi_tool_chat.llms.base import LLM, Function, LLMMessage, Roles, ToolCall
from openapi_tool_chat.tools.base import ToolDescription


def _transport_error(e: openai.APIError) -> TransportError:
    if isinstance(e, openai.APIStatusError):
        # the SDK unwraps the 'error' object of the response body into 'body'
        provider_message = e.body.get("message") if isinstance(e.body, dict) else None
        return TransportError(
            f"OpenAI request failed with status {e.status_code}: {e.message}",
            status_code=e.status_code,
            provider_message=provider_message or e.message,
        )
    return TransportError(f"OpenAI request failed: {e.message}")


class OpenAILLM(LLM):
    """
    Chat completions client for one request.

    Attributes:
        model: Model identifier sent with every call.
        temperature: Sampling temperature, omitted from the request when None.
        client: The underlying 'AsyncOpenAI' client, with a bounded timeout.
    """

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        openai_api_key: str = "",
        openai_organization_id: str | None = None,
        temperature: float | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model_name
        self.temperature = temperature
        self.client = client or AsyncOpenAI(
            api_key=openai_api_key,
            organization=openai_organization_id,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def aclose(self) -> None:
        await self.client.close()

    def _request_kwargs(self, conversation: list[LLMMessage]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_openai() for message in conversation],
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        return kwargs

    async def generate(
        self, conversation: list[LLMMessage], tools: list[ToolDescription] | None = None
    ) -> LLMMessage:
        kwargs = self._request_kwargs(conversation)
        if tools:
            kwargs["tools"] = tools
        try:
            completion = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            raise _transport_error(e) from e

        message = completion.choices[0].message
        tool_calls = [
            ToolCall(
                id=tool_call.id,
                type=tool_call.type,
                function=Function(name=tool_call.function.name, arguments=tool_call.function.arguments),
            )
            for tool_call in message.tool_calls or []
            if tool_call.type == "function"
        ]
        logger.debug(f"{self.model} answered with {len(tool_calls)} tool calls")
        return LLMMessage(
            role=Roles.ASSISTANT,
            content=message.content,
            tool_calls=tool_calls or None,
        )

    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        try:
            stream = await self.client.chat.completions.create(**self._request_kwargs(conversation), stream=True)
        except openai.APIError as e:
            raise _transport_error(e) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield LLMMessage(role=Roles.ASSISTANT, content=content)
        except openai.APIError as e:
            raise _transport_error(e) from e
        finally:
            await stream.close()
