"""
Single-round OpenAPI tool-calling agent.

'ToolAgent' runs one exchange in three steps:

1. Round 1 (non-streaming): the conversation and every registered function are
   sent to the LLM. The assistant message it returns is appended to the
   conversation, with or without tool calls.
2. Every requested call is executed by the 'ToolInvoker', in order, and its
   TOOL message appended.
3. Round 2 (streaming): the augmented conversation is sent again and the text
   is yielded chunk by chunk.

Unlike an open-ended ReAct loop there is exactly one round of tool calls;
round 2 is sent without functions so the model has to answer.
"""

from collections.abc import AsyncGenerator
from contextlib import aclosing

from loguru import logger

from openapi_tool_chat.llms.base import LLM, LLMMessage, ToolCall
from openapi_tool_chat.tools.function_registry import FunctionRegistry
from openapi_tool_chat.tools.invoker import ToolInvoker


class ToolAgent:
    """
    Drives the two model rounds around one batch of function calls.

    Attributes:
        llm: Backend used for both rounds.
        registry: Functions offered to the model in round 1.
        invoker: Executes the calls the model requests.
    """

    def __init__(self, llm: LLM, registry: FunctionRegistry, invoker: ToolInvoker) -> None:
        self.llm = llm
        self.registry = registry
        self.invoker = invoker

    async def first_turn(self, conversation: list[LLMMessage]) -> list[ToolCall]:
        """Ask the model once and append its reply. Returns the requested calls."""
        message = await self.llm.generate(conversation, tools=self.registry.functions)
        conversation.append(message)
        return message.tool_calls or []

    async def run_tools(self, conversation: list[LLMMessage], tool_calls: list[ToolCall]) -> None:
        """Append one TOOL message per call, only once every call has succeeded."""
        logger.info(f"Model requested {len(tool_calls)} tool calls: {[c.function.name for c in tool_calls]}")
        conversation.extend(await self.invoker.invoke_all(tool_calls))

    async def answer_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[str, None]:
        """Run the full exchange, yielding the final answer as it streams in.

        'conversation' is extended in place with the assistant message and the
        tool results.
        """
        tool_calls = await self.first_turn(conversation)
        if tool_calls:
            await self.run_tools(conversation, tool_calls)

        async with aclosing(self.llm.generate_stream(conversation)) as stream:
            async for chunk in stream:
                if chunk.content:
                    yield chunk.content
