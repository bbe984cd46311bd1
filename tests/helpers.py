"""
Sample OpenAPI documents, a scripted LLM and a recording HTTP transport shared by the tests.
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx

from openapi_tool_chat.llms.base import LLM, Function, LLMMessage, Roles, ToolCall
from openapi_tool_chat.tools.base import ToolDescription


def make_schema(title: str, url: str, paths: dict[str, Any], **extra: Any) -> str:
    return json.dumps(
        {
            "openapi": "3.1.0",
            "info": {"title": title, "version": "1.0.0", "description": f"{title} API"},
            "servers": [{"url": url}],
            "paths": paths,
            **extra,
        }
    )


WEATHER_SCHEMA = make_schema(
    "Weather",
    "https://weather.example.com",
    {
        "/forecast": {
            "get": {
                "operationId": "getForecast",
                "description": "Get the weather forecast for a city",
                "parameters": [
                    {"name": "city", "in": "query", "required": True, "schema": {"type": "string"}},
                    {"name": "days", "in": "query", "schema": {"type": "integer", "description": "Forecast length"}},
                ],
            }
        },
        "/alerts": {
            "post": {
                "operationId": "createAlert",
                "summary": "Subscribe to weather alerts",
                "requestBody": {
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Alert"}}}
                },
            }
        },
    },
    components={
        "schemas": {
            "Alert": {
                "type": "object",
                "properties": {
                    "city": {"type": "string"},
                    "severity": {"type": "string", "enum": ["low", "high"]},
                },
                "required": ["city"],
            }
        }
    },
)

STOCKS_SCHEMA = make_schema(
    "Stocks",
    "https://stocks.example.com/v1",
    {
        "/quote": {
            "get": {
                "operationId": "getQuote",
                "description": "Latest quote for a ticker",
                "parameters": [{"name": "symbol", "in": "query", "required": True, "schema": {"type": "string"}}],
            }
        }
    },
)


def make_tool_call(call_id: str, name: str, arguments: dict[str, Any] | str) -> ToolCall:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return ToolCall(id=call_id, function=Function(name=name, arguments=raw))


def assistant_with_calls(*tool_calls: ToolCall) -> LLMMessage:
    return LLMMessage(role=Roles.ASSISTANT, content=None, tool_calls=list(tool_calls) or None)


class ScriptedLLM(LLM):
    """LLM double: round 1 returns a fixed message, round 2 streams fixed chunks."""

    def __init__(self, first_reply: LLMMessage | None = None, chunks: tuple[str, ...] = ("Hello", " world")) -> None:
        self.first_reply = first_reply or LLMMessage(role=Roles.ASSISTANT, content="Let me answer directly.")
        self.chunks = chunks
        self.generate_calls: list[tuple[list[LLMMessage], list[ToolDescription] | None]] = []
        self.stream_calls: list[list[LLMMessage]] = []
        self.stream_closed = False
        self.closed = False

    async def generate(
        self, conversation: list[LLMMessage], tools: list[ToolDescription] | None = None
    ) -> LLMMessage:
        self.generate_calls.append((list(conversation), tools))
        return self.first_reply

    async def generate_stream(self, conversation: list[LLMMessage]) -> AsyncGenerator[LLMMessage, None]:
        self.stream_calls.append(list(conversation))
        try:
            for chunk in self.chunks:
                yield LLMMessage(role=Roles.ASSISTANT, content=chunk)
        finally:
            self.stream_closed = True

    async def aclose(self) -> None:
        self.closed = True


class EndpointRecorder:
    """MockTransport handler that records every request before answering it."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.handler = handler or (lambda request: httpx.Response(200, json={"path": request.url.path}))
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


