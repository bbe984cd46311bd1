"""
HTTP entry point.

'create_app' builds a FastAPI application exposing 'POST /api/chat/tools'. The
route assembles everything for one request (registry, HTTP client, LLM and
agent), runs the exchange up to the first streamed token, and only then starts
the streaming response. Any failure before that point is turned into the
'{"message": ...}' error envelope; after it, the response is already under way
and the stream is simply cut.

Collaborators are injectable so tests and deployments can swap the credential
lookup, the LLM backend and the outbound HTTP client.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from openapi_tool_chat.agents.tool_agent import ToolAgent
from openapi_tool_chat.api.profile import EnvironmentProfileProvider, Profile, ProfileProvider, check_api_key
from openapi_tool_chat.config import Settings
from openapi_tool_chat.errors import ToolChatError, to_envelope
from openapi_tool_chat.llms.base import LLM, LLMMessage
from openapi_tool_chat.llms.openai import OpenAILLM
from openapi_tool_chat.tools.function_registry import FunctionRegistry
from openapi_tool_chat.tools.invoker import ToolInvoker


class ChatSettings(BaseModel):
    """Model selection sent by the client. Unknown client-side settings are ignored."""

    model_config = ConfigDict(extra="ignore")

    model: str
    temperature: float | None = None


class ChatToolsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_settings: ChatSettings = Field(alias="chatSettings")
    messages: list[LLMMessage]
    tool_schemas: list[str | dict[str, Any]] = Field(default_factory=list, alias="toolSchemas")
    custom_headers: str = Field(default="", alias="customHeaders")
    is_request_in_body: bool = Field(default=False, alias="isRequestInBody")


LLMFactory = Callable[[ChatSettings, Profile, Settings], LLM]
HttpClientFactory = Callable[[Settings], httpx.AsyncClient]


def openai_llm_factory(chat_settings: ChatSettings, profile: Profile, settings: Settings) -> LLM:
    return OpenAILLM(
        model_name=chat_settings.model,
        openai_api_key=profile.openai_api_key or "",
        openai_organization_id=profile.openai_organization_id,
        temperature=chat_settings.temperature,
        base_url=settings.openai_base_url,
        timeout=settings.llm_request_timeout,
    )


def default_http_client_factory(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.tool_request_timeout)


def error_response(exc: BaseException) -> JSONResponse:
    body, status_code = to_envelope(exc)
    if isinstance(exc, ToolChatError):
        logger.warning(f"Tool chat request failed ({exc.kind}): {exc.message}")
    else:
        logger.opt(exception=exc).error("Unexpected error in tool chat request")
    return JSONResponse(body, status_code=status_code)


async def _relay(first_chunk: str, stream: AsyncGenerator[str, None], llm: LLM) -> AsyncGenerator[str, None]:
    try:
        yield first_chunk
        async for chunk in stream:
            yield chunk
    finally:
        await stream.aclose()
        await llm.aclose()


def create_app(
    settings: Settings | None = None,
    profile_provider: ProfileProvider | None = None,
    llm_factory: LLMFactory = openai_llm_factory,
    http_client_factory: HttpClientFactory = default_http_client_factory,
) -> FastAPI:
    settings = settings or Settings.from_env()
    profile_provider = profile_provider or EnvironmentProfileProvider(settings)

    app = FastAPI(title="OpenAPI Tool Chat")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Rejected malformed request body: {exc.errors()}")
        return JSONResponse({"message": "Invalid request body"}, status_code=422)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/chat/tools")
    async def chat_tools(body: ChatToolsRequest, request: Request) -> Response:
        llm: LLM | None = None
        try:
            profile = await profile_provider.get_profile(request)
            check_api_key(profile.openai_api_key, "OpenAI")
            llm = llm_factory(body.chat_settings, profile, settings)

            async with http_client_factory(settings) as client:
                registry = FunctionRegistry.from_schemas(body.tool_schemas, body.custom_headers)
                invoker = ToolInvoker(
                    registry,
                    client,
                    request_in_body=body.is_request_in_body,
                    error_policy=settings.tool_error_policy,
                )
                agent = ToolAgent(llm, registry, invoker)
                stream = agent.answer_stream(list(body.messages))
                first_chunk = await anext(stream, None)
        except Exception as e:
            if llm is not None:
                await llm.aclose()
            return error_response(e)

        if first_chunk is None:
            await llm.aclose()
            return Response(content="", media_type="text/plain; charset=utf-8")
        return StreamingResponse(_relay(first_chunk, stream, llm), media_type="text/plain; charset=utf-8")

    return app
