"""
Runtime settings read from environment variables.

    OPENAI_API_KEY          API key used for both model rounds
    OPENAI_ORGANIZATION_ID  optional OpenAI organization
    OPENAI_BASE_URL         optional OpenAI-compatible endpoint
    LLM_REQUEST_TIMEOUT     seconds per model call (default 60)
    TOOL_REQUEST_TIMEOUT    seconds per tool HTTP call (default 30)
    TOOL_ERROR_POLICY       'abort' (default) or 'report'
    LOG_LEVEL               loguru level (default INFO)
    HOST / PORT             bind address for 'python -m openapi_tool_chat'
"""

import os
from enum import StrEnum

from pydantic import BaseModel


class ToolErrorPolicy(StrEnum):
    """What a failing tool endpoint does to the exchange.

    ABORT: the whole request fails with the error envelope.
    REPORT: the failure becomes the tool message content so the model can react.
    """

    ABORT = "abort"
    REPORT = "report"


class Settings(BaseModel):
    openai_api_key: str = ""
    openai_organization_id: str | None = None
    openai_base_url: str | None = None
    llm_request_timeout: float = 60.0
    tool_request_timeout: float = 30.0
    tool_error_policy: ToolErrorPolicy = ToolErrorPolicy.ABORT
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
            openai_organization_id=os.environ.get("OPENAI_ORGANIZATION_ID") or None,
            openai_base_url=os.environ.get("OPENAI_BASE_URL") or None,
            llm_request_timeout=float(os.environ.get("LLM_REQUEST_TIMEOUT", "60")),
            tool_request_timeout=float(os.environ.get("TOOL_REQUEST_TIMEOUT", "30")),
            tool_error_policy=ToolErrorPolicy(os.environ.get("TOOL_ERROR_POLICY", "abort").lower().strip()),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8000")),
        )
