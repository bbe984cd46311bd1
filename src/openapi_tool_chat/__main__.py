"""
Run the tool chat service with uvicorn.

    OPENAI_API_KEY=sk-... python -m openapi_tool_chat

See 'openapi_tool_chat.config' for the environment variables.
"""

import sys

import uvicorn
from loguru import logger

from openapi_tool_chat.api.server import create_app
from openapi_tool_chat.config import Settings


def main() -> None:
    settings = Settings.from_env()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.info(f"Starting tool chat service on {settings.host}:{settings.port}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
