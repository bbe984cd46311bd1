"""
OpenAPI tool-calling chat service.

A chat request carries OpenAPI documents alongside the conversation. The model
may call any operation of those documents as a function; the calls are sent to
the real endpoints and their JSON results are fed into a second, streamed model
round. Run the HTTP service with 'python -m openapi_tool_chat', or build it
with 'openapi_tool_chat.api.server.create_app'.
"""

__version__ = "0.1.0"
