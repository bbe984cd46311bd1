"""
Execution of model-requested function calls against their HTTP endpoints.

'ToolInvoker' turns each 'ToolCall' from round 1 into one HTTP request:

    body mode   POST base_url + path, JSON body, 'Content-Type: application/json'
                merged with the custom headers (custom headers win)
    query mode  GET base_url + path + '?' + urlencoded arguments, no body and
                no custom headers

The JSON response is serialised back into a TOOL message correlated to the call
by 'tool_call_id'. Calls run strictly one after another in the order the model
emitted them; the first failure stops the run.
"""

import json
from typing import Any
from urllib.parse import urlencode

import httpx
from loguru import logger

from openapi_tool_chat.config import ToolErrorPolicy
from openapi_tool_chat.errors import ParseError, TransportError
from openapi_tool_chat.llms.base import LLMMessage, Roles, ToolCall
from openapi_tool_chat.tools.function_registry import FunctionEntry, FunctionRegistry

JSON_HEADERS = {"Content-Type": "application/json"}


def parse_custom_headers(raw: str | None) -> dict[str, str]:
    """Decode the JSON-encoded custom headers sent by the client. Empty means none."""
    if not raw or not raw.strip():
        return {}
    try:
        headers = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Custom headers are not valid JSON: {e}") from e
    if not isinstance(headers, dict):
        raise ParseError("Custom headers must be a JSON object")
    return {str(key): str(value) for key, value in headers.items()}


def parse_arguments(tool_call: ToolCall) -> dict[str, Any]:
    arguments = tool_call.function.arguments
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise ParseError(f"Arguments of {tool_call.function.name} are not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ParseError(f"Arguments of {tool_call.function.name} must be a JSON object")
    return parsed


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, list) and not any(isinstance(item, (dict, list)) for item in value):
        # flat lists become comma-separated, like URLSearchParams
        return ",".join(_query_value(item) for item in value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class ToolInvoker:
    """
    Sends resolved function calls over a shared 'httpx.AsyncClient'.

    Attributes:
        registry: Resolves function names to endpoints.
        client: HTTP client owned by the caller; its timeout bounds every call.
        request_in_body: Selects body mode (True) or query mode (False).
        error_policy: Whether endpoint failures abort the request or are
            reported back to the model as tool content.
    """

    def __init__(
        self,
        registry: FunctionRegistry,
        client: httpx.AsyncClient,
        request_in_body: bool = False,
        error_policy: ToolErrorPolicy = ToolErrorPolicy.ABORT,
    ) -> None:
        self.registry = registry
        self.client = client
        self.request_in_body = request_in_body
        self.error_policy = error_policy

    def build_request(self, entry: FunctionEntry, arguments: dict[str, Any]) -> httpx.Request:
        if self.request_in_body:
            # header names are case-insensitive, custom ones replace the defaults
            headers = httpx.Headers(JSON_HEADERS)
            headers.update(parse_custom_headers(entry.headers))
            return self.client.build_request(
                "POST", entry.url, headers=headers, content=json.dumps(arguments).encode("utf-8")
            )

        query = urlencode({key: _query_value(value) for key, value in arguments.items()})
        return self.client.build_request("GET", f"{entry.url}?{query}")

    async def _send(self, function_name: str, request: httpx.Request) -> Any:
        logger.debug(f"Calling {function_name}: {request.method} {request.url}")
        try:
            response = await self.client.send(request)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {function_name} failed: {e!r}") from e

        if response.is_error:
            raise TransportError(f"{function_name} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{function_name} did not return valid JSON") from e

    async def invoke(self, tool_call: ToolCall) -> LLMMessage:
        """Run one call and return the TOOL message carrying its JSON result."""
        function_name = tool_call.function.name
        entry = self.registry.resolve(function_name)
        arguments = parse_arguments(tool_call)
        request = self.build_request(entry, arguments)

        try:
            data = await self._send(function_name, request)
        except TransportError as e:
            if self.error_policy != ToolErrorPolicy.REPORT:
                raise
            logger.warning(f"Reporting tool failure to the model: {e.message}")
            data = {"error": e.message}

        return LLMMessage(
            role=Roles.TOOL,
            tool_call_id=tool_call.id,
            name=function_name,
            content=json.dumps(data),
        )

    async def invoke_all(self, tool_calls: list[ToolCall]) -> list[LLMMessage]:
        """Run the calls in order. Stops at the first failure; no partial results are returned."""
        results: list[LLMMessage] = []
        for tool_call in tool_calls:
            results.append(await self.invoke(tool_call))
        return results
