"""
Function descriptors in the OpenAI function-calling format.

Every operation of a registered OpenAPI document is exposed to the model as one
'ToolDescription'. The descriptors are plain dicts so they can be passed to the
chat completions API as-is.
"""

from typing import Any, Literal, TypedDict


class FunctionDescription(TypedDict):
    """JSON schema fragment describing a callable function for the LLM API."""

    name: str
    description: str
    parameters: dict[str, Any]


class ToolDescription(TypedDict):
    """Full tool descriptor in the format expected by OpenAI-compatible APIs."""

    type: Literal["function"]
    function: FunctionDescription


def tool_description(name: str, description: str, parameters: dict[str, Any]) -> ToolDescription:
    """Wrap a function signature into the tool descriptor format."""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": parameters,
        },
    }
