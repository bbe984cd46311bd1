"""
OpenAPI document to function-list conversion.

'extract_openapi_data' turns one raw OpenAPI document into the pieces the tool
pipeline needs: the API title and description, the base URL of its first
server, the route table (every path with its declared methods and operation
IDs) and one function descriptor per operation for the model.

Only what is needed for function calling is validated; anything else in the
document is ignored. Local '$ref' pointers ('#/components/...') are resolved
when building parameter schemas, remote references are not followed.
"""

import json
from typing import Any

from pydantic import BaseModel, Field

from openapi_tool_chat.errors import ParseError
from openapi_tool_chat.tools.base import ToolDescription, tool_description

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


class OpenAPIRouteMethod(BaseModel):
    method: str
    operation_id: str


class OpenAPIRoute(BaseModel):
    """A path and its declared methods, in declaration order."""

    path: str
    methods: list[OpenAPIRouteMethod]


class OpenAPIData(BaseModel):
    """Everything extracted from one document."""

    title: str
    description: str = ""
    url: str
    routes: list[OpenAPIRoute]
    functions: list[dict[str, Any]] = Field(default_factory=list)


def load_openapi_document(schema: str | dict[str, Any]) -> dict[str, Any]:
    """Parse a raw JSON document, or pass through one that is already parsed."""
    if isinstance(schema, dict):
        return schema
    try:
        document = json.loads(schema)
    except (TypeError, json.JSONDecodeError) as e:
        raise ParseError(f"OpenAPI schema is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ParseError("OpenAPI schema must be a JSON object")
    return document


def _operations(path_item: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    return [
        (method, operation)
        for method, operation in path_item.items()
        if method.lower() in HTTP_METHODS and isinstance(operation, dict)
    ]


def validate_openapi(document: dict[str, Any]) -> None:
    """Raise 'ParseError' if the document lacks a field needed for function calling."""
    info = document.get("info")
    if not isinstance(info, dict):
        raise ParseError("('info'): field required")
    if not info.get("title"):
        raise ParseError("('info', 'title'): field required")
    if not info.get("version"):
        raise ParseError("('info', 'version'): field required")

    servers = document.get("servers")
    if not isinstance(servers, list) or not servers:
        raise ParseError("Could not find a 'servers' field in the OpenAPI schema")
    if not isinstance(servers[0], dict) or not servers[0].get("url"):
        raise ParseError("Could not find a 'url' field in the 'servers' of the OpenAPI schema")

    paths = document.get("paths")
    if not isinstance(paths, dict) or not paths:
        raise ParseError("('paths'): field required")

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            raise ParseError(f"Path {path} must map HTTP methods to operations")
        for method, operation in _operations(path_item):
            if not operation.get("operationId"):
                raise ParseError(f"Could not find operationId in path {path} ({method.upper()})")


def _resolve_ref(document: dict[str, Any], schema: dict[str, Any]) -> dict[str, Any]:
    seen: set[str] = set()
    while "$ref" in schema:
        ref = schema["$ref"]
        if not isinstance(ref, str) or not ref.startswith("#/"):
            raise ParseError(f"Unsupported reference {ref!r}, only local references are resolved")
        if ref in seen:
            raise ParseError(f"Circular reference {ref!r}")
        seen.add(ref)
        target: Any = document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, dict) or part not in target:
                raise ParseError(f"Could not resolve reference {ref!r}")
            target = target[part]
        if not isinstance(target, dict):
            raise ParseError(f"Reference {ref!r} does not point to an object")
        schema = target
    return schema


def _parameters_schema(
    document: dict[str, Any], path_item: dict[str, Any], operation: dict[str, Any]
) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []

    for parameter in [*path_item.get("parameters", []), *operation.get("parameters", [])]:
        parameter = _resolve_ref(document, parameter)
        name = parameter.get("name")
        if not name:
            continue
        schema = _resolve_ref(document, parameter.get("schema") or {})
        prop: dict[str, Any] = {"type": schema.get("type", "string")}
        if description := parameter.get("description") or schema.get("description"):
            prop["description"] = description
        if "enum" in schema:
            prop["enum"] = schema["enum"]
        if schema.get("type") == "array" and "items" in schema:
            prop["items"] = _resolve_ref(document, schema["items"])
        properties[name] = prop
        if parameter.get("required") and name not in required:
            required.append(name)

    request_body = _resolve_ref(document, operation.get("requestBody") or {})
    body_schema = request_body.get("content", {}).get("application/json", {}).get("schema")
    if body_schema:
        body_schema = _resolve_ref(document, body_schema)
        for name, prop in body_schema.get("properties", {}).items():
            properties[name] = _resolve_ref(document, prop)
        for name in body_schema.get("required", []):
            if name not in required:
                required.append(name)

    return {"type": "object", "properties": properties, "required": required}


def openapi_data_to_functions(document: dict[str, Any]) -> list[ToolDescription]:
    """Build one function descriptor per operation, named after its operationId."""
    functions: list[ToolDescription] = []
    for path_item in document.get("paths", {}).values():
        for _, operation in _operations(path_item):
            functions.append(
                tool_description(
                    name=operation["operationId"],
                    description=operation.get("description") or operation.get("summary") or "",
                    parameters=_parameters_schema(document, path_item, operation),
                )
            )
    return functions


def extract_openapi_data(schema: str | dict[str, Any]) -> OpenAPIData:
    """Load, validate and convert one OpenAPI document."""
    document = load_openapi_document(schema)
    validate_openapi(document)

    routes = [
        OpenAPIRoute(
            path=path,
            methods=[
                OpenAPIRouteMethod(method=method.lower(), operation_id=operation["operationId"])
                for method, operation in _operations(path_item)
            ],
        )
        for path, path_item in document["paths"].items()
    ]

    return OpenAPIData(
        title=document["info"]["title"],
        description=document["info"].get("description") or "",
        url=document["servers"][0]["url"],
        routes=routes,
        functions=openapi_data_to_functions(document),
    )
