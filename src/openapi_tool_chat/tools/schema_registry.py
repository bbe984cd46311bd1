"""
Per-document schema descriptors.

Each OpenAPI document supplied with a request becomes one 'SchemaDescriptor'.
The descriptor keeps what later path resolution needs (the base URL, the
headers to send and the route map) and the function signatures offered to the
model. Parsing and validation are left entirely to 'extract_openapi_data'; its
'ParseError' is propagated unchanged.

The route map is keyed by path. When a path declares several methods, the
last declared one overwrites the earlier ones, so only that operation is
resolvable through the map. Operations shadowed this way are still offered to
the model as functions; calling one fails resolution.
"""

from typing import Any, cast

from pydantic import BaseModel, ConfigDict

from openapi_tool_chat.tools.base import ToolDescription
from openapi_tool_chat.tools.openapi import OpenAPIRoute, extract_openapi_data


class RouteTarget(BaseModel):
    """The operation a path resolves to after the route-map fold."""

    model_config = ConfigDict(frozen=True)

    method: str
    operation_id: str


class SchemaDescriptor(BaseModel):
    """
    Structured view of one OpenAPI document.

    Attributes:
        index: Position of the document in the request, used to order
            registrations across documents.
        url: Base URL of the API (the first declared server).
        headers: Raw custom headers supplied with the request, passed through
            to every function of this document.
        routes: Full route table, in declaration order.
        route_map: Path to surviving operation, see 'build_route_map'.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    title: str
    description: str
    url: str
    headers: str
    routes: tuple[OpenAPIRoute, ...]
    route_map: dict[str, RouteTarget]


def build_route_map(routes: list[OpenAPIRoute] | tuple[OpenAPIRoute, ...]) -> dict[str, RouteTarget]:
    """Map every path to its last declared operation.

    Paths keep their first-seen order. A later method on the same path replaces
    the earlier entry in place.
    """
    route_map: dict[str, RouteTarget] = {}
    for route in routes:
        for route_method in route.methods:
            route_map[route.path] = RouteTarget(method=route_method.method, operation_id=route_method.operation_id)
    return route_map


def build_schema_descriptor(
    index: int, schema: str | dict[str, Any], headers: str = ""
) -> tuple[SchemaDescriptor, list[ToolDescription]]:
    """Convert one raw document into its descriptor and its function signatures."""
    data = extract_openapi_data(schema)
    descriptor = SchemaDescriptor(
        index=index,
        title=data.title,
        description=data.description,
        url=data.url,
        headers=headers,
        routes=tuple(data.routes),
        route_map=build_route_map(data.routes),
    )
    return descriptor, cast(list[ToolDescription], list(data.functions))
