"""
Aggregated, name-addressable registry of callable functions.

'FunctionRegistry' flattens the route maps of every supplied document into an
ordered list of 'FunctionEntry' rows and concatenates their function
signatures. Nothing is deduplicated: if two documents expose the same
operationId, both rows are kept and 'resolve' returns the one registered last,
i.e. the one from the later document.

The registry is built per request and never shared between requests.
"""

from collections.abc import Sequence
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict

from openapi_tool_chat.errors import FunctionNotFoundError, PathNotFoundError
from openapi_tool_chat.tools.base import ToolDescription
from openapi_tool_chat.tools.schema_registry import SchemaDescriptor, build_schema_descriptor


class FunctionEntry(BaseModel):
    """One resolvable function: where to send it and which document it came from."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    path: str
    http_method: str
    headers: str = ""
    source_index: int = 0

    @property
    def url(self) -> str:
        return self.base_url + self.path


class FunctionRegistry:
    """
    Function signatures and route entries across all documents of a request.

    Attributes:
        descriptors: One 'SchemaDescriptor' per document, in document order.
        functions: All function signatures, in document order, duplicates kept.
        entries: All route entries, in registration order, duplicates kept.
    """

    def __init__(self) -> None:
        self.descriptors: list[SchemaDescriptor] = []
        self.functions: list[ToolDescription] = []
        self.entries: list[FunctionEntry] = []

    @classmethod
    def from_schemas(cls, schemas: Sequence[str | dict[str, Any]], headers: str = "") -> "FunctionRegistry":
        registry = cls()
        for index, schema in enumerate(schemas):
            descriptor, functions = build_schema_descriptor(index, schema, headers)
            registry.register(descriptor, functions)
        logger.info(
            f"Registered {len(registry.functions)} functions from {len(registry.descriptors)} OpenAPI schemas"
        )
        return registry

    def register(self, descriptor: SchemaDescriptor, functions: list[ToolDescription]) -> None:
        """Append a document's signatures and route entries after those already registered."""
        self.descriptors.append(descriptor)
        self.functions.extend(functions)
        for path, target in descriptor.route_map.items():
            self.entries.append(
                FunctionEntry(
                    name=target.operation_id,
                    base_url=descriptor.url,
                    path=path,
                    http_method=target.method,
                    headers=descriptor.headers,
                    source_index=descriptor.index,
                )
            )

    def resolve(self, function_name: str) -> FunctionEntry:
        """Return the last registered entry for 'function_name'.

        Raises:
            FunctionNotFoundError: No document's route map contains the name.
            PathNotFoundError: The entry has no path to call.
        """
        for entry in reversed(self.entries):
            if entry.name == function_name:
                if not entry.path:
                    raise PathNotFoundError(function_name)
                return entry
        raise FunctionNotFoundError(function_name)

    @property
    def names(self) -> list[str]:
        return [function["function"]["name"] for function in self.functions]

    def __contains__(self, function_name: object) -> bool:
        return any(entry.name == function_name for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)
