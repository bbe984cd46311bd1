from openapi_tool_chat.tools.function_registry import FunctionEntry, FunctionRegistry
from openapi_tool_chat.tools.openapi import OpenAPIData, OpenAPIRoute, extract_openapi_data
from openapi_tool_chat.tools.schema_registry import SchemaDescriptor, build_route_map, build_schema_descriptor

__all__ = [
    "FunctionEntry",
    "FunctionRegistry",
    "OpenAPIData",
    "OpenAPIRoute",
    "SchemaDescriptor",
    "build_route_map",
    "build_schema_descriptor",
    "extract_openapi_data",
]
