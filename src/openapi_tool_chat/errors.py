"""
Typed failures of the tool-calling pipeline and their wire envelope.

Every stage raises a 'ToolChatError' subclass tagged with an 'ErrorKind'. The
exceptions travel up unchanged and are translated exactly once, at the HTTP
boundary, by 'to_envelope'. Only a provider-supplied message (e.g. the error
text returned by the model API) or a message explicitly marked as public is
shown to the caller; everything else is logged and replaced by a generic
message.
"""

from enum import StrEnum

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"
DEFAULT_STATUS_CODE = 500


class ErrorKind(StrEnum):
    CONFIG = "config"
    PARSE = "parse"
    RESOLUTION = "resolution"
    TRANSPORT = "transport"


class ToolChatError(Exception):
    """
    Base class for all pipeline failures.

    Attributes:
        message: Internal description, used for logging and for error tool
            messages.
        status_code: Explicit HTTP status for the envelope, if the failure has one.
        provider_message: Message supplied by an upstream provider. Preferred
            over everything else in the envelope.
        public_message: Message of our own that is safe to show the caller.
    """

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider_message: str | None = None,
        public_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider_message = provider_message
        self.public_message = public_message


class ConfigError(ToolChatError):
    """Missing or invalid configuration, such as an absent API key."""

    kind = ErrorKind.CONFIG


class ParseError(ToolChatError):
    """Malformed OpenAPI document, tool-call arguments or custom headers."""

    kind = ErrorKind.PARSE


class ResolutionError(ToolChatError):
    """A model-requested function cannot be mapped to a registered route."""

    kind = ErrorKind.RESOLUTION


class FunctionNotFoundError(ResolutionError):
    def __init__(self, function_name: str) -> None:
        super().__init__(f"Function {function_name} not found in any schema")
        self.function_name = function_name


class PathNotFoundError(ResolutionError):
    def __init__(self, function_name: str) -> None:
        super().__init__(f"Path for function {function_name} not found")
        self.function_name = function_name


class TransportError(ToolChatError):
    """Failure talking to the model provider or to a third-party tool endpoint."""

    kind = ErrorKind.TRANSPORT


def to_envelope(exc: BaseException) -> tuple[dict[str, str], int]:
    """Convert any exception into the '{"message": ...}' body and a status code."""
    if isinstance(exc, ToolChatError):
        message = exc.provider_message or exc.public_message or DEFAULT_ERROR_MESSAGE
        status_code = exc.status_code or DEFAULT_STATUS_CODE
    else:
        message = DEFAULT_ERROR_MESSAGE
        status_code = DEFAULT_STATUS_CODE
    return {"message": message}, status_code
