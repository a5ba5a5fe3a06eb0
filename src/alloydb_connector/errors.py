"""Failure classification for Admin API calls.

Callers decide whether to retry based on the class of error raised:
``TerminalError`` means the request can never succeed as issued (missing
instance, missing IAM role, malformed name), ``TransientError`` covers
everything else.
"""

import enum

import grpc
from google.api_core import exceptions

ADMIN_API_ERROR_MESSAGE = (
    "AlloyDB Admin API failed to return the connection info. Reason: {reason}"
)

TERMINAL_STATUS_CODES = frozenset(
    {
        grpc.StatusCode.NOT_FOUND,
        grpc.StatusCode.PERMISSION_DENIED,
        grpc.StatusCode.INVALID_ARGUMENT,
    }
)

# Fallback for api_core errors raised over REST, which carry no gRPC code.
HTTP_STATUS_CODES = {
    400: grpc.StatusCode.INVALID_ARGUMENT,
    401: grpc.StatusCode.UNAUTHENTICATED,
    403: grpc.StatusCode.PERMISSION_DENIED,
    404: grpc.StatusCode.NOT_FOUND,
    409: grpc.StatusCode.ABORTED,
    429: grpc.StatusCode.RESOURCE_EXHAUSTED,
    500: grpc.StatusCode.INTERNAL,
    501: grpc.StatusCode.UNIMPLEMENTED,
    503: grpc.StatusCode.UNAVAILABLE,
    504: grpc.StatusCode.DEADLINE_EXCEEDED,
}


class FailureClassification(enum.Enum):
    TERMINAL = "terminal"
    TRANSIENT = "transient"


class ConnectorError(Exception):
    """Base class for classified connection info failures."""

    classification: FailureClassification

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: grpc.StatusCode = grpc.StatusCode.UNKNOWN,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.status_code = status_code


class TerminalError(ConnectorError):
    """The request is not retryable."""

    classification = FailureClassification.TERMINAL


class TransientError(ConnectorError):
    """The request may succeed if retried with backoff."""

    classification = FailureClassification.TRANSIENT


class CertificateParseError(ValueError):
    """Raised when bytes are not a well-formed X.509 certificate."""


def status_code_of(error: BaseException) -> grpc.StatusCode:
    """Maps any raised error to a gRPC status code."""
    if isinstance(error, exceptions.GoogleAPICallError):
        if error.grpc_status_code is not None:
            return error.grpc_status_code  # type: ignore[no-any-return]
        if error.code is not None:
            return HTTP_STATUS_CODES.get(error.code, grpc.StatusCode.UNKNOWN)
        return grpc.StatusCode.UNKNOWN

    if isinstance(error, grpc.RpcError) and callable(getattr(error, "code", None)):
        code = error.code()
        if isinstance(code, grpc.StatusCode):
            return code

    return grpc.StatusCode.UNKNOWN


def classify(status_code: grpc.StatusCode) -> FailureClassification:
    if status_code in TERMINAL_STATUS_CODES:
        return FailureClassification.TERMINAL
    return FailureClassification.TRANSIENT


def handle_exception(error: BaseException) -> ConnectorError:
    """Wraps an Admin API error in the matching ConnectorError subclass."""
    if isinstance(error, ConnectorError):
        return error

    status_code = status_code_of(error)
    message = ADMIN_API_ERROR_MESSAGE.format(reason=f"{status_code.name}: {error}")

    if classify(status_code) is FailureClassification.TERMINAL:
        wrapped: ConnectorError = TerminalError(message, error, status_code)
    else:
        wrapped = TransientError(message, error, status_code)
    wrapped.__cause__ = error
    return wrapped


def pick_representative(errors: list[ConnectorError]) -> ConnectorError:
    """Returns the error to surface when several subtasks failed.

    A terminal failure from any subtask wins over transient ones.
    """
    for error in errors:
        if error.classification is FailureClassification.TERMINAL:
            return error
    return errors[0]
