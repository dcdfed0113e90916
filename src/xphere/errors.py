"""
Typed errors for the Xphere client.

Local validation problems raise ``ValidationError`` before anything touches
the network. Everything that comes back from (or fails to come back from)
a node is an ``RpcError`` carrying the structured envelope fields, so
callers can inspect ``code`` / ``msg`` / ``data`` and the ``endpoint`` that
produced it.
"""

from __future__ import annotations

from typing import Any, Optional


TIMEOUT_CODE = 408
MALFORMED_CODE = 901
DO_NOT_RETRY_CODE = 999


class XphereError(Exception):
    exit_code: int = 1


class ValidationError(XphereError, ValueError):
    exit_code = 2


class RpcError(XphereError):
    exit_code = 3
    default_code: Optional[int] = None
    default_msg: str = "RPC error"

    def __init__(
        self,
        msg: Optional[str] = None,
        *,
        code: Optional[int] = None,
        data: Any = None,
        endpoint: Optional[str] = None,
    ) -> None:
        self.code = code if code is not None else self.default_code
        self.msg = msg if msg is not None else self.default_msg
        self.data = data
        self.endpoint = endpoint
        super().__init__(self.msg)

    def __str__(self) -> str:
        parts = [self.msg]
        if self.code is not None:
            parts.insert(0, f"[{self.code}]")
        if self.endpoint:
            parts.append(f"({self.endpoint})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"msg": self.msg}
        if self.code is not None:
            result["code"] = self.code
        if self.data is not None:
            result["data"] = self.data
        if self.endpoint is not None:
            result["endpoint"] = self.endpoint
        return result


class NetworkTimeout(RpcError):
    default_code = TIMEOUT_CODE
    default_msg = "Request timed out"


class MalformedResponse(RpcError):
    default_code = MALFORMED_CODE
    default_msg = "Invalid response parameter"


class UpstreamError(RpcError):
    """A node answered with a non-success code."""


class TransportFailure(RpcError):
    """Connection-level failure with no response to classify."""

    default_msg = "Transport error"


class ConditionNotMet(RpcError):
    default_msg = "Condition not met"


class ConsensusFailure(RpcError):
    """No endpoint produced data that could be aggregated."""

    exit_code = 4
    default_msg = "No usable response from any endpoint"

    def __init__(self, msg: Optional[str] = None, *, partial: Any = None, **kwargs: Any) -> None:
        super().__init__(msg, data=kwargs.pop("data", partial), **kwargs)
        self.partial = partial


class RetryLimitExceeded(RpcError):
    exit_code = 5
    default_msg = "Transaction was not confirmed within the attempt limit"


class SubmissionCancelled(RpcError):
    exit_code = 6
    default_msg = "Submission cancelled"


__all__ = [
    "TIMEOUT_CODE",
    "MALFORMED_CODE",
    "DO_NOT_RETRY_CODE",
    "XphereError",
    "ValidationError",
    "RpcError",
    "NetworkTimeout",
    "MalformedResponse",
    "UpstreamError",
    "TransportFailure",
    "ConditionNotMet",
    "ConsensusFailure",
    "RetryLimitExceeded",
    "SubmissionCancelled",
]
