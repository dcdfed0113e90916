from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ValidationError
from .sigil import enc

SUCCESS_CODE = 200
CONDITION_NOT_MET = "Condition not met"


@dataclass(frozen=True)
class KeyPair:
    private_key: str
    public_key: str
    address: str

    def to_dict(self) -> dict[str, str]:
        return {
            "private_key": self.private_key,
            "public_key": self.public_key,
            "address": self.address,
        }


@dataclass(frozen=True)
class RpcResponse:
    """A node's ``{code, msg?, data?}`` envelope."""

    code: int
    msg: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE

    @classmethod
    def from_envelope(cls, payload: Any) -> Optional["RpcResponse"]:
        """Parse an envelope, or return None when ``payload`` does not carry a usable code."""
        if not isinstance(payload, Mapping):
            return None
        code = payload.get("code")
        if isinstance(code, bool):
            return None
        if isinstance(code, str) and code.strip().isdigit():
            code = int(code)
        if not isinstance(code, int) or code == 0:
            return None
        msg = payload.get("msg")
        return cls(code=code, msg=None if msg is None else str(msg), data=payload.get("data"))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code}
        if self.msg is not None:
            result["msg"] = self.msg
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one request inside a fan-out, tagged with the endpoint it came from."""

    endpoint: str
    code: Optional[int] = None
    data: Any = None
    msg: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE and self.msg is None

    @classmethod
    def from_error(cls, endpoint: str, exc: Any) -> "DispatchResult":
        return cls(
            endpoint=endpoint,
            code=getattr(exc, "code", None),
            msg=getattr(exc, "msg", None) or str(exc),
            data=getattr(exc, "data", None),
            error=exc,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"endpoint": self.endpoint}
        if self.code is not None:
            result["code"] = self.code
        if self.msg is not None:
            result["msg"] = self.msg
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass(frozen=True)
class RoundSnapshot:
    """Freshest main and resource blocks seen across endpoints. The two may come from different nodes."""

    main: dict[str, Any]
    resource: dict[str, Any]

    @property
    def main_height(self) -> int:
        return int(self.main["height"])

    @property
    def resource_height(self) -> int:
        return int(self.resource["height"])

    def to_dict(self) -> dict[str, Any]:
        return {"main": self.main, "resource": self.resource}


@dataclass(frozen=True)
class PeerList:
    peers: list[Any] = field(default_factory=list)
    known_hosts: list[str] = field(default_factory=list)

    def hosts(self) -> list[str]:
        return [peer_host(peer) for peer in self.peers if peer_host(peer)]

    def to_dict(self) -> dict[str, Any]:
        return {"peers": list(self.peers), "known_hosts": list(self.known_hosts)}


def peer_host(peer: Any) -> str:
    """Host of a peer entry, which nodes report either as a string or as ``{host, address}``."""
    if isinstance(peer, Mapping):
        return str(peer.get("host") or "")
    return str(peer) if peer else ""


# ---------------------------------------------------------------------------
# Contract code documents
# ---------------------------------------------------------------------------

_FULL_KEYS = {
    "type": "type",
    "machine": "machine",
    "name": "name",
    "version": "version",
    "writer": "writer",
    "parameters": "parameters",
    "executions": "executions",
}
_SHORT_KEYS = {
    "t": "type",
    "m": "machine",
    "n": "name",
    "v": "version",
    "w": "writer",
    "p": "parameters",
    "e": "executions",
}


@dataclass(frozen=True)
class ContractCode:
    """Normalized view of a registered code document, whichever key schema it was written in."""

    name: str
    writer: str
    nonce: str = ""
    type: str = ""
    version: str = "0"
    machine: str = ""
    parameters: Any = field(default_factory=dict)
    executions: list[Any] = field(default_factory=list)

    @property
    def cid(self) -> str:
        return enc.cid(self.writer, self.nonce)

    @property
    def mid(self) -> str:
        return enc.hash([self.writer, self.nonce, self.name])

    @property
    def ctype(self) -> str:
        return "contract" if self.type == "contract" else "request"

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ContractCode":
        if "w" in payload or "n" in payload:
            keys, nonce_keys = _SHORT_KEYS, ("s",)
        elif "writer" in payload or "name" in payload:
            keys, nonce_keys = _FULL_KEYS, ("nonce", "space")
        else:
            raise ValidationError("Code document matches neither the full nor the abbreviated schema.")

        fields: dict[str, Any] = {}
        for source, target in keys.items():
            if source in payload and payload[source] is not None:
                fields[target] = payload[source]
        for key in nonce_keys:
            if payload.get(key) is not None:
                fields["nonce"] = payload[key]
                break

        for name in ("name", "writer", "nonce", "type", "version", "machine"):
            if name in fields and not isinstance(fields[name], str):
                raise ValidationError(f"The '{name}' field should be a string.")
        writer = fields.get("writer", "")
        if writer and writer != enc.ZERO_ADDRESS and not enc.id_hash_validity(writer):
            raise ValidationError(f"Invalid writer address: {writer}")

        fields.setdefault("name", "")
        fields.setdefault("writer", "")
        return cls(**fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cid": self.cid,
            "name": self.name,
            "writer": self.writer,
            "type": self.type,
            "version": self.version,
            "parameters": self.parameters,
            "nonce": self.nonce,
        }


def parse_code(code: str | Mapping[str, Any]) -> ContractCode:
    if isinstance(code, str):
        try:
            code = json.loads(code)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Code document is not valid JSON: {exc}") from exc
    if not isinstance(code, Mapping):
        raise ValidationError("Code document must be a JSON object.")
    return ContractCode.from_dict(code)


__all__ = [
    "SUCCESS_CODE",
    "CONDITION_NOT_MET",
    "KeyPair",
    "RpcResponse",
    "DispatchResult",
    "RoundSnapshot",
    "PeerList",
    "peer_host",
    "ContractCode",
    "parse_code",
]
