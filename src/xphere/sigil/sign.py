"""
Ed25519 identities for the Xphere network.

A private key is the 32-byte Ed25519 seed as 64 hex chars. The public key
is re-derived from the seed on demand and the address is the id-hash of
the public key hex, so nothing besides the seed ever needs to be kept.

Signatures cover the UTF-8 bytes of ``enc.string(obj)``.
"""

from __future__ import annotations

import re
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from ..errors import ValidationError
from ..models import KeyPair
from . import enc

KEY_SIZE = 64
SIGNATURE_SIZE = 128

_KEY_RE = re.compile(r"^[a-fA-F0-9]{64}$")


def _raw_public_bytes(public_key: ed25519.Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _signing_key(private_key: str) -> ed25519.Ed25519PrivateKey:
    if not key_validity(private_key):
        raise ValidationError("Invalid private key: expected 64 hex characters.")
    return ed25519.Ed25519PrivateKey.from_private_bytes(bytes.fromhex(private_key))


def _message(obj: Any) -> bytes:
    return enc.string(obj).encode("utf-8")


def key_pair() -> KeyPair:
    """Generate a fresh key pair."""
    signing_key = ed25519.Ed25519PrivateKey.generate()
    seed = signing_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_key_hex = _raw_public_bytes(signing_key.public_key()).hex()
    return KeyPair(
        private_key=seed.hex(),
        public_key=public_key_hex,
        address=address(public_key_hex),
    )


def private_key() -> str:
    return key_pair().private_key


def public_key(private_key: str) -> str:
    return _raw_public_bytes(_signing_key(private_key).public_key()).hex()


def address(public_key: str) -> str:
    return enc.id_hash(public_key)


def address_validity(address: Any) -> bool:
    return enc.id_hash_validity(address)


def signature(obj: Any, private_key: str) -> str:
    """Detached Ed25519 signature (128 hex chars) over the canonical form of ``obj``."""
    return _signing_key(private_key).sign(_message(obj)).hex()


def signature_validity(obj: Any, public_key: str, signature: str) -> bool:
    if not isinstance(signature, str) or len(signature) != SIGNATURE_SIZE or not enc.is_hex(signature):
        return False
    if not key_validity(public_key):
        return False
    try:
        verifier = ed25519.Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key))
        verifier.verify(bytes.fromhex(signature), _message(obj))
    except (InvalidSignature, ValueError):
        return False
    return True


def key_validity(key: Any) -> bool:
    return isinstance(key, str) and bool(_KEY_RE.match(key))


__all__ = [
    "KEY_SIZE",
    "SIGNATURE_SIZE",
    "key_pair",
    "private_key",
    "public_key",
    "address",
    "address_validity",
    "signature",
    "signature_validity",
    "key_validity",
]
