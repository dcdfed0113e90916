"""
Sigil - Canonical encoding, hashing and Ed25519 identities.

- enc:  deterministic string form, hashes, id-hashes, time-hashes
- sign: key pairs, addresses, detached signatures
"""
