"""
Theurgy - Command implementations for the Xphere CLI.

Each module holds one or two top-level CLI commands:
- keygen: Generate a key pair
- digest: Canonical hashes of a value, signature checks
- survey: Best round and peer list across endpoints
- send:   Fee estimation and transaction submission
"""
