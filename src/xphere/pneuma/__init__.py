"""
Pneuma - Network layer for the Xphere client.

Provides multi-endpoint dispatch (race / all), the node RPC surface with
its aggregates, and transaction signing and submission.

Uses httpx (async) for HTTP; every call is an independent roundtrip.
"""
