"""
apitoolkit.exceptions

SDK exception types.

Responsibilities:
- Define the only failures the SDK lets escape to its caller (initialization).
"""

from __future__ import annotations


class APIToolkitError(Exception):
    pass


class ClientInitError(APIToolkitError):
    """
    Raised by `apitoolkit.client.new_client` when the client cannot be built:
    metadata endpoint unreachable or non-2xx, malformed metadata, or invalid
    transport credentials.
    """


# --- Module Notes -----------------------------------------------------------
# Per-request capture and delivery failures are never raised; they are logged at the
# middleware/publisher boundary instead.
