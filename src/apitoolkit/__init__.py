"""
apitoolkit

Top-level package for the APIToolkit request telemetry SDK.

Responsibilities:
- Expose package version metadata.
- Re-export the public entry points (client, middleware, error reporting).
"""

from apitoolkit.client import Client, new_client
from apitoolkit.errors import report_error
from apitoolkit.exceptions import APIToolkitError, ClientInitError
from apitoolkit.middleware import APIToolkitMiddleware
from apitoolkit.outbound import ObserveOptions, ObservingTransport
from apitoolkit.settings import Settings

__all__ = [
    "APIToolkitError",
    "APIToolkitMiddleware",
    "Client",
    "ClientInitError",
    "ObserveOptions",
    "ObservingTransport",
    "Settings",
    "__version__",
    "new_client",
    "report_error",
]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Importing the package wires nothing; callers opt in via `new_client` + middleware.
