"""
apitoolkit.observability

SDK self-observability package.

Responsibilities:
- Structured logging configuration for the SDK's own diagnostics.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# This is about logging what the SDK does, not about the telemetry it captures.
