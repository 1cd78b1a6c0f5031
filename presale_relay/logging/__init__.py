"""
Structured logging for Presale Relay.

JSON logs with timestamp, event_type and request context.
Use get_logger() in all relay modules for aggregation-friendly output.
"""

from presale_relay.logging.logger import bind_request, clear_request, get_logger

__all__ = ["get_logger", "bind_request", "clear_request"]
