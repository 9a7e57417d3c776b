"""Utility functions."""

from rea_deals.utils.audit import get_client_ip, log_action, snapshot, to_json_safe

__all__ = [
    "log_action",
    "snapshot",
    "to_json_safe",
    "get_client_ip",
]
