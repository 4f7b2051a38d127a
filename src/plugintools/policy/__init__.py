"""
Policy module for plugintools.

This module implements the resource policy that gates host access:
    - CommandPolicy: program-name allow-list and timeout ceiling
    - PathPolicy: allowed-root containment and file-size ceiling

Both evaluate to a PolicyDecision (ALLOW/DENY + reason) and offer
require_*() helpers that raise the matching typed error.
"""

from plugintools.policy.engine import (
    CommandPolicy,
    PathPolicy,
    is_sub_path,
    resolve_path,
    split_command,
)

__all__ = [
    "CommandPolicy",
    "PathPolicy",
    "is_sub_path",
    "resolve_path",
    "split_command",
]
