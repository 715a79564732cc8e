"""tcpdump command construction for compiled capture filters."""

from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path
from typing import List, Optional, Union

from services.agent.filter_errors import InvalidCaptureRequestError

logger = logging.getLogger(__name__)


DEFAULT_CAPTURE_BINARY = "tcpdump"
DEFAULT_MAX_EXPRESSION_LENGTH = 1000

_INTERFACE_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")


def validate_bpf_filter(bpf_filter: str, max_length: int = DEFAULT_MAX_EXPRESSION_LENGTH) -> bool:
    """
    Basic structural check of a filter expression.

    This is a heuristic, not a BPF parser: it checks the length and that
    parentheses are balanced and never close before they open.

    Args:
        bpf_filter: Filter expression to check (empty is valid and captures everything)
        max_length: Maximum accepted expression length

    Returns:
        True if the expression looks valid, False otherwise
    """
    if len(bpf_filter) > max_length:
        return False
    depth = 0
    for char in bpf_filter:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def validate_interface_name(name: str) -> bool:
    """
    Validate interface name (basic check for reasonable characters).

    Args:
        name: Interface name to validate

    Returns:
        True if name looks valid, False otherwise
    """
    # e.g., eth0, wlan0, enp0s3, br-lan, vlan.100, igb0
    if not name or len(name) > 15:  # Linux interface names max 15 chars
        return False
    return _INTERFACE_NAME_RE.match(name) is not None


def build_capture_command(
    interface: str,
    expression: str,
    *,
    binary: str = DEFAULT_CAPTURE_BINARY,
    snap_length: int = 0,
    packet_count: Optional[int] = None,
    output_file: Optional[Union[Path, str]] = None,
    promiscuous: bool = True,
    max_expression_length: int = DEFAULT_MAX_EXPRESSION_LENGTH,
) -> List[str]:
    """
    Build the tcpdump argument vector for a compiled filter expression.

    The process itself is started by the caller.

    Raises:
        InvalidCaptureRequestError: If interface, expression or limits are invalid
    """
    if not validate_interface_name(interface):
        raise InvalidCaptureRequestError(f"Invalid interface name: '{interface}'")
    if not validate_bpf_filter(expression, max_expression_length):
        logger.warning("Rejected filter expression: %s", expression)
        raise InvalidCaptureRequestError(f"Filter expression looks invalid: '{expression}'")
    if snap_length < 0:
        raise InvalidCaptureRequestError("Snap length must not be negative")
    if packet_count is not None and packet_count < 1:
        raise InvalidCaptureRequestError("Packet count must be at least 1")

    cmd: List[str] = [binary, "-i", interface, "-nn", "-s", str(snap_length)]
    if not promiscuous:
        cmd.append("-p")
    if packet_count is not None:
        cmd.extend(["-c", str(packet_count)])
    if output_file is not None:
        cmd.extend(["-w", str(output_file)])

    # Filter must be last (no -f)
    if expression:
        cmd.extend(expression.split())

    logger.debug("Capture command: %s", shlex.join(cmd))
    return cmd
