"""Lookup of running capture processes."""

from __future__ import annotations

import logging
import re
from typing import Dict, Union

import psutil

logger = logging.getLogger(__name__)


def find_processes(pattern: Union[str, "re.Pattern[str]"]) -> Dict[int, str]:
    """
    Find processes whose name or command line matches ``pattern``.

    Args:
        pattern: Regular expression searched in the process name and in the
            space joined command line

    Returns:
        Mapping of process id to command line (process name if the command
        line is not readable)
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    matches: Dict[int, str] = {}
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        try:
            info = proc.info
            name = info.get("name") or ""
            cmdline = " ".join(info.get("cmdline") or [])
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
            logger.debug("Skipping process during lookup: %s", exc)
            continue
        if regex.search(name) or (cmdline and regex.search(cmdline)):
            matches[info["pid"]] = cmdline or name
    return matches


def find_running_captures(binary: str = "tcpdump") -> Dict[int, str]:
    """Return running capture processes started from ``binary``."""
    return find_processes(rf"(^|[\s/]){re.escape(binary)}(\s|$)")
