"""Network interface descriptions for the capture form"""

from __future__ import annotations

import socket
from typing import Dict

import psutil


def _first_address(addrs: list, family: int) -> str | None:
    for addr in addrs:
        if addr.family == family and addr.address:
            return addr.address
    return None


def describe_interface(name: str) -> str:
    """
    Build a human-readable description of a network interface.
    
    Args:
        name: Interface name, e.g. "eth0"
        
    Returns:
        Description like "eth0 (up, 1000 Mbit/s, MTU 1500, 192.168.1.2)"

    Raises:
        KeyError: If the interface does not exist
    """
    net_if_addrs = psutil.net_if_addrs()
    net_if_stats = psutil.net_if_stats()
    if name not in net_if_addrs and name not in net_if_stats:
        raise KeyError(name)

    details = []
    stats = net_if_stats.get(name)
    if stats is not None:
        details.append("up" if stats.isup else "down")
        if stats.speed:
            details.append(f"{stats.speed} Mbit/s")
        if stats.mtu:
            details.append(f"MTU {stats.mtu}")

    addrs = net_if_addrs.get(name) or []
    for family in (socket.AF_INET, socket.AF_INET6):
        address = _first_address(addrs, family)
        if address:
            details.append(address)

    return f"{name} ({', '.join(details)})" if details else name


def list_interface_descriptions() -> Dict[str, str]:
    """Describe every interface known to the system, sorted by name."""
    names = set(psutil.net_if_addrs()) | set(psutil.net_if_stats())
    return {name: describe_interface(name) for name in sorted(names)}
