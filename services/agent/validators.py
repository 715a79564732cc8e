"""Address and port validation used by the filter attribute compiler."""

from __future__ import annotations

import ipaddress
import re
from typing import Optional, Protocol, Union

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_MAC_GROUP_RE = re.compile(r"^[0-9a-fA-F]{1,2}$")
_PORT_RANGE_RE = re.compile(r"^(\d+)[:-](\d+)$")

# Group counts that map to a BPF load width (1, 2, 4 bytes) or a full address
MAC_GROUP_COUNTS = (1, 2, 4, 6)

PORT_MIN = 1
PORT_MAX = 65535


class AddressValidator(Protocol):
    """Capability interface for IP, subnet and MAC address checks."""

    def parse_ip_address(self, value: str) -> Optional[str]: ...

    def parse_subnet(self, value: str) -> Optional[IPNetwork]: ...

    def parse_mac_groups(self, value: str) -> Optional[tuple[str, ...]]: ...


class PortValidator(Protocol):
    """Capability interface for port and port range checks."""

    def parse_port(self, value: str) -> Optional[tuple[int, int]]: ...


class DefaultAddressValidator:
    """AddressValidator backed by the ``ipaddress`` module."""

    def parse_ip_address(self, value: str) -> Optional[str]:
        """Return the normalized address or None if ``value`` is not one."""
        try:
            return str(ipaddress.ip_address(value))
        except ValueError:
            return None

    def parse_subnet(self, value: str) -> Optional[IPNetwork]:
        """
        Parse ``<address>/<cidr>`` into its network.

        Host bits are masked off (``10.1.2.3/8`` -> ``10.0.0.0/8``).
        """
        address, sep, prefix = value.partition("/")
        if not sep or not prefix.isdecimal():
            return None
        cidr = int(prefix)
        if not 0 <= cidr <= 128:
            return None
        try:
            return ipaddress.ip_network(f"{address}/{cidr}", strict=False)
        except ValueError:
            return None

    def parse_mac_groups(self, value: str) -> Optional[tuple[str, ...]]:
        """
        Split a full or partial MAC address into zero padded hex groups.

        Returns:
            Lowercase two-digit groups, or None if the input is malformed
        """
        groups = value.split(":")
        if len(groups) not in MAC_GROUP_COUNTS:
            return None
        if not all(_MAC_GROUP_RE.match(group) for group in groups):
            return None
        return tuple(group.lower().zfill(2) for group in groups)


class DefaultPortValidator:
    """PortValidator accepting ``<port>`` or ``<low>-<high>`` / ``<low>:<high>``."""

    def parse_port(self, value: str) -> Optional[tuple[int, int]]:
        if value.isdecimal():
            port = int(value)
            if PORT_MIN <= port <= PORT_MAX:
                return port, port
            return None
        m = _PORT_RANGE_RE.match(value)
        if not m:
            return None
        low, high = int(m.group(1)), int(m.group(2))
        if PORT_MIN <= low <= high <= PORT_MAX:
            return low, high
        return None
