"""Capture filter attribute validation and compilation."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional

from services.agent.filter_errors import (
    FilterValidationError,
    InputFormatError,
    ValidationCode,
)
from services.agent.filter_models import (
    SECTION_OFFSETS,
    AttributeConfig,
    AttributeKind,
    MatchOperator,
    Operator,
    PresetKind,
    TaggingSection,
    coerce_enum,
)
from services.agent.validators import (
    AddressValidator,
    DefaultAddressValidator,
    DefaultPortValidator,
    PortValidator,
)

logger = logging.getLogger(__name__)


# ================================================================================
# Constants
# ================================================================================

VLAN_ID_MAX = 4095

# Byte offset of the tag control information for each tagged section
VLAN_TCI_OFFSETS = {
    TaggingSection.SINGLE_TAGGED: 14,
    TaggingSection.DOUBLE_TAGGED: 18,
}

ETHERTYPE_NAMES = {
    "ipv4": "ip",
    "ipv6": "ip6",
    "arp": "arp",
}

# 802.1Q / 802.1ad are expressed through tagging sections
RESERVED_ETHERTYPES = frozenset({"8100", "88a8"})

_ETHERTYPE_HEX_RE = re.compile(r"^(?:0x)?([0-9a-f]{4})$")

PROTOCOL_NAMES = {
    "icmp": "icmp",
    "icmp6": "icmp6",
    "tcp": "tcp",
    "udp": "udp",
    # ESP or NAT-T encapsulated ESP
    "ipsec": "(proto esp or udp port 4500)",
    "carp": "proto 112",
    "ospf": "proto 89",
    "pfsync": "proto 240",
}

PROTOCOL_NUMBER_MAX = 255

ORDINARY_KINDS = (
    AttributeKind.VLAN,
    AttributeKind.ETHERTYPE,
    AttributeKind.PROTOCOL,
    AttributeKind.IP_ADDRESS,
    AttributeKind.MAC_ADDRESS,
    AttributeKind.PORT,
)

_ORDINARY_OPERATORS = {
    MatchOperator.ATTRIBUTE_EXCLUDE_EACH: AttributeConfig(excluded=True, required=True),
    MatchOperator.REQUIRE_ALL: AttributeConfig(required=True),
    MatchOperator.OPTIONAL_ANY: AttributeConfig(),
}

_SECTION_EXCLUSION = AttributeConfig(excluded=True, required=True, excludes_section=True)

_SECTION_MATCH_OPERATORS = {
    MatchOperator.SECTION_EXCLUDE_ALL: _SECTION_EXCLUSION,
    MatchOperator.ATTRIBUTE_EXCLUDE_EACH: _SECTION_EXCLUSION,
    MatchOperator.REQUIRE_ALL: AttributeConfig(required=True),
    MatchOperator.OPTIONAL_ANY: AttributeConfig(),
}

# A packet is either tagged or untagged, so the untagged section can only be
# dropped or optionally included
_UNTAGGED_SECTION_MATCH_OPERATORS = (
    MatchOperator.SECTION_EXCLUDE_ALL,
    MatchOperator.OPTIONAL_ANY,
)

_PRESET_SECTION_PRESETS = (PresetKind.ANY, PresetKind.UNTAGGED_ONLY, PresetKind.TAGGED_ONLY)


# ================================================================================
# Validation Table
# ================================================================================

ValidationKey = tuple[AttributeKind, TaggingSection, Operator]


def _build_validation_table() -> dict[ValidationKey, AttributeConfig]:
    table: dict[ValidationKey, AttributeConfig] = {}

    for section in TaggingSection:
        presets = _PRESET_SECTION_PRESETS if section is TaggingSection.PRESET else tuple(PresetKind)
        for preset in presets:
            table[(AttributeKind.PRESET, section, preset)] = AttributeConfig()

    for section in SECTION_OFFSETS:
        for operator, config in _SECTION_MATCH_OPERATORS.items():
            if section is TaggingSection.UNTAGGED and operator not in _UNTAGGED_SECTION_MATCH_OPERATORS:
                continue
            table[(AttributeKind.SECTION_MATCH, section, operator)] = config

        for kind in ORDINARY_KINDS:
            if kind is AttributeKind.VLAN and section not in VLAN_TCI_OFFSETS:
                continue
            for operator, config in _ORDINARY_OPERATORS.items():
                table[(kind, section, operator)] = config

    return table


VALIDATION_TABLE: dict[ValidationKey, AttributeConfig] = _build_validation_table()


def _rejection(kind: AttributeKind, section: TaggingSection, operator: Operator) -> tuple[ValidationCode, str]:
    """Explain why a (kind, section, operator) triple is missing from the table."""
    if kind is AttributeKind.PRESET:
        if section is TaggingSection.PRESET:
            return ValidationCode.INVALID_PRESET, "the preset section accepts only 'any', 'untagged' or 'tagged'"
        return ValidationCode.INVALID_PRESET, "preset attributes take a preset kind as operator"

    if not isinstance(operator, MatchOperator):
        return ValidationCode.INVALID_OPERATOR, f"{kind.value} attributes take a match operator"

    if kind is AttributeKind.SECTION_MATCH:
        if section is TaggingSection.UNTAGGED:
            return (
                ValidationCode.INVALID_UNTAGGED_SECTION_MATCH,
                "untagged packets can only be excluded or optionally included",
            )
        return ValidationCode.INVALID_SECTION, "section matches apply to untagged, single or double tagged sections"

    if operator is MatchOperator.SECTION_EXCLUDE_ALL:
        return ValidationCode.INVALID_OPERATOR, "whole-section exclusion is only valid for section matches"
    if kind is AttributeKind.VLAN:
        return ValidationCode.INVALID_SECTION, "VLAN ids only exist in single or double tagged sections"
    return ValidationCode.INVALID_SECTION, f"{kind.value} attributes cannot be placed in the preset section"


def resolve_configuration(kind: Any, section: Any, operator: Any) -> tuple[AttributeKind, TaggingSection, Operator, AttributeConfig]:
    """
    Validate an attribute configuration against the validation table.

    Args:
        kind: Attribute kind (member, value or name)
        section: Tagging section (member, value or name)
        operator: Match operator, or preset kind for preset attributes

    Returns:
        Tuple of the coerced kind, section, operator and the accepted config

    Raises:
        FilterValidationError: If any value is unknown or the combination is not allowed
    """
    kind_member = coerce_enum(AttributeKind, kind)
    if kind_member is None:
        raise FilterValidationError(
            ValidationCode.INVALID_KIND, f"Unknown attribute kind: {kind!r}",
            kind=kind, section=section, operator=operator,
        )
    section_member = coerce_enum(TaggingSection, section)
    if section_member is None:
        raise FilterValidationError(
            ValidationCode.INVALID_SECTION, f"Unknown tagging section: {section!r}",
            kind=kind_member, section=section, operator=operator,
        )

    if kind_member is AttributeKind.PRESET:
        operator_member: Optional[Operator] = coerce_enum(PresetKind, operator)
        unknown_code = ValidationCode.INVALID_PRESET
    else:
        operator_member = coerce_enum(MatchOperator, operator)
        unknown_code = ValidationCode.INVALID_OPERATOR
    if operator_member is None:
        raise FilterValidationError(
            unknown_code, f"Unknown operator for {kind_member.value} attribute: {operator!r}",
            kind=kind_member, section=section_member, operator=operator,
        )

    config = VALIDATION_TABLE.get((kind_member, section_member, operator_member))
    if config is None:
        code, reason = _rejection(kind_member, section_member, operator_member)
        raise FilterValidationError(
            code, f"Invalid {kind_member.value} attribute in {section_member.name.lower()} section: {reason}",
            kind=kind_member, section=section_member, operator=operator_member,
        )
    return kind_member, section_member, operator_member, config


# ================================================================================
# Term Builders
# ================================================================================

TermBuilder = Callable[["FilterAttribute", str], str]


def _vlan_term(attribute: FilterAttribute, token: str) -> str:
    if not token.isdecimal():
        raise attribute.input_error(token, "VLAN id must be a number")
    vlan_id = int(token)
    if vlan_id > VLAN_ID_MAX:
        raise attribute.input_error(token, f"VLAN id must be between 0 and {VLAN_ID_MAX}")
    offset = VLAN_TCI_OFFSETS[attribute.section]
    return f"ether[{offset}:2]=={vlan_id}"


def _ethertype_term(attribute: FilterAttribute, token: str) -> str:
    value = token.lower()
    if value in ETHERTYPE_NAMES:
        return ETHERTYPE_NAMES[value]
    m = _ETHERTYPE_HEX_RE.match(value)
    if not m:
        raise attribute.input_error(token, "expected ipv4, ipv6, arp or a 4 digit hex ethertype")
    code = m.group(1)
    if code in RESERVED_ETHERTYPES:
        raise attribute.input_error(token, "VLAN tagged traffic is selected with the tagging sections, not by ethertype")
    return f"ether proto 0x{code}"


def _protocol_term(attribute: FilterAttribute, token: str) -> str:
    value = token.lower()
    if value in PROTOCOL_NAMES:
        return PROTOCOL_NAMES[value]
    if not value.isdecimal():
        raise attribute.input_error(token, "unknown protocol name")
    number = int(value)
    if number > PROTOCOL_NUMBER_MAX:
        raise attribute.input_error(token, f"protocol number must be between 0 and {PROTOCOL_NUMBER_MAX}")
    return f"proto {number}"


def _ip_address_term(attribute: FilterAttribute, token: str) -> str:
    if "/" in token:
        network = attribute.address_validator.parse_subnet(token)
        if network is None:
            raise attribute.input_error(token, "not a valid subnet")
        return f"net {network}"
    address = attribute.address_validator.parse_ip_address(token)
    if address is None:
        raise attribute.input_error(token, "not a valid IP address")
    return f"host {address}"


def _mac_address_term(attribute: FilterAttribute, token: str) -> str:
    groups = attribute.address_validator.parse_mac_groups(token)
    if groups is None:
        raise attribute.input_error(token, "expected 1, 2, 4 or 6 colon separated hex groups")
    if len(groups) == 6:
        return f"ether host {':'.join(groups)}"
    width = len(groups)
    value = "".join(groups)
    return f"(ether[0:{width}]==0x{value} or ether[6:{width}]==0x{value})"


def _port_term(attribute: FilterAttribute, token: str) -> str:
    ports = attribute.port_validator.parse_port(token)
    if ports is None:
        raise attribute.input_error(token, "not a valid port or port range")
    low, high = ports
    if low == high:
        return f"port {low}"
    return f"portrange {low}-{high}"


TERM_BUILDERS: dict[AttributeKind, TermBuilder] = {
    AttributeKind.VLAN: _vlan_term,
    AttributeKind.ETHERTYPE: _ethertype_term,
    AttributeKind.PROTOCOL: _protocol_term,
    AttributeKind.IP_ADDRESS: _ip_address_term,
    AttributeKind.MAC_ADDRESS: _mac_address_term,
    AttributeKind.PORT: _port_term,
}


# ================================================================================
# Filter Attribute
# ================================================================================

class FilterAttribute:
    """
    One filter criterion of a capture filter specification.

    The configuration is validated on construction and the input is compiled
    into an expression fragment on ``set_input``. Afterwards the attribute is
    read-only.
    """

    def __init__(
        self,
        section: Any,
        operator: Any,
        kind: Any,
        *,
        address_validator: Optional[AddressValidator] = None,
        port_validator: Optional[PortValidator] = None,
    ) -> None:
        self.kind, self.section, self.operator, config = resolve_configuration(kind, section, operator)
        self.excluded = config.excluded
        self.required = config.required
        self.excludes_section = config.excludes_section
        self.address_validator = address_validator or DefaultAddressValidator()
        self.port_validator = port_validator or DefaultPortValidator()
        self.raw_input: Optional[str] = None
        self._fragment: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"FilterAttribute(kind={self.kind.value!r}, section={self.section.name}, "
            f"operator={self.operator.value!r}, fragment={self._fragment!r})"
        )

    @property
    def fragment(self) -> str:
        """Compiled expression fragment; empty until input is set or when nothing was entered."""
        return self._fragment or ""

    @property
    def compiled(self) -> bool:
        return self._fragment is not None

    @property
    def is_preset(self) -> bool:
        return self.kind is AttributeKind.PRESET

    def input_error(self, token: str, reason: str) -> InputFormatError:
        return InputFormatError(self.kind, token, reason, section=self.section)

    def set_input(self, text: Optional[str]) -> str:
        """
        Compile whitespace separated input into this attribute's fragment.

        Args:
            text: Raw input, e.g. ``"80 443"`` for a port attribute

        Returns:
            The compiled fragment (empty if the input holds no tokens)

        Raises:
            InputFormatError: If any token is invalid; no fragment is kept then
            RuntimeError: If input was already set
        """
        if self._fragment is not None:
            raise RuntimeError(f"Input for {self!r} was already set")

        raw = text or ""
        builder = TERM_BUILDERS.get(self.kind)
        terms = []
        if builder is not None:
            for token in raw.split():
                try:
                    terms.append(builder(self, token))
                except InputFormatError as exc:
                    logger.info("Rejected %s input %r: %s", self.kind.value, token, exc.reason)
                    raise

        if self.excluded:
            fragment = " and ".join(f"not {term}" for term in terms)
        else:
            fragment = " or ".join(terms)

        self.raw_input = raw
        self._fragment = fragment
        logger.debug("Compiled %r from input %r", self, raw)
        return fragment
