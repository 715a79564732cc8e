"""Data models for capture filter attributes and tagging sections."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional, Type, TypeVar, Union


# ================================================================================
# Enums
# ================================================================================

class TaggingSection(IntEnum):
    """VLAN tag nesting depth a group of attributes applies to."""
    UNTAGGED = 0
    SINGLE_TAGGED = 1
    DOUBLE_TAGGED = 2
    PRESET = 9


class MatchOperator(str, Enum):
    """How the terms of one attribute (or one section) are matched."""
    SECTION_EXCLUDE_ALL = "none"
    ATTRIBUTE_EXCLUDE_EACH = "noneof"
    REQUIRE_ALL = "andanyof"
    OPTIONAL_ANY = "oranyof"


class PresetKind(str, Enum):
    """Canned whole-filter presets."""
    ANY = "any"
    UNTAGGED_ONLY = "untagged"
    TAGGED_ONLY = "tagged"
    CUSTOM = "custom"


class AttributeKind(str, Enum):
    """What an attribute matches on."""
    VLAN = "vlan"
    ETHERTYPE = "ethertype"
    PROTOCOL = "protocol"
    IP_ADDRESS = "ipaddress"
    MAC_ADDRESS = "macaddress"
    PORT = "port"
    PRESET = "preset"
    SECTION_MATCH = "sectionmatch"


# Tagging sections that take part in offset composition
SECTION_OFFSETS = (
    TaggingSection.UNTAGGED,
    TaggingSection.SINGLE_TAGGED,
    TaggingSection.DOUBLE_TAGGED,
)

Operator = Union[MatchOperator, PresetKind]

E = TypeVar("E", bound=Enum)


# ================================================================================
# Helper Functions
# ================================================================================

def coerce_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    """
    Resolve ``value`` to a member of ``enum_cls``.

    Accepts a member, a member value, or a member name (case insensitive,
    ``-``/``_``/spaces ignored so ``"Single-Tagged"`` works too).

    Returns:
        The enum member or None if nothing matches
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Enum):
        return None
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        pass
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if isinstance(member.value, str) and member.value == wanted:
                return member
            if member.name.replace("_", "").lower() == wanted.replace("-", "").replace("_", "").replace(" ", ""):
                return member
        if wanted.isdecimal():
            return coerce_enum(enum_cls, int(wanted))
    return None


# ================================================================================
# Dataclasses
# ================================================================================

@dataclass(frozen=True)
class AttributeConfig:
    """Accepted (kind, section, operator) configuration."""
    excluded: bool = False
    required: bool = False
    # Section match that drops the whole tagging section
    excludes_section: bool = False


@dataclass(frozen=True)
class SectionResult:
    """Assembled filter for one tagging section."""
    section: TaggingSection
    excluded: bool = False
    fragment: str = ""

    @property
    def filtered(self) -> bool:
        return not self.excluded and bool(self.fragment)
