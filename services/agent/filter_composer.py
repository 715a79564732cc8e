"""Merging of compiled filter attributes into one capture filter expression."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from services.agent.filter_builder import FilterAttribute
from services.agent.filter_errors import AllPacketsExcludedError
from services.agent.filter_models import (
    SECTION_OFFSETS,
    PresetKind,
    SectionResult,
)
from services.agent.validators import AddressValidator, PortValidator

logger = logging.getLogger(__name__)


# ================================================================================
# Constants
# ================================================================================

PRESET_EXPRESSIONS = {
    PresetKind.ANY: "",
    PresetKind.UNTAGGED_ONLY: "not vlan",
    PresetKind.TAGGED_ONLY: "vlan",
}

# Untagged frames, spelled out so that a later "vlan" keeps its offsets
# TODO: derive from the tagging ethertypes once QinQ 0x9100 is supported
UNTAGGED_ONLY_TERM = "not ether proto 0x8100 and not ether proto 0x88a8"

# Untagged or tagged, i.e. every packet
TAUTOLOGY = f"({UNTAGGED_ONLY_TERM}) or (vlan)"


# ================================================================================
# Section Assembly
# ================================================================================

@dataclass
class _SectionState:
    excluded: bool = False
    parts: list[str] = field(default_factory=list)

    def result(self, offset: int) -> SectionResult:
        return SectionResult(section=SECTION_OFFSETS[offset], excluded=self.excluded, fragment="".join(self.parts))


def assemble_sections(attributes: Iterable[FilterAttribute]) -> dict[int, SectionResult]:
    """
    Fold attribute fragments into one fragment per tagging section.

    Preset attributes are skipped. A section match that excludes its section
    discards whatever was built for that section and mutes the section's
    later attributes.

    Returns:
        Section results keyed by tagging offset, only for sections that have
        at least one attribute
    """
    states: dict[int, _SectionState] = {}
    for attribute in attributes:
        if attribute.is_preset:
            continue
        offset = int(attribute.section)
        state = states.setdefault(offset, _SectionState())
        if state.excluded:
            continue
        if attribute.excludes_section:
            state.excluded = True
            state.parts.clear()
            continue
        fragment = attribute.fragment
        if not fragment:
            continue
        if state.parts:
            state.parts.append(f" {'and' if attribute.required else 'or'} ")
        state.parts.append(f"({fragment})")

    results = {offset: states[offset].result(offset) for offset in sorted(states)}
    logger.debug("Assembled sections: %s", results)
    return results


# ================================================================================
# Expression Composition
# ================================================================================

@dataclass(frozen=True)
class Watermarks:
    """Highest offsets that are excluded, included and included with a filter."""
    last_excluded: int = -1
    last_included: int = -1
    last_filtered: int = -1


@dataclass(frozen=True)
class _Step:
    term: Optional[str] = None
    # Term already reads "vlan and (...)"
    tagged: bool = False
    # Require one more tag in front of the next term
    narrow: bool = False
    join_next: Optional[str] = None
    terminal: bool = False


def compute_watermarks(sections: Mapping[int, SectionResult]) -> Watermarks:
    last_excluded = last_included = last_filtered = -1
    for offset in reversed(range(len(SECTION_OFFSETS))):
        result = sections.get(offset)
        if result is None:
            continue
        if result.excluded:
            last_excluded = max(last_excluded, offset)
            continue
        last_included = max(last_included, offset)
        if result.filtered:
            last_filtered = max(last_filtered, offset)
    return Watermarks(last_excluded, last_included, last_filtered)


def _resolve(offset: int, result: Optional[SectionResult], marks: Watermarks) -> _Step:
    """Pick the term one tagging section contributes."""
    # Unmentioned sections below a mentioned one count as excluded
    if result is None or result.excluded:
        if marks.last_included > offset:
            if offset == 0:
                return _Step()
            return _Step(narrow=True)
        if offset == 0:
            # Nothing tagged left to capture once untagged is dropped
            raise AllPacketsExcludedError(offset)
        return _Step(term="not vlan", terminal=True)

    if not result.fragment:
        if offset == 0:
            if marks.last_included == 0:
                return _Step(term="not vlan", terminal=True)
            return _Step(term=UNTAGGED_ONLY_TERM, join_next="or")
        return _Step(term="vlan", terminal=max(marks.last_filtered, marks.last_excluded) <= offset)

    if offset == 0:
        return _Step(term=result.fragment)
    return _Step(term=f"vlan and ({result.fragment})", tagged=True)


def compose_expression(sections: Mapping[int, SectionResult], preset: Optional[PresetKind] = None) -> str:
    """
    Merge per-section fragments into the final capture filter expression.

    Args:
        sections: Section results keyed by tagging offset (0, 1, 2)
        preset: Preset overriding the sections, if any

    Returns:
        Filter expression; empty string captures every packet

    Raises:
        AllPacketsExcludedError: If no tagging section is left to capture
    """
    if preset is not None and preset is not PresetKind.CUSTOM:
        return PRESET_EXPRESSIONS[preset]
    if not sections:
        return ""

    marks = compute_watermarks(sections)
    expression = ""
    join_override: Optional[str] = None
    narrowing = 0

    for offset in range(max(sections) + 1):
        result = sections.get(offset)
        step = _resolve(offset, result, marks)
        if step.narrow:
            narrowing += 1
            continue
        if step.term is not None:
            text = step.term if step.tagged else f"({step.term})"
            compound = step.tagged or narrowing > 0
            if narrowing:
                text = " and ".join(["vlan"] * narrowing + [text])
                narrowing = 0
            if not expression:
                expression = text
            else:
                # A narrowed group ("vlan and ... and <term>") is judged by its
                # included last section, so it joins earlier terms with "or"
                # rather than "and" for the excluded sections it skipped
                excluded = result is None or result.excluded
                op = join_override or ("and" if excluded else "or")
                expression = f"{expression} {op} {f'({text})' if compound else text}"
            join_override = step.join_next
        if step.terminal:
            break

    if expression == TAUTOLOGY:
        expression = ""
    logger.debug("Composed expression %r (watermarks %s)", expression, marks)
    return expression


# ================================================================================
# Entry Points
# ================================================================================

def build_filter_expression(attributes: Sequence[FilterAttribute]) -> str:
    """Compose compiled attributes; the first preset attribute overrides all others."""
    preset = next((attribute for attribute in attributes if attribute.is_preset), None)
    if preset is not None:
        logger.debug("Preset %s found", preset.operator.value)
        if preset.operator is not PresetKind.CUSTOM:
            return compose_expression({}, preset.operator)
    return compose_expression(assemble_sections(attributes))


def compile_attributes(
    records: Iterable[Mapping[str, Any]],
    address_validator: Optional[AddressValidator] = None,
    port_validator: Optional[PortValidator] = None,
) -> list[FilterAttribute]:
    """
    Construct and compile one FilterAttribute per input record.

    Records hold ``section``, ``operator``, ``kind`` and ``input`` keys.
    """
    attributes = []
    for record in records:
        attribute = FilterAttribute(
            record.get("section"),
            record.get("operator"),
            record.get("kind"),
            address_validator=address_validator,
            port_validator=port_validator,
        )
        attribute.set_input(record.get("input"))
        attributes.append(attribute)
    return attributes


def build_filter_from_records(
    records: Iterable[Mapping[str, Any]],
    address_validator: Optional[AddressValidator] = None,
    port_validator: Optional[PortValidator] = None,
) -> str:
    return build_filter_expression(compile_attributes(records, address_validator, port_validator))
