"""Exceptions raised while building capture filters."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ValidationCode(str, Enum):
    """Reasons an attribute configuration is rejected."""
    INVALID_KIND = "InvalidKind"
    INVALID_SECTION = "InvalidSection"
    INVALID_OPERATOR = "InvalidOperator"
    INVALID_PRESET = "InvalidPreset"
    INVALID_UNTAGGED_SECTION_MATCH = "InvalidUntaggedSectionMatch"


class FilterError(Exception):
    """Base exception for filter compilation errors."""

    code = "FilterError"

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        """Extra fields reported to the caller alongside the message."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.code, **self.context()}


class FilterValidationError(FilterError):
    """Raised when a (section, operator, kind) combination is not allowed."""

    def __init__(
        self,
        code: ValidationCode,
        message: str,
        *,
        kind: Any = None,
        section: Any = None,
        operator: Any = None,
    ):
        super().__init__(message)
        self.code = code.value
        self.validation_code = code
        self.kind = kind
        self.section = section
        self.operator = operator

    def context(self) -> dict[str, Any]:
        return {
            "kind": _plain(self.kind),
            "section": _plain(self.section),
            "operator": _plain(self.operator),
        }


class InputFormatError(FilterError):
    """Raised when a token does not fit the grammar of its attribute kind."""

    code = "InvalidInput"

    def __init__(self, kind: Any, token: str, reason: str, section: Any = None):
        super().__init__(f"Invalid {_plain(kind)} input '{token}': {reason}")
        self.kind = kind
        self.token = token
        self.reason = reason
        self.section = section

    def context(self) -> dict[str, Any]:
        return {
            "kind": _plain(self.kind),
            "token": self.token,
            "reason": self.reason,
            "section": _plain(self.section),
        }


class ComposeError(FilterError):
    """Raised when section results cannot be merged into one expression."""

    code = "ComposeError"

    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class AllPacketsExcludedError(ComposeError):
    """The resolved section policy would not let any packet through."""

    code = "AllPacketsExcluded"

    def __init__(self, offset: Optional[int] = None):
        super().__init__("Filter excludes every packet: no tagging section is left to capture")
        self.offset = offset

    def context(self) -> dict[str, Any]:
        return {"section": self.offset}


class InvalidCaptureRequestError(FilterError):
    """Raised when a capture command cannot be built from the given values."""

    code = "InvalidCaptureRequest"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name if isinstance(value.value, int) else value.value
    return value
