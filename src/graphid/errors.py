"""Errors raised while generating identifiers.

Every error is terminal for a single generation call: no partial or
placeholder identifier is ever returned.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple


class IdentifierError(Exception):
    """Base class for identifier generation failures."""


class UnknownTypeError(IdentifierError):
    """No contribution definition or classification exists for a type."""

    def __init__(self, type_tag: str, reason: Optional[str] = None) -> None:
        self.type_tag = type_tag
        message = f"Unknown definition for type {type_tag}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MissingAttributeError(IdentifierError):
    """Every contribution way produced an empty identity key."""

    def __init__(self, type_tag: str, attributes: Iterable[str] = ()) -> None:
        self.type_tag = type_tag
        self.attributes: Tuple[str, ...] = tuple(attributes)
        expected = ", ".join(self.attributes) or "none"
        super().__init__(f"Missing attribute to generate the ID of {type_tag} (expected one of: {expected})")


class LookupFailureError(IdentifierError):
    """A cross-reference could not be resolved to a stable identifier."""

    def __init__(self, reference: str, reason: Optional[str] = None) -> None:
        self.reference = reference
        message = f"Unable to resolve reference {reference}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CanonicalizationError(IdentifierError):
    """An identity key holds a value with no canonical encoding."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Cannot canonicalize identity key: {reason}")


class RegistryCoverageError(IdentifierError):
    """The contribution registry and the type classifier disagree."""

    def __init__(
        self,
        missing: Sequence[str] = (),
        unknown: Sequence[str] = (),
        unresolved: Sequence[str] = (),
    ) -> None:
        self.missing = tuple(sorted(missing))
        self.unknown = tuple(sorted(unknown))
        self.unresolved = tuple(sorted(unresolved))
        parts = []
        if self.missing:
            parts.append(f"no contribution definition for {', '.join(self.missing)}")
        if self.unknown:
            parts.append(f"unclassified registry types {', '.join(self.unknown)}")
        if self.unresolved:
            parts.append(f"unregistered resolvers {', '.join(self.unresolved)}")
        super().__init__("Contribution registry coverage mismatch: " + "; ".join(parts))


__all__ = [
    "CanonicalizationError",
    "IdentifierError",
    "LookupFailureError",
    "MissingAttributeError",
    "RegistryCoverageError",
    "UnknownTypeError",
]
