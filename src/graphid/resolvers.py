"""Per-attribute normalisation applied before an identity key is hashed.

Every resolver is a coroutine function ``(value, context) -> value | None``.
Pure transforms are written as plain functions and wrapped with
:func:`pure_resolver`; cross-reference resolvers await the entity resolution
service. ``None`` means the attribute is absent and is dropped from the
identity key; it is never an error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional, Protocol

from pydantic import TypeAdapter

from .constants import PLATFORM_UUID
from .errors import IdentifierError, LookupFailureError

logger = logging.getLogger(__name__)

HASH_PRIORITY = ("SHA-256", "SHA-512", "SHA-1", "MD5")

_DATETIME = TypeAdapter(datetime)
# Sub-microsecond digits carry nothing the millisecond form keeps.
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


@dataclass(frozen=True, slots=True)
class ResolvedEntity:
    """Subset of a stored entity needed to substitute a cross-reference."""

    id: str
    standard_id: str
    entity_type: Optional[str] = None


class EntityResolutionService(Protocol):
    """Lookup of stored entities by their internal identifier."""

    async def lookup_by_id(self, entity_id: str) -> Optional[ResolvedEntity]:
        ...


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """Collaborators available to resolvers during one generation call."""

    entity_resolver: Optional[EntityResolutionService] = None
    lookup_timeout: Optional[float] = None


Resolver = Callable[[Any, ResolutionContext], Awaitable[Any]]


def pure_resolver(func: Callable[[Any], Any]) -> Resolver:
    """Lift a synchronous transform into the resolver signature."""

    async def resolve(value: Any, context: ResolutionContext) -> Any:  # noqa: ARG001 - uniform signature
        return func(value)

    resolve.__name__ = func.__name__
    resolve.__doc__ = func.__doc__
    return resolve


def lowercase_name(value: Any) -> Optional[str]:
    """Case-fold names so differently cased inputs converge."""

    if not isinstance(value, str):
        logger.debug("Dropping non-string name of type %s", type(value).__name__)
        return None
    return value.lower()


def format_timestamp(value: Any) -> Optional[str]:
    """Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        text = _EXCESS_FRACTION.sub(r"\1", text)
        try:
            value = _DATETIME.validate_python(text)
        except ValueError:
            logger.debug("Dropping unparseable timestamp %r", value)
            return None
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def preferred_hash(value: Any) -> Optional[Dict[str, str]]:
    """Keep only the strongest digest of a hash collection."""

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            logger.debug("Dropping unparseable hash collection")
            return None
    if not isinstance(value, Mapping):
        return None
    for algorithm in HASH_PRIORITY:
        digest = value.get(algorithm)
        if digest:
            return {algorithm: digest}
    return None


def platform_identity(value: Any) -> str:  # noqa: ARG001 - value is irrelevant for the singleton
    return str(PLATFORM_UUID)


async def resolve_reference(value: Any, context: ResolutionContext) -> str:
    """Substitute a reference to another entity with that entity's standard id."""

    reference = str(value)
    service = context.entity_resolver
    if service is None:
        raise LookupFailureError(reference, "no entity resolution service configured")

    try:
        lookup = service.lookup_by_id(reference)
        if context.lookup_timeout is not None:
            entity = await asyncio.wait_for(lookup, timeout=context.lookup_timeout)
        else:
            entity = await lookup
    except asyncio.TimeoutError as exc:
        raise LookupFailureError(reference, f"lookup timed out after {context.lookup_timeout}s") from exc
    except IdentifierError:
        raise
    except Exception as exc:
        raise LookupFailureError(reference, str(exc) or type(exc).__name__) from exc

    if entity is None or not entity.standard_id:
        raise LookupFailureError(reference, "entity not found")
    return entity.standard_id


class ResolverSet(Mapping[str, Resolver]):
    """Immutable mapping from source attribute name to resolver."""

    def __init__(self, resolvers: Optional[Mapping[str, Resolver]] = None):
        self._resolvers: Dict[str, Resolver] = dict(resolvers or {})

    def __getitem__(self, name: str) -> Resolver:
        return self._resolvers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resolvers)

    def __len__(self) -> int:
        return len(self._resolvers)

    def with_overrides(self, **resolvers: Resolver) -> "ResolverSet":
        merged = dict(self._resolvers)
        merged.update(resolvers)
        return ResolverSet(merged)


def default_resolvers() -> ResolverSet:
    """Return the built-in resolvers keyed by source attribute."""

    return ResolverSet(
        {
            "from": resolve_reference,
            "src": resolve_reference,
            "dst": resolve_reference,
            "name": pure_resolver(lowercase_name),
            "opencti_platform": pure_resolver(platform_identity),
            "published": pure_resolver(format_timestamp),
            "hashes": pure_resolver(preferred_hash),
        }
    )


__all__ = [
    "EntityResolutionService",
    "HASH_PRIORITY",
    "ResolutionContext",
    "ResolvedEntity",
    "Resolver",
    "ResolverSet",
    "default_resolvers",
    "format_timestamp",
    "lowercase_name",
    "platform_identity",
    "preferred_hash",
    "pure_resolver",
    "resolve_reference",
]
