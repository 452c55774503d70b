"""Namespace-scoped hashing and identifier assembly."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4, uuid5

from .canonical import canonicalize
from .config import IdentifierSettings, get_settings
from .constants import IDENTIFIER_SEPARATOR, PLATFORM_NAMESPACE, STANDARDS_NAMESPACE
from .errors import UnknownTypeError
from .extraction import KeyExtractor
from .registry import ContributionRegistry, default_registry
from .resolvers import EntityResolutionService, ResolutionContext, ResolverSet, default_resolvers
from .schema import TypeCategory, TypeClassifier, TypeDescriptor, default_classifier

logger = logging.getLogger(__name__)


def namespace_uuid(identity: Mapping[str, Any], namespace: UUID) -> UUID:
    """Derive a name-based UUID from an identity key.

    An empty identity has nothing to hash, so a random UUID is returned.
    """

    if not identity:
        return uuid4()
    return uuid5(namespace, canonicalize(identity).decode("utf-8"))


def generate_internal_id() -> str:
    return str(uuid4())


def namespace_for(category: TypeCategory) -> UUID:
    if category.is_standards:
        return STANDARDS_NAMESPACE
    if category is TypeCategory.PLATFORM_INTERNAL:
        return PLATFORM_NAMESPACE
    raise ValueError(f"{category.value} identifiers are never content-derived")


class IdentifierGenerator:
    """Generate ``<type-token>--<uuid>`` identifiers.

    The registry is checked against the classifier when the generator is
    built, so a misconfigured deployment fails at startup rather than on the
    first entity of an uncovered type.
    """

    def __init__(
        self,
        registry: Optional[ContributionRegistry] = None,
        classifier: Optional[TypeClassifier] = None,
        resolvers: Optional[ResolverSet] = None,
        *,
        entity_resolver: Optional[EntityResolutionService] = None,
        settings: Optional[IdentifierSettings] = None,
    ):
        self.registry = registry or default_registry()
        self.classifier = classifier or default_classifier()
        self.resolvers = resolvers if resolvers is not None else default_resolvers()
        self.entity_resolver = entity_resolver
        self.settings = settings or get_settings()
        self.registry.validate_coverage(self.classifier, self.resolvers)
        self.extractor = KeyExtractor(self.registry, self.resolvers)

    def describe(self, type_tag: str) -> TypeDescriptor:
        descriptor = self.classifier.describe(type_tag)
        if descriptor is None:
            raise UnknownTypeError(type_tag, "type cannot be classified")
        return descriptor

    def _context(self, entity_resolver: Optional[EntityResolutionService]) -> ResolutionContext:
        return ResolutionContext(
            entity_resolver=entity_resolver or self.entity_resolver,
            lookup_timeout=self.settings.lookup_timeout_seconds,
        )

    async def generate_uuid(
        self,
        type_tag: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        namespace: UUID,
        entity_resolver: Optional[EntityResolutionService] = None,
    ) -> UUID:
        key = await self.extractor.extract(type_tag, data or {}, self._context(entity_resolver))
        if key.is_constant:
            return key.constant_value
        if key.is_random:
            return uuid4()
        return namespace_uuid(key.identity, namespace)

    async def generate(
        self,
        type_tag: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        entity_resolver: Optional[EntityResolutionService] = None,
    ) -> str:
        """Return the standard identifier of an entity or relationship."""

        descriptor = self.describe(type_tag)
        if descriptor.is_relationship:
            return f"{descriptor.type_token}{IDENTIFIER_SEPARATOR}{generate_internal_id()}"

        value = await self.generate_uuid(
            type_tag,
            data,
            namespace=namespace_for(descriptor.category),
            entity_resolver=entity_resolver,
        )
        identifier = f"{descriptor.type_token}{IDENTIFIER_SEPARATOR}{value}"
        logger.debug("Generated %s for %s", identifier, type_tag)
        return identifier

    def generate_sync(
        self,
        type_tag: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        entity_resolver: Optional[EntityResolutionService] = None,
    ) -> str:
        """Blocking variant of :meth:`generate` for callers without an event loop."""

        return asyncio.run(self.generate(type_tag, data, entity_resolver=entity_resolver))


@lru_cache(maxsize=1)
def default_generator() -> IdentifierGenerator:
    """Return a cached generator over the built-in registry and classifier."""

    return IdentifierGenerator()


async def generate_standard_id(
    type_tag: str,
    data: Optional[Mapping[str, Any]] = None,
    *,
    entity_resolver: Optional[EntityResolutionService] = None,
) -> str:
    return await default_generator().generate(type_tag, data, entity_resolver=entity_resolver)


__all__ = [
    "IdentifierGenerator",
    "default_generator",
    "generate_internal_id",
    "generate_standard_id",
    "namespace_for",
    "namespace_uuid",
]
