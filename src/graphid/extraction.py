"""Build the identity key of an entity from its raw attributes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from .errors import MissingAttributeError
from .registry import ContributionPolicy, ContributionRegistry, ContributionWay
from .resolvers import ResolutionContext, ResolverSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExtractedKey:
    """Outcome of key extraction for one entity."""

    policy: ContributionPolicy
    identity: Dict[str, Any] = field(default_factory=dict)
    constant_value: Optional[UUID] = None
    way_index: Optional[int] = None

    @property
    def is_random(self) -> bool:
        return self.policy is ContributionPolicy.RANDOM

    @property
    def is_constant(self) -> bool:
        return self.policy is ContributionPolicy.CONSTANT


def is_empty(value: Any) -> bool:
    """``None`` and empty strings or containers carry no identity; ``0`` and ``False`` do."""

    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    if isinstance(value, Mapping):
        return len(value) == 0
    return False


class KeyExtractor:
    """Select a contribution way and resolve its attributes."""

    def __init__(self, registry: ContributionRegistry, resolvers: ResolverSet):
        self.registry = registry
        self.resolvers = resolvers

    async def extract(
        self,
        type_tag: str,
        data: Mapping[str, Any],
        context: Optional[ResolutionContext] = None,
    ) -> ExtractedKey:
        definition = self.registry.lookup(type_tag)
        if definition.policy is ContributionPolicy.CONSTANT:
            return ExtractedKey(ContributionPolicy.CONSTANT, constant_value=definition.constant_value)
        if definition.policy is ContributionPolicy.RANDOM:
            return ExtractedKey(ContributionPolicy.RANDOM)

        context = context or ResolutionContext()
        for index, way in enumerate(definition.ways):
            identity = await self._contribute(way, data, context)
            if identity:
                logger.debug("Identity of %s built from way %d: %s", type_tag, index, sorted(identity))
                return ExtractedKey(ContributionPolicy.WAYS, identity=identity, way_index=index)
        raise MissingAttributeError(type_tag, definition.attributes)

    async def _contribute(
        self,
        way: ContributionWay,
        data: Mapping[str, Any],
        context: ResolutionContext,
    ) -> Dict[str, Any]:
        identity: Dict[str, Any] = {}
        for contribution in way:
            if contribution.src not in data:
                continue
            value = data[contribution.src]
            if value is None:
                continue
            resolver = self.resolvers.get(contribution.resolver_name)
            if resolver is not None:
                value = await resolver(value, context)
            if is_empty(value):
                logger.debug("Dropping empty attribute %s", contribution.src)
                continue
            identity[contribution.key] = value
        return identity


__all__ = ["ExtractedKey", "KeyExtractor", "is_empty"]
