"""Contribution registry: which attributes define the identity of each type."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from . import schema as S
from .errors import RegistryCoverageError, UnknownTypeError
from .resolvers import ResolverSet
from .schema import TypeClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContributionField:
    """One source attribute of a contribution way.

    ``dest`` renames the attribute inside the identity key. ``resolver`` names
    the resolver to apply; when unset the resolver registered under ``src`` is
    used, if any.
    """

    src: str
    dest: Optional[str] = None
    resolver: Optional[str] = None

    @property
    def key(self) -> str:
        return self.dest or self.src

    @property
    def resolver_name(self) -> str:
        return self.resolver or self.src


ContributionWay = Tuple[ContributionField, ...]
FieldLike = Union[str, ContributionField]


class ContributionPolicy(Enum):
    RANDOM = "random"
    CONSTANT = "constant"
    WAYS = "ways"


def _as_field(item: FieldLike) -> ContributionField:
    return item if isinstance(item, ContributionField) else ContributionField(item)


@dataclass(frozen=True, slots=True)
class ContributionDefinition:
    """Identity rule of a single type."""

    policy: ContributionPolicy
    ways: Tuple[ContributionWay, ...] = ()
    constant_value: Optional[UUID] = None

    @classmethod
    def random(cls) -> "ContributionDefinition":
        """No identity attributes: every generation is random."""
        return cls(ContributionPolicy.RANDOM)

    @classmethod
    def fixed(cls, value: Union[str, UUID]) -> "ContributionDefinition":
        """Pre-assigned identity used verbatim instead of hashing."""
        return cls(ContributionPolicy.CONSTANT, constant_value=UUID(str(value)))

    @classmethod
    def single(cls, *fields: FieldLike) -> "ContributionDefinition":
        if not fields:
            raise ValueError("A contribution way needs at least one field; use random() instead")
        return cls(ContributionPolicy.WAYS, ways=(tuple(_as_field(item) for item in fields),))

    @classmethod
    def alternatives(cls, *ways: Iterable[FieldLike]) -> "ContributionDefinition":
        """Ways tried in declared order; the first non-empty one wins."""
        normalized = tuple(tuple(_as_field(item) for item in way) for way in ways)
        if not normalized or any(not way for way in normalized):
            raise ValueError("Alternative contribution ways must all declare at least one field")
        return cls(ContributionPolicy.WAYS, ways=normalized)

    @property
    def attributes(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for way in self.ways:
            for field in way:
                seen.setdefault(field.src, None)
        return tuple(seen)

    def describe(self) -> str:
        if self.policy is ContributionPolicy.RANDOM:
            return "random"
        if self.policy is ContributionPolicy.CONSTANT:
            return f"constant {self.constant_value}"
        return " | ".join(
            "[" + ", ".join(f"{f.src}->{f.dest}" if f.dest else f.src for f in way) + "]"
            for way in self.ways
        )


class ContributionRegistry:
    """Static ``type -> ContributionDefinition`` table."""

    def __init__(self, definitions: Mapping[str, ContributionDefinition]):
        self._definitions: Dict[str, ContributionDefinition] = dict(definitions)

    def __contains__(self, type_tag: object) -> bool:
        return type_tag in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def items(self) -> Iterable[Tuple[str, ContributionDefinition]]:
        return self._definitions.items()

    def lookup(self, type_tag: str) -> ContributionDefinition:
        try:
            return self._definitions[type_tag]
        except KeyError:
            raise UnknownTypeError(type_tag) from None

    def validate_coverage(self, classifier: TypeClassifier, resolvers: Optional[ResolverSet] = None) -> None:
        """Check the registry against the classifier and resolver set.

        Every entity type the classifier knows must own a definition, every
        registered type must be classifiable, and every explicitly named
        resolver must exist.
        """

        missing = [type_tag for type_tag in classifier.entity_types() if type_tag not in self._definitions]
        unknown = [type_tag for type_tag in self._definitions if classifier.describe(type_tag) is None]
        unresolved: List[str] = []
        if resolvers is not None:
            for definition in self._definitions.values():
                for way in definition.ways:
                    for field in way:
                        if field.resolver and field.resolver not in resolvers:
                            unresolved.append(field.resolver)
        if missing or unknown or unresolved:
            raise RegistryCoverageError(missing, unknown, sorted(set(unresolved)))
        logger.debug("Contribution registry covers %d types", len(self._definitions))


_random = ContributionDefinition.random
_single = ContributionDefinition.single
_alternatives = ContributionDefinition.alternatives

DEFAULT_DEFINITIONS: Dict[str, ContributionDefinition] = {
    # Internal
    S.ENTITY_TYPE_CAPABILITY: _single("name"),
    S.ENTITY_TYPE_CONNECTOR: _single("name"),
    S.ENTITY_TYPE_ROLE: _single("name"),
    S.ENTITY_TYPE_GROUP: _single("name"),
    S.ENTITY_TYPE_USER: _single("user_email"),
    S.ENTITY_TYPE_TOKEN: _single("uuid"),
    S.ENTITY_TYPE_WORKSPACE: _single("name", "workspace_type"),
    S.ENTITY_TYPE_SETTINGS: _single("opencti_platform"),
    # Standards domain
    S.ENTITY_TYPE_CONTAINER_REPORT: _single("name", "published"),
    S.ENTITY_TYPE_INDICATOR: _single("pattern"),
    S.ENTITY_TYPE_ATTACK_PATTERN: _single("name", "x_mitre_id"),
    # Standards meta
    S.ENTITY_TYPE_MARKING_DEFINITION: _single("definition", "definition_type"),
    S.ENTITY_TYPE_LABEL: _single("value"),
    S.ENTITY_TYPE_KILL_CHAIN_PHASE: _single("phase_name", "kill_chain_name"),
    S.ENTITY_TYPE_EXTERNAL_REFERENCE: _alternatives(["url"], ["source_name", "external_id"]),
    # Observables
    S.ENTITY_AUTONOMOUS_SYSTEM: _single("number"),
    S.ENTITY_EMAIL_MESSAGE: _single(ContributionField("from", dest="from_ref"), "subject", "body"),
    S.ENTITY_HASHED_OBSERVABLE_ARTIFACT: _single("hashes", "payload_bin"),
    S.ENTITY_HASHED_OBSERVABLE_STIX_FILE: _single("hashes", "name", "extensions"),
    S.ENTITY_HASHED_OBSERVABLE_X509_CERTIFICATE: _single("hashes", "serial_number"),
    S.ENTITY_DIRECTORY: _single("name"),
    S.ENTITY_DOMAIN_NAME: _single("name"),
    S.ENTITY_EMAIL_ADDR: _single("name"),
    S.ENTITY_IPV4_ADDR: _single("name"),
    S.ENTITY_IPV6_ADDR: _single("name"),
    S.ENTITY_MAC_ADDR: _single("name"),
    S.ENTITY_MUTEX: _single("name"),
    S.ENTITY_URL: _single("name"),
    S.ENTITY_X_OPENCTI_CRYPTOGRAPHIC_KEY: _single("name"),
    S.ENTITY_X_OPENCTI_CRYPTOGRAPHIC_WALLET: _single("name"),
    S.ENTITY_X_OPENCTI_HOSTNAME: _single("name"),
    S.ENTITY_X_OPENCTI_TEXT: _single("name"),
    S.ENTITY_X_OPENCTI_USER_AGENT: _single("name"),
    S.ENTITY_NETWORK_TRAFFIC: _single(
        "start",
        ContributionField("src", dest="src_ref"),
        ContributionField("dst", dest="dst_ref"),
        "src_port",
        "dst_port",
        "protocols",
    ),
    S.ENTITY_PROCESS: _random(),
    S.ENTITY_SOFTWARE: _single("name", "cpe", "vendor", "version"),
    S.ENTITY_USER_ACCOUNT: _single("account_type", "user_id", "account_login"),
    S.ENTITY_WINDOWS_REGISTRY_KEY: _single("key", "values"),
}


@lru_cache(maxsize=1)
def default_registry() -> ContributionRegistry:
    """Return the cached built-in contribution registry."""

    return ContributionRegistry(DEFAULT_DEFINITIONS)


__all__ = [
    "ContributionDefinition",
    "ContributionField",
    "ContributionPolicy",
    "ContributionRegistry",
    "ContributionWay",
    "DEFAULT_DEFINITIONS",
    "default_registry",
]
