"""Type tags and their classification into categories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Protocol, runtime_checkable

from .constants import (
    CORE_RELATIONSHIP_PREFIX,
    INTERNAL_RELATIONSHIP_PREFIX,
    META_RELATIONSHIP_PREFIX,
    SIGHTING_RELATIONSHIP_PREFIX,
)

logger = logging.getLogger(__name__)

# Platform internal objects
ENTITY_TYPE_CAPABILITY = "Capability"
ENTITY_TYPE_CONNECTOR = "Connector"
ENTITY_TYPE_ROLE = "Role"
ENTITY_TYPE_GROUP = "Group"
ENTITY_TYPE_USER = "User"
ENTITY_TYPE_TOKEN = "Token"
ENTITY_TYPE_WORKSPACE = "Workspace"
ENTITY_TYPE_SETTINGS = "Settings"

# Standards domain objects
ENTITY_TYPE_CONTAINER_REPORT = "Report"
ENTITY_TYPE_INDICATOR = "Indicator"
ENTITY_TYPE_ATTACK_PATTERN = "Attack-Pattern"

# Standards meta objects
ENTITY_TYPE_MARKING_DEFINITION = "Marking-Definition"
ENTITY_TYPE_LABEL = "Label"
ENTITY_TYPE_KILL_CHAIN_PHASE = "Kill-Chain-Phase"
ENTITY_TYPE_EXTERNAL_REFERENCE = "External-Reference"

# Standards observables
ENTITY_AUTONOMOUS_SYSTEM = "Autonomous-System"
ENTITY_DIRECTORY = "Directory"
ENTITY_DOMAIN_NAME = "Domain-Name"
ENTITY_EMAIL_ADDR = "Email-Addr"
ENTITY_EMAIL_MESSAGE = "Email-Message"
ENTITY_HASHED_OBSERVABLE_ARTIFACT = "Artifact"
ENTITY_HASHED_OBSERVABLE_STIX_FILE = "StixFile"
ENTITY_HASHED_OBSERVABLE_X509_CERTIFICATE = "X509-Certificate"
ENTITY_IPV4_ADDR = "IPv4-Addr"
ENTITY_IPV6_ADDR = "IPv6-Addr"
ENTITY_MAC_ADDR = "Mac-Addr"
ENTITY_MUTEX = "Mutex"
ENTITY_NETWORK_TRAFFIC = "Network-Traffic"
ENTITY_PROCESS = "Process"
ENTITY_SOFTWARE = "Software"
ENTITY_URL = "Url"
ENTITY_USER_ACCOUNT = "User-Account"
ENTITY_WINDOWS_REGISTRY_KEY = "Windows-Registry-Key"
ENTITY_X_OPENCTI_CRYPTOGRAPHIC_KEY = "X-OpenCTI-Cryptographic-Key"
ENTITY_X_OPENCTI_CRYPTOGRAPHIC_WALLET = "X-OpenCTI-Cryptographic-Wallet"
ENTITY_X_OPENCTI_HOSTNAME = "X-OpenCTI-Hostname"
ENTITY_X_OPENCTI_TEXT = "X-OpenCTI-Text"
ENTITY_X_OPENCTI_USER_AGENT = "X-OpenCTI-User-Agent"

# Relationships
RELATION_MIGRATES = "migrates"
RELATION_MEMBER_OF = "member-of"
RELATION_ALLOWED_BY = "allowed-by"
RELATION_HAS_ROLE = "has-role"
RELATION_HAS_CAPABILITY = "has-capability"
RELATION_AUTHORIZED_BY = "authorized-by"

RELATION_USES = "uses"
RELATION_TARGETS = "targets"
RELATION_INDICATES = "indicates"
RELATION_RELATED_TO = "related-to"
RELATION_ATTRIBUTED_TO = "attributed-to"
RELATION_MITIGATES = "mitigates"
RELATION_DERIVED_FROM = "derived-from"
RELATION_DUPLICATE_OF = "duplicate-of"
RELATION_BASED_ON = "based-on"

RELATION_CREATED_BY = "created-by"
RELATION_OBJECT_MARKING = "object-marking"
RELATION_OBJECT = "object"
RELATION_EXTERNAL_REFERENCE = "external-reference"
RELATION_KILL_CHAIN_PHASE = "kill-chain-phase"
RELATION_OBJECT_LABEL = "object-label"

STIX_SIGHTING_RELATIONSHIP = "stix-sighting-relationship"


class TypeCategory(Enum):
    """Closed set of categories every type tag belongs to."""

    STANDARDS_DOMAIN = "standards-domain"
    STANDARDS_META = "standards-meta"
    STANDARDS_OBSERVABLE = "standards-observable"
    PLATFORM_INTERNAL = "platform-internal"
    INTERNAL_RELATIONSHIP = "internal-relationship"
    CORE_RELATIONSHIP = "core-relationship"
    META_RELATIONSHIP = "meta-relationship"
    SIGHTING_RELATIONSHIP = "sighting-relationship"

    @property
    def is_relationship(self) -> bool:
        return self in _RELATIONSHIP_PREFIXES

    @property
    def is_standards(self) -> bool:
        return self in (
            TypeCategory.STANDARDS_DOMAIN,
            TypeCategory.STANDARDS_META,
            TypeCategory.STANDARDS_OBSERVABLE,
        )


_RELATIONSHIP_PREFIXES: Dict[TypeCategory, str] = {
    TypeCategory.INTERNAL_RELATIONSHIP: INTERNAL_RELATIONSHIP_PREFIX,
    TypeCategory.CORE_RELATIONSHIP: CORE_RELATIONSHIP_PREFIX,
    TypeCategory.META_RELATIONSHIP: META_RELATIONSHIP_PREFIX,
    TypeCategory.SIGHTING_RELATIONSHIP: SIGHTING_RELATIONSHIP_PREFIX,
}


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Classification of a single type tag, resolved once and reused."""

    type_tag: str
    category: TypeCategory
    type_token: str

    @property
    def is_relationship(self) -> bool:
        return self.category.is_relationship


def convert_type_to_token(type_tag: str) -> str:
    """Return the identifier prefix used for an entity type."""

    if type_tag == ENTITY_HASHED_OBSERVABLE_STIX_FILE:
        return "file"
    return type_tag.lower()


@runtime_checkable
class TypeClassifier(Protocol):
    """Category lookup for type tags."""

    def describe(self, type_tag: str) -> Optional[TypeDescriptor]:
        ...

    def entity_types(self) -> Iterable[str]:
        ...

    def type_token(self, type_tag: str) -> Optional[str]:
        ...

    def is_standards_domain(self, type_tag: str) -> bool:
        ...

    def is_standards_meta(self, type_tag: str) -> bool:
        ...

    def is_standards_observable(self, type_tag: str) -> bool:
        ...

    def is_platform_internal(self, type_tag: str) -> bool:
        ...

    def is_internal_relationship(self, type_tag: str) -> bool:
        ...

    def is_core_relationship(self, type_tag: str) -> bool:
        ...

    def is_meta_relationship(self, type_tag: str) -> bool:
        ...

    def is_sighting_relationship(self, type_tag: str) -> bool:
        ...


class StaticTypeClassifier:
    """Classifier backed by a fixed ``type -> category`` table.

    Descriptors are built once at construction so per-call classification is a
    single dictionary lookup. The category predicates are kept for callers that
    still reason in terms of membership tests.
    """

    def __init__(self, categories: Dict[str, TypeCategory]):
        self._descriptors: Dict[str, TypeDescriptor] = {}
        for type_tag, category in categories.items():
            if category.is_relationship:
                token = _RELATIONSHIP_PREFIXES[category]
            else:
                token = convert_type_to_token(type_tag)
            self._descriptors[type_tag] = TypeDescriptor(type_tag, category, token)
        logger.debug("Classifier initialised with %d types", len(self._descriptors))

    def __contains__(self, type_tag: object) -> bool:
        return type_tag in self._descriptors

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(self._descriptors.values())

    def describe(self, type_tag: str) -> Optional[TypeDescriptor]:
        return self._descriptors.get(type_tag)

    def entity_types(self) -> Iterable[str]:
        return [
            descriptor.type_tag
            for descriptor in self._descriptors.values()
            if not descriptor.is_relationship
        ]

    def type_token(self, type_tag: str) -> Optional[str]:
        descriptor = self.describe(type_tag)
        return descriptor.type_token if descriptor else None

    def _is(self, type_tag: str, category: TypeCategory) -> bool:
        descriptor = self.describe(type_tag)
        return descriptor is not None and descriptor.category is category

    def is_standards_domain(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.STANDARDS_DOMAIN)

    def is_standards_meta(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.STANDARDS_META)

    def is_standards_observable(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.STANDARDS_OBSERVABLE)

    def is_platform_internal(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.PLATFORM_INTERNAL)

    def is_internal_relationship(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.INTERNAL_RELATIONSHIP)

    def is_core_relationship(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.CORE_RELATIONSHIP)

    def is_meta_relationship(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.META_RELATIONSHIP)

    def is_sighting_relationship(self, type_tag: str) -> bool:
        return self._is(type_tag, TypeCategory.SIGHTING_RELATIONSHIP)


def _categorise(types: Iterable[str], category: TypeCategory) -> Dict[str, TypeCategory]:
    return {type_tag: category for type_tag in types}


DEFAULT_CATEGORIES: Dict[str, TypeCategory] = {
    **_categorise(
        (
            ENTITY_TYPE_CAPABILITY,
            ENTITY_TYPE_CONNECTOR,
            ENTITY_TYPE_ROLE,
            ENTITY_TYPE_GROUP,
            ENTITY_TYPE_USER,
            ENTITY_TYPE_TOKEN,
            ENTITY_TYPE_WORKSPACE,
            ENTITY_TYPE_SETTINGS,
        ),
        TypeCategory.PLATFORM_INTERNAL,
    ),
    **_categorise(
        (ENTITY_TYPE_CONTAINER_REPORT, ENTITY_TYPE_INDICATOR, ENTITY_TYPE_ATTACK_PATTERN),
        TypeCategory.STANDARDS_DOMAIN,
    ),
    **_categorise(
        (
            ENTITY_TYPE_MARKING_DEFINITION,
            ENTITY_TYPE_LABEL,
            ENTITY_TYPE_KILL_CHAIN_PHASE,
            ENTITY_TYPE_EXTERNAL_REFERENCE,
        ),
        TypeCategory.STANDARDS_META,
    ),
    **_categorise(
        (
            ENTITY_AUTONOMOUS_SYSTEM,
            ENTITY_DIRECTORY,
            ENTITY_DOMAIN_NAME,
            ENTITY_EMAIL_ADDR,
            ENTITY_EMAIL_MESSAGE,
            ENTITY_HASHED_OBSERVABLE_ARTIFACT,
            ENTITY_HASHED_OBSERVABLE_STIX_FILE,
            ENTITY_HASHED_OBSERVABLE_X509_CERTIFICATE,
            ENTITY_IPV4_ADDR,
            ENTITY_IPV6_ADDR,
            ENTITY_MAC_ADDR,
            ENTITY_MUTEX,
            ENTITY_NETWORK_TRAFFIC,
            ENTITY_PROCESS,
            ENTITY_SOFTWARE,
            ENTITY_URL,
            ENTITY_USER_ACCOUNT,
            ENTITY_WINDOWS_REGISTRY_KEY,
            ENTITY_X_OPENCTI_CRYPTOGRAPHIC_KEY,
            ENTITY_X_OPENCTI_CRYPTOGRAPHIC_WALLET,
            ENTITY_X_OPENCTI_HOSTNAME,
            ENTITY_X_OPENCTI_TEXT,
            ENTITY_X_OPENCTI_USER_AGENT,
        ),
        TypeCategory.STANDARDS_OBSERVABLE,
    ),
    **_categorise(
        (
            RELATION_MIGRATES,
            RELATION_MEMBER_OF,
            RELATION_ALLOWED_BY,
            RELATION_HAS_ROLE,
            RELATION_HAS_CAPABILITY,
            RELATION_AUTHORIZED_BY,
        ),
        TypeCategory.INTERNAL_RELATIONSHIP,
    ),
    **_categorise(
        (
            RELATION_USES,
            RELATION_TARGETS,
            RELATION_INDICATES,
            RELATION_RELATED_TO,
            RELATION_ATTRIBUTED_TO,
            RELATION_MITIGATES,
            RELATION_DERIVED_FROM,
            RELATION_DUPLICATE_OF,
            RELATION_BASED_ON,
        ),
        TypeCategory.CORE_RELATIONSHIP,
    ),
    **_categorise(
        (
            RELATION_CREATED_BY,
            RELATION_OBJECT_MARKING,
            RELATION_OBJECT,
            RELATION_EXTERNAL_REFERENCE,
            RELATION_KILL_CHAIN_PHASE,
            RELATION_OBJECT_LABEL,
        ),
        TypeCategory.META_RELATIONSHIP,
    ),
    STIX_SIGHTING_RELATIONSHIP: TypeCategory.SIGHTING_RELATIONSHIP,
}


def default_classifier() -> StaticTypeClassifier:
    """Return a classifier covering every built-in type."""

    return StaticTypeClassifier(DEFAULT_CATEGORIES)


__all__ = [
    "DEFAULT_CATEGORIES",
    "StaticTypeClassifier",
    "TypeCategory",
    "TypeClassifier",
    "TypeDescriptor",
    "convert_type_to_token",
    "default_classifier",
]
