"""
Content-addressable identifiers for knowledge graph entities.
"""

from .canonical import canonicalize
from .errors import (
    CanonicalizationError,
    IdentifierError,
    LookupFailureError,
    MissingAttributeError,
    RegistryCoverageError,
    UnknownTypeError,
)
from .extraction import ExtractedKey, KeyExtractor
from .generator import (
    IdentifierGenerator,
    default_generator,
    generate_internal_id,
    generate_standard_id,
    namespace_uuid,
)
from .registry import (
    ContributionDefinition,
    ContributionField,
    ContributionRegistry,
    default_registry,
)
from .resolvers import ResolvedEntity, ResolverSet, default_resolvers
from .schema import StaticTypeClassifier, TypeCategory, TypeDescriptor, default_classifier

__all__ = [
    'CanonicalizationError',
    'ContributionDefinition',
    'ContributionField',
    'ContributionRegistry',
    'ExtractedKey',
    'IdentifierError',
    'IdentifierGenerator',
    'KeyExtractor',
    'LookupFailureError',
    'MissingAttributeError',
    'RegistryCoverageError',
    'ResolvedEntity',
    'ResolverSet',
    'StaticTypeClassifier',
    'TypeCategory',
    'TypeDescriptor',
    'UnknownTypeError',
    'canonicalize',
    'default_classifier',
    'default_generator',
    'default_registry',
    'default_resolvers',
    'generate_internal_id',
    'generate_standard_id',
    'namespace_uuid',
]
