"""Shared constants for identifier generation."""

from __future__ import annotations

from typing import Dict
from uuid import UUID

# Deterministic namespaces salting every content-derived identifier. They are
# hash inputs: changing either one invalidates every identifier generated so far.
STANDARDS_NAMESPACE = UUID("00abedb4-aa42-466c-9c01-fed23315a9b7")
PLATFORM_NAMESPACE = UUID("b639ff3b-00eb-42ed-aa36-a8dd6f8fb4cf")

# Pre-assigned identity of the platform singleton.
PLATFORM_UUID = UUID("d06053cb-7123-404b-b092-6606411702d2")

IDENTIFIER_SEPARATOR = "--"

INTERNAL_RELATIONSHIP_PREFIX = "internal-relationship"
CORE_RELATIONSHIP_PREFIX = "relationship"
META_RELATIONSHIP_PREFIX = "relationship-meta"
SIGHTING_RELATIONSHIP_PREFIX = "sighting"

NAMESPACES: Dict[str, UUID] = {
    "standards": STANDARDS_NAMESPACE,
    "platform": PLATFORM_NAMESPACE,
}
