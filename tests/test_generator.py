from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from graphid import config
from graphid.constants import PLATFORM_NAMESPACE, PLATFORM_UUID, STANDARDS_NAMESPACE
from graphid.errors import (
    CanonicalizationError,
    MissingAttributeError,
    RegistryCoverageError,
    UnknownTypeError,
)
from graphid.generator import (
    IdentifierGenerator,
    generate_internal_id,
    generate_standard_id,
    namespace_for,
    namespace_uuid,
)
from graphid.lookup import InMemoryEntityResolver
from graphid.registry import ContributionDefinition, ContributionRegistry
from graphid.schema import StaticTypeClassifier, TypeCategory

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
LABEL_PAYLOAD = '{"value":"malware"}'
IPV4_PAYLOAD = '{"name":"1.2.3.4"}'
GROUP_PAYLOAD = '{"name":"administrators"}'


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture()
def generator() -> IdentifierGenerator:
    return IdentifierGenerator(settings=config.IdentifierSettings())


@pytest.mark.asyncio
async def test_label_identifier_is_deterministic(generator: IdentifierGenerator) -> None:
    expected = f"label--{uuid.uuid5(STANDARDS_NAMESPACE, LABEL_PAYLOAD)}"

    first = await generator.generate("Label", {"value": "malware"})
    second = await generator.generate("Label", {"value": "malware"})

    assert first == expected
    assert second == first


@pytest.mark.asyncio
async def test_mixed_case_names_converge(generator: IdentifierGenerator) -> None:
    lower = await generator.generate("Domain-Name", {"name": "example.com"})
    mixed = await generator.generate("Domain-Name", {"name": "Example.COM"})
    repeated = await generator.generate("IPv4-Addr", {"name": "1.2.3.4"})

    assert lower == mixed
    assert repeated == await generator.generate("IPv4-Addr", {"name": "1.2.3.4"})
    assert repeated == f"ipv4-addr--{uuid.uuid5(STANDARDS_NAMESPACE, IPV4_PAYLOAD)}"


@pytest.mark.asyncio
async def test_attribute_order_does_not_matter(generator: IdentifierGenerator) -> None:
    forward: Dict[str, Any] = {"name": "nginx", "vendor": "F5", "version": "1.25", "cpe": "cpe:2.3:a:f5:nginx"}
    backward = dict(reversed(list(forward.items())))

    assert await generator.generate("Software", forward) == await generator.generate("Software", backward)


def test_namespaces_separate_identical_keys() -> None:
    identity = {"name": "admin"}

    assert namespace_uuid(identity, STANDARDS_NAMESPACE) != namespace_uuid(identity, PLATFORM_NAMESPACE)


@pytest.mark.asyncio
async def test_platform_objects_use_platform_namespace(generator: IdentifierGenerator) -> None:
    identifier = await generator.generate("Group", {"name": "Administrators"})

    assert identifier == f"group--{uuid.uuid5(PLATFORM_NAMESPACE, GROUP_PAYLOAD)}"


@pytest.mark.asyncio
async def test_settings_resolve_to_platform_singleton(generator: IdentifierGenerator) -> None:
    identifier = await generator.generate("Settings", {"opencti_platform": "anything"})
    payload = '{"opencti_platform":"%s"}' % PLATFORM_UUID

    assert identifier == f"settings--{uuid.uuid5(PLATFORM_NAMESPACE, payload)}"


@pytest.mark.asyncio
async def test_fallback_equals_direct_generation(generator: IdentifierGenerator) -> None:
    fallback = await generator.generate(
        "External-Reference",
        {"source_name": "mitre-attack", "external_id": "T1059", "description": "Command interpreter"},
    )
    payload = '{"external_id":"T1059","source_name":"mitre-attack"}'

    assert fallback == f"external-reference--{uuid.uuid5(STANDARDS_NAMESPACE, payload)}"


@pytest.mark.asyncio
async def test_random_types_differ_on_each_call(generator: IdentifierGenerator) -> None:
    first = await generator.generate("Process", {"pid": 1234, "command_line": "cmd.exe"})
    second = await generator.generate("Process", {"pid": 1234, "command_line": "cmd.exe"})

    assert first != second
    assert re.fullmatch(rf"process--{UUID_PATTERN}", first)
    assert uuid.UUID(first.split("--", 1)[1]).version == 4


@pytest.mark.asyncio
async def test_missing_name_fails(generator: IdentifierGenerator) -> None:
    with pytest.raises(MissingAttributeError):
        await generator.generate("Mutex", {})


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "type_tag, prefix",
    [
        ("member-of", "internal-relationship"),
        ("uses", "relationship"),
        ("object-marking", "relationship-meta"),
        ("stix-sighting-relationship", "sighting"),
    ],
)
async def test_relationships_are_always_random(generator: IdentifierGenerator, type_tag: str, prefix: str) -> None:
    first = await generator.generate(type_tag, {"from": "a", "to": "b"})
    second = await generator.generate(type_tag, {"from": "a", "to": "b"})

    assert re.fullmatch(rf"{prefix}--{UUID_PATTERN}", first)
    assert first != second


@pytest.mark.asyncio
async def test_unclassifiable_type_fails(generator: IdentifierGenerator) -> None:
    with pytest.raises(UnknownTypeError):
        await generator.generate("Malware-Family", {"name": "emotet"})


@pytest.mark.asyncio
async def test_report_published_timestamp_is_normalized(generator: IdentifierGenerator) -> None:
    published = datetime(2020, 2, 1, 8, 0, tzinfo=timezone.utc)

    from_datetime = await generator.generate("Report", {"name": "APT summary", "published": published})
    from_text = await generator.generate("Report", {"name": "APT summary", "published": "2020-02-01T08:00:00Z"})
    payload = '{"name":"apt summary","published":"2020-02-01T08:00:00.000Z"}'

    assert from_datetime == from_text
    assert from_datetime == f"report--{uuid.uuid5(STANDARDS_NAMESPACE, payload)}"


@pytest.mark.asyncio
async def test_reports_with_short_fractions_keep_distinct_dates(generator: IdentifierGenerator) -> None:
    first = await generator.generate("Report", {"name": "x", "published": "2020-02-01T08:00:00.5Z"})
    second = await generator.generate("Report", {"name": "x", "published": "2021-07-09T10:00:00.25Z"})
    payload = '{"name":"x","published":"2020-02-01T08:00:00.500Z"}'

    assert first != second
    assert first == f"report--{uuid.uuid5(STANDARDS_NAMESPACE, payload)}"


@pytest.mark.asyncio
async def test_binary_payloads_are_hashed(generator: IdentifierGenerator) -> None:
    payload = '{"payload_bin":"AAE="}'

    from_bytes = await generator.generate("Artifact", {"payload_bin": b"\x00\x01"})
    from_text = await generator.generate("Artifact", {"payload_bin": "AAE="})

    assert from_bytes == from_text
    assert from_bytes == f"artifact--{uuid.uuid5(STANDARDS_NAMESPACE, payload)}"


@pytest.mark.asyncio
async def test_unencodable_values_fail_as_identifier_errors(generator: IdentifierGenerator) -> None:
    with pytest.raises(CanonicalizationError):
        await generator.generate("Label", {"value": float("nan")})


@pytest.mark.asyncio
async def test_file_hashes_use_strongest_digest(generator: IdentifierGenerator) -> None:
    weak_and_strong = await generator.generate(
        "StixFile", {"hashes": {"MD5": "aa", "SHA-256": "bb"}, "size": 12}
    )
    strong_only = await generator.generate("StixFile", {"hashes": '{"SHA-256": "bb"}'})

    assert weak_and_strong == strong_only
    assert weak_and_strong.startswith("file--")


@pytest.mark.asyncio
async def test_cross_references_use_resolved_standard_ids(generator: IdentifierGenerator) -> None:
    resolver = InMemoryEntityResolver(
        {
            "internal-src": "ipv4-addr--11111111-1111-5111-8111-111111111111",
            "internal-dst": "ipv4-addr--22222222-2222-5222-8222-222222222222",
        }
    )
    data = {"src": "internal-src", "dst": "internal-dst", "dst_port": 443, "protocols": ["tcp"]}

    by_internal = await generator.generate("Network-Traffic", data, entity_resolver=resolver)
    by_standard = await generator.generate(
        "Network-Traffic",
        {**data, "src": "ipv4-addr--11111111-1111-5111-8111-111111111111"},
        entity_resolver=resolver,
    )

    assert by_internal == by_standard


@pytest.mark.asyncio
async def test_constant_definitions_are_used_verbatim() -> None:
    classifier = StaticTypeClassifier({"Platform": TypeCategory.PLATFORM_INTERNAL})
    registry = ContributionRegistry({"Platform": ContributionDefinition.fixed(PLATFORM_UUID)})
    generator = IdentifierGenerator(registry, classifier, settings=config.IdentifierSettings())

    assert await generator.generate("Platform", {}) == f"platform--{PLATFORM_UUID}"


def test_coverage_is_validated_at_construction() -> None:
    classifier = StaticTypeClassifier(
        {"Label": TypeCategory.STANDARDS_META, "Mutex": TypeCategory.STANDARDS_OBSERVABLE}
    )
    registry = ContributionRegistry({"Label": ContributionDefinition.single("value")})

    with pytest.raises(RegistryCoverageError):
        IdentifierGenerator(registry, classifier, settings=config.IdentifierSettings())


def test_generate_sync(generator: IdentifierGenerator) -> None:
    assert generator.generate_sync("Label", {"value": "malware"}) == generator.generate_sync(
        "Label", {"value": "malware"}
    )


def test_namespace_uuid_of_empty_identity_is_random() -> None:
    assert namespace_uuid({}, STANDARDS_NAMESPACE) != namespace_uuid({}, STANDARDS_NAMESPACE)


def test_relationship_categories_have_no_namespace() -> None:
    with pytest.raises(ValueError):
        namespace_for(TypeCategory.CORE_RELATIONSHIP)


def test_internal_ids_are_random_uuids() -> None:
    first = generate_internal_id()

    assert uuid.UUID(first).version == 4
    assert first != generate_internal_id()


@pytest.mark.asyncio
async def test_module_level_generation() -> None:
    assert await generate_standard_id("Label", {"value": "malware"}) == (
        f"label--{uuid.uuid5(STANDARDS_NAMESPACE, LABEL_PAYLOAD)}"
    )
