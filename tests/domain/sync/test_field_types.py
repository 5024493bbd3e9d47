from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

import pytest

from metasync.domain.model import Field, FieldDefinition, FieldType, FieldTypeTag, Validation
from metasync.domain.sync import FieldTypePolicy, SyncLogContext, classify_type_name
from metasync.domain.sync.field_types import is_unsupported_reference, referenced_definition_ids
from tests.support.stores import definition, instance, typed_field

FIXED_NOW = datetime(2024, 5, 17, 9, 30, tzinfo=UTC)


@pytest.fixture
def policy() -> FieldTypePolicy:
    return FieldTypePolicy(now=lambda: FIXED_NOW)


@pytest.fixture
def context() -> SyncLogContext:
    return SyncLogContext(logging.getLogger("tests.field_types"))


@pytest.mark.parametrize(
    ("type_name", "expected"),
    [
        ("metaobject_reference", FieldTypeTag.REFERENCE),
        ("mixed_reference", FieldTypeTag.REFERENCE),
        ("list.metaobject_reference", FieldTypeTag.LIST_REFERENCE),
        ("list.mixed_reference", FieldTypeTag.LIST_REFERENCE),
        ("boolean", FieldTypeTag.BOOLEAN),
        ("number_integer", FieldTypeTag.NUMERIC),
        ("number_decimal", FieldTypeTag.NUMERIC),
        ("date", FieldTypeTag.DATE),
        ("date_time", FieldTypeTag.DATETIME),
        ("datetime", FieldTypeTag.DATETIME),
        ("single_line_text_field", FieldTypeTag.PLAIN),
        ("product_reference", FieldTypeTag.PLAIN),
        ("something_new", FieldTypeTag.PLAIN),
    ],
)
def test_classify_type_name(type_name: str, expected: FieldTypeTag) -> None:
    assert classify_type_name(type_name) is expected


def test_blank_type_name_is_treated_as_text(policy: FieldTypePolicy) -> None:
    field_definition = FieldDefinition(key="title", name="Title", type=FieldType(""))

    assert policy.classify(field_definition) is FieldTypeTag.PLAIN


def test_unsupported_references_are_detected() -> None:
    assert is_unsupported_reference("product_reference")
    assert is_unsupported_reference("list.file_reference")
    assert not is_unsupported_reference("metaobject_reference")
    assert not is_unsupported_reference("single_line_text_field")


def test_default_values(policy: FieldTypePolicy) -> None:
    assert policy.default_value_for(FieldTypeTag.BOOLEAN) == "false"
    assert policy.default_value_for(FieldTypeTag.NUMERIC) == "0"
    assert policy.default_value_for(FieldTypeTag.DATE) == "2024-05-17"
    assert policy.default_value_for(FieldTypeTag.DATETIME) == FIXED_NOW.isoformat()
    assert policy.default_value_for(FieldTypeTag.PLAIN) == ""
    assert policy.default_value_for(FieldTypeTag.REFERENCE) == ""


def test_fill_required_defaults_adds_missing_values(
    policy: FieldTypePolicy, context: SyncLogContext
) -> None:
    schema = definition(
        "def-1",
        "author",
        typed_field("active", "boolean", required=True),
        typed_field("rank", "number_integer", required=True),
        typed_field("born", "date", required=True),
        typed_field("nickname", "single_line_text_field"),
    )
    record = instance("mo-1", "author", "jane", nickname=None)

    filled = policy.fill_required_defaults(record, policy.required_fields(schema), context=context)

    assert sorted(filled) == ["active", "born", "rank"]
    assert record.get_field("active") == Field("active", "false", "boolean")
    assert record.get_field("rank") == Field("rank", "0", "number_integer")
    assert record.get_field("born") == Field("born", "2024-05-17", "date")
    # optional fields are left alone even when null
    nickname = record.get_field("nickname")
    assert nickname is not None
    assert nickname.value is None


def test_fill_required_defaults_keeps_falsy_present_values(
    policy: FieldTypePolicy, context: SyncLogContext
) -> None:
    schema = definition(
        "def-1",
        "author",
        typed_field("active", "boolean", required=True),
        typed_field("rank", "number_integer", required=True),
        typed_field("motto", "single_line_text_field", required=True),
    )
    record = instance("mo-1", "author", "jane", active="false", rank="0", motto="")

    filled = policy.fill_required_defaults(record, policy.required_fields(schema), context=context)

    assert filled == []
    assert [entry.value for entry in record.fields] == ["false", "0", ""]


def test_fill_required_defaults_replaces_null_values(
    policy: FieldTypePolicy, context: SyncLogContext
) -> None:
    schema = definition("def-1", "author", typed_field("active", "boolean", required=True))
    record = instance("mo-1", "author", "jane", active=None)

    policy.fill_required_defaults(record, policy.required_fields(schema), context=context)

    assert [(entry.key, entry.value) for entry in record.fields] == [("active", "false")]


def test_build_create_validations_adds_platform_requirements(policy: FieldTypePolicy) -> None:
    reference = FieldDefinition(
        key="author",
        name="Author",
        type=FieldType("metaobject_reference", supported_types=("author",)),
    )
    rating = FieldDefinition(
        key="score", name="Score", type=FieldType("rating", out_of_range="5")
    )
    choices = FieldDefinition(
        key="tags",
        name="Tags",
        type=FieldType("list.single_line_text_field", allowed_values=("a", "b")),
    )

    assert policy.build_create_validations(reference) == [
        Validation("metaobject_definition", json.dumps({"types": ["author"]}))
    ]
    assert policy.build_create_validations(rating) == [
        Validation("range", json.dumps({"min": "0", "max": "5"}))
    ]
    assert policy.build_create_validations(choices) == [
        Validation("allowed_values", json.dumps(["a", "b"]))
    ]


def test_build_create_validations_keeps_existing_entries(policy: FieldTypePolicy) -> None:
    reference = FieldDefinition(
        key="author",
        name="Author",
        type=FieldType("metaobject_reference", supported_types=("author",)),
        validations=(Validation("metaobject_definition_id", "def-9"),),
    )

    assert policy.build_create_validations(reference) == [
        Validation("metaobject_definition_id", "def-9")
    ]


def test_referenced_definition_ids_reads_single_and_list_validations() -> None:
    field_definition = FieldDefinition(
        key="links",
        name="Links",
        type=FieldType("list.mixed_reference"),
        validations=(
            Validation("metaobject_definition_id", "def-1"),
            Validation("metaobject_definition_ids", json.dumps(["def-2", "def-3"])),
            Validation("metaobject_definition_ids", "not json"),
        ),
    )

    assert referenced_definition_ids(field_definition) == ["def-1", "def-2", "def-3"]
