"""Field type classification, required-field defaults and definition validations."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from metasync.domain.model import Field, FieldTypeTag, Validation

if TYPE_CHECKING:
    from metasync.domain.model import Definition, FieldDefinition, Instance

    from .log_context import SyncLogContext

DEFAULT_TYPE_NAME = "single_line_text_field"
LIST_PREFIX = "list."

SINGLE_REFERENCE_TYPES = frozenset({"metaobject_reference", "mixed_reference"})
LIST_REFERENCE_TYPES = frozenset(LIST_PREFIX + name for name in SINGLE_REFERENCE_TYPES)

DEFINITION_ID_VALIDATION = "metaobject_definition_id"
DEFINITION_IDS_VALIDATION = "metaobject_definition_ids"
SUPPORTED_TYPES_VALIDATION = "metaobject_definition"
RANGE_VALIDATION = "range"
ALLOWED_VALUES_VALIDATION = "allowed_values"
CHOICES_VALIDATION = "choices"


def type_name_of(field_definition: FieldDefinition) -> str:
    return field_definition.type.name or DEFAULT_TYPE_NAME


def classify_type_name(type_name: str) -> FieldTypeTag:
    """Map a declared type name onto the closed :class:`FieldTypeTag` set."""

    name = type_name.strip().lower()
    if name in SINGLE_REFERENCE_TYPES:
        return FieldTypeTag.REFERENCE
    if name in LIST_REFERENCE_TYPES:
        return FieldTypeTag.LIST_REFERENCE
    if name == "boolean":
        return FieldTypeTag.BOOLEAN
    if "number" in name:
        return FieldTypeTag.NUMERIC
    if name == "date":
        return FieldTypeTag.DATE
    if name in {"date_time", "datetime"}:
        return FieldTypeTag.DATETIME
    return FieldTypeTag.PLAIN


def is_unsupported_reference(type_name: str) -> bool:
    """Reference types the engine cannot translate (products, files, collections, ...)."""

    name = type_name.strip().lower()
    return name.endswith("_reference") and classify_type_name(name) not in {
        FieldTypeTag.REFERENCE,
        FieldTypeTag.LIST_REFERENCE,
    }


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class FieldTypePolicy:
    """Classifies field types and supplies values for absent required fields."""

    now: Callable[[], datetime] = field(default=_utcnow)

    def classify(self, field_definition: FieldDefinition) -> FieldTypeTag:
        return classify_type_name(type_name_of(field_definition))

    def default_value_for(self, tag: FieldTypeTag) -> str:
        match tag:
            case FieldTypeTag.BOOLEAN:
                return "false"
            case FieldTypeTag.NUMERIC:
                return "0"
            case FieldTypeTag.DATE:
                return self._today().isoformat()
            case FieldTypeTag.DATETIME:
                return self.now().isoformat()
            case FieldTypeTag.PLAIN | FieldTypeTag.REFERENCE | FieldTypeTag.LIST_REFERENCE:
                return ""

    def required_fields(self, definition: Definition) -> dict[str, FieldDefinition]:
        return {fd.key: fd for fd in definition.field_definitions if fd.required}

    def fill_required_defaults(
        self,
        instance: Instance,
        required: dict[str, FieldDefinition],
        *,
        context: SyncLogContext,
    ) -> list[str]:
        """Append defaults for required fields that are absent or null; return their keys.

        Present values are kept even when falsy (``"0"``, ``"false"``, ``""``).
        """

        filled: list[str] = []
        for key, field_definition in required.items():
            existing = instance.get_field(key)
            if existing is not None and existing.value is not None:
                continue
            tag = self.classify(field_definition)
            value = self.default_value_for(tag)
            context.warning(
                "Adding missing required field '%s' (%s) with default %r",
                field_definition.name,
                key,
                value,
            )
            instance.fields = [entry for entry in instance.fields if entry.key != key]
            instance.fields.append(Field(key=key, value=value, type=type_name_of(field_definition)))
            filled.append(key)
        return filled

    def build_create_validations(self, field_definition: FieldDefinition) -> list[Validation]:
        """Return the field's validations plus entries the platform needs for its type."""

        type_name = type_name_of(field_definition)
        validations = list(field_definition.validations)
        present = {validation.name for validation in validations}
        field_type = field_definition.type

        if (
            type_name in SINGLE_REFERENCE_TYPES
            and field_type.supported_types
            and SUPPORTED_TYPES_VALIDATION not in present
            and DEFINITION_ID_VALIDATION not in present
        ):
            validations.append(
                Validation(
                    name=SUPPORTED_TYPES_VALIDATION,
                    value=json.dumps({"types": list(field_type.supported_types)}),
                )
            )
        if type_name == "rating" and field_type.out_of_range and RANGE_VALIDATION not in present:
            validations.append(
                Validation(
                    name=RANGE_VALIDATION,
                    value=json.dumps({"min": "0", "max": field_type.out_of_range}),
                )
            )
        if (
            type_name.startswith(LIST_PREFIX)
            and field_type.allowed_values
            and not present & {ALLOWED_VALUES_VALIDATION, CHOICES_VALIDATION}
        ):
            validations.append(
                Validation(
                    name=ALLOWED_VALUES_VALIDATION,
                    value=json.dumps(list(field_type.allowed_values)),
                )
            )
        return validations

    def _today(self) -> date:
        return self.now().date()


def referenced_definition_ids(field_definition: FieldDefinition) -> list[str]:
    """Definition ids a reference field's validations point at, in declaration order."""

    ids: list[str] = []
    for validation in field_definition.validations:
        if not validation.value:
            continue
        if validation.name == DEFINITION_ID_VALIDATION:
            ids.append(validation.value)
        elif validation.name == DEFINITION_IDS_VALIDATION:
            ids.extend(_parse_id_list(validation.value))
    return ids


def _parse_id_list(value: str) -> list[str]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, str) and item]
