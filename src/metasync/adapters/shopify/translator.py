"""Translate Shopify payloads into domain records and domain inputs into GraphQL variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from metasync.domain.model import (
    Definition,
    Field,
    FieldDefinition,
    FieldDefinitionOperation,
    FieldType,
    Instance,
    MetafieldDefinition,
    UserError,
    Validation,
)

if TYPE_CHECKING:
    from metasync.domain.model import (
        Capabilities,
        DefinitionInput,
        DefinitionUpdateInput,
        FieldDefinitionInput,
        FieldInput,
        MetafieldDefinitionInput,
        MetafieldOwnerType,
    )

    from .schema import (
        DefinitionPayload,
        FieldDefinitionPayload,
        MetafieldDefinitionPayload,
        MetaobjectPayload,
        UserErrorPayload,
    )


def parse_definition(payload: DefinitionPayload) -> Definition:
    return Definition(
        id=payload.id,
        type=payload.type,
        name=payload.name or "",
        description=payload.description or "",
        field_definitions=[_parse_field_definition(entry) for entry in payload.field_definitions],
        capabilities=dict(payload.capabilities),
        access={key: str(value) for key, value in payload.access.items() if value is not None},
    )


def _parse_field_definition(payload: FieldDefinitionPayload) -> FieldDefinition:
    return FieldDefinition(
        key=payload.key,
        name=payload.name,
        description=payload.description or "",
        required=payload.required,
        type=FieldType(name=payload.type.name),
        validations=tuple(
            Validation(name=validation.name, value=validation.value)
            for validation in payload.validations
        ),
    )


def parse_metaobject(payload: MetaobjectPayload) -> Instance:
    return Instance(
        id=payload.id,
        type=payload.type,
        handle=payload.handle or None,
        display_name=payload.display_name,
        fields=[
            Field(key=entry.key, value=entry.value, type=entry.type) for entry in payload.fields
        ],
        capabilities=dict(payload.capabilities),
    )


def parse_metafield_definition(
    payload: MetafieldDefinitionPayload, owner_type: MetafieldOwnerType
) -> MetafieldDefinition:
    return MetafieldDefinition(
        id=payload.id,
        owner_type=owner_type,
        namespace=payload.namespace,
        key=payload.key,
        type=FieldType(name=payload.type.name),
        name=payload.name or "",
        description=payload.description or "",
        validations=tuple(
            Validation(name=validation.name, value=validation.value)
            for validation in payload.validations
        ),
        access={key: str(value) for key, value in payload.access.items() if value is not None},
        pinned_position=payload.pinned_position,
    )


def parse_user_errors(payloads: list[UserErrorPayload]) -> list[UserError]:
    return [
        UserError(field=tuple(payload.field or ()), message=payload.message, code=payload.code)
        for payload in payloads
    ]


# inputs


def field_definition_input(
    field_definition: FieldDefinitionInput, *, include_type: bool = True
) -> dict[str, object]:
    payload: dict[str, object] = {
        "key": field_definition.key,
        "name": field_definition.name,
        "description": field_definition.description,
        "required": field_definition.required,
        "validations": [
            {"name": validation.name, "value": validation.value}
            for validation in field_definition.validations
        ],
    }
    if include_type:
        payload["type"] = field_definition.type
    return payload


def definition_create_input(definition: DefinitionInput) -> dict[str, object]:
    payload: dict[str, object] = {
        "type": definition.type,
        "name": definition.name,
        "description": definition.description,
        "fieldDefinitions": [
            field_definition_input(entry) for entry in definition.field_definitions
        ],
    }
    capabilities = definition_capabilities_input(definition.capabilities)
    if capabilities:
        payload["capabilities"] = capabilities
    return payload


def definition_update_input(definition: DefinitionUpdateInput) -> dict[str, object]:
    changes: list[dict[str, object]] = []
    for change in definition.field_definitions:
        if change.operation is FieldDefinitionOperation.UPDATE:
            # the type of an existing field cannot be changed
            changes.append(
                {"update": field_definition_input(change.field_definition, include_type=False)}
            )
        else:
            changes.append({"create": field_definition_input(change.field_definition)})
    payload: dict[str, object] = {
        "name": definition.name,
        "description": definition.description,
        "fieldDefinitions": changes,
    }
    capabilities = definition_capabilities_input(definition.capabilities)
    if capabilities:
        payload["capabilities"] = capabilities
    return payload


def definition_capabilities_input(capabilities: Capabilities) -> dict[str, object]:
    """Keep only capability flags, as ``{"name": {"enabled": bool}}``."""

    result: dict[str, object] = {}
    for name, value in capabilities.items():
        if isinstance(value, dict) and "enabled" in value:
            enabled = bool(value["enabled"])  # pyright: ignore[reportUnknownArgumentType]
            result[name] = {"enabled": enabled}
    return result


def metaobject_fields_input(fields: list[FieldInput]) -> list[dict[str, str]]:
    return [{"key": entry.key, "value": entry.value} for entry in fields]


def metaobject_create_input(
    definition_type: str,
    fields: list[FieldInput],
    *,
    capabilities: Capabilities | None = None,
    handle: str | None = None,
) -> dict[str, object]:
    payload: dict[str, object] = {
        "type": definition_type,
        "fields": metaobject_fields_input(fields),
    }
    if capabilities:
        payload["capabilities"] = dict(capabilities)
    if handle:
        payload["handle"] = handle
    return payload


def metaobject_update_input(fields: list[FieldInput]) -> dict[str, object]:
    return {"fields": metaobject_fields_input(fields)}


def metafield_definition_create_input(definition: MetafieldDefinitionInput) -> dict[str, object]:
    payload = metafield_definition_update_input(definition)
    payload["type"] = definition.type
    return payload


def metafield_definition_update_input(definition: MetafieldDefinitionInput) -> dict[str, object]:
    """Updates are addressed by owner type, namespace and key; the type is immutable."""

    return {
        "ownerType": str(definition.owner_type),
        "namespace": definition.namespace,
        "key": definition.key,
        "name": definition.name,
        "description": definition.description,
        "validations": [
            {"name": validation.name, "value": validation.value}
            for validation in definition.validations
        ],
        "pin": definition.pin,
    }
