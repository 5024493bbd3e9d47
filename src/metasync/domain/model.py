"""Store-agnostic records exchanged between the sync engine and the data stores.

Identifiers (``id``) are local to one store and never compared across stores.
The only portable identity is ``(type, handle)`` for instances and ``type`` for
definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum

type Capabilities = dict[str, object]


class FieldTypeTag(StrEnum):
    """Closed classification of a field's declared type."""

    PLAIN = "plain"
    REFERENCE = "reference"
    LIST_REFERENCE = "list-reference"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    DATE = "date"
    DATETIME = "datetime"


@dataclass(slots=True, frozen=True)
class Validation:
    name: str
    value: str | None


@dataclass(slots=True, frozen=True)
class FieldType:
    """Declared field type with the optional structured metadata some stores report."""

    name: str
    supported_types: tuple[str, ...] = ()
    out_of_range: str | None = None
    allowed_values: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class FieldDefinition:
    key: str
    name: str
    type: FieldType
    required: bool = False
    description: str = ""
    validations: tuple[Validation, ...] = ()

    def validation(self, name: str) -> Validation | None:
        for validation in self.validations:
            if validation.name == name:
                return validation
        return None


@dataclass(slots=True)
class Definition:
    id: str
    type: str
    name: str = ""
    description: str = ""
    field_definitions: list[FieldDefinition] = field(default_factory=list["FieldDefinition"])
    capabilities: Capabilities = field(default_factory=dict[str, object])
    access: dict[str, str] = field(default_factory=dict[str, str])

    def field_definition(self, key: str) -> FieldDefinition | None:
        for field_definition in self.field_definitions:
            if field_definition.key == key:
                return field_definition
        return None


@dataclass(slots=True, frozen=True)
class Field:
    key: str
    value: str | None
    type: str | None = None

    def with_value(self, value: str | None) -> Field:
        return replace(self, value=value)


@dataclass(slots=True)
class Instance:
    id: str
    type: str
    handle: str | None = None
    fields: list[Field] = field(default_factory=list["Field"])
    capabilities: Capabilities = field(default_factory=dict[str, object])
    display_name: str | None = None

    def get_field(self, key: str) -> Field | None:
        for entry in self.fields:
            if entry.key == key:
                return entry
        return None

    def copy(self) -> Instance:
        return replace(self, fields=list(self.fields), capabilities=dict(self.capabilities))


@dataclass(slots=True, frozen=True)
class UserError:
    """Platform-level validation error returned by a mutation."""

    field: tuple[str, ...]
    message: str
    code: str | None = None


@dataclass(slots=True)
class MutationResult[T]:
    """Outcome of a create/update call: the written record or a list of user errors."""

    record: T | None
    errors: list[UserError] = field(default_factory=list["UserError"])

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors


@dataclass(slots=True)
class InstancePage:
    items: list[Instance]
    next_cursor: str | None = None


@dataclass(slots=True, frozen=True)
class FieldInput:
    key: str
    value: str


@dataclass(slots=True)
class FieldDefinitionInput:
    """Field definition payload for create/update definition mutations."""

    key: str
    name: str
    type: str
    required: bool
    description: str = ""
    validations: list[Validation] = field(default_factory=list["Validation"])


class FieldDefinitionOperation(StrEnum):
    CREATE = "create"
    UPDATE = "update"


@dataclass(slots=True)
class FieldDefinitionChange:
    """One entry in a definition update: create a new key or update an existing one."""

    operation: FieldDefinitionOperation
    field_definition: FieldDefinitionInput


@dataclass(slots=True)
class DefinitionInput:
    type: str
    name: str
    description: str
    field_definitions: list[FieldDefinitionInput]
    capabilities: Capabilities = field(default_factory=dict[str, object])


@dataclass(slots=True)
class DefinitionUpdateInput:
    name: str
    description: str
    field_definitions: list[FieldDefinitionChange]
    capabilities: Capabilities = field(default_factory=dict[str, object])


# metafield definitions


class MetafieldOwnerType(StrEnum):
    """Resource kinds that carry metafields, as named by the platform."""

    PRODUCT = "PRODUCT"
    PRODUCTVARIANT = "PRODUCTVARIANT"
    COLLECTION = "COLLECTION"
    CUSTOMER = "CUSTOMER"
    COMPANY = "COMPANY"
    ORDER = "ORDER"


@dataclass(slots=True)
class MetafieldDefinition:
    """Schema of one metafield attached to an owner type.

    Metafield definitions have no handle; ``namespace.key`` is the portable
    identity within one owner type.
    """

    id: str
    owner_type: MetafieldOwnerType
    namespace: str
    key: str
    type: FieldType
    name: str = ""
    description: str = ""
    validations: tuple[Validation, ...] = ()
    access: dict[str, str] = field(default_factory=dict[str, str])
    pinned_position: int | None = None

    @property
    def full_key(self) -> str:
        return f"{self.namespace}.{self.key}"

    @property
    def pinned(self) -> bool:
        return self.pinned_position is not None and self.pinned_position >= 0


@dataclass(slots=True)
class MetafieldDefinitionInput:
    """Create/update payload; updates identify the definition by owner type, namespace and key."""

    owner_type: MetafieldOwnerType
    namespace: str
    key: str
    name: str
    type: str
    description: str = ""
    validations: list[Validation] = field(default_factory=list["Validation"])
    pin: bool = False

    @property
    def full_key(self) -> str:
        return f"{self.namespace}.{self.key}"
