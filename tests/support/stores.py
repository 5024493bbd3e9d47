"""In-memory DataStore used by engine and app tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from itertools import count
from typing import TYPE_CHECKING

from metasync.domain.model import (
    Definition,
    Field,
    FieldDefinition,
    FieldDefinitionOperation,
    FieldType,
    Instance,
    InstancePage,
    MetafieldDefinition,
    MetafieldOwnerType,
    MutationResult,
    UserError,
    Validation,
)
from metasync.domain.ports import DataStoreError

if TYPE_CHECKING:
    from types import TracebackType

    from metasync.domain.model import (
        Capabilities,
        DefinitionInput,
        DefinitionUpdateInput,
        FieldDefinitionInput,
        FieldInput,
        MetafieldDefinitionInput,
    )

MUTATING_CALLS = frozenset(
    {
        "create_definition",
        "update_definition",
        "create_instance",
        "update_instance",
        "create_metafield_definition",
        "update_metafield_definition",
    }
)


@dataclass
class Call:
    name: str
    args: tuple[object, ...]


@dataclass
class InMemoryStore:
    """Records every call; supports cursor pagination and injected failures."""

    store_name: str = "memory"
    page_size: int = 2
    definitions: list[Definition] = field(default_factory=list[Definition])
    # reachable by id only, as with definitions the bulk listing omits
    hidden_definitions: list[Definition] = field(default_factory=list[Definition])
    instances: list[Instance] = field(default_factory=list[Instance])
    calls: list[Call] = field(default_factory=list[Call])
    user_errors: dict[str, list[UserError]] = field(default_factory=dict[str, list[UserError]])
    failing_handles: set[str] = field(default_factory=set[str])
    fail_fetch_definitions: bool = False
    failing_fetch_types: set[str] = field(default_factory=set[str])
    metafield_definitions: list[MetafieldDefinition] = field(
        default_factory=list[MetafieldDefinition]
    )
    pinned_limit: int | None = None
    _ids: count[int] = field(default_factory=lambda: count(1000))

    @property
    def name(self) -> str:
        return self.store_name

    async def __aenter__(self) -> InMemoryStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        return None

    # helpers

    def mutations(self) -> list[Call]:
        return [call for call in self.calls if call.name in MUTATING_CALLS]

    def fetches_of(self, name: str) -> list[Call]:
        return [call for call in self.calls if call.name == name]

    def by_handle(self, definition_type: str, handle: str) -> Instance | None:
        for instance in self.instances:
            if instance.type == definition_type and instance.handle == handle:
                return instance
        return None

    def _next_id(self, kind: str) -> str:
        return f"gid://{self.store_name}/{kind}/{next(self._ids)}"

    # port

    async def fetch_definitions(self) -> list[Definition]:
        self.calls.append(Call("fetch_definitions", ()))
        if self.fail_fetch_definitions:
            raise DataStoreError("definitions unavailable", store_name=self.store_name)
        return list(self.definitions)

    async def fetch_definition_by_id(self, definition_id: str) -> Definition | None:
        self.calls.append(Call("fetch_definition_by_id", (definition_id,)))
        await asyncio.sleep(0)
        known = [*self.definitions, *self.hidden_definitions]
        return next((d for d in known if d.id == definition_id), None)

    async def fetch_instances(
        self,
        definition_type: str,
        *,
        cursor: str | None = None,
        page_size: int | None = None,
    ) -> InstancePage:
        self.calls.append(Call("fetch_instances", (definition_type, cursor)))
        if definition_type in self.failing_fetch_types:
            raise DataStoreError(f"{definition_type} unavailable", store_name=self.store_name)
        matching = [instance for instance in self.instances if instance.type == definition_type]
        size = page_size or self.page_size
        start = int(cursor) if cursor else 0
        end = start + size
        next_cursor = str(end) if end < len(matching) else None
        return InstancePage(items=list(matching[start:end]), next_cursor=next_cursor)

    async def fetch_instance_by_id(self, instance_id: str) -> Instance | None:
        self.calls.append(Call("fetch_instance_by_id", (instance_id,)))
        return next((i for i in self.instances if i.id == instance_id), None)

    async def create_definition(self, definition: DefinitionInput) -> MutationResult[Definition]:
        self.calls.append(Call("create_definition", (definition,)))
        errors = self.user_errors.get(definition.type)
        if errors:
            return MutationResult(record=None, errors=errors)
        created = Definition(
            id=self._next_id("MetaobjectDefinition"),
            type=definition.type,
            name=definition.name,
            description=definition.description,
            field_definitions=[_field_definition(entry) for entry in definition.field_definitions],
            capabilities=dict(definition.capabilities),
        )
        self.definitions.append(created)
        return MutationResult(record=created)

    async def update_definition(
        self, definition_id: str, definition: DefinitionUpdateInput
    ) -> MutationResult[Definition]:
        self.calls.append(Call("update_definition", (definition_id, definition)))
        existing = next(d for d in self.definitions if d.id == definition_id)
        errors = self.user_errors.get(existing.type)
        if errors:
            return MutationResult(record=None, errors=errors)
        for change in definition.field_definitions:
            if change.operation is FieldDefinitionOperation.CREATE:
                existing.field_definitions.append(_field_definition(change.field_definition))
        existing.name = definition.name
        existing.description = definition.description
        return MutationResult(record=existing)

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None = None,
        handle: str | None = None,
    ) -> MutationResult[Instance]:
        self.calls.append(Call("create_instance", (definition_type, fields, handle)))
        if handle and handle in self.failing_handles:
            raise DataStoreError("connection reset", store_name=self.store_name)
        errors = self.user_errors.get(handle or "")
        if errors:
            return MutationResult(record=None, errors=errors)
        created = Instance(
            id=self._next_id("Metaobject"),
            type=definition_type,
            handle=handle or f"generated-{next(self._ids)}",
            fields=[Field(key=entry.key, value=entry.value) for entry in fields],
            capabilities=dict(capabilities or {}),
        )
        self.instances.append(created)
        return MutationResult(record=created)

    async def update_instance(
        self, instance_id: str, fields: list[FieldInput]
    ) -> MutationResult[Instance]:
        self.calls.append(Call("update_instance", (instance_id, fields)))
        position, existing = next(
            (position, i) for position, i in enumerate(self.instances) if i.id == instance_id
        )
        errors = self.user_errors.get(existing.handle or "")
        if errors:
            return MutationResult(record=None, errors=errors)
        values = {entry.key: entry.value for entry in fields}
        merged = [
            Field(key=entry.key, value=values.pop(entry.key, entry.value), type=entry.type)
            for entry in existing.fields
        ]
        merged.extend(Field(key=key, value=value) for key, value in values.items())
        updated = replace(existing, fields=merged)
        self.instances[position] = updated
        return MutationResult(record=updated)

    async def fetch_metafield_definitions(
        self,
        owner_type: MetafieldOwnerType,
        *,
        namespace: str | None = None,
        key: str | None = None,
    ) -> list[MetafieldDefinition]:
        self.calls.append(Call("fetch_metafield_definitions", (owner_type, namespace, key)))
        return [
            entry
            for entry in self.metafield_definitions
            if entry.owner_type == owner_type
            and (namespace is None or entry.namespace == namespace)
            and (key is None or entry.key == key)
        ]

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]:
        self.calls.append(Call("create_metafield_definition", (definition,)))
        errors = self.user_errors.get(definition.full_key)
        if errors:
            return MutationResult(record=None, errors=errors)
        pinned = [entry for entry in self.metafield_definitions if entry.pinned]
        if definition.pin and self.pinned_limit is not None and len(pinned) >= self.pinned_limit:
            return MutationResult(
                record=None,
                errors=[
                    UserError(
                        field=("definition", "pin"),
                        message="Limit of pinned definitions reached",
                        code="PINNED_LIMIT_REACHED",
                    )
                ],
            )
        created = MetafieldDefinition(
            id=self._next_id("MetafieldDefinition"),
            owner_type=definition.owner_type,
            namespace=definition.namespace,
            key=definition.key,
            type=FieldType(name=definition.type),
            name=definition.name,
            description=definition.description,
            validations=tuple(definition.validations),
            pinned_position=len(pinned) if definition.pin else None,
        )
        self.metafield_definitions.append(created)
        return MutationResult(record=created)

    async def update_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]:
        self.calls.append(Call("update_metafield_definition", (definition,)))
        errors = self.user_errors.get(definition.full_key)
        if errors:
            return MutationResult(record=None, errors=errors)
        position, existing = next(
            (position, entry)
            for position, entry in enumerate(self.metafield_definitions)
            if entry.owner_type == definition.owner_type and entry.full_key == definition.full_key
        )
        updated = replace(
            existing,
            name=definition.name,
            description=definition.description,
            validations=tuple(definition.validations),
        )
        self.metafield_definitions[position] = updated
        return MutationResult(record=updated)


def _field_definition(entry: FieldDefinitionInput) -> FieldDefinition:
    return FieldDefinition(
        key=entry.key,
        name=entry.name,
        type=FieldType(name=entry.type),
        required=entry.required,
        description=entry.description,
        validations=tuple(Validation(name=v.name, value=v.value) for v in entry.validations),
    )


# builders


def text_field(key: str, *, required: bool = False) -> FieldDefinition:
    return FieldDefinition(
        key=key, name=key.title(), type=FieldType("single_line_text_field"), required=required
    )


def typed_field(key: str, type_name: str, *, required: bool = False) -> FieldDefinition:
    return FieldDefinition(key=key, name=key.title(), type=FieldType(type_name), required=required)


def reference_field(
    key: str, definition_id: str, *, list_type: bool = False, required: bool = False
) -> FieldDefinition:
    type_name = "list.metaobject_reference" if list_type else "metaobject_reference"
    return FieldDefinition(
        key=key,
        name=key.title(),
        type=FieldType(type_name),
        required=required,
        validations=(Validation(name="metaobject_definition_id", value=definition_id),),
    )


def definition(
    definition_id: str, definition_type: str, *field_definitions: FieldDefinition
) -> Definition:
    return Definition(
        id=definition_id,
        type=definition_type,
        name=definition_type.title(),
        field_definitions=list(field_definitions),
    )


def metafield_definition(
    definition_id: str,
    full_key: str,
    type_name: str = "single_line_text_field",
    *validations: Validation,
    owner_type: MetafieldOwnerType = MetafieldOwnerType.PRODUCT,
    pinned_position: int | None = None,
) -> MetafieldDefinition:
    namespace, _, key = full_key.partition(".")
    return MetafieldDefinition(
        id=definition_id,
        owner_type=owner_type,
        namespace=namespace,
        key=key,
        type=FieldType(type_name),
        name=key.replace("_", " ").title(),
        validations=validations,
        pinned_position=pinned_position,
    )


def instance(
    instance_id: str, definition_type: str, handle: str | None, **values: str | None
) -> Instance:
    return Instance(
        id=instance_id,
        type=definition_type,
        handle=handle,
        fields=[Field(key=key, value=value) for key, value in values.items()],
    )
