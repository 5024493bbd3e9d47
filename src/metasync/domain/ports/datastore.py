"""Port for reading and writing definitions and instances in one store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from metasync.domain.model import (
        Capabilities,
        Definition,
        DefinitionInput,
        DefinitionUpdateInput,
        FieldInput,
        Instance,
        InstancePage,
        MetafieldDefinition,
        MetafieldDefinitionInput,
        MetafieldOwnerType,
        MutationResult,
    )


class DataStoreError(RuntimeError):
    """Raised by adapters when a store call fails at the transport or protocol level."""

    def __init__(
        self,
        message: str,
        *,
        store_name: str | None = None,
        operation_name: str | None = None,
        operation_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.store_name = store_name
        self.operation_name = operation_name
        self.operation_id = operation_id


@runtime_checkable
class DataStore(Protocol):
    """Capabilities the sync engine needs from one platform instance."""

    @property
    def name(self) -> str: ...

    async def fetch_definitions(self) -> list[Definition]: ...

    async def fetch_definition_by_id(self, definition_id: str) -> Definition | None: ...

    async def fetch_instances(
        self,
        definition_type: str,
        *,
        cursor: str | None = None,
        page_size: int | None = None,
    ) -> InstancePage: ...

    async def fetch_instance_by_id(self, instance_id: str) -> Instance | None: ...

    async def create_definition(
        self, definition: DefinitionInput
    ) -> MutationResult[Definition]: ...

    async def update_definition(
        self, definition_id: str, definition: DefinitionUpdateInput
    ) -> MutationResult[Definition]: ...

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None = None,
        handle: str | None = None,
    ) -> MutationResult[Instance]: ...

    async def update_instance(
        self, instance_id: str, fields: list[FieldInput]
    ) -> MutationResult[Instance]: ...

    async def fetch_metafield_definitions(
        self,
        owner_type: MetafieldOwnerType,
        *,
        namespace: str | None = None,
        key: str | None = None,
    ) -> list[MetafieldDefinition]: ...

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]: ...

    async def update_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]: ...
