"""Shopify implementation of the :class:`~metasync.domain.ports.DataStore` port."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from metasync.domain.model import InstancePage, MutationResult
from metasync.domain.ports import DataStoreError

from . import queries
from .schema import (
    CreateDefinitionData,
    CreateMetafieldDefinitionData,
    CreateMetaobjectData,
    DefinitionData,
    DefinitionsData,
    MetafieldDefinitionsData,
    MetaobjectData,
    MetaobjectsData,
    UpdateDefinitionData,
    UpdateMetafieldDefinitionData,
    UpdateMetaobjectData,
)
from .translator import (
    definition_create_input,
    definition_update_input,
    metafield_definition_create_input,
    metafield_definition_update_input,
    metaobject_create_input,
    metaobject_update_input,
    parse_definition,
    parse_metafield_definition,
    parse_metaobject,
    parse_user_errors,
)

if TYPE_CHECKING:
    from types import TracebackType

    from metasync.domain.model import (
        Capabilities,
        Definition,
        DefinitionInput,
        DefinitionUpdateInput,
        FieldInput,
        Instance,
        MetafieldDefinition,
        MetafieldDefinitionInput,
        MetafieldOwnerType,
    )

    from .client import ShopifyGraphQLClient

log = getLogger(__name__)


class ShopifyDataStore:
    """Metaobject definitions, metaobjects and metafield definitions of one shop."""

    def __init__(self, client: ShopifyGraphQLClient, *, page_size: int | None = None) -> None:
        self.client = client
        self.page_size = page_size or queries.INSTANCES_PAGE_LIMIT

    @property
    def name(self) -> str:
        return self.client.name

    async def __aenter__(self) -> ShopifyDataStore:
        await self.client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.client.__aexit__(exc_type, exc, tb)

    async def fetch_definitions(self) -> list[Definition]:
        data = await self.client.execute(
            queries.FETCH_DEFINITIONS,
            {"first": queries.DEFINITIONS_PAGE_LIMIT},
            operation_name="FetchMetaobjectDefinitions",
        )
        payload = self._parse(DefinitionsData, data)
        return [parse_definition(node) for node in payload.metaobject_definitions.nodes]

    async def fetch_definition_by_id(self, definition_id: str) -> Definition | None:
        data = await self.client.execute(
            queries.FETCH_DEFINITION_BY_ID,
            {"id": definition_id},
            operation_name="FetchMetaobjectDefinitionById",
        )
        payload = self._parse(DefinitionData, data)
        if payload.metaobject_definition is None:
            return None
        return parse_definition(payload.metaobject_definition)

    async def fetch_instances(
        self,
        definition_type: str,
        *,
        cursor: str | None = None,
        page_size: int | None = None,
    ) -> InstancePage:
        first = min(page_size or self.page_size, queries.INSTANCES_PAGE_LIMIT)
        data = await self.client.execute(
            queries.FETCH_METAOBJECTS,
            {"type": definition_type, "first": first, "after": cursor},
            operation_name="FetchMetaobjects",
        )
        connection = self._parse(MetaobjectsData, data).metaobjects
        page_info = connection.page_info
        next_cursor = page_info.end_cursor if page_info.has_next_page else None
        log.debug(
            "%s: fetched %d %s metaobject(s)%s",
            self.name,
            len(connection.nodes),
            definition_type,
            " (more available)" if next_cursor else "",
        )
        return InstancePage(
            items=[parse_metaobject(node) for node in connection.nodes],
            next_cursor=next_cursor,
        )

    async def fetch_instance_by_id(self, instance_id: str) -> Instance | None:
        data = await self.client.execute(
            queries.FETCH_METAOBJECT_BY_ID,
            {"id": instance_id},
            operation_name="FetchMetaobjectById",
        )
        payload = self._parse(MetaobjectData, data)
        if payload.metaobject is None:
            return None
        return parse_metaobject(payload.metaobject)

    async def create_definition(self, definition: DefinitionInput) -> MutationResult[Definition]:
        data = await self.client.execute(
            queries.CREATE_DEFINITION,
            {"definition": definition_create_input(definition)},
            operation_name="CreateMetaobjectDefinition",
            retry=False,
        )
        result = self._parse(CreateDefinitionData, data).result
        record = (
            parse_definition(result.metaobject_definition)
            if result.metaobject_definition is not None
            else None
        )
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    async def update_definition(
        self, definition_id: str, definition: DefinitionUpdateInput
    ) -> MutationResult[Definition]:
        data = await self.client.execute(
            queries.UPDATE_DEFINITION,
            {"id": definition_id, "definition": definition_update_input(definition)},
            operation_name="UpdateMetaobjectDefinition",
            retry=False,
        )
        result = self._parse(UpdateDefinitionData, data).result
        record = (
            parse_definition(result.metaobject_definition)
            if result.metaobject_definition is not None
            else None
        )
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    async def create_instance(
        self,
        definition_type: str,
        fields: list[FieldInput],
        *,
        capabilities: Capabilities | None = None,
        handle: str | None = None,
    ) -> MutationResult[Instance]:
        data = await self.client.execute(
            queries.CREATE_METAOBJECT,
            {
                "metaobject": metaobject_create_input(
                    definition_type, fields, capabilities=capabilities, handle=handle
                )
            },
            operation_name="CreateMetaobject",
            retry=False,
        )
        result = self._parse(CreateMetaobjectData, data).result
        record = parse_metaobject(result.metaobject) if result.metaobject is not None else None
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    async def update_instance(
        self, instance_id: str, fields: list[FieldInput]
    ) -> MutationResult[Instance]:
        data = await self.client.execute(
            queries.UPDATE_METAOBJECT,
            {"id": instance_id, "metaobject": metaobject_update_input(fields)},
            operation_name="UpdateMetaobject",
            retry=False,
        )
        result = self._parse(UpdateMetaobjectData, data).result
        record = parse_metaobject(result.metaobject) if result.metaobject is not None else None
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    async def fetch_metafield_definitions(
        self,
        owner_type: MetafieldOwnerType,
        *,
        namespace: str | None = None,
        key: str | None = None,
    ) -> list[MetafieldDefinition]:
        variables: dict[str, object] = {
            "ownerType": str(owner_type),
            "first": queries.METAFIELD_DEFINITIONS_PAGE_LIMIT,
        }
        if namespace:
            variables["namespace"] = namespace
        if key:
            variables["key"] = key
        operation_name = f"Fetch{owner_type.title()}MetafieldDefinitions"
        definitions: list[MetafieldDefinition] = []
        cursor: str | None = None
        while True:
            data = await self.client.execute(
                queries.FETCH_METAFIELD_DEFINITIONS,
                {**variables, "after": cursor},
                operation_name=operation_name,
            )
            connection = self._parse(MetafieldDefinitionsData, data).metafield_definitions
            definitions.extend(
                parse_metafield_definition(node, owner_type) for node in connection.nodes
            )
            page_info = connection.page_info
            if not page_info.has_next_page or not page_info.end_cursor:
                break
            cursor = page_info.end_cursor
        log.debug(
            "%s: fetched %d %s metafield definition(s)", self.name, len(definitions), owner_type
        )
        return definitions

    async def create_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]:
        data = await self.client.execute(
            queries.CREATE_METAFIELD_DEFINITION,
            {"definition": metafield_definition_create_input(definition)},
            operation_name="CreateMetafieldDefinition",
            retry=False,
        )
        result = self._parse(CreateMetafieldDefinitionData, data).result
        record = (
            parse_metafield_definition(result.definition, definition.owner_type)
            if result.definition is not None
            else None
        )
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    async def update_metafield_definition(
        self, definition: MetafieldDefinitionInput
    ) -> MutationResult[MetafieldDefinition]:
        data = await self.client.execute(
            queries.UPDATE_METAFIELD_DEFINITION,
            {"definition": metafield_definition_update_input(definition)},
            operation_name="UpdateMetafieldDefinition",
            retry=False,
        )
        result = self._parse(UpdateMetafieldDefinitionData, data).result
        record = (
            parse_metafield_definition(result.definition, definition.owner_type)
            if result.definition is not None
            else None
        )
        return MutationResult(record=record, errors=parse_user_errors(result.user_errors))

    def _parse[M: BaseModel](self, model: type[M], data: dict[str, object]) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise DataStoreError(
                f"{self.name}: unexpected {model.__name__} payload ({exc.error_count()} error(s))",
                store_name=self.name,
            ) from exc
