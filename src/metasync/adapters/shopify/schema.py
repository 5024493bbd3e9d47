"""Pydantic models describing Shopify Admin GraphQL payloads."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

THROTTLED_CODE = "THROTTLED"


class ShopifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Shopify %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


# envelope


class GraphQLErrorExtensions(ShopifyBaseModel):
    code: str | None = None


class GraphQLError(ShopifyBaseModel):
    message: str
    extensions: GraphQLErrorExtensions | None = None

    @property
    def code(self) -> str | None:
        return self.extensions.code if self.extensions is not None else None


class ThrottleStatus(ShopifyBaseModel):
    maximum_available: float = Field(alias="maximumAvailable")
    currently_available: float = Field(alias="currentlyAvailable")
    restore_rate: float = Field(alias="restoreRate")


class QueryCost(ShopifyBaseModel):
    requested_query_cost: float | None = Field(default=None, alias="requestedQueryCost")
    actual_query_cost: float | None = Field(default=None, alias="actualQueryCost")
    throttle_status: ThrottleStatus | None = Field(default=None, alias="throttleStatus")


class ResponseExtensions(ShopifyBaseModel):
    cost: QueryCost | None = None


class GraphQLResponse(ShopifyBaseModel):
    data: dict[str, object] | None = None
    errors: list[GraphQLError] = Field(default_factory=list["GraphQLError"])
    extensions: ResponseExtensions | None = None

    @property
    def throttled(self) -> bool:
        return any(error.code == THROTTLED_CODE for error in self.errors)


# definitions


class FieldTypePayload(ShopifyBaseModel):
    name: str


class ValidationPayload(ShopifyBaseModel):
    name: str
    value: str | None = None


class FieldDefinitionPayload(ShopifyBaseModel):
    key: str
    name: str
    description: str | None = None
    required: bool = False
    type: FieldTypePayload
    validations: list[ValidationPayload] = Field(default_factory=list["ValidationPayload"])


class DefinitionPayload(ShopifyBaseModel):
    id: str
    type: str
    name: str | None = None
    description: str | None = None
    field_definitions: list[FieldDefinitionPayload] = Field(
        default_factory=list["FieldDefinitionPayload"], alias="fieldDefinitions"
    )
    capabilities: dict[str, object] = Field(default_factory=dict[str, object])
    access: dict[str, object] = Field(default_factory=dict[str, object])


class DefinitionConnection(ShopifyBaseModel):
    nodes: list[DefinitionPayload] = Field(default_factory=list["DefinitionPayload"])


class DefinitionsData(ShopifyBaseModel):
    metaobject_definitions: DefinitionConnection = Field(alias="metaobjectDefinitions")


class DefinitionData(ShopifyBaseModel):
    metaobject_definition: DefinitionPayload | None = Field(
        default=None, alias="metaobjectDefinition"
    )


# metaobjects


class MetaobjectFieldPayload(ShopifyBaseModel):
    key: str
    value: str | None = None
    type: str | None = None


class MetaobjectPayload(ShopifyBaseModel):
    id: str
    type: str
    handle: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    fields: list[MetaobjectFieldPayload] = Field(default_factory=list["MetaobjectFieldPayload"])
    capabilities: dict[str, object] = Field(default_factory=dict[str, object])


class PageInfo(ShopifyBaseModel):
    has_next_page: bool = Field(alias="hasNextPage")
    end_cursor: str | None = Field(default=None, alias="endCursor")


class MetaobjectConnection(ShopifyBaseModel):
    nodes: list[MetaobjectPayload] = Field(default_factory=list["MetaobjectPayload"])
    page_info: PageInfo = Field(alias="pageInfo")


class MetaobjectsData(ShopifyBaseModel):
    metaobjects: MetaobjectConnection


class MetaobjectData(ShopifyBaseModel):
    metaobject: MetaobjectPayload | None = None


# mutations


class UserErrorPayload(ShopifyBaseModel):
    field: list[str] | None = None
    message: str
    code: str | None = None


class DefinitionMutationPayload(ShopifyBaseModel):
    metaobject_definition: DefinitionPayload | None = Field(
        default=None, alias="metaobjectDefinition"
    )
    user_errors: list[UserErrorPayload] = Field(
        default_factory=list["UserErrorPayload"], alias="userErrors"
    )


class CreateDefinitionData(ShopifyBaseModel):
    result: DefinitionMutationPayload = Field(alias="metaobjectDefinitionCreate")


class UpdateDefinitionData(ShopifyBaseModel):
    result: DefinitionMutationPayload = Field(alias="metaobjectDefinitionUpdate")


class MetaobjectMutationPayload(ShopifyBaseModel):
    metaobject: MetaobjectPayload | None = None
    user_errors: list[UserErrorPayload] = Field(
        default_factory=list["UserErrorPayload"], alias="userErrors"
    )


class CreateMetaobjectData(ShopifyBaseModel):
    result: MetaobjectMutationPayload = Field(alias="metaobjectCreate")


class UpdateMetaobjectData(ShopifyBaseModel):
    result: MetaobjectMutationPayload = Field(alias="metaobjectUpdate")


# metafield definitions


class MetafieldDefinitionPayload(ShopifyBaseModel):
    id: str
    namespace: str
    key: str
    name: str | None = None
    description: str | None = None
    type: FieldTypePayload
    validations: list[ValidationPayload] = Field(default_factory=list["ValidationPayload"])
    access: dict[str, object] = Field(default_factory=dict[str, object])
    pinned_position: int | None = Field(default=None, alias="pinnedPosition")


class MetafieldDefinitionConnection(ShopifyBaseModel):
    nodes: list[MetafieldDefinitionPayload] = Field(
        default_factory=list["MetafieldDefinitionPayload"]
    )
    page_info: PageInfo = Field(alias="pageInfo")


class MetafieldDefinitionsData(ShopifyBaseModel):
    metafield_definitions: MetafieldDefinitionConnection = Field(alias="metafieldDefinitions")


class CreatedMetafieldDefinitionPayload(ShopifyBaseModel):
    definition: MetafieldDefinitionPayload | None = Field(
        default=None, alias="createdDefinition"
    )
    user_errors: list[UserErrorPayload] = Field(
        default_factory=list["UserErrorPayload"], alias="userErrors"
    )


class UpdatedMetafieldDefinitionPayload(ShopifyBaseModel):
    definition: MetafieldDefinitionPayload | None = Field(
        default=None, alias="updatedDefinition"
    )
    user_errors: list[UserErrorPayload] = Field(
        default_factory=list["UserErrorPayload"], alias="userErrors"
    )


class CreateMetafieldDefinitionData(ShopifyBaseModel):
    result: CreatedMetafieldDefinitionPayload = Field(alias="metafieldDefinitionCreate")


class UpdateMetafieldDefinitionData(ShopifyBaseModel):
    result: UpdatedMetafieldDefinitionPayload = Field(alias="metafieldDefinitionUpdate")
