from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from metasync.domain.model import (
    DefinitionUpdateInput,
    FieldDefinitionChange,
    FieldDefinitionInput,
    FieldDefinitionOperation,
    FieldInput,
    FieldType,
    MetafieldDefinitionInput,
    MetafieldOwnerType,
    UserError,
    Validation,
)
from metasync.adapters.shopify import ShopifyAPIError
from metasync.domain.ports import DataStore, DataStoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from metasync.adapters.shopify import ShopifyDataStore
    from tests.adapters.shopify.conftest import FakeShopify, ShopifyPayload


def _call[T](store: ShopifyDataStore, operation: Callable[[], Awaitable[T]]) -> T:
    async def run() -> T:
        async with store:
            return await operation()

    return asyncio.run(run())


def test_store_satisfies_port(shopify_store: ShopifyDataStore) -> None:
    assert isinstance(shopify_store, DataStore)
    assert shopify_store.name == "dev"


def test_fetch_definitions_parses_fields_and_validations(
    shopify_store: ShopifyDataStore,
    fake_shopify: FakeShopify,
    definitions_payload: ShopifyPayload,
) -> None:
    fake_shopify.reply(definitions_payload)

    definitions = _call(shopify_store, shopify_store.fetch_definitions)

    assert fake_shopify.variables() == {"first": 100}
    assert [d.type for d in definitions] == ["author", "book"]
    author, book = definitions
    assert author.id == "gid://shopify/MetaobjectDefinition/101"
    assert author.description == "People who write books"
    assert author.capabilities["publishable"] == {"enabled": True}
    assert author.access == {"admin": "MERCHANT_READ_WRITE", "storefront": "NONE"}
    name = author.field_definition("name")
    assert name is not None
    assert name.required
    assert name.type == FieldType("single_line_text_field")
    assert name.description == ""
    reference = book.field_definition("author")
    assert reference is not None
    assert reference.validations == (
        Validation("metaobject_definition_id", "gid://shopify/MetaobjectDefinition/101"),
    )
    assert book.access == {"admin": "MERCHANT_READ_WRITE"}


def test_fetch_definition_by_id_returns_none_when_missing(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply({"data": {"metaobjectDefinition": None}})

    result = _call(shopify_store, lambda: shopify_store.fetch_definition_by_id("gid://x/1"))

    assert result is None
    assert fake_shopify.variables() == {"id": "gid://x/1"}


def test_fetch_instances_returns_page_and_cursor(
    shopify_store: ShopifyDataStore,
    fake_shopify: FakeShopify,
    metaobjects_payload: ShopifyPayload,
) -> None:
    fake_shopify.reply(metaobjects_payload)

    page = _call(shopify_store, lambda: shopify_store.fetch_instances("book", cursor="cursor-1"))

    assert fake_shopify.variables() == {"type": "book", "first": 50, "after": "cursor-1"}
    assert page.next_cursor == "cursor-2"
    dune, untitled = page.items
    assert dune.handle == "dune"
    assert dune.display_name == "Dune"
    subtitle = dune.get_field("subtitle")
    assert subtitle is not None
    assert subtitle.value is None
    author = dune.get_field("author")
    assert author is not None
    assert author.type == "metaobject_reference"
    assert untitled.handle is None
    assert untitled.fields == []


def test_fetch_instances_caps_page_size(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {"data": {"metaobjects": {"nodes": [], "pageInfo": {"hasNextPage": False}}}}
    )

    page = _call(shopify_store, lambda: shopify_store.fetch_instances("book", page_size=1000))

    assert fake_shopify.variables()["first"] == 250
    assert page.items == []
    assert page.next_cursor is None


def test_create_instance_sends_handle_and_parses_user_errors(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {
            "data": {
                "metaobjectCreate": {
                    "metaobject": None,
                    "userErrors": [
                        {
                            "field": ["metaobject", "fields", "0", "value"],
                            "message": "Value is invalid",
                            "code": "INVALID_VALUE",
                        }
                    ],
                }
            }
        }
    )

    result = _call(
        shopify_store,
        lambda: shopify_store.create_instance(
            "book", [FieldInput("title", "Dune")], handle="dune"
        ),
    )

    assert fake_shopify.variables() == {
        "metaobject": {
            "type": "book",
            "fields": [{"key": "title", "value": "Dune"}],
            "handle": "dune",
        }
    }
    assert not result.ok
    assert result.errors == [
        UserError(("metaobject", "fields", "0", "value"), "Value is invalid", "INVALID_VALUE")
    ]


def test_update_instance_returns_updated_record(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {
            "data": {
                "metaobjectUpdate": {
                    "metaobject": {
                        "id": "gid://shopify/Metaobject/201",
                        "type": "book",
                        "handle": "dune",
                        "fields": [{"key": "title", "value": "Dune Messiah"}],
                    },
                    "userErrors": [],
                }
            }
        }
    )

    result = _call(
        shopify_store,
        lambda: shopify_store.update_instance(
            "gid://shopify/Metaobject/201", [FieldInput("title", "Dune Messiah")]
        ),
    )

    assert fake_shopify.variables() == {
        "id": "gid://shopify/Metaobject/201",
        "metaobject": {"fields": [{"key": "title", "value": "Dune Messiah"}]},
    }
    assert result.ok
    assert result.record is not None
    assert result.record.fields[0].value == "Dune Messiah"


def test_update_definition_splits_create_and_update(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {
            "data": {
                "metaobjectDefinitionUpdate": {
                    "metaobjectDefinition": {"id": "gid://d/1", "type": "author"},
                    "userErrors": [],
                }
            }
        }
    )
    name = FieldDefinitionInput(
        key="name", name="Name", type="single_line_text_field", required=True
    )
    bio = FieldDefinitionInput(key="bio", name="Bio", type="multi_line_text_field", required=False)
    update = DefinitionUpdateInput(
        name="Author",
        description="",
        field_definitions=[
            FieldDefinitionChange(FieldDefinitionOperation.UPDATE, name),
            FieldDefinitionChange(FieldDefinitionOperation.CREATE, bio),
        ],
        capabilities={"publishable": {"enabled": True}, "onlineStore": None},
    )

    result = _call(shopify_store, lambda: shopify_store.update_definition("gid://d/1", update))

    variables = fake_shopify.variables()
    assert variables["id"] == "gid://d/1"
    assert variables["definition"] == {
        "name": "Author",
        "description": "",
        "fieldDefinitions": [
            {
                "update": {
                    "key": "name",
                    "name": "Name",
                    "description": "",
                    "required": True,
                    "validations": [],
                }
            },
            {
                "create": {
                    "key": "bio",
                    "name": "Bio",
                    "description": "",
                    "required": False,
                    "validations": [],
                    "type": "multi_line_text_field",
                }
            },
        ],
        "capabilities": {"publishable": {"enabled": True}},
    }
    assert result.ok


def test_unexpected_payload_raises_store_error(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply({"data": {"metaobjects": {"nodes": "not a list"}}})

    with pytest.raises(DataStoreError, match="unexpected MetaobjectsData payload"):
        _call(shopify_store, lambda: shopify_store.fetch_instances("book"))


def _metafield_input(*, pin: bool = False) -> MetafieldDefinitionInput:
    return MetafieldDefinitionInput(
        owner_type=MetafieldOwnerType.PRODUCT,
        namespace="custom",
        key="pages",
        name="Pages",
        type="number_integer",
        validations=[Validation("min", "1")],
        pin=pin,
    )


def test_fetch_metafield_definitions_follows_pages_and_filters(
    shopify_store: ShopifyDataStore,
    fake_shopify: FakeShopify,
    metafield_definitions_payload: ShopifyPayload,
) -> None:
    fake_shopify.reply(metafield_definitions_payload)
    fake_shopify.reply(
        {"data": {"metafieldDefinitions": {"nodes": [], "pageInfo": {"hasNextPage": False}}}}
    )

    definitions = _call(
        shopify_store,
        lambda: shopify_store.fetch_metafield_definitions(
            MetafieldOwnerType.PRODUCT, namespace="custom"
        ),
    )

    assert fake_shopify.variables(0) == {
        "ownerType": "PRODUCT",
        "first": 100,
        "namespace": "custom",
        "after": None,
    }
    assert fake_shopify.variables(1)["after"] == "mf-cursor-1"
    assert "metafieldDefinitions(" in str(fake_shopify.body(0)["query"])
    author, pages = definitions
    assert author.owner_type is MetafieldOwnerType.PRODUCT
    assert author.full_key == "custom.author"
    assert author.type == FieldType("metaobject_reference")
    assert author.validations == (
        Validation("metaobject_definition_id", "gid://shopify/MetaobjectDefinition/101"),
    )
    assert author.access == {"admin": "MERCHANT_READ_WRITE", "storefront": "PUBLIC_READ"}
    assert author.pinned
    assert pages.description == ""
    assert not pages.pinned
    assert pages.access == {"admin": "MERCHANT_READ_WRITE"}


def test_create_metafield_definition_sends_type_and_pin(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {
            "data": {
                "metafieldDefinitionCreate": {
                    "createdDefinition": None,
                    "userErrors": [
                        {
                            "field": ["definition", "pin"],
                            "message": "Limit of pinned definitions reached",
                            "code": "PINNED_LIMIT_REACHED",
                        }
                    ],
                }
            }
        }
    )

    result = _call(
        shopify_store, lambda: shopify_store.create_metafield_definition(_metafield_input(pin=True))
    )

    assert fake_shopify.variables() == {
        "definition": {
            "ownerType": "PRODUCT",
            "namespace": "custom",
            "key": "pages",
            "name": "Pages",
            "description": "",
            "validations": [{"name": "min", "value": "1"}],
            "pin": True,
            "type": "number_integer",
        }
    }
    assert not result.ok
    assert result.errors == [
        UserError(
            ("definition", "pin"),
            "Limit of pinned definitions reached",
            "PINNED_LIMIT_REACHED",
        )
    ]


def test_update_metafield_definition_omits_type(
    shopify_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply(
        {
            "data": {
                "metafieldDefinitionUpdate": {
                    "updatedDefinition": {
                        "id": "gid://shopify/MetafieldDefinition/502",
                        "namespace": "custom",
                        "key": "pages",
                        "name": "Pages",
                        "type": {"name": "number_integer"},
                        "validations": [{"name": "min", "value": "1"}],
                    },
                    "userErrors": [],
                }
            }
        }
    )

    result = _call(
        shopify_store, lambda: shopify_store.update_metafield_definition(_metafield_input())
    )

    variables = fake_shopify.variables()
    assert "type" not in variables["definition"]  # type: ignore[operator]
    assert result.ok
    assert result.record is not None
    assert result.record.id == "gid://shopify/MetafieldDefinition/502"
    assert result.record.owner_type is MetafieldOwnerType.PRODUCT


def test_reads_are_retried_on_gateway_errors(
    retrying_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply({"errors": "Service unavailable"}, status_code=503)
    fake_shopify.reply(
        {"data": {"metaobjects": {"nodes": [], "pageInfo": {"hasNextPage": False}}}}
    )

    page = _call(retrying_store, lambda: retrying_store.fetch_instances("book"))

    assert len(fake_shopify.requests) == 2
    assert page.items == []


def test_mutations_are_sent_once_on_gateway_errors(
    retrying_store: ShopifyDataStore, fake_shopify: FakeShopify
) -> None:
    fake_shopify.reply({"errors": "Service unavailable"}, status_code=503)
    fake_shopify.reply(
        {"data": {"metaobjectCreate": {"metaobject": None, "userErrors": []}}}
    )

    with pytest.raises(ShopifyAPIError, match="HTTP 503"):
        _call(
            retrying_store,
            lambda: retrying_store.create_instance(
                "book", [FieldInput("title", "Dune")], handle="dune"
            ),
        )

    assert len(fake_shopify.requests) == 1
