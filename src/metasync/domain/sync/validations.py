"""Translation of definition-id validations from source ids to target ids."""

from __future__ import annotations

from typing import TYPE_CHECKING

from metasync.domain.model import Validation

from .field_types import DEFINITION_ID_VALIDATION, DEFINITION_IDS_VALIDATION
from .references import decode_id_list, encode_id_list

if TYPE_CHECKING:
    from .catalog import DefinitionCatalog
    from .log_context import SyncLogContext


class DefinitionIdTranslator:
    """Rewrite ``metaobject_definition_id(s)`` validations for the target store.

    A referenced definition is looked up by id in the source catalog, fetched
    on demand when the bulk listing did not include it, and mapped by type onto
    the target catalog. Other validations pass through unchanged.
    """

    def __init__(
        self, source_catalog: DefinitionCatalog, target_catalog: DefinitionCatalog
    ) -> None:
        self.source_catalog = source_catalog
        self.target_catalog = target_catalog

    async def translate(
        self, validation: Validation, field_key: str, *, context: SyncLogContext
    ) -> Validation | None:
        """Return the translated validation, or ``None`` when an id cannot be mapped."""

        if not validation.value:
            return validation
        if validation.name == DEFINITION_ID_VALIDATION:
            target_id = await self.target_id(validation.value, field_key, context=context)
            if target_id is None:
                return None
            return Validation(name=validation.name, value=target_id)
        if validation.name == DEFINITION_IDS_VALIDATION:
            source_ids = decode_id_list(validation.value)
            if source_ids is None:
                context.error("Malformed %s validation on field %s", validation.name, field_key)
                return None
            target_ids: list[str] = []
            for source_id in source_ids:
                target_id = await self.target_id(source_id, field_key, context=context)
                if target_id is None:
                    return None
                target_ids.append(target_id)
            return Validation(name=validation.name, value=encode_id_list(target_ids))
        return validation

    async def target_id(
        self, source_id: str, field_key: str, *, context: SyncLogContext
    ) -> str | None:
        referenced = self.source_catalog.by_id(source_id) or await self.source_catalog.fetch_by_id(
            source_id
        )
        if referenced is None:
            context.error("Field %s references unknown source definition %s", field_key, source_id)
            return None
        target_id = self.target_catalog.id_for_type(referenced.type)
        if target_id is None:
            context.error(
                "Field %s references type %s, which does not exist in target",
                field_key,
                referenced.type,
            )
            return None
        return target_id
