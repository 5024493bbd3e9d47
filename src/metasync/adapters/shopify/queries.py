"""GraphQL documents for the Shopify Admin API metaobject and metafield definition endpoints."""

from __future__ import annotations

DEFINITIONS_PAGE_LIMIT = 100
INSTANCES_PAGE_LIMIT = 250
METAFIELD_DEFINITIONS_PAGE_LIMIT = 100

_DEFINITION_FIELDS = """
    id
    type
    name
    description
    fieldDefinitions {
      key
      name
      description
      required
      type {
        name
      }
      validations {
        name
        value
      }
    }
    capabilities {
      publishable {
        enabled
      }
    }
    access {
      admin
      storefront
    }
"""

_METAOBJECT_FIELDS = """
    id
    handle
    type
    displayName
    fields {
      key
      value
      type
    }
    capabilities {
      publishable {
        status
      }
    }
"""

_USER_ERRORS = """
    userErrors {
      field
      message
      code
    }
"""

FETCH_DEFINITIONS = f"""
query FetchMetaobjectDefinitions($first: Int!) {{
  metaobjectDefinitions(first: $first) {{
    nodes {{{_DEFINITION_FIELDS}    }}
  }}
}}
"""

FETCH_DEFINITION_BY_ID = f"""
query FetchMetaobjectDefinitionById($id: ID!) {{
  metaobjectDefinition(id: $id) {{{_DEFINITION_FIELDS}  }}
}}
"""

FETCH_METAOBJECTS = f"""
query FetchMetaobjects($type: String!, $first: Int!, $after: String) {{
  metaobjects(type: $type, first: $first, after: $after) {{
    nodes {{{_METAOBJECT_FIELDS}    }}
    pageInfo {{
      hasNextPage
      endCursor
    }}
  }}
}}
"""

FETCH_METAOBJECT_BY_ID = f"""
query FetchMetaobjectById($id: ID!) {{
  metaobject(id: $id) {{{_METAOBJECT_FIELDS}  }}
}}
"""

CREATE_DEFINITION = f"""
mutation CreateMetaobjectDefinition($definition: MetaobjectDefinitionCreateInput!) {{
  metaobjectDefinitionCreate(definition: $definition) {{
    metaobjectDefinition {{{_DEFINITION_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""

UPDATE_DEFINITION = f"""
mutation UpdateMetaobjectDefinition($id: ID!, $definition: MetaobjectDefinitionUpdateInput!) {{
  metaobjectDefinitionUpdate(id: $id, definition: $definition) {{
    metaobjectDefinition {{{_DEFINITION_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""

CREATE_METAOBJECT = f"""
mutation CreateMetaobject($metaobject: MetaobjectCreateInput!) {{
  metaobjectCreate(metaobject: $metaobject) {{
    metaobject {{{_METAOBJECT_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""

UPDATE_METAOBJECT = f"""
mutation UpdateMetaobject($id: ID!, $metaobject: MetaobjectUpdateInput!) {{
  metaobjectUpdate(id: $id, metaobject: $metaobject) {{
    metaobject {{{_METAOBJECT_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""

_METAFIELD_DEFINITION_FIELDS = """
    id
    namespace
    key
    name
    description
    type {
      name
    }
    validations {
      name
      value
    }
    access {
      admin
      storefront
    }
    pinnedPosition
"""

FETCH_METAFIELD_DEFINITIONS = f"""
query FetchMetafieldDefinitions(
  $ownerType: MetafieldOwnerType!
  $first: Int!
  $after: String
  $namespace: String
  $key: String
) {{
  metafieldDefinitions(
    ownerType: $ownerType
    first: $first
    after: $after
    namespace: $namespace
    key: $key
  ) {{
    nodes {{{_METAFIELD_DEFINITION_FIELDS}    }}
    pageInfo {{
      hasNextPage
      endCursor
    }}
  }}
}}
"""

CREATE_METAFIELD_DEFINITION = f"""
mutation CreateMetafieldDefinition($definition: MetafieldDefinitionInput!) {{
  metafieldDefinitionCreate(definition: $definition) {{
    createdDefinition {{{_METAFIELD_DEFINITION_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""

UPDATE_METAFIELD_DEFINITION = f"""
mutation UpdateMetafieldDefinition($definition: MetafieldDefinitionUpdateInput!) {{
  metafieldDefinitionUpdate(definition: $definition) {{
    updatedDefinition {{{_METAFIELD_DEFINITION_FIELDS}    }}{_USER_ERRORS}  }}
}}
"""
