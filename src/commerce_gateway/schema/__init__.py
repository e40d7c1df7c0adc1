from commerce_gateway.schema.builder import SchemaBuilder, SourceSchema
from commerce_gateway.schema.merge import merge_schemas, set_fallback_resolvers
from commerce_gateway.schema.resources import commerce_schema_introspection

__all__ = ["SchemaBuilder", "SourceSchema", "commerce_schema_introspection", "merge_schemas", "set_fallback_resolvers"]
