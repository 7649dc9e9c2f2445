"""
Resolves schema documents into a SchemaIndex.

The resolver walks a schema tree once, depth first. Every addressable
subschema gets a canonical URI made of the closest base URI and the JSON
pointer from that base. Identifiers ($id, legacy id) move the base URI,
$anchor adds plain name fragments, and $ref/$recursiveRef are annotated with
their absolute targets so validators can look them up later.
"""

import logging
from enum import Enum
from typing import Any, Union

from schemarepo.common import SchemaURL, encode_pointer_token
from schemarepo.exceptions import SchemaResolutionError
from schemarepo.schemaindex import (ABSOLUTE_RECURSIVE_REF, ABSOLUTE_REF, ABSOLUTE_URI,
                                    SchemaIndex)

logger = logging.getLogger(__name__)

IGNORE_KEYWORDS = frozenset([
    'id', '$id', '$ref', '$schema', '$anchor', '$vocabulary', '$comment',
    'default', 'enum', 'const', 'required', 'type',
    'maximum', 'minimum', 'exclusiveMaximum', 'exclusiveMinimum', 'multipleOf',
    'maxLength', 'minLength', 'pattern', 'format',
    'maxItems', 'minItems', 'uniqueItems', 'maxProperties', 'minProperties',
])

SCHEMA_ARRAY_KEYWORDS = frozenset(['prefixItems', 'items', 'allOf', 'anyOf', 'oneOf'])

SCHEMA_MAP_KEYWORDS = frozenset(['$defs', 'definitions', 'properties', 'patternProperties',
                                 'dependentSchemas'])

SCHEMA_KEYWORDS = frozenset([
    'additionalItems', 'unevaluatedItems', 'items', 'contains', 'additionalProperties',
    'unevaluatedProperties', 'propertyNames', 'not', 'if', 'then', 'else',
])


class KeywordCategory(Enum):
    """How the resolver treats the value of a keyword."""
    IGNORED = 'ignored'
    SCHEMA_ARRAY = 'schema-array'
    SCHEMA_MAP = 'schema-map'
    SCHEMA = 'schema'
    UNKNOWN_SCHEMA = 'unknown-schema'
    LEAF = 'leaf'


class SchemaPosition(Enum):
    """Where a subschema sits, which decides whether its identifier counts.

    ROOT nodes may declare any identifier. ELEMENT nodes (array members of
    allOf, items, ...) may only add fragment identifiers and never change the
    base URI. UNKNOWN nodes (values of unrecognized keywords) are scanned for
    references but their identifiers are ignored.
    """
    ROOT = 'root'
    ELEMENT = 'element'
    UNKNOWN = 'unknown'


def classify_keyword(key: str, value: Any) -> KeywordCategory:
    """Classifies a keyword by name and value shape."""
    if key in IGNORE_KEYWORDS:
        return KeywordCategory.IGNORED
    if isinstance(value, list):
        return KeywordCategory.SCHEMA_ARRAY if key in SCHEMA_ARRAY_KEYWORDS else KeywordCategory.LEAF
    if key in SCHEMA_MAP_KEYWORDS:
        return KeywordCategory.SCHEMA_MAP if isinstance(value, dict) else KeywordCategory.LEAF
    if isinstance(value, (dict, bool)):
        return KeywordCategory.SCHEMA if key in SCHEMA_KEYWORDS else KeywordCategory.UNKNOWN_SCHEMA
    return KeywordCategory.LEAF


def normalized_reference(reference: Any, base_uri: SchemaURL, keyword: str) -> str:
    """Resolves a reference keyword value against the base, dropping an empty fragment."""
    if not isinstance(reference, str):
        raise SchemaResolutionError(f'"{keyword}" must be a string, got {type(reference).__name__}')
    url = SchemaURL(reference, base_uri)
    url.fragment = url.fragment
    return url.href


class SchemaResolver:
    """
    Populates a SchemaIndex from schema documents.

    Attributes:
    index: The index that receives the canonical URIs, anchors and annotations.
    """

    def __init__(self, index: SchemaIndex) -> None:
        self.index = index

    def resolve(self, schema: Any, base_uri: Union[str, SchemaURL]) -> SchemaIndex:
        """
        Resolves a root schema against a base URI.

        Args:
            schema: Root schema, a dict or a bool.
            base_uri: Absolute URI of the document.

        Returns:
            The populated index.

        Raises:
            SchemaResolutionError: On URI collisions between distinct nodes or malformed references.
        """
        base = SchemaURL(base_uri.href if isinstance(base_uri, SchemaURL) else base_uri)
        base.fragment = ''
        logger.debug("Resolving schema with base URI %s", base.href)
        self._dereference(schema, base, '', SchemaPosition.ROOT)
        return self.index

    def _dereference(self, schema: Any, base_uri: SchemaURL, base_pointer: str,
                     position: SchemaPosition, apply_identifier: bool = True) -> None:
        if isinstance(schema, dict):
            if apply_identifier and position is not SchemaPosition.UNKNOWN:
                base_uri = self._apply_identifier(schema, base_uri, base_pointer, position)
        elif not isinstance(schema, bool):
            return

        schema_uri = base_uri.href + (f'#{base_pointer}' if base_pointer else '')
        if not self.index.register(schema_uri, schema):
            # same node reached again, e.g. through an additional $id
            return
        logger.debug("Registered %s", schema_uri)

        if isinstance(schema, bool):
            return

        self.index.annotate(schema, ABSOLUTE_URI, schema_uri)

        if '$ref' in schema and not self.index.is_annotated(schema, ABSOLUTE_REF):
            self.index.annotate(schema, ABSOLUTE_REF,
                                normalized_reference(schema['$ref'], base_uri, '$ref'))

        if '$recursiveRef' in schema and not self.index.is_annotated(schema, ABSOLUTE_RECURSIVE_REF):
            self.index.annotate(schema, ABSOLUTE_RECURSIVE_REF,
                                normalized_reference(schema['$recursiveRef'], base_uri, '$recursiveRef'))

        if '$anchor' in schema:
            anchor = schema['$anchor']
            if not isinstance(anchor, str):
                raise SchemaResolutionError(f'"$anchor" must be a string at {schema_uri}', schema=schema)
            self.index.register(SchemaURL(f'#{anchor}', base_uri).href, schema)

        for key, sub_schema in schema.items():
            category = classify_keyword(key, sub_schema)
            if category in (KeywordCategory.IGNORED, KeywordCategory.LEAF):
                continue
            key_base = f'{base_pointer}/{encode_pointer_token(key)}'
            if category is KeywordCategory.SCHEMA_ARRAY:
                for i, item in enumerate(sub_schema):
                    self._dereference(item, base_uri, f'{key_base}/{i}', SchemaPosition.ELEMENT)
            elif category is KeywordCategory.SCHEMA_MAP:
                for sub_key, item in sub_schema.items():
                    self._dereference(item, base_uri, f'{key_base}/{encode_pointer_token(sub_key)}',
                                      SchemaPosition.ROOT)
            elif category is KeywordCategory.SCHEMA:
                self._dereference(sub_schema, base_uri, key_base, SchemaPosition.ROOT)
            else:
                self._dereference(sub_schema, base_uri, key_base, SchemaPosition.UNKNOWN)

    def _apply_identifier(self, schema: dict, base_uri: SchemaURL, base_pointer: str,
                          position: SchemaPosition) -> SchemaURL:
        """Handles $id/id and returns the base URI for the node and its descendants."""
        identifier = schema.get('$id')
        if identifier is None and isinstance(schema.get('id'), str):
            identifier = schema['id']
        if not identifier:
            return base_uri
        if not isinstance(identifier, str):
            raise SchemaResolutionError(f'"$id" must be a string, got {type(identifier).__name__}',
                                        schema=schema)

        url = SchemaURL(identifier, base_uri)
        if url.fragment:
            # "#name" or "#/pointer" addresses this node but keeps the base
            self.index.register(url.href, schema)
            return base_uri
        if position is not SchemaPosition.ROOT:
            return base_uri

        url.fragment = ''
        if not base_pointer:
            return url
        logger.debug("Schema at %s#%s declares identifier %s", base_uri.href, base_pointer, url.href)
        self._dereference(schema, url, '', position, apply_identifier=False)
        return base_uri
