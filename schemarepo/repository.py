"""
Schema repository: the entry point for resolving schemas and creating validators.

    repository = SchemaRepository.create(JsonSchemaOptions(base_uri='https://example.com/'))
    repository.dereference(address_schema)
    validator = repository.validator(person_schema)
    validator.validate_sync(None, instance)
"""

import logging
from typing import Any, Optional
from urllib.parse import unquote

import jsonpointer

from schemarepo.common import SchemaURL, pointer_fragment_candidates
from schemarepo.options import JsonSchemaOptions
from schemarepo.resolver import SchemaResolver
from schemarepo.schemaindex import SchemaIndex
from schemarepo.schemavalidator import Validator

logger = logging.getLogger(__name__)

_UNSET = object()


class SchemaRepository:
    """
    Holds the index of every schema dereferenced into it.

    Attributes:
    options: Default options for validators; options.base_uri must be absolute.
    base_uri: The parsed default base URI.
    """

    def __init__(self, options: JsonSchemaOptions) -> None:
        if options is None:
            raise ValueError("'options' cannot be None")
        if options.base_uri is None:
            raise ValueError("'options.base_uri' cannot be None")
        self.options = options
        self.base_uri = SchemaURL(options.base_uri)
        self._index = SchemaIndex()
        self._resolver = SchemaResolver(self._index)

    @classmethod
    def create(cls, options: Optional[JsonSchemaOptions] = None) -> 'SchemaRepository':
        return cls(options or JsonSchemaOptions.default())

    def dereference(self, schema_or_uri: Any, schema: Any = _UNSET) -> 'SchemaRepository':
        """
        Resolves a schema into the repository index.

        Call as dereference(schema) to resolve against the repository base URI,
        or as dereference(uri, schema) to resolve against the given one.

        Raises:
            SchemaResolutionError: If the schema collides with an indexed URI or holds
                a malformed reference. The repository should be discarded afterwards.
        """
        if schema is _UNSET:
            base_uri, schema = self.base_uri, schema_or_uri
        else:
            base_uri = SchemaURL(schema_or_uri)
        size = len(self._index)
        self._resolver.resolve(schema, base_uri)
        logger.debug("Dereferenced schema at %s, %d new URIs", base_uri.href, len(self._index) - size)
        return self

    def validator(self, schema: Any, options: Optional[JsonSchemaOptions] = None) -> Validator:
        """Creates a validator for the schema, bound to a snapshot of the index."""
        if options is None:
            options = self.options
        elif options.base_uri is None:
            options = options.with_base_uri(self.options.base_uri)
        return Validator(schema, options, self._index.snapshot())

    def find(self, uri: str) -> Any:
        """
        Looks up a schema node by absolute URI.

        Returns:
            The node, or None if the URI is unknown.
        """
        for candidate in pointer_fragment_candidates(uri):
            if candidate in self._index:
                return self._index[candidate]
        document_uri, _, fragment = uri.partition('#')
        if fragment.startswith('/') and document_uri in self._index:
            return jsonpointer.resolve_pointer(self._index[document_uri], unquote(fragment), None)
        return None

    def uris(self):
        """All URIs in the index, in registration order."""
        return list(self._index)

    def __contains__(self, uri: object) -> bool:
        return uri in self._index

    def __len__(self) -> int:
        return len(self._index)
