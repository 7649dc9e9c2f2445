"""
Builds validator trees from resolved schemas.

A Validator owns a SchemaValidatorFactory working on a private copy of the
repository index. Subschemas are turned into validators eagerly, except for
$ref and $recursiveRef, whose targets are looked up and materialized when
they are first needed. Materialized validators are memoized by the absolute
URI of their schema node, so reference cycles in the schema never turn into
unbounded construction.
"""

# pylint: disable=too-many-branches, too-many-statements

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import jsonpointer
import requests

from schemarepo.applicators import (ContainsValidator, DependentSchemasValidator,
                                    IfThenElseValidator, ItemsValidator, PropertiesValidator,
                                    PropertyNamesValidator, UnevaluatedItemsValidator,
                                    UnevaluatedPropertiesValidator)
from schemarepo.combinators import AllOfValidator, AnyOfValidator, NotValidator, OneOfValidator
from schemarepo.common import SchemaURL, fetch_content, is_number, pointer_fragment_candidates
from schemarepo.exceptions import SchemaResolutionError, ValidationError
from schemarepo.keywords import (LEAF_VALIDATORS, BooleanSchemaValidator, DependentRequiredValidator,
                                 FormatValidator, MaximumValidator, MinimumValidator, TypeValidator)
from schemarepo.options import DEFAULT_BASE_URI, Draft, JsonSchemaOptions, OutputFormat
from schemarepo.resolver import SchemaResolver
from schemarepo.schemaindex import (ABSOLUTE_RECURSIVE_REF, ABSOLUTE_REF, ABSOLUTE_URI,
                                    SchemaIndex)
from schemarepo.validation import (MutableState, SchemaValidator, ValidatorContext, settle)

logger = logging.getLogger(__name__)

MISSING = object()


class SchemaNodeValidator(AllOfValidator):
    """
    The validator of an object schema: all of its keywords must pass.

    Keywords in `deferred` (unevaluatedProperties, unevaluatedItems) run after
    all others have finished, so they can see what the others evaluated.
    The keywords run in an annotation scope of their own, which is merged
    into the caller's scope when the whole node succeeds.
    """

    keyword = None

    def __init__(self, state: MutableState, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, [], schema_uri)
        self.deferred: List[SchemaValidator] = []

    def children(self):
        return self.schemas + self.deferred

    def validate_sync(self, context, value):
        scope = context.scope()
        super().validate_sync(scope, value)
        for validator in self.deferred:
            validator.validate_sync(scope, value)
        context.merge(scope)

    async def validate_async(self, context, value):
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        scope = context.scope()
        self.join(scope, await settle([(v, scope, value) for v in self.schemas]))
        self.join(scope, await settle([(v, scope, value) for v in self.deferred]))
        context.merge(scope)


class RefValidator(SchemaValidator):
    """
    Validates against the schema a $ref points to.

    The target is looked up at validation time. If it is missing and remote
    loading is enabled, the validator is async-only until the target document
    has been loaded.
    """

    keyword = '$ref'

    def __init__(self, state: MutableState, factory: 'SchemaValidatorFactory', ref: str,
                 schema_uri: Optional[str] = None, keyword: str = '$ref') -> None:
        super().__init__(state, schema_uri)
        self.factory = factory
        self.ref = ref
        self.keyword = keyword

    def is_sync_local(self) -> bool:
        return not self.factory.options.allow_remote or self.factory.lookup(self.ref) is not MISSING

    def children(self):
        node = self.factory.lookup(self.ref)
        return [] if node is MISSING else [self.factory.validator_for(node)]

    def target(self) -> SchemaValidator:
        node = self.factory.lookup(self.ref)
        if node is MISSING:
            raise SchemaResolutionError(f'Unresolved {self.keyword} "{self.ref}"', uri=self.ref)
        return self.factory.validator_for(node)

    def validate_sync(self, context, value):
        self.check_sync()
        self.target().validate_sync(context, value)

    async def validate_async(self, context, value):
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        if self.factory.lookup(self.ref) is MISSING:
            await self.factory.load(self.ref)
        await self.target().validate_async(context, value)


class SchemaValidatorFactory:
    """
    Turns schema nodes into validators.

    Attributes:
    index: Private, mutable copy of the index; receives schemas loaded on demand.
    options: The validator options.
    state: Shared sync capability state of all validators built here.
    """

    def __init__(self, index: SchemaIndex, options: JsonSchemaOptions) -> None:
        self.index = index
        self.options = options
        self.state = MutableState()
        self._validators: Dict[str, SchemaValidator] = {}
        self._anonymous: Dict[int, SchemaValidator] = {}
        self._loads: Dict[str, 'asyncio.Future[None]'] = {}
        self._content_cache: Dict[str, str] = {}

    def lookup(self, uri: str) -> Any:
        """Finds the node of an absolute URI, falling back to a JSON pointer into its document."""
        for candidate in pointer_fragment_candidates(uri):
            node = self.index.get(candidate, MISSING)
            if node is not MISSING:
                return node
        document_uri, _, fragment = uri.partition('#')
        if fragment.startswith('/'):
            document = self.index.get(document_uri, MISSING)
            if document is not MISSING:
                return jsonpointer.resolve_pointer(document, unquote(fragment), MISSING)
        return MISSING

    def validator_for(self, schema: Any) -> SchemaValidator:
        if isinstance(schema, bool):
            return BooleanSchemaValidator(self.state, schema)
        if not isinstance(schema, dict):
            raise SchemaResolutionError(f"Schema must be an object or a boolean, got {type(schema).__name__}",
                                        schema=schema)
        uri = self.index.annotation(schema, ABSOLUTE_URI)
        memo = self._validators if uri is not None else self._anonymous
        key = uri if uri is not None else id(schema)
        validator = memo.get(key)
        if validator is None:
            validator = SchemaNodeValidator(self.state, uri)
            memo[key] = validator
            self._build(schema, validator)
        return validator

    def _subschemas(self, schemas: Any) -> List[SchemaValidator]:
        return [self.validator_for(schema) for schema in schemas]

    def _build(self, schema: dict, node: SchemaNodeValidator) -> None:
        state, uri, draft = self.state, node.schema_uri, self.options.draft
        add = node.schemas.append

        if '$ref' in schema:
            ref = (self.index.annotation(schema, ABSOLUTE_REF)
                   or SchemaURL(schema['$ref'], uri or DEFAULT_BASE_URI).href)
            add(RefValidator(state, self, ref, uri))
            if draft in (Draft.DRAFT4, Draft.DRAFT7):
                # siblings of $ref are ignored before 2019-09
                return
        if '$recursiveRef' in schema:
            ref = (self.index.annotation(schema, ABSOLUTE_RECURSIVE_REF)
                   or SchemaURL(schema['$recursiveRef'], uri or DEFAULT_BASE_URI).href)
            add(RefValidator(state, self, ref, uri, keyword='$recursiveRef'))

        if 'type' in schema:
            add(TypeValidator(state, schema['type'], uri, integer_floats=draft is not Draft.DRAFT4))
        for keyword, validator_class in LEAF_VALIDATORS.items():
            if keyword in schema:
                add(validator_class(state, schema[keyword], uri))
        if 'minimum' in schema:
            exclusive = draft is Draft.DRAFT4 and schema.get('exclusiveMinimum') is True
            add(MinimumValidator(state, schema['minimum'], uri, exclusive=exclusive))
        if is_number(schema.get('exclusiveMinimum')):
            add(MinimumValidator(state, schema['exclusiveMinimum'], uri, exclusive=True))
        if 'maximum' in schema:
            exclusive = draft is Draft.DRAFT4 and schema.get('exclusiveMaximum') is True
            add(MaximumValidator(state, schema['maximum'], uri, exclusive=exclusive))
        if is_number(schema.get('exclusiveMaximum')):
            add(MaximumValidator(state, schema['exclusiveMaximum'], uri, exclusive=True))
        if self.options.assert_format and isinstance(schema.get('format'), str):
            add(FormatValidator(state, schema['format'], uri))

        if isinstance(schema.get('allOf'), list):
            add(AllOfValidator(state, self._subschemas(schema['allOf']), uri))
        if isinstance(schema.get('anyOf'), list):
            add(AnyOfValidator(state, self._subschemas(schema['anyOf']), uri))
        if isinstance(schema.get('oneOf'), list):
            add(OneOfValidator(state, self._subschemas(schema['oneOf']), uri))
        if 'not' in schema:
            add(NotValidator(state, self.validator_for(schema['not']), uri))
        if 'if' in schema:
            add(IfThenElseValidator(
                state, self.validator_for(schema['if']),
                self.validator_for(schema['then']) if 'then' in schema else None,
                self.validator_for(schema['else']) if 'else' in schema else None, uri))

        if any(keyword in schema for keyword in ('properties', 'patternProperties', 'additionalProperties')):
            add(PropertiesValidator(
                state,
                {name: self.validator_for(sub) for name, sub in schema.get('properties', {}).items()},
                [(pattern, self.validator_for(sub)) for pattern, sub in schema.get('patternProperties', {}).items()],
                self.validator_for(schema['additionalProperties']) if 'additionalProperties' in schema else None,
                uri))
        if 'propertyNames' in schema:
            add(PropertyNamesValidator(state, self.validator_for(schema['propertyNames']), uri))
        if isinstance(schema.get('dependentSchemas'), dict):
            add(DependentSchemasValidator(
                state, {name: self.validator_for(sub) for name, sub in schema['dependentSchemas'].items()}, uri))
        if isinstance(schema.get('dependencies'), dict):
            dependencies = schema['dependencies']
            required = {name: dep for name, dep in dependencies.items() if isinstance(dep, list)}
            schemas = {name: self.validator_for(dep) for name, dep in dependencies.items()
                       if isinstance(dep, (dict, bool))}
            if required:
                add(DependentRequiredValidator(state, required, uri))
            if schemas:
                add(DependentSchemasValidator(state, schemas, uri))

        items = schema.get('items')
        if isinstance(items, list):
            add(ItemsValidator(
                state, prefix=self._subschemas(items),
                additional=self.validator_for(schema['additionalItems']) if 'additionalItems' in schema else None,
                schema_uri=uri))
        elif draft is Draft.DRAFT202012 and ('prefixItems' in schema or 'items' in schema):
            add(ItemsValidator(
                state, prefix=self._subschemas(schema.get('prefixItems', [])),
                items=self.validator_for(items) if 'items' in schema else None, schema_uri=uri))
        elif 'items' in schema:
            add(ItemsValidator(state, items=self.validator_for(items), schema_uri=uri))
        if 'contains' in schema:
            min_contains = schema.get('minContains', 1) if draft is not Draft.DRAFT7 else 1
            max_contains = schema.get('maxContains') if draft is not Draft.DRAFT7 else None
            add(ContainsValidator(state, self.validator_for(schema['contains']), min_contains, max_contains, uri))

        if 'unevaluatedProperties' in schema:
            node.deferred.append(UnevaluatedPropertiesValidator(
                state, self.validator_for(schema['unevaluatedProperties']), uri))
        if 'unevaluatedItems' in schema:
            node.deferred.append(UnevaluatedItemsValidator(
                state, self.validator_for(schema['unevaluatedItems']), uri))

    async def load(self, uri: str) -> None:
        """Loads the document holding the URI into the private index. Concurrent calls share one load."""
        document_uri = SchemaURL(uri).without_fragment().href
        load = self._loads.get(document_uri)
        if load is None:
            load = asyncio.ensure_future(self._load_document(document_uri))
            self._loads[document_uri] = load
        await load

    async def _load_document(self, document_uri: str) -> None:
        logger.debug("Loading remote schema %s", document_uri)
        try:
            content = await asyncio.to_thread(
                fetch_content, document_uri, self.options.remote_timeout, self._content_cache)
            document = json.loads(content)
        except (requests.RequestException, OSError, NotImplementedError, ValueError) as e:
            self._loads.pop(document_uri, None)
            raise SchemaResolutionError(f'Failed to load remote schema "{document_uri}": {e}',
                                        uri=document_uri) from e
        SchemaResolver(self.index).resolve(document, document_uri)
        if document_uri not in self.index:
            # the document declared a different $id
            self.index.register(document_uri, document)
        logger.info("Loaded remote schema %s", document_uri)
        self.state.invalidate()


class ValidationResult:
    """Result of validating a JSON instance against a schema."""

    def __init__(self, is_valid: bool, errors: Optional[List[ValidationError]] = None,
                 output_format: OutputFormat = OutputFormat.FLAG):
        self.is_valid = is_valid
        self.errors = errors or []
        self.output_format = output_format

    def __bool__(self) -> bool:
        return self.is_valid

    def __str__(self) -> str:
        if self.is_valid:
            return "✓ Valid"
        return "✗ Invalid: " + "; ".join(str(e) for e in self.errors)

    def __repr__(self) -> str:
        return f"ValidationResult(is_valid={self.is_valid}, errors={self.errors})"

    def to_dict(self, output_format: Optional[OutputFormat] = None) -> dict:
        output_format = output_format or self.output_format
        output: Dict[str, Any] = {'valid': self.is_valid}
        if output_format is OutputFormat.BASIC and not self.is_valid:
            output['errors'] = [error.to_dict() for root in self.errors for error in root.flatten()]
        return output


class Validator:
    """
    Validates instances against one schema.

    The schema is looked up in a read-only index snapshot; a schema the
    snapshot does not know is resolved into the validator's private copy.
    """

    def __init__(self, schema: Any, options: JsonSchemaOptions, index: SchemaIndex) -> None:
        self.schema = schema
        self.options = options
        self.factory = SchemaValidatorFactory(index.overlay(), options)
        if isinstance(schema, dict) and not self.factory.index.is_annotated(schema, ABSOLUTE_URI):
            SchemaResolver(self.factory.index).resolve(schema, options.base_uri or DEFAULT_BASE_URI)
        self.root = self.factory.validator_for(schema)

    def is_sync(self) -> bool:
        return self.root.is_sync()

    def validate_sync(self, context: Optional[ValidatorContext], value: Any) -> None:
        """
        Validates on the caller's stack.

        Raises:
            ValidationError: If the value is invalid.
            NoSyncValidationError: If the schema needs asynchronous validation.
        """
        self.root.validate_sync(context or ValidatorContext(), value)

    async def validate_async(self, context: Optional[ValidatorContext], value: Any) -> None:
        """
        Validates on the running event loop.

        Raises:
            ValidationError: If the value is invalid.
        """
        await self.root.validate_async(context or ValidatorContext(), value)

    def validate(self, value: Any) -> ValidationResult:
        """Validates and reports the outcome. Runs its own event loop when async validation is needed."""
        try:
            if self.is_sync():
                self.validate_sync(None, value)
            else:
                asyncio.run(self.validate_async(None, value))
        except ValidationError as e:
            return ValidationResult(False, [e], self.options.output_format)
        return ValidationResult(True, output_format=self.options.output_format)
