"""Validators for keywords that apply subschemas to parts of the value."""

import asyncio
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from schemarepo.exceptions import ValidationError
from schemarepo.keywords import compile_pattern
from schemarepo.validation import (ApplicatorValidator, Call, MutableState, SchemaValidator,
                                   ValidatorContext)


class PropertiesValidator(ApplicatorValidator):
    """properties, patternProperties and additionalProperties of one schema."""

    keyword = 'properties'

    def __init__(self, state: MutableState, properties: Dict[str, SchemaValidator],
                 patterns: Sequence[Tuple[str, SchemaValidator]] = (),
                 additional: Optional[SchemaValidator] = None, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.properties = properties
        self.patterns: List[Tuple[Pattern, SchemaValidator]] = [
            (compile_pattern(pattern, schema_uri), validator) for pattern, validator in patterns]
        self.additional = additional

    def children(self):
        children = list(self.properties.values()) + [validator for _, validator in self.patterns]
        if self.additional is not None:
            children.append(self.additional)
        return children

    def calls(self, context: ValidatorContext, value: Any) -> List[Call]:
        if not isinstance(value, dict):
            return []
        calls = []
        for name, property_value in value.items():
            child = context.child(name)
            matched = False
            if name in self.properties:
                calls.append((self.properties[name], child, property_value))
                matched = True
            for regex, validator in self.patterns:
                if regex.search(name):
                    calls.append((validator, child, property_value))
                    matched = True
            if not matched and self.additional is not None:
                calls.append((self.additional, child, property_value))
                matched = True
            if matched:
                context.mark_evaluated(name)
        return calls


class PropertyNamesValidator(ApplicatorValidator):
    keyword = 'propertyNames'

    def __init__(self, state: MutableState, schema: SchemaValidator, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schema = schema

    def children(self):
        return [self.schema]

    def calls(self, context, value):
        if not isinstance(value, dict):
            return []
        return [(self.schema, context.child(name), name) for name in value]


class ItemsValidator(ApplicatorValidator):
    """
    Positional and uniform item schemas.

    Items at an index below len(prefix) use the positional schema, later ones
    use items, or additional when there is no items schema.
    """

    keyword = 'items'

    def __init__(self, state: MutableState, prefix: Sequence[SchemaValidator] = (),
                 items: Optional[SchemaValidator] = None, additional: Optional[SchemaValidator] = None,
                 schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.prefix = list(prefix)
        self.items = items
        self.additional = additional

    def children(self):
        return self.prefix + [v for v in (self.items, self.additional) if v is not None]

    def calls(self, context, value):
        if not isinstance(value, list):
            return []
        calls = []
        for i, item in enumerate(value):
            if i < len(self.prefix):
                validator = self.prefix[i]
            else:
                validator = self.items if self.items is not None else self.additional
            if validator is not None:
                calls.append((validator, context.child(i), item))
                context.mark_evaluated(i)
        return calls


class DependentSchemasValidator(ApplicatorValidator):
    keyword = 'dependentSchemas'

    def __init__(self, state: MutableState, schemas: Dict[str, SchemaValidator],
                 schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schemas = schemas

    def children(self):
        return list(self.schemas.values())

    def calls(self, context, value):
        if not isinstance(value, dict):
            return []
        return [(validator, context, value) for name, validator in self.schemas.items() if name in value]


class UnevaluatedPropertiesValidator(ApplicatorValidator):
    """Applies its schema to properties no other keyword at this location has evaluated."""

    keyword = 'unevaluatedProperties'

    def __init__(self, state: MutableState, schema: SchemaValidator, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schema = schema

    def children(self):
        return [self.schema]

    def calls(self, context, value):
        if not isinstance(value, dict):
            return []
        evaluated = context.evaluated()
        calls = [(self.schema, context.child(name), property_value)
                 for name, property_value in value.items() if name not in evaluated]
        for name in value:
            context.mark_evaluated(name)
        return calls


class UnevaluatedItemsValidator(ApplicatorValidator):
    keyword = 'unevaluatedItems'

    def __init__(self, state: MutableState, schema: SchemaValidator, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schema = schema

    def children(self):
        return [self.schema]

    def calls(self, context, value):
        if not isinstance(value, list):
            return []
        evaluated = context.evaluated()
        calls = [(self.schema, context.child(i), item)
                 for i, item in enumerate(value) if i not in evaluated]
        for i in range(len(value)):
            context.mark_evaluated(i)
        return calls


class ContainsValidator(SchemaValidator):
    """At least min_contains and at most max_contains items match the schema."""

    keyword = 'contains'

    def __init__(self, state: MutableState, schema: SchemaValidator, min_contains: int = 1,
                 max_contains: Optional[int] = None, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schema = schema
        self.min_contains = min_contains
        self.max_contains = max_contains

    def children(self):
        return [self.schema]

    def _check_count(self, context: ValidatorContext, matched: List[int]) -> None:
        for i in matched:
            context.mark_evaluated(i)
        if len(matched) < self.min_contains:
            raise self.error(context, f"Array must contain at least {self.min_contains} matching items, "
                                      f"found {len(matched)}")
        if self.max_contains is not None and len(matched) > self.max_contains:
            raise self.error(context, f"Array must contain at most {self.max_contains} matching items, "
                                      f"found {len(matched)}")

    def validate_sync(self, context, value):
        self.check_sync()
        if not isinstance(value, list):
            return
        matched = []
        for i, item in enumerate(value):
            try:
                self.schema.validate_sync(context.child(i), item)
                matched.append(i)
            except ValidationError:
                pass
        self._check_count(context, matched)

    async def _matches(self, context: ValidatorContext, item: Any) -> bool:
        try:
            await self.schema.validate_async(context, item)
            return True
        except ValidationError:
            return False

    async def validate_async(self, context, value):
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        if not isinstance(value, list):
            return
        results = await asyncio.gather(*(self._matches(context.child(i), item) for i, item in enumerate(value)))
        self._check_count(context, [i for i, result in enumerate(results) if result])


class IfThenElseValidator(SchemaValidator):
    keyword = 'if'

    def __init__(self, state: MutableState, if_schema: SchemaValidator,
                 then_schema: Optional[SchemaValidator] = None, else_schema: Optional[SchemaValidator] = None,
                 schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.if_schema = if_schema
        self.then_schema = then_schema
        self.else_schema = else_schema

    def children(self):
        return [v for v in (self.if_schema, self.then_schema, self.else_schema) if v is not None]

    def validate_sync(self, context, value):
        self.check_sync()
        try:
            self.if_schema.validate_sync(context, value)
            branch = self.then_schema
        except ValidationError:
            branch = self.else_schema
        if branch is not None:
            branch.validate_sync(context, value)

    async def validate_async(self, context, value):
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        try:
            await self.if_schema.validate_async(context, value)
            branch = self.then_schema
        except ValidationError:
            branch = self.else_schema
        if branch is not None:
            await branch.validate_async(context, value)
