"""Validators for allOf, anyOf, oneOf and not.

All combinators share one skeleton: in sync mode they walk their children on
the caller's stack, in async mode they start every child, wait for all of them
and apply a join predicate to the outcomes.
"""

from typing import Any, List, Optional, Sequence

from schemarepo.exceptions import ValidationError
from schemarepo.validation import (MutableState, SchemaValidator, ValidatorContext,
                                   first_failure, settle)


class BaseCombinatorValidator(SchemaValidator):
    """
    Common part of the combinators.

    Attributes:
    schemas: Child validators, in declaration order.
    """

    def __init__(self, state: MutableState, schemas: Sequence[SchemaValidator],
                 schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.schemas: List[SchemaValidator] = list(schemas)

    def children(self):
        return self.schemas

    async def validate_async(self, context: ValidatorContext, value: Any) -> None:
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        outcomes = await settle([(schema, context, value) for schema in self.schemas])
        self.join(context, outcomes)

    def join(self, context: ValidatorContext, outcomes: List[Optional[ValidationError]]) -> None:
        """Raises if the child outcomes, in completion order, do not satisfy the combinator."""
        raise NotImplementedError


class AllOfValidator(BaseCombinatorValidator):
    """All children must accept the value. The first failure is reported as is."""

    keyword = 'allOf'

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        self.check_sync()
        for schema in self.schemas:
            schema.validate_sync(context, value)

    def join(self, context, outcomes):
        error = first_failure(outcomes)
        if error is not None:
            raise error


class AnyOfValidator(BaseCombinatorValidator):
    """At least one child must accept the value. Every child runs so all matching branches add annotations."""

    keyword = 'anyOf'

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        self.check_sync()
        outcomes: List[Optional[ValidationError]] = []
        for schema in self.schemas:
            try:
                schema.validate_sync(context, value)
                outcomes.append(None)
            except ValidationError as e:
                outcomes.append(e)
        self.join(context, outcomes)

    def join(self, context, outcomes):
        errors = [outcome for outcome in outcomes if outcome is not None]
        if len(errors) == len(outcomes):
            raise self.error(context, "Value does not match any of the subschemas", errors)


class OneOfValidator(BaseCombinatorValidator):
    keyword = 'oneOf'

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        self.check_sync()
        outcomes: List[Optional[ValidationError]] = []
        for schema in self.schemas:
            try:
                schema.validate_sync(context, value)
                outcomes.append(None)
            except ValidationError as e:
                outcomes.append(e)
        self.join(context, outcomes)

    def join(self, context, outcomes):
        errors = [outcome for outcome in outcomes if outcome is not None]
        matches = len(outcomes) - len(errors)
        if matches == 0:
            raise self.error(context, "Value does not match any of the subschemas", errors)
        if matches > 1:
            raise self.error(context, f"Value matches {matches} subschemas, expected exactly one")


class NotValidator(BaseCombinatorValidator):
    keyword = 'not'

    def __init__(self, state: MutableState, schema: SchemaValidator,
                 schema_uri: Optional[str] = None) -> None:
        super().__init__(state, [schema], schema_uri)

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        self.check_sync()
        try:
            self.schemas[0].validate_sync(context, value)
        except ValidationError:
            return
        raise self.error(context, "Value must not match the subschema")

    def join(self, context, outcomes):
        if first_failure(outcomes) is None:
            raise self.error(context, "Value must not match the subschema")
