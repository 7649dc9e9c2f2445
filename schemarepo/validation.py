"""Core abstractions of the dual-mode validator model.

Every validator exposes is_sync(), validate_sync() and validate_async().
A validator is sync-capable when neither it nor anything reachable from it
needs to suspend. Sync-capable validators run their synchronous path inside
validate_async, so both modes share one implementation of the checks.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from schemarepo.common import encode_pointer_token
from schemarepo.exceptions import NoSyncValidationError, ValidationError

logger = logging.getLogger(__name__)


class ValidatorContext:
    """
    Per-call validation state.

    Evaluated property names and item indices are recorded per annotation
    scope. Each schema node validates in its own scope and merges it into
    the caller's scope only when it succeeds, so sibling subschemas never
    see each other's annotations.

    Attributes:
    location: JSON pointer of the value being validated, relative to the instance root.
    """

    def __init__(self, location: str = '', evaluated: Optional[Dict[str, Set[Any]]] = None) -> None:
        self.location = location
        self._evaluated = evaluated if evaluated is not None else {}

    def child(self, token: Any) -> 'ValidatorContext':
        """Returns the context of a nested value, sharing the evaluation bookkeeping."""
        return ValidatorContext(f'{self.location}/{encode_pointer_token(token)}', self._evaluated)

    def mark_evaluated(self, token: Any) -> None:
        """Records that a property name or item index at this location was evaluated."""
        self._evaluated.setdefault(self.location, set()).add(token)

    def evaluated(self) -> Set[Any]:
        return set(self._evaluated.get(self.location, ()))

    def scope(self) -> 'ValidatorContext':
        """Returns a context for the same location with an empty annotation scope."""
        return ValidatorContext(self.location)

    def merge(self, scope: 'ValidatorContext') -> None:
        """Adds what was evaluated at this location in the given scope."""
        evaluated = scope._evaluated.get(self.location)
        if evaluated:
            self._evaluated.setdefault(self.location, set()).update(evaluated)

    def __repr__(self) -> str:
        return f"ValidatorContext(location='#{self.location}')"


class MutableState:
    """Shared by all validators of one tree; bumping the version drops cached sync capability."""

    def __init__(self) -> None:
        self.version = 0

    def invalidate(self) -> None:
        self.version += 1
        logger.debug("Validator state changed, version %d", self.version)


class SchemaValidator:
    """
    Base class of all validators.

    Subclasses implement validate_sync. Validators that can suspend override
    validate_async and report is_sync_local() == False until they no longer
    need to. Validators that hold other validators list them in children().
    """

    keyword: Optional[str] = None

    def __init__(self, state: MutableState, schema_uri: Optional[str] = None) -> None:
        self.state = state
        self.schema_uri = schema_uri
        self._sync_cache: Tuple[int, bool] = (-1, True)

    def children(self) -> Iterable['SchemaValidator']:
        return ()

    def is_sync_local(self) -> bool:
        """Whether this validator alone, ignoring children, can complete without suspending."""
        return True

    def is_sync(self) -> bool:
        version, cached = self._sync_cache
        if version != self.state.version:
            cached = self._compute_sync(set())
            self._sync_cache = (self.state.version, cached)
        return cached

    def _compute_sync(self, visiting: Set[int]) -> bool:
        version, cached = self._sync_cache
        if version == self.state.version:
            return cached
        if id(self) in visiting:
            # a reference cycle adds nothing that is not already being checked
            return True
        visiting.add(id(self))
        if not self.is_sync_local():
            return False
        return all(child._compute_sync(visiting) for child in self.children())

    def check_sync(self) -> None:
        if not self.is_sync():
            raise NoSyncValidationError(self)

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        raise NotImplementedError

    async def validate_async(self, context: ValidatorContext, value: Any) -> None:
        await self.validate_sync_as_async(context, value)

    async def validate_sync_as_async(self, context: ValidatorContext, value: Any) -> None:
        self.validate_sync(context, value)

    def error(self, context: ValidatorContext, message: str,
              causes: Optional[List[ValidationError]] = None) -> ValidationError:
        return ValidationError(message, keyword=self.keyword, location=context.location,
                               schema_uri=self.schema_uri, causes=causes)


Call = Tuple[SchemaValidator, ValidatorContext, Any]


async def settle(calls: Sequence[Call]) -> List[Optional[ValidationError]]:
    """
    Starts all async validations, then waits for every one of them.

    Returns:
        The outcome of each call in completion order, None for success.

    Raises:
        Exception: The first exception other than ValidationError, once all calls have finished.
    """
    tasks = [asyncio.ensure_future(validator.validate_async(context, value))
             for validator, context, value in calls]
    outcomes: List[Optional[ValidationError]] = []
    unexpected: Optional[Exception] = None
    for next_done in asyncio.as_completed(tasks):
        try:
            await next_done
        except ValidationError as e:
            outcomes.append(e)
        except Exception as e:  # pylint: disable=broad-except
            if unexpected is None:
                unexpected = e
        else:
            outcomes.append(None)
    if unexpected is not None:
        raise unexpected
    return outcomes


def first_failure(outcomes: Iterable[Optional[ValidationError]]) -> Optional[ValidationError]:
    return next((outcome for outcome in outcomes if outcome is not None), None)


class ApplicatorValidator(SchemaValidator):
    """
    A validator that applies subschemas to parts of the value and requires all of them to pass.

    Subclasses return the (validator, context, value) triples to check from calls()
    and may raise their own errors from it.
    """

    def calls(self, context: ValidatorContext, value: Any) -> List[Call]:
        raise NotImplementedError

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        self.check_sync()
        for validator, child_context, child_value in self.calls(context, value):
            validator.validate_sync(child_context, child_value)

    async def validate_async(self, context: ValidatorContext, value: Any) -> None:
        if self.is_sync():
            return await self.validate_sync_as_async(context, value)
        error = first_failure(await settle(self.calls(context, value)))
        if error is not None:
            raise error
