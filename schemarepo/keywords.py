"""Validators for keywords that check the value itself and never hold subschemas.

All of them are sync-capable.
"""

import datetime
import ipaddress
import logging
import math
import re
from typing import Any, Dict, Optional, Pattern

import jsonpointer

from schemarepo.common import is_absolute_uri, is_number, json_equals, json_type
from schemarepo.exceptions import SchemaException
from schemarepo.validation import MutableState, SchemaValidator, ValidatorContext

logger = logging.getLogger(__name__)


class KeywordValidator(SchemaValidator):
    """A leaf keyword validator bound to the keyword's value in the schema."""

    def __init__(self, state: MutableState, expected: Any, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.expected = expected


class TypeValidator(KeywordValidator):
    keyword = 'type'

    def __init__(self, state, expected, schema_uri=None, integer_floats: bool = True):
        super().__init__(state, expected if isinstance(expected, list) else [expected], schema_uri)
        self.integer_floats = integer_floats

    def matches(self, type_name: str, value: Any) -> bool:
        actual = json_type(value)
        if type_name == 'number':
            return actual in ('integer', 'number')
        if type_name == 'integer' and actual == 'number':
            return self.integer_floats and math.isfinite(value) and float(value).is_integer()
        return actual == type_name

    def validate_sync(self, context, value):
        if not any(self.matches(type_name, value) for type_name in self.expected):
            raise self.error(context, f"Expected {' or '.join(self.expected)}, got {json_type(value)}")


class EnumValidator(KeywordValidator):
    keyword = 'enum'

    def validate_sync(self, context, value):
        if not any(json_equals(value, option) for option in self.expected):
            raise self.error(context, f"Value is not one of {self.expected}")


class ConstValidator(KeywordValidator):
    keyword = 'const'

    def validate_sync(self, context, value):
        if not json_equals(value, self.expected):
            raise self.error(context, f"Value must be {self.expected!r}")


class RequiredValidator(KeywordValidator):
    keyword = 'required'

    def validate_sync(self, context, value):
        if not isinstance(value, dict):
            return
        missing = [name for name in self.expected if name not in value]
        if missing:
            raise self.error(context, f"Missing required properties {missing}")


class DependentRequiredValidator(KeywordValidator):
    keyword = 'dependentRequired'

    def validate_sync(self, context, value):
        if not isinstance(value, dict):
            return
        for name, required in self.expected.items():
            if name in value:
                missing = [other for other in required if other not in value]
                if missing:
                    raise self.error(context, f"Property '{name}' requires properties {missing}")


class MinimumValidator(KeywordValidator):
    keyword = 'minimum'

    def __init__(self, state, expected, schema_uri=None, exclusive: bool = False):
        super().__init__(state, expected, schema_uri)
        self.exclusive = exclusive
        if exclusive:
            self.keyword = 'exclusiveMinimum'

    def validate_sync(self, context, value):
        if not is_number(value):
            return
        if value < self.expected or (self.exclusive and value == self.expected):
            relation = 'greater than' if self.exclusive else 'greater than or equal to'
            raise self.error(context, f"Value {value} must be {relation} {self.expected}")


class MaximumValidator(KeywordValidator):
    keyword = 'maximum'

    def __init__(self, state, expected, schema_uri=None, exclusive: bool = False):
        super().__init__(state, expected, schema_uri)
        self.exclusive = exclusive
        if exclusive:
            self.keyword = 'exclusiveMaximum'

    def validate_sync(self, context, value):
        if not is_number(value):
            return
        if value > self.expected or (self.exclusive and value == self.expected):
            relation = 'less than' if self.exclusive else 'less than or equal to'
            raise self.error(context, f"Value {value} must be {relation} {self.expected}")


class MultipleOfValidator(KeywordValidator):
    keyword = 'multipleOf'

    def validate_sync(self, context, value):
        if not is_number(value):
            return
        if isinstance(self.expected, int) and isinstance(value, int):
            valid = value % self.expected == 0
        else:
            quotient = value / self.expected
            valid = math.isfinite(quotient) and abs(quotient - round(quotient)) < 1e-9
        if not valid:
            raise self.error(context, f"Value {value} is not a multiple of {self.expected}")


class MinLengthValidator(KeywordValidator):
    keyword = 'minLength'

    def validate_sync(self, context, value):
        if isinstance(value, str) and len(value) < self.expected:
            raise self.error(context, f"String is shorter than {self.expected} characters")


class MaxLengthValidator(KeywordValidator):
    keyword = 'maxLength'

    def validate_sync(self, context, value):
        if isinstance(value, str) and len(value) > self.expected:
            raise self.error(context, f"String is longer than {self.expected} characters")


def compile_pattern(pattern: Any, schema_uri: Optional[str] = None) -> Pattern:
    """Compiles a schema regex, reporting malformed ones as SchemaException."""
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as e:
        raise SchemaException(f'Invalid regular expression "{pattern}" in schema {schema_uri}: {e}',
                              schema=pattern) from e


class PatternValidator(KeywordValidator):
    keyword = 'pattern'

    def __init__(self, state, expected, schema_uri=None):
        super().__init__(state, expected, schema_uri)
        self.regex = compile_pattern(expected, schema_uri)

    def validate_sync(self, context, value):
        if isinstance(value, str) and not self.regex.search(value):
            raise self.error(context, f"String does not match pattern '{self.expected}'")


class MinItemsValidator(KeywordValidator):
    keyword = 'minItems'

    def validate_sync(self, context, value):
        if isinstance(value, list) and len(value) < self.expected:
            raise self.error(context, f"Array has fewer than {self.expected} items")


class MaxItemsValidator(KeywordValidator):
    keyword = 'maxItems'

    def validate_sync(self, context, value):
        if isinstance(value, list) and len(value) > self.expected:
            raise self.error(context, f"Array has more than {self.expected} items")


class UniqueItemsValidator(KeywordValidator):
    keyword = 'uniqueItems'

    def validate_sync(self, context, value):
        if not self.expected or not isinstance(value, list):
            return
        for i, item in enumerate(value):
            for j in range(i):
                if json_equals(item, value[j]):
                    raise self.error(context, f"Array items {j} and {i} are equal")


class MinPropertiesValidator(KeywordValidator):
    keyword = 'minProperties'

    def validate_sync(self, context, value):
        if isinstance(value, dict) and len(value) < self.expected:
            raise self.error(context, f"Object has fewer than {self.expected} properties")


class MaxPropertiesValidator(KeywordValidator):
    keyword = 'maxProperties'

    def validate_sync(self, context, value):
        if isinstance(value, dict) and len(value) > self.expected:
            raise self.error(context, f"Object has more than {self.expected} properties")


def _is_date(value: str) -> bool:
    if not re.match(r'^\d{4}-\d{2}-\d{2}$', value):
        return False
    try:
        datetime.date.fromisoformat(value)
        return True
    except ValueError:
        return False


TIME_PATTERN = re.compile(r'^\d{2}:\d{2}:\d{2}(\.\d+)?([zZ]|[+-]\d{2}:\d{2})$')


def _is_date_time(value: str) -> bool:
    date, separator, time = value.partition('T') if 'T' in value else value.partition('t')
    return bool(separator) and _is_date(date) and bool(TIME_PATTERN.match(time))


def _is_ip(value: str, version: int) -> bool:
    try:
        return ipaddress.ip_address(value).version == version
    except ValueError:
        return False


def _is_regex(value: str) -> bool:
    try:
        re.compile(value)
        return True
    except re.error:
        return False


def _is_json_pointer(value: str) -> bool:
    try:
        jsonpointer.JsonPointer(value)
        return True
    except jsonpointer.JsonPointerException:
        return False


FORMAT_CHECKS: Dict[str, Any] = {
    'date': _is_date,
    'date-time': _is_date_time,
    'time': lambda value: bool(TIME_PATTERN.match(value)),
    'email': lambda value: bool(re.match(r'^[^@\s]+@[^@\s]+$', value)),
    'hostname': lambda value: bool(re.match(
        r'^(?=.{1,253}$)[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$', value)),
    'ipv4': lambda value: _is_ip(value, 4),
    'ipv6': lambda value: _is_ip(value, 6),
    'uri': is_absolute_uri,
    'uuid': lambda value: bool(re.match(
        r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$', value)),
    'regex': _is_regex,
    'json-pointer': _is_json_pointer,
}


class FormatValidator(KeywordValidator):
    keyword = 'format'

    def __init__(self, state, expected, schema_uri=None):
        super().__init__(state, expected, schema_uri)
        self.check = FORMAT_CHECKS.get(expected)
        if self.check is None:
            logger.warning("Unknown format '%s' is not asserted", expected)

    def validate_sync(self, context, value):
        if self.check is not None and isinstance(value, str) and not self.check(value):
            raise self.error(context, f"String is not a valid {self.expected}")


class BooleanSchemaValidator(SchemaValidator):
    """The validator of a boolean schema."""

    def __init__(self, state: MutableState, accept: bool, schema_uri: Optional[str] = None) -> None:
        super().__init__(state, schema_uri)
        self.accept = accept

    def validate_sync(self, context: ValidatorContext, value: Any) -> None:
        if not self.accept:
            raise self.error(context, "No value is valid against a false schema")


LEAF_VALIDATORS: Dict[str, type] = {
    'enum': EnumValidator,
    'const': ConstValidator,
    'required': RequiredValidator,
    'dependentRequired': DependentRequiredValidator,
    'multipleOf': MultipleOfValidator,
    'minLength': MinLengthValidator,
    'maxLength': MaxLengthValidator,
    'pattern': PatternValidator,
    'minItems': MinItemsValidator,
    'maxItems': MaxItemsValidator,
    'uniqueItems': UniqueItemsValidator,
    'minProperties': MinPropertiesValidator,
    'maxProperties': MaxPropertiesValidator,
}
