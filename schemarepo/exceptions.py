"""Exceptions raised while resolving schemas and validating instances."""

from typing import Any, Iterator, List, Optional


class SchemaException(Exception):
    """Base class for errors caused by the schema rather than the instance."""

    def __init__(self, message: str, schema: Any = None):
        self.message = message
        self.schema = schema
        super().__init__(message)


class SchemaResolutionError(SchemaException):
    """Raised when a schema cannot be resolved into the index.

    Attributes:
        uri: The offending URI, if the error is tied to one.
    """

    def __init__(self, message: str, uri: Optional[str] = None, schema: Any = None):
        self.uri = uri
        super().__init__(message, schema)


class ValidationError(Exception):
    """Raised when an instance does not match a schema.

    Attributes:
        message: Human readable description of the failure
        keyword: The keyword that rejected the instance
        location: JSON pointer of the rejected value inside the instance
        schema_uri: Absolute URI of the schema node holding the keyword
        causes: Errors of subschemas that led to this one
    """

    def __init__(self, message: str, keyword: Optional[str] = None, location: str = "",
                 schema_uri: Optional[str] = None, causes: Optional[List["ValidationError"]] = None):
        self.message = message
        self.keyword = keyword
        self.location = location
        self.schema_uri = schema_uri
        self.causes = causes or []
        super().__init__(f"{message} at #{location}")

    def flatten(self) -> Iterator["ValidationError"]:
        """Yields this error followed by all nested causes, depth first."""
        yield self
        for cause in self.causes:
            yield from cause.flatten()

    def to_dict(self) -> dict:
        output = {
            "keyword": self.keyword,
            "instanceLocation": f"#{self.location}",
            "error": self.message,
        }
        if self.schema_uri:
            output["absoluteKeywordLocation"] = self.schema_uri
        return output


class NoSyncValidationError(Exception):
    """Raised when synchronous validation is requested on an async-only validator.

    This is a usage error, not a validation failure: retry with validate_async.
    """

    def __init__(self, validator: Any = None):
        self.validator = validator
        super().__init__(
            f"{type(validator).__name__} cannot validate synchronously, use validate_async")
