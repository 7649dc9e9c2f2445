"""Options controlling schema resolution and validation."""

import copy
from enum import Enum
from typing import Optional

DEFAULT_BASE_URI = 'https://schemarepo.local/'


class Draft(Enum):
    """JSON Schema dialects with behaviour differences the validators care about."""
    DRAFT4 = 'draft4'
    DRAFT7 = 'draft7'
    DRAFT201909 = '2019-09'
    DRAFT202012 = '2020-12'

    @classmethod
    def from_identifier(cls, value: str) -> 'Draft':
        """Maps a draft name or a $schema URI to a Draft."""
        for draft in cls:
            if draft.value == value or draft.name.lower() == value.lower():
                return draft
        if 'draft-04' in value:
            return cls.DRAFT4
        if 'draft-06' in value or 'draft-07' in value:
            return cls.DRAFT7
        if '2019-09' in value:
            return cls.DRAFT201909
        if '2020-12' in value:
            return cls.DRAFT202012
        raise ValueError(f"Unknown JSON Schema draft: {value}")


class OutputFormat(Enum):
    """Shape of ValidationResult.to_dict()."""
    FLAG = 'flag'
    BASIC = 'basic'


class JsonSchemaOptions:
    """
    Options for a SchemaRepository or a single Validator.

    Attributes:
    base_uri: Absolute URI that relative identifiers resolve against.
    draft: The JSON Schema draft, governs items/prefixItems and draft4 exclusive bounds.
    output_format: FLAG or BASIC result output.
    assert_format: Treat 'format' as an assertion instead of an annotation.
    allow_remote: Load $ref targets missing from the index over http(s) or file URIs.
    remote_timeout: Timeout in seconds for remote loads.
    """

    def __init__(self, base_uri: Optional[str] = None, draft: Draft = Draft.DRAFT202012,
                 output_format: OutputFormat = OutputFormat.FLAG, assert_format: bool = False,
                 allow_remote: bool = False, remote_timeout: float = 30) -> None:
        self.base_uri = base_uri
        self.draft = draft
        self.output_format = output_format
        self.assert_format = assert_format
        self.allow_remote = allow_remote
        self.remote_timeout = remote_timeout

    @classmethod
    def default(cls) -> 'JsonSchemaOptions':
        return cls(base_uri=DEFAULT_BASE_URI)

    def with_base_uri(self, base_uri: str) -> 'JsonSchemaOptions':
        """Returns a copy of these options using the given base URI."""
        options = copy.copy(self)
        options.base_uri = base_uri
        return options

    def __repr__(self) -> str:
        return (f"JsonSchemaOptions(base_uri={self.base_uri!r}, draft={self.draft.value}, "
                f"output_format={self.output_format.value}, allow_remote={self.allow_remote})")
