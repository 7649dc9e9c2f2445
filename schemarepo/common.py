""" Common utility functions for schemarepo. """

# pylint: disable=line-too-long

import copy
import os
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote

import jsonpointer
import requests

from schemarepo.exceptions import SchemaResolutionError

# RFC 3986, appendix B
URI_REGEX = re.compile(r'^(?:([^:/?#]+):)?(?://([^/?#]*))?([^?#]*)(?:\?([^#]*))?(?:#(.*))?$', re.DOTALL)
SCHEME_REGEX = re.compile(r'^[A-Za-z][A-Za-z0-9+\-.]*$')
INVALID_URI_CHARS = re.compile(r'[\x00-\x20\x7f]')

UriParts = Tuple[Optional[str], Optional[str], str, Optional[str], Optional[str]]


def remove_dot_segments(path: str) -> str:
    """ Removes '.' and '..' segments from a path (RFC 3986, 5.2.4). """
    output = []
    while path:
        if path.startswith('../'):
            path = path[3:]
        elif path.startswith('./'):
            path = path[2:]
        elif path.startswith('/./'):
            path = path[2:]
        elif path == '/.':
            path = '/'
        elif path.startswith('/../'):
            path = path[3:]
            if output:
                output.pop()
        elif path == '/..':
            path = '/'
            if output:
                output.pop()
        elif path in ('.', '..'):
            path = ''
        else:
            start = 1 if path.startswith('/') else 0
            end = path.find('/', start)
            if end == -1:
                end = len(path)
            output.append(path[:end])
            path = path[end:]
    return ''.join(output)


def split_uri(reference: str) -> UriParts:
    """ Splits a URI reference into scheme, authority, path, query and fragment. """
    if not isinstance(reference, str):
        raise SchemaResolutionError(f'URI reference must be a string, got {type(reference).__name__}')
    if INVALID_URI_CHARS.search(reference):
        raise SchemaResolutionError(f'Malformed URI reference "{reference}"', uri=reference)
    match = URI_REGEX.match(reference)
    if not match:
        raise SchemaResolutionError(f'Malformed URI reference "{reference}"', uri=reference)
    scheme, authority, path, query, fragment = match.groups()
    if scheme is not None:
        if not SCHEME_REGEX.match(scheme):
            raise SchemaResolutionError(f'Malformed URI scheme in "{reference}"', uri=reference)
        scheme = scheme.lower()
    return scheme, authority, path, query, fragment


def resolve_uri(base: UriParts, ref: UriParts) -> UriParts:
    """ Resolves a split reference against a split absolute base (RFC 3986, 5.2.2). """
    b_scheme, b_authority, b_path, b_query, _ = base
    r_scheme, r_authority, r_path, r_query, r_fragment = ref
    if r_scheme is not None:
        return r_scheme, r_authority, remove_dot_segments(r_path), r_query, r_fragment
    if r_authority is not None:
        return b_scheme, r_authority, remove_dot_segments(r_path), r_query, r_fragment
    if not r_path:
        return b_scheme, b_authority, b_path, r_query if r_query is not None else b_query, r_fragment
    if r_path.startswith('/'):
        path = remove_dot_segments(r_path)
    elif b_authority is not None and not b_path:
        path = remove_dot_segments('/' + r_path)
    else:
        path = remove_dot_segments(b_path[:b_path.rfind('/') + 1] + r_path)
    return b_scheme, b_authority, path, r_query, r_fragment


class SchemaURL:
    """
    An absolute URI used to address schemas.

    The reference is resolved against the base, if any. The fragment can be
    read and replaced; setting an empty fragment drops the '#' from the href.
    """

    def __init__(self, reference: str, base: 'SchemaURL | str | None' = None):
        parts = split_uri(reference)
        if base is not None:
            base_url = base if isinstance(base, SchemaURL) else SchemaURL(base)
            parts = resolve_uri(base_url.parts, parts)
        elif parts[0] is None:
            raise SchemaResolutionError(f'"{reference}" is not an absolute URI', uri=reference)
        self.scheme, self.authority, self.path, self.query, self._fragment = parts

    @property
    def parts(self) -> UriParts:
        return self.scheme, self.authority, self.path, self.query, self._fragment

    @property
    def fragment(self) -> str:
        return self._fragment or ''

    @fragment.setter
    def fragment(self, value: str):
        self._fragment = value if value else None

    @property
    def href(self) -> str:
        result = f'{self.scheme}:'
        if self.authority is not None:
            result += f'//{self.authority}'
        result += self.path
        if self.query is not None:
            result += f'?{self.query}'
        if self._fragment is not None:
            result += f'#{self._fragment}'
        return result

    def without_fragment(self) -> 'SchemaURL':
        url = copy.copy(self)
        url.fragment = ''
        return url

    def __str__(self) -> str:
        return self.href

    def __repr__(self) -> str:
        return f'SchemaURL({self.href!r})'


def is_absolute_uri(reference: Any) -> bool:
    """ Checks whether the value is a URI with a scheme. """
    if not isinstance(reference, str):
        return False
    try:
        return split_uri(reference)[0] is not None
    except SchemaResolutionError:
        return False


def encode_pointer_token(token: Any) -> str:
    """ Encodes a single JSON pointer reference token ('~' and '/'). """
    return jsonpointer.escape(str(token))


def pointer_fragment_candidates(uri: str):
    """ Yields the URI as given and, if it differs, with a percent-decoded fragment. """
    yield uri
    if '#' in uri:
        base, fragment = uri.split('#', 1)
        decoded = unquote(fragment)
        if decoded != fragment:
            yield f'{base}#{decoded}'


def json_type(value: Any) -> str:
    """ Returns the JSON type name of a Python JSON value. """
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, int):
        return 'integer'
    if isinstance(value, float):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return 'array'
    if isinstance(value, dict):
        return 'object'
    return type(value).__name__


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def json_equals(a: Any, b: Any) -> bool:
    """ Structural JSON equality: 1 == 1.0, but true is not 1. """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equals(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equals(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def fetch_content(url: str, timeout: float = 30, content_cache: Optional[Dict[str, str]] = None) -> str:
    """
    Fetches the content from the specified URL.

    Args:
        url (str): The http, https or file URL to fetch the content from.
        timeout (float): HTTP timeout in seconds.
        content_cache (dict): Optional cache of previously fetched URLs.

    Returns:
        str: The fetched content.

    Raises:
        requests.RequestException: If there is an error while making the HTTP request.
        OSError: If there is an error while reading the file.
    """
    if content_cache is not None and url in content_cache:
        return content_cache[url]
    parsed_url = SchemaURL(url)

    if parsed_url.scheme in ['http', 'https']:
        response = requests.get(url, timeout=timeout)
        # Raises an HTTPError if the response status code is 4XX/5XX
        response.raise_for_status()
        text = response.text
    elif parsed_url.scheme == 'file':
        file_path = unquote(parsed_url.path)
        if parsed_url.authority:
            file_path = f'//{parsed_url.authority}{file_path}'
        # On Windows, a file URL might start with a '/' but it's not part of the actual path
        if os.name == 'nt' and file_path.startswith('/'):
            file_path = file_path[1:]
        with open(file_path, 'r', encoding='utf-8') as file:
            text = file.read()
    else:
        raise NotImplementedError(f'Unsupported URL scheme: {parsed_url.scheme}')
    if content_cache is not None:
        content_cache[url] = text
    return text
