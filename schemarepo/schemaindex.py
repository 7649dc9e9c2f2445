"""URI addressed lookup table of schema nodes."""

from typing import Any, Dict, Iterator, Optional

from schemarepo.exceptions import SchemaResolutionError

ABSOLUTE_URI = 'absolute_uri'
ABSOLUTE_REF = 'absolute_ref'
ABSOLUTE_RECURSIVE_REF = 'absolute_recursive_ref'

SchemaNode = Any  # bool or dict


class SchemaIndex:
    """
    Maps absolute URIs to schema nodes and keeps derived annotations per node.

    A URI belongs to exactly one node object. Registering the same node object
    again is a no-op, registering a different one raises SchemaResolutionError,
    even if both are equal in value.

    Annotations are kept in a side-table keyed by node identity so the schema
    documents themselves are never modified. Each annotation is set once.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SchemaNode] = {}
        self._annotations: Dict[int, Dict[str, str]] = {}
        # keeps annotated nodes alive so their ids are not reused
        self._annotated: Dict[int, SchemaNode] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TypeError("SchemaIndex snapshot is read-only")

    def register(self, uri: str, node: SchemaNode) -> bool:
        """Maps the URI to the node.

        Returns:
            True if the URI was added, False if it already mapped to this very node.

        Raises:
            SchemaResolutionError: If the URI already maps to a different node.
        """
        self._check_mutable()
        if uri in self._entries:
            if self._entries[uri] is node:
                return False
            raise SchemaResolutionError(f'Duplicate schema URI "{uri}".', uri=uri, schema=node)
        self._entries[uri] = node
        return True

    def annotate(self, node: SchemaNode, key: str, value: str) -> bool:
        """Sets an annotation on a node unless it is already set. Returns True if set."""
        self._check_mutable()
        annotations = self._annotations.setdefault(id(node), {})
        if key in annotations:
            return False
        annotations[key] = value
        self._annotated[id(node)] = node
        return True

    def annotation(self, node: SchemaNode, key: str) -> Optional[str]:
        if self._annotated.get(id(node)) is not node:
            return None
        return self._annotations[id(node)].get(key)

    def is_annotated(self, node: SchemaNode, key: str) -> bool:
        return self.annotation(node, key) is not None

    def get(self, uri: str, default: Any = None) -> SchemaNode:
        return self._entries.get(uri, default)

    def __getitem__(self, uri: str) -> SchemaNode:
        return self._entries[uri]

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()

    def _copy(self) -> 'SchemaIndex':
        index = SchemaIndex()
        index._entries = dict(self._entries)
        index._annotations = {key: dict(value) for key, value in self._annotations.items()}
        index._annotated = dict(self._annotated)
        return index

    def snapshot(self) -> 'SchemaIndex':
        """Returns a read-only copy of the index."""
        if self._frozen:
            return self
        index = self._copy()
        index._frozen = True
        return index

    def overlay(self) -> 'SchemaIndex':
        """Returns a mutable copy, used for schemas private to one validator."""
        return self._copy()
