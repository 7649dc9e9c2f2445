"""Tests for resolving schemas into the index."""

import os
import sys
import unittest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from schemarepo.exceptions import SchemaResolutionError
from schemarepo.resolver import KeywordCategory, SchemaResolver, classify_keyword
from schemarepo.schemaindex import (ABSOLUTE_RECURSIVE_REF, ABSOLUTE_REF, ABSOLUTE_URI,
                                    SchemaIndex)


def resolve(schema, base_uri="https://ex/root"):
    return SchemaResolver(SchemaIndex()).resolve(schema, base_uri)


class TestKeywordClassification(unittest.TestCase):

    def test_categories(self):
        self.assertEqual(classify_keyword("type", "object"), KeywordCategory.IGNORED)
        self.assertEqual(classify_keyword("enum", [{"a": 1}]), KeywordCategory.IGNORED)
        self.assertEqual(classify_keyword("allOf", [{}]), KeywordCategory.SCHEMA_ARRAY)
        self.assertEqual(classify_keyword("items", [{}]), KeywordCategory.SCHEMA_ARRAY)
        self.assertEqual(classify_keyword("items", {}), KeywordCategory.SCHEMA)
        self.assertEqual(classify_keyword("properties", {"a": {}}), KeywordCategory.SCHEMA_MAP)
        self.assertEqual(classify_keyword("not", False), KeywordCategory.SCHEMA)
        self.assertEqual(classify_keyword("x-extension", {"$ref": "#"}), KeywordCategory.UNKNOWN_SCHEMA)
        self.assertEqual(classify_keyword("examples", [{}]), KeywordCategory.LEAF)
        self.assertEqual(classify_keyword("title", "Person"), KeywordCategory.LEAF)
        self.assertEqual(classify_keyword("Type", {}), KeywordCategory.UNKNOWN_SCHEMA)


class TestResolver(unittest.TestCase):

    def test_end_to_end_example(self):
        schema = {"$id": "https://ex/a",
                  "allOf": [{"$id": "#b", "type": "object"}, {"type": "object"}]}
        index = resolve(schema, "https://ex/a")
        self.assertIs(index["https://ex/a"], schema)
        self.assertIs(index["https://ex/a#b"], schema["allOf"][0])
        self.assertIs(index["https://ex/a#/allOf/1"], schema["allOf"][1])
        self.assertIs(index["https://ex/a#/allOf/0"], schema["allOf"][0])

    def test_canonical_uris_use_pointer_encoding(self):
        schema = {"properties": {"a/b": {"type": "string"}, "c~d": {"items": {"type": "integer"}}}}
        index = resolve(schema)
        self.assertIn("https://ex/root#/properties/a~1b", index)
        self.assertIn("https://ex/root#/properties/c~0d/items", index)

    def test_absolute_uri_annotation(self):
        schema = {"$defs": {"name": {"type": "string"}}}
        index = resolve(schema)
        self.assertEqual(index.annotation(schema, ABSOLUTE_URI), "https://ex/root")
        self.assertEqual(index.annotation(schema["$defs"]["name"], ABSOLUTE_URI),
                         "https://ex/root#/$defs/name")
        self.assertNotIn("__absolute_uri__", schema)

    def test_ref_annotations(self):
        schema = {"$id": "https://ex/dir/person.json",
                  "properties": {
                      "address": {"$ref": "address.json#/$defs/street"},
                      "self": {"$ref": "#"},
                      "tree": {"$recursiveRef": "#"}}}
        index = resolve(schema)
        properties = schema["properties"]
        self.assertEqual(index.annotation(properties["address"], ABSOLUTE_REF),
                         "https://ex/dir/address.json#/$defs/street")
        self.assertEqual(index.annotation(properties["self"], ABSOLUTE_REF), "https://ex/dir/person.json")
        self.assertEqual(index.annotation(properties["tree"], ABSOLUTE_RECURSIVE_REF),
                         "https://ex/dir/person.json")

    def test_anchor(self):
        schema = {"$id": "https://ex/doc", "$defs": {"item": {"$anchor": "item", "type": "string"}}}
        index = resolve(schema)
        self.assertIs(index["https://ex/doc#item"], schema["$defs"]["item"])

    def test_anchor_collision(self):
        schema = {"$defs": {"a": {"$anchor": "x"}, "b": {"$anchor": "x"}}}
        with self.assertRaises(SchemaResolutionError) as cm:
            resolve(schema)
        self.assertEqual(cm.exception.uri, "https://ex/root#x")

    def test_nested_id_changes_base(self):
        schema = {"$id": "https://ex/root.json",
                  "$defs": {"sub": {"$id": "sub/item.json",
                                    "properties": {"next": {"$ref": "other.json"}}}}}
        index = resolve(schema)
        sub = schema["$defs"]["sub"]
        self.assertIs(index["https://ex/sub/item.json"], sub)
        self.assertIs(index["https://ex/root.json#/$defs/sub"], sub)
        self.assertIs(index["https://ex/sub/item.json#/properties/next"], sub["properties"]["next"])
        self.assertEqual(index.annotation(sub, ABSOLUTE_URI), "https://ex/sub/item.json")
        self.assertEqual(index.annotation(sub["properties"]["next"], ABSOLUTE_REF), "https://ex/sub/other.json")

    def test_directory_id_is_applied_once(self):
        schema = {"$defs": {"sub": {"$id": "sub/", "$defs": {"x": {"type": "string"}}}}}
        index = resolve(schema, "https://ex/")
        self.assertIn("https://ex/sub/", index)
        self.assertIn("https://ex/sub/#/$defs/x", index)
        self.assertNotIn("https://ex/sub/sub/", index)

    def test_base_uri_scoping_for_array_elements(self):
        schema = {"allOf": [{"$id": "https://other/x",
                             "properties": {"p": {"$ref": "#/$defs/d"}}}],
                  "$defs": {"d": {"type": "integer"}}}
        index = resolve(schema)
        p = schema["allOf"][0]["properties"]["p"]
        self.assertNotIn("https://other/x", index)
        self.assertIs(index["https://ex/root#/allOf/0/properties/p"], p)
        self.assertEqual(index.annotation(p, ABSOLUTE_REF), "https://ex/root#/$defs/d")

    def test_unknown_keyword_identifier_ignored(self):
        schema = {"x-data": {"$id": "#hijack", "nested": {"$ref": "#/$defs/a"}}}
        index = resolve(schema)
        self.assertNotIn("https://ex/root#hijack", index)
        nested = schema["x-data"]["nested"]
        self.assertIs(index["https://ex/root#/x-data/nested"], nested)
        self.assertEqual(index.annotation(nested, ABSOLUTE_REF), "https://ex/root#/$defs/a")

    def test_fragment_normalization_of_identifiers(self):
        plain = {"$id": "https://ex/s"}
        hashed = {"$id": "https://ex/s#"}
        self.assertIs(resolve(plain)["https://ex/s"], plain)
        hashed_index = resolve(hashed)
        self.assertIs(hashed_index["https://ex/s"], hashed)
        self.assertNotIn("https://ex/s#", hashed_index)
        self.assertEqual(hashed_index.annotation(hashed, ABSOLUTE_URI), "https://ex/s")

    def test_ref_fragment_normalization(self):
        schema = {"properties": {"a": {"$ref": "https://ex/other#"}}}
        index = resolve(schema)
        self.assertEqual(index.annotation(schema["properties"]["a"], ABSOLUTE_REF), "https://ex/other")

    def test_boolean_subschemas(self):
        schema = {"properties": {"yes": True, "no": False}, "additionalProperties": False}
        index = resolve(schema)
        self.assertIs(index["https://ex/root#/properties/yes"], True)
        self.assertIs(index["https://ex/root#/properties/no"], False)
        self.assertIs(index["https://ex/root#/additionalProperties"], False)

    def test_leaf_keywords_are_not_descended(self):
        schema = {"enum": [{"$id": "https://ex/not-a-schema"}], "default": {"$ref": "#/nope"},
                  "examples": [{"$id": "https://ex/example"}]}
        index = resolve(schema)
        self.assertEqual(list(index), ["https://ex/root"])

    def test_legacy_id(self):
        schema = {"id": "https://ex/legacy.json", "definitions": {"a": {"type": "string"}}}
        index = resolve(schema)
        self.assertIn("https://ex/legacy.json#/definitions/a", index)

    def test_property_named_id_is_not_an_identifier(self):
        schema = {"properties": {"id": {"type": "string"}}}
        index = resolve(schema)
        self.assertIn("https://ex/root#/properties/id", index)


class TestResolverErrors(unittest.TestCase):

    def test_duplicate_uri_between_distinct_nodes(self):
        schema = {"$defs": {"a": {"$id": "https://ex/dup", "type": "string"},
                            "b": {"$id": "https://ex/dup", "type": "string"}}}
        with self.assertRaises(SchemaResolutionError) as cm:
            resolve(schema)
        self.assertEqual(cm.exception.uri, "https://ex/dup")
        self.assertIn("Duplicate schema URI", str(cm.exception))

    def test_same_node_reached_twice(self):
        shared = {"$id": "https://ex/shared", "type": "string"}
        schema = {"$defs": {"s": shared}, "properties": {"name": shared}}
        index = resolve(schema)
        self.assertIs(index["https://ex/shared"], shared)
        self.assertIs(index["https://ex/root#/$defs/s"], shared)
        self.assertIs(index["https://ex/root#/properties/name"], shared)

    def test_malformed_ref(self):
        with self.assertRaises(SchemaResolutionError):
            resolve({"properties": {"a": {"$ref": "bad ref"}}})
        with self.assertRaises(SchemaResolutionError):
            resolve({"$ref": 12})

    def test_non_string_id(self):
        with self.assertRaises(SchemaResolutionError):
            resolve({"$defs": {"a": {"$id": {"nested": True}}}})

    def test_relative_base_uri(self):
        with self.assertRaises(SchemaResolutionError):
            resolve({}, "relative/base")


class TestIdempotentResolution(unittest.TestCase):

    def test_resolving_twice(self):
        schema = {"$id": "https://ex/a", "properties": {"b": {"$ref": "#/$defs/b"}},
                  "$defs": {"b": {"type": "string"}}}
        index = SchemaIndex()
        resolver = SchemaResolver(index)
        resolver.resolve(schema, "https://ex/a")
        uris = list(index)
        resolver.resolve(schema, "https://ex/a")
        self.assertEqual(list(index), uris)

    def test_annotations_survive_other_base(self):
        schema = {"properties": {"b": {"$ref": "#/$defs/b"}}, "$defs": {"b": {"type": "string"}}}
        index = SchemaIndex()
        resolver = SchemaResolver(index)
        resolver.resolve(schema, "https://ex/first")
        resolver.resolve(schema, "https://ex/second")
        b = schema["properties"]["b"]
        self.assertEqual(index.annotation(schema, ABSOLUTE_URI), "https://ex/first")
        self.assertEqual(index.annotation(b, ABSOLUTE_REF), "https://ex/first#/$defs/b")
        self.assertIs(index["https://ex/second#/properties/b"], b)


if __name__ == '__main__':
    unittest.main()
