"""Tests for the URI and JSON helpers."""

import os
import sys
import tempfile
import unittest
from unittest.mock import patch

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from schemarepo.common import (SchemaURL, encode_pointer_token, fetch_content, is_absolute_uri,
                               json_equals, json_type, remove_dot_segments)
from schemarepo.exceptions import SchemaResolutionError


class TestSchemaURL(unittest.TestCase):
    """Reference resolution follows RFC 3986, section 5.4."""

    BASE = "http://a/b/c/d;p?q"

    def test_normal_examples(self):
        cases = {
            "g": "http://a/b/c/g",
            "./g": "http://a/b/c/g",
            "g/": "http://a/b/c/g/",
            "/g": "http://a/g",
            "//g": "http://g",
            "?y": "http://a/b/c/d;p?y",
            "#s": "http://a/b/c/d;p?q#s",
            "g?y#s": "http://a/b/c/g?y#s",
            "": "http://a/b/c/d;p?q",
            "..": "http://a/b/",
            "../g": "http://a/b/g",
            "../../g": "http://a/g",
        }
        for reference, expected in cases.items():
            with self.subTest(reference=reference):
                self.assertEqual(SchemaURL(reference, self.BASE).href, expected)

    def test_abnormal_examples(self):
        self.assertEqual(SchemaURL("../../../g", self.BASE).href, "http://a/g")
        self.assertEqual(SchemaURL("/./g", self.BASE).href, "http://a/g")
        self.assertEqual(SchemaURL("g.", self.BASE).href, "http://a/b/c/g.")

    def test_absolute_reference_wins(self):
        self.assertEqual(SchemaURL("https://other.example/x.json", self.BASE).href,
                         "https://other.example/x.json")

    def test_non_hierarchical_base(self):
        self.assertEqual(SchemaURL("#foo", "urn:example:root").href, "urn:example:root#foo")

    def test_empty_authority_is_kept(self):
        self.assertEqual(SchemaURL("c", "app:///a/b").href, "app:///a/c")

    def test_fragment_normalization(self):
        url = SchemaURL("https://ex/s#")
        self.assertEqual(url.fragment, "")
        url.fragment = url.fragment
        self.assertEqual(url.href, "https://ex/s")
        self.assertEqual(SchemaURL("https://ex/s").href, url.href)

    def test_fragment_replacement(self):
        url = SchemaURL("https://ex/s#/definitions/a")
        self.assertEqual(url.fragment, "/definitions/a")
        url.fragment = "b"
        self.assertEqual(url.href, "https://ex/s#b")
        self.assertEqual(url.without_fragment().href, "https://ex/s")
        self.assertEqual(url.href, "https://ex/s#b")

    def test_scheme_is_lowercased(self):
        self.assertEqual(SchemaURL("HTTPS://ex/s").href, "https://ex/s")

    def test_relative_without_base_fails(self):
        with self.assertRaises(SchemaResolutionError):
            SchemaURL("relative/path.json")

    def test_malformed_reference_fails(self):
        with self.assertRaises(SchemaResolutionError):
            SchemaURL("has space", "https://ex/")
        with self.assertRaises(SchemaResolutionError):
            SchemaURL(42, "https://ex/")

    def test_is_absolute_uri(self):
        self.assertTrue(is_absolute_uri("https://ex/a"))
        self.assertTrue(is_absolute_uri("urn:isbn:0451450523"))
        self.assertFalse(is_absolute_uri("a/b"))
        self.assertFalse(is_absolute_uri(5))

    def test_remove_dot_segments(self):
        self.assertEqual(remove_dot_segments("/a/b/c/./../../g"), "/a/g")
        self.assertEqual(remove_dot_segments("mid/content=5/../6"), "mid/6")


class TestJsonHelpers(unittest.TestCase):

    def test_encode_pointer_token(self):
        self.assertEqual(encode_pointer_token("a/b~c"), "a~1b~0c")
        self.assertEqual(encode_pointer_token(3), "3")

    def test_json_equals(self):
        self.assertTrue(json_equals(1, 1.0))
        self.assertFalse(json_equals(True, 1))
        self.assertFalse(json_equals(0, False))
        self.assertTrue(json_equals({"a": [1, {"b": None}]}, {"a": [1.0, {"b": None}]}))
        self.assertFalse(json_equals({"a": 1}, {"a": 1, "b": 2}))
        self.assertFalse(json_equals("1", 1))
        self.assertFalse(json_equals([1, 2], [2, 1]))

    def test_json_type(self):
        self.assertEqual(json_type(None), "null")
        self.assertEqual(json_type(True), "boolean")
        self.assertEqual(json_type(1), "integer")
        self.assertEqual(json_type(1.5), "number")
        self.assertEqual(json_type("x"), "string")
        self.assertEqual(json_type([]), "array")
        self.assertEqual(json_type({}), "object")


class TestFetchContent(unittest.TestCase):

    def test_fetch_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False, encoding='utf-8') as f:
            f.write('{"type": "string"}')
        try:
            cache = {}
            uri = SchemaURL(f.name.replace(os.sep, '/'), "file:///").href
            self.assertEqual(fetch_content(uri, content_cache=cache), '{"type": "string"}')
            self.assertIn(uri, cache)
        finally:
            os.remove(f.name)

    @patch('schemarepo.common.requests.get')
    def test_fetch_http_uses_cache(self, mock_get):
        mock_get.return_value.text = '{"type": "integer"}'
        cache = {}
        self.assertEqual(fetch_content("https://ex/int.json", 5, cache), '{"type": "integer"}')
        self.assertEqual(fetch_content("https://ex/int.json", 5, cache), '{"type": "integer"}')
        mock_get.assert_called_once_with("https://ex/int.json", timeout=5)
        mock_get.return_value.raise_for_status.assert_called_once()

    def test_unsupported_scheme(self):
        with self.assertRaises(NotImplementedError):
            fetch_content("ftp://ex/schema.json")


if __name__ == '__main__':
    unittest.main()
