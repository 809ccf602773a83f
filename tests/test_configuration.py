"""Tests for DID configuration parsing and context resolution."""

import json

import pytest

from did_linkage.configuration import parse_configuration
from did_linkage.contexts import (
    CONTEXT_V0,
    CONTEXT_V1,
    CREDENTIALS_V1,
    ContextLoader,
    bundled_contexts,
)
from did_linkage.errors import ContextLoadError, StructuralError


class TestContextLoader:
    """Tests for the JSON-LD context loader."""

    def test_bundled_documents(self, loader):
        for url in (CONTEXT_V0, CONTEXT_V1, CREDENTIALS_V1):
            assert url in loader

    def test_remote_document_shape(self, loader):
        remote = loader(CONTEXT_V1, {})

        assert remote["documentUrl"] == CONTEXT_V1
        assert remote["contextUrl"] is None
        assert "@context" in remote["document"]

    def test_unknown_offline(self):
        loader = ContextLoader()

        with pytest.raises(ContextLoadError, match="not available offline"):
            loader.load("https://example.com/context")

    def test_add(self):
        loader = ContextLoader()
        loader.add("https://example.com/context", {"@context": {}})

        assert loader.load("https://example.com/context") == {"@context": {}}


class TestParseConfiguration:
    """Tests for parse_configuration."""

    def test_parse_v1(self, loader):
        data = json.dumps({"@context": CONTEXT_V1, "linked_dids": ["a.b.c"]})

        config = parse_configuration(data, loader)

        assert config.version == "v1"
        assert config.context == CONTEXT_V1
        assert config.linked_dids == ["a.b.c"]

    def test_parse_v0(self, loader):
        data = json.dumps({"@context": CONTEXT_V0, "linked_dids": []})

        config = parse_configuration(data, loader)

        assert config.version == "v0"
        assert config.linked_dids == []

    def test_parse_context_array(self, loader):
        data = json.dumps({"@context": [CONTEXT_V1], "linked_dids": []})

        assert parse_configuration(data, loader).version == "v1"

    def test_parse_inline_context(self, loader):
        inline = bundled_contexts()[CONTEXT_V1]["@context"]
        data = json.dumps({"@context": inline, "linked_dids": []})

        assert parse_configuration(data, loader).version == "v1"

    def test_missing_linked_dids(self, loader):
        data = json.dumps({"@context": CONTEXT_V1})

        with pytest.raises(StructuralError) as exc_info:
            parse_configuration(data, loader)

        assert exc_info.value.property_name == "linked_dids"
        assert "did configuration: property 'linked_dids' is required" in str(exc_info.value)

    def test_linked_dids_not_array(self, loader):
        data = json.dumps({"@context": CONTEXT_V1, "linked_dids": "a.b.c"})

        with pytest.raises(StructuralError, match="must be an array"):
            parse_configuration(data, loader)

    def test_missing_context(self, loader):
        with pytest.raises(StructuralError, match="'@context' is required"):
            parse_configuration(json.dumps({"linked_dids": []}), loader)

    def test_unrecognized_context(self, loader):
        data = json.dumps({"@context": {"foo": "https://example.com/foo"}, "linked_dids": []})

        with pytest.raises(StructuralError, match="unrecognized @context"):
            parse_configuration(data, loader)

    def test_unresolvable_context(self, loader):
        data = json.dumps({"@context": "https://example.com/unknown", "linked_dids": []})

        with pytest.raises(StructuralError):
            parse_configuration(data, loader)

    def test_known_context_not_loadable(self):
        data = json.dumps({"@context": CONTEXT_V1, "linked_dids": []})

        with pytest.raises(StructuralError, match="unable to load JSON-LD context"):
            parse_configuration(data, ContextLoader())

    def test_no_document_loader(self):
        data = json.dumps({"@context": CONTEXT_V1, "linked_dids": []})

        with pytest.raises(StructuralError, match="no JSON-LD document loader"):
            parse_configuration(data, None)

    def test_invalid_json(self, loader):
        with pytest.raises(StructuralError, match="invalid JSON"):
            parse_configuration(b"{not json", loader)

    def test_not_an_object(self, loader):
        with pytest.raises(StructuralError, match="JSON object"):
            parse_configuration(b"[]", loader)
