"""
Content Dashboard - Section Schema Tests

Tests for dashboard/schema.py: parsing the sections document, field
ordering and naming, duplicate detection, and the registry lookups.
"""

import json

import pytest
from pydantic import ValidationError

from dashboard.schema import FieldKind, SchemaError, SectionRegistry, parse_sections
from tests.conftest import SAMPLE_SECTIONS


class TestParseSections:
    def test_parses_sample(self, sections):
        assert [s.name for s in sections] == ["general", "posts", "contact"]

    def test_field_order_preserved(self, general_section):
        assert list(general_section.fields) == ["title", "photo", "published"]

    def test_field_names_from_keys(self, general_section):
        assert general_section.fields["photo"].name == "photo"
        assert general_section.fields["photo"].type == FieldKind.IMAGE
        assert general_section.fields["photo"].is_file

    def test_allowed_fields(self, general_section):
        assert general_section.allowed_fields == {"title", "photo", "published"}

    def test_defaults(self, general_section):
        assert general_section.multiple is False
        assert general_section.form is False
        assert general_section.options.recipient is None

    def test_form_options(self, sections):
        contact = sections[2]
        assert contact.form
        assert contact.options.subject == "New message"
        assert contact.options.next == "/thanks"

    def test_wrapped_document(self):
        sections = parse_sections(json.dumps({"sections": SAMPLE_SECTIONS}))
        assert len(sections) == 3

    def test_duplicate_field_rejected(self):
        raw = '[{"id": 1, "name": "a", "label": "A", "fields": {"t": {"type": "text"}, "t": {"type": "image"}}}]'
        with pytest.raises(SchemaError, match="Duplicate"):
            parse_sections(raw)

    def test_duplicate_section_id_rejected(self):
        raw = json.dumps([SAMPLE_SECTIONS[0], SAMPLE_SECTIONS[0]])
        with pytest.raises(SchemaError, match="unique"):
            parse_sections(raw)

    def test_invalid_json(self):
        with pytest.raises(SchemaError):
            parse_sections("{nope")

    def test_unknown_field_type(self):
        raw = json.dumps([{"id": 1, "name": "a", "label": "A", "fields": {"t": {"type": "hologram"}}}])
        with pytest.raises(SchemaError):
            parse_sections(raw)

    def test_not_a_list(self):
        with pytest.raises(SchemaError):
            parse_sections('"sections"')

    def test_sections_are_immutable(self, general_section):
        with pytest.raises(ValidationError):
            general_section.label = "Changed"

    def test_singular_falls_back_to_label(self):
        (section,) = parse_sections(json.dumps([{"id": 9, "name": "x", "label": "Things"}]))
        assert section.singular == "Things"


class TestSectionRegistry:
    def test_get(self, sections_file):
        registry = SectionRegistry(sections_file)
        assert registry.get(2).name == "posts"
        assert registry.get(99) is None

    def test_content_and_form_sections(self, sections_file):
        registry = SectionRegistry(sections_file)
        assert [s.name for s in registry.content_sections()] == ["general", "posts"]
        assert [s.name for s in registry.form_sections()] == ["contact"]

    def test_general(self, sections_file):
        assert SectionRegistry(sections_file).general().name == "general"

    def test_general_falls_back_to_first_content_section(self, tmp_path):
        path = tmp_path / "sections.json"
        path.write_text(json.dumps([SAMPLE_SECTIONS[2], SAMPLE_SECTIONS[1]]), encoding="utf-8")
        assert SectionRegistry(path).general().name == "posts"

    def test_missing_file(self, tmp_path):
        registry = SectionRegistry(tmp_path / "missing.json")
        assert registry.load() == []
        assert registry.general() is None

    def test_reads_fresh_each_time(self, sections_file):
        registry = SectionRegistry(sections_file)
        assert registry.get(1).label == "General"

        changed = [dict(SAMPLE_SECTIONS[0], label="Home")]
        sections_file.write_text(json.dumps(changed), encoding="utf-8")
        assert registry.get(1).label == "Home"
