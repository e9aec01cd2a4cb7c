"""
Unit tests for schema_loader module.
"""

import json
import yaml
import pytest

from dynamic_forms.field_definition import FieldDefinition, FieldKind
from dynamic_forms.form_exceptions import DuplicateFieldError, InvalidValidatorError, SchemaError
from dynamic_forms.schema_loader import (
    load_form_template,
    build_field_definitions,
    validate_field_definitions,
    load_field_definitions,
    save_form_template,
    template_to_dict,
    list_available_templates,
    get_template_info,
)


class TestSchemaLoader:
    """Test class for schema loader."""

    def setup_method(self):
        """Set up test template data."""
        self.template = {
            "title": "Contact Form",
            "fields": [
                {"id": "name", "label": "Name", "type": "text", "required": True},
                {"id": "email", "label": "Email", "type": "email",
                 "validators": [{"name": "email", "type": "email"}]},
                {"id": "source", "label": "Source", "type": "select", "insert": False,
                 "options": [{"id": "web", "name": "Website"}, {"id": "ref", "name": "Referral"}]},
            ]
        }

    def write_template(self, directory, filename, data):
        """Helper to create template files."""
        path = directory / filename
        with open(path, 'w') as f:
            if filename.endswith('.json'):
                json.dump(data, f, indent=2)
            else:
                yaml.dump(data, f)
        return path

    def test_load_yaml_template(self, tmp_path):
        path = self.write_template(tmp_path, "contact.yaml", self.template)

        template = load_form_template(path)

        assert template["title"] == "Contact Form"
        assert len(template["fields"]) == 3

    def test_load_json_template(self, tmp_path):
        path = self.write_template(tmp_path, "contact.json", self.template)

        assert load_form_template(path) == self.template

    def test_load_missing_template(self, tmp_path):
        assert load_form_template(tmp_path / "missing.yaml") is None

    def test_load_unsupported_extension(self, tmp_path):
        path = tmp_path / "contact.txt"
        path.write_text("fields: []")

        assert load_form_template(path) is None

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("fields: [unclosed")

        assert load_form_template(path) is None

    def test_load_template_without_fields_list(self, tmp_path):
        path = self.write_template(tmp_path, "bad.yaml", {"title": "No fields"})

        assert load_form_template(path) is None

    def test_build_field_definitions(self):
        fields = build_field_definitions(self.template["fields"])

        assert [f.id for f in fields] == ["name", "email", "source"]
        assert fields[2].kind is FieldKind.SELECT
        assert fields[2].include_in_output is False

    def test_build_rejects_malformed_entry(self):
        with pytest.raises(SchemaError) as exc_info:
            build_field_definitions([{"id": "ok"}, {"label": "No id"}])

        assert exc_info.value.context["field_id"] == "#1"

    def test_build_rejects_duplicates(self):
        with pytest.raises(DuplicateFieldError):
            build_field_definitions([{"id": "a"}, {"id": "a"}])

    def test_validate_rejects_bad_pattern(self):
        fields = [FieldDefinition(id="zip", validators=[{"name": "p", "type": "pattern", "value": "[0-9"}])]

        with pytest.raises(InvalidValidatorError):
            validate_field_definitions(fields)

    def test_load_field_definitions(self, tmp_path):
        path = self.write_template(tmp_path, "contact.yaml", self.template)

        fields = load_field_definitions(path)

        assert fields[0].required is True

    def test_load_field_definitions_missing_file(self, tmp_path):
        with pytest.raises(SchemaError):
            load_field_definitions(tmp_path / "missing.yaml")

    @pytest.mark.parametrize("filename", ["saved.yaml", "saved.json"])
    def test_save_and_reload(self, tmp_path, filename):
        fields = build_field_definitions(self.template["fields"])
        path = tmp_path / filename

        assert save_form_template(fields, path, title="Contact Form") is True

        assert load_field_definitions(path) == fields
        assert load_form_template(path)["title"] == "Contact Form"

    def test_template_to_dict_uses_template_keys(self):
        fields = build_field_definitions(self.template["fields"])

        template = template_to_dict(fields)

        assert "title" not in template
        assert template["fields"][2]["insert"] is False
        assert template["fields"][1]["type"] == "email"

    def test_list_available_templates(self, tmp_path):
        self.write_template(tmp_path, "b.yaml", self.template)
        self.write_template(tmp_path, "a.json", self.template)
        (tmp_path / "notes.txt").write_text("ignore me")

        assert list_available_templates(tmp_path) == ["a.json", "b.yaml"]
        assert list_available_templates(tmp_path / "nope") == []

    def test_get_template_info(self, tmp_path):
        path = self.write_template(tmp_path, "contact.yaml", self.template)

        info = get_template_info(path)

        assert info["title"] == "Contact Form"
        assert info["field_count"] == 3
        assert info["required_fields"] == ["name"]
        assert info["field_types"]["email"] == "email"
