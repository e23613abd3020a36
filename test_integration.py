"""
Integration tests for the schema builder.
Tests complete editing workflows across templates, edits, preview and validation.
"""

import json

from schema_builder.config_loader import get_default_config, get_preview_options
from schema_builder.diff_utils import calculate_schema_diff, summarize_field_changes
from schema_builder.field_model import schema_from_dict, schema_to_dict
from schema_builder.generation import (
    GenerationOptions, StaticResponseGenerator, build_generation_prompt, generate_data
)
from schema_builder.preview import render_schema, render_schema_json
from schema_builder.schema_editor import SchemaEditor
from schema_builder.templates import get_template
from schema_builder.validation import validate_data


class TestEndToEndWorkflow:
    """End-to-end workflows over a template-seeded schema."""

    def test_user_template_required_toggle(self):
        """Test that flipping one flag rebuilds only that node."""
        schema = get_template('user')
        email = next(field for field in schema.fields if field.name == 'email')
        editor = SchemaEditor(schema)

        editor.update_field(email.id, lambda field: field.model_copy(
            update={'logic': field.logic.model_copy(update={'required': False})}
        ))

        new_schema = editor.schema
        diff = calculate_schema_diff(schema, new_schema)
        assert list(diff['values_changed']) == ["root['fields'][3]['logic']['required']"]
        assert summarize_field_changes(schema, new_schema)['modified'] == [email.id]
        for old, new in zip(schema.fields, new_schema.fields):
            if old.id != email.id:
                assert new is old

        preview = render_schema(new_schema.fields)
        assert preview['email'] == 'email'
        assert preview['firstName'] == 'text with minimum 2 and maximum 50 characters'
        assert preview['id'] == 'number'

    def test_build_schema_from_scratch(self):
        """Test building a nested schema through the editor."""
        editor = SchemaEditor()
        editor.add_field()
        field_id = editor.schema.fields[0].id
        editor.rename_field(field_id, 'items')
        editor.change_field_type(field_id, 'array')
        item_id = editor.schema.fields[0].array_item_type.id
        editor.change_field_type(item_id, 'object')
        editor.add_array_item_child(field_id)
        child_id = editor.schema.fields[0].array_item_type.children[0].id
        editor.rename_field(child_id, 'sku')
        editor.set_field_logic(field_id, min_items=1, max_items=2)

        assert editor.preview(for_preview=False) == {'items': [{'sku': 'text'}, {'sku': 'text'}]}

        editor.toggle_collapse(field_id)
        assert editor.preview(for_preview=False) == {'items': '[ ...2 items ]'}

        assert len(editor.history()) == 7
        while editor.undo():
            pass
        assert editor.schema.fields == ()

    def test_persisted_round_trip_preserves_preview(self):
        """Test that dumping and reloading a template keeps ids and preview."""
        schema = get_template('blog')
        options = get_preview_options(get_default_config())

        restored = schema_from_dict(json.loads(json.dumps(schema_to_dict(schema))))

        assert schema_to_dict(restored) == schema_to_dict(schema)
        assert render_schema_json(restored.fields, options) == render_schema_json(schema.fields, options)

    def test_generation_against_template(self):
        """Test the generation boundary with a stub collaborator."""
        schema = get_template('address')

        class StubGenerator:
            def generate(self, schema, structure, prompt, count):
                assert structure['zipCode'] == 'string'
                return [{
                    'street': '1 Main Street',
                    'city': 'Springfield',
                    'state': 'Oregon',
                    'zipCode': '97477',
                    'country': 'USA',
                }] * count

        result = generate_data(StubGenerator(), schema, 'US addresses', 2, GenerationOptions(retry_delay=0))

        assert result.success
        assert len(result.data) == 2
        assert result.metadata.failed_fields == []
        assert all(validate_data(item, schema).is_valid for item in result.data)

    def test_pasted_reply_is_validated_and_repaired(self):
        """Test the prompt then paste flow used by the app's generate panel."""
        schema = get_template('user')
        prompt = build_generation_prompt(schema, 'staff list', 2)
        assert '"dateOfBirth": "date"' in prompt

        reply = '```json\n' + json.dumps([
            {'id': '12', 'firstName': 'Ann', 'lastName': 'Lee', 'email': 'ann@example.com', 'isActive': 'true'},
            {'id': 'x', 'firstName': 'Bob', 'lastName': 'Ray', 'email': 'bob@example.com', 'isActive': False},
            {'id': 3, 'firstName': 'Cy', 'lastName': 'Oz', 'email': 'cy@example.com', 'isActive': True},
        ]) + '\n```'

        result = generate_data(StaticResponseGenerator(reply), schema, 'staff list', 2,
                               GenerationOptions(max_attempts=1, retry_delay=0))

        assert result.success
        assert [record['id'] for record in result.data] == [12, 0]
        assert result.data[0]['isActive'] is True
        assert result.metadata.regenerated_fields == ['id']
        assert result.metadata.failed_fields == []
        assert all(validate_data(record, schema).is_valid for record in result.data)

    def test_pasted_reply_that_is_not_json(self):
        """Test that an unparseable reply gives a failed result."""
        result = generate_data(StaticResponseGenerator('Sorry, I cannot help.'), get_template('user'), 'p', 1,
                               GenerationOptions(max_attempts=1, retry_delay=0))

        assert not result.success
        assert result.errors[0].startswith('Generation failed: Invalid JSON response')
