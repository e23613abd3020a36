"""
Unit tests for editor-level field operations.
"""

import pytest
from pydantic import ValidationError

from schema_builder.exceptions import UnknownFieldTypeError
from schema_builder.field_model import (
    ArrayField, ArrayLogic, EmailField, JsonSchema, NumberField, NumberLogic, ObjectField,
    TextField, TextLogic
)
from schema_builder.field_operations import (
    add_array_item_child, add_child_field, add_field, apply_schema_to_field, change_field_type,
    clone_with_fresh_ids, duplicate_field, format_enum_values, move_field, parse_enum_values,
    rename_field, set_field_logic
)
from schema_builder.field_tree import collect_field_ids, find_field


@pytest.fixture
def schema():
    return JsonSchema(name='Doc', fields=(
        TextField(id='title', name='title', logic=TextLogic(required=True, min_length=3)),
        ObjectField(id='author', name='author', children=(
            TextField(id='first', name='first'),
            TextField(id='last', name='last'),
        )),
        ArrayField(id='tags', name='tags', array_item_type=ObjectField(id='tag', name='tag')),
        ArrayField(id='scores', name='scores', array_item_type=NumberField(id='score', name='score')),
    ))


class TestAddFields:
    """Test cases for adding fields."""

    def test_add_default_field(self, schema):
        """Test that a default text field is appended at the top level."""
        result = add_field(schema)

        added = result.fields[-1]
        assert added.type == 'text'
        assert added.name == 'newField'
        assert added.logic.required is False
        assert result.fields[:-1] == schema.fields

    def test_add_given_field(self, schema):
        """Test appending a specific field."""
        result = add_field(schema, NumberField(id='n', name='count'))

        assert result.fields[-1].id == 'n'

    def test_add_child_field(self, schema):
        """Test appending to an object's children."""
        result = add_child_field(schema, 'author', EmailField(id='mail', name='email'))

        assert [child.id for child in find_field(result.fields, 'author').children] == ['first', 'last', 'mail']
        assert result.fields[0] is schema.fields[0]

    def test_add_child_to_non_object_is_noop(self, schema):
        """Test that targeting a scalar or missing id changes nothing."""
        assert add_child_field(schema, 'title') is schema
        assert add_child_field(schema, 'missing') is schema

    def test_add_array_item_child(self, schema):
        """Test appending to the object item type of an array."""
        result = add_array_item_child(schema, 'tags', TextField(id='label', name='label'))

        assert find_field(result.fields, 'tag').children[0].id == 'label'

    def test_add_array_item_child_requires_object_items(self, schema):
        """Test that arrays of scalars are left alone."""
        assert add_array_item_child(schema, 'scores') is schema


class TestChangeFieldType:
    """Test cases for change_field_type."""

    def test_text_to_email_keeps_logic(self, schema):
        """Test that compatible logic survives the change."""
        result = change_field_type(schema, 'title', 'email')

        field = result.fields[0]
        assert isinstance(field, EmailField)
        assert field.id == 'title'
        assert field.name == 'title'
        assert field.logic.min_length == 3

    def test_text_to_number_keeps_required_only(self, schema):
        """Test that only required carries into a different logic class."""
        result = change_field_type(schema, 'title', 'number')

        field = result.fields[0]
        assert isinstance(field, NumberField)
        assert isinstance(field.logic, NumberLogic)
        assert field.logic.required is True
        assert field.logic.min is None

    def test_to_array_gets_text_item(self, schema):
        """Test that a new array starts with a text item type."""
        result = change_field_type(schema, 'title', 'array')

        field = result.fields[0]
        assert isinstance(field, ArrayField)
        assert field.logic is None
        assert field.array_item_type.type == 'text'

    def test_object_to_text_drops_children(self, schema):
        """Test that children disappear with the object variant."""
        result = change_field_type(schema, 'author', 'text')

        assert result.fields[1].type == 'text'
        assert 'first' not in collect_field_ids(result.fields)

    def test_same_type_is_noop(self, schema):
        """Test that retyping to the current type changes nothing."""
        assert change_field_type(schema, 'title', 'text') is schema

    def test_unknown_type(self, schema):
        """Test that an unsupported type raises."""
        with pytest.raises(UnknownFieldTypeError):
            change_field_type(schema, 'title', 'money')


class TestRenameAndLogic:
    """Test cases for rename_field and set_field_logic."""

    def test_rename(self, schema):
        """Test renaming a nested field."""
        result = rename_field(schema, 'first', 'given')

        assert find_field(result.fields, 'first').name == 'given'

    def test_rename_same_name_is_noop(self, schema):
        """Test that renaming to the same name changes nothing."""
        assert rename_field(schema, 'first', 'first') is schema

    def test_set_logic_merges(self, schema):
        """Test that new constraints merge with existing ones."""
        result = set_field_logic(schema, 'title', max_length=20)

        logic = result.fields[0].logic
        assert logic.min_length == 3
        assert logic.max_length == 20
        assert logic.required is True

    def test_set_logic_none_clears(self, schema):
        """Test that None removes a constraint."""
        result = set_field_logic(schema, 'title', min_length=None)

        assert result.fields[0].logic.min_length is None

    def test_set_logic_on_field_without_logic(self, schema):
        """Test creating logic from scratch."""
        result = set_field_logic(schema, 'tags', min_items=1, max_items=3)

        assert result.fields[2].logic == ArrayLogic(min_items=1, max_items=3)

    def test_set_illegal_logic_raises(self, schema):
        """Test that constraints foreign to the variant fail loudly."""
        with pytest.raises(ValidationError):
            set_field_logic(schema, 'tags', min_length=2)

    def test_parsed_enum_sets_text_logic(self, schema):
        """Test that a typed enum list becomes the field's allowed values."""
        enum = parse_enum_values('Electronics, Books, , Home', 'text')

        result = set_field_logic(schema, 'title', enum=enum, pattern='^[A-Z]')

        assert result.fields[0].logic.enum == ('Electronics', 'Books', 'Home')
        assert result.fields[0].logic.pattern == '^[A-Z]'
        assert format_enum_values(result.fields[0].logic.enum) == 'Electronics, Books, Home'

    def test_parsed_enum_for_numbers(self, schema):
        """Test numeric enum parsing and clearing."""
        assert parse_enum_values('1, 2.5, 3.0', 'number') == (1, 2.5, 3.0)
        assert parse_enum_values('  ', 'number') is None
        assert format_enum_values(None) == ''

        result = set_field_logic(schema, 'score', enum=parse_enum_values('1, 2', 'number'))
        assert result.fields[3].array_item_type.logic.enum == (1, 2)

    def test_parsed_enum_rejects_non_numbers(self):
        """Test that a number field refuses text values."""
        with pytest.raises(ValueError, match="'cheap' is not a number"):
            parse_enum_values('1, cheap', 'number')


class TestApplySchema:
    """Test cases for apply_schema_to_field and cloning."""

    def test_apply_schema_embeds_fresh_copy(self, schema):
        """Test that the target becomes an object with cloned children."""
        source = JsonSchema(name='Address', fields=(
            TextField(id='street', name='street'),
            TextField(id='city', name='city'),
        ))

        result = apply_schema_to_field(schema, 'title', source)

        field = result.fields[0]
        assert isinstance(field, ObjectField)
        assert field.id == 'title'
        assert [child.name for child in field.children] == ['street', 'city']
        assert {child.id for child in field.children}.isdisjoint({'street', 'city'})
        assert field.logic.required is True

    def test_clone_with_fresh_ids_is_deep(self, schema):
        """Test that every id in the copy is new."""
        original = schema.fields[2]

        copy = clone_with_fresh_ids(original)

        assert copy.name == original.name
        assert set(collect_field_ids([copy])).isdisjoint(collect_field_ids([original]))


class TestMoveAndDuplicate:
    """Test cases for move_field and duplicate_field."""

    def test_move_top_level_down(self, schema):
        """Test moving a top-level field one step down."""
        result = move_field(schema, 'title', 1)

        assert [field.id for field in result.fields] == ['author', 'title', 'tags', 'scores']

    def test_move_child_up(self, schema):
        """Test moving an object child within its parent."""
        result = move_field(schema, 'last', -1)

        assert [child.id for child in result.fields[1].children] == ['last', 'first']

    def test_move_past_edge_is_noop(self, schema):
        """Test that moving beyond either end changes nothing."""
        assert move_field(schema, 'title', -1) is schema
        assert move_field(schema, 'last', 5) is schema

    def test_move_item_type_is_noop(self, schema):
        """Test that an array item type has no scope to move in."""
        assert move_field(schema, 'tag', 1) is schema

    def test_duplicate_field(self, schema):
        """Test that a copy is inserted right after the original."""
        result = duplicate_field(schema, 'author')

        copy = result.fields[2]
        assert copy.name == 'author_copy'
        assert copy.id != 'author'
        assert [child.name for child in copy.children] == ['first', 'last']
        assert len(set(collect_field_ids(result.fields))) == len(collect_field_ids(result.fields))
