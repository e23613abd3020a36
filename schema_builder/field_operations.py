"""
Editor-level field operations.

Each operation takes a JsonSchema and returns a JsonSchema. Every structural
edit goes through the tree locator, so unchanged subtrees are shared with the
previous version. A target that does not exist (or has the wrong shape for
the operation) returns the input schema unchanged.
"""

import logging
from typing import Any, Callable, Optional, Tuple

from .exceptions import UnknownFieldTypeError
from .field_model import (
    ArrayField, BasicLogic, FIELD_TYPES, JsonSchema, LOGIC_CLASSES, ObjectField, SchemaField,
    TextField, make_field, new_field_id
)
from .field_tree import find_field, find_parent, update_schema_field

logger = logging.getLogger(__name__)

DEFAULT_FIELD_NAME = 'newField'
DEFAULT_ITEM_NAME = 'item'

ScopeEdit = Callable[[Tuple[SchemaField, ...], int], Tuple[SchemaField, ...]]


def new_text_field(name: str = DEFAULT_FIELD_NAME) -> TextField:
    """Default field appended by the "add field" actions."""
    return TextField(name=name, logic={'required': False})


def clone_with_fresh_ids(field: SchemaField) -> SchemaField:
    """Deep copy a field, giving it and every descendant a new id."""
    update = {'id': new_field_id()}
    if isinstance(field, ObjectField):
        update['children'] = tuple(clone_with_fresh_ids(child) for child in field.children)
    elif isinstance(field, ArrayField) and field.array_item_type is not None:
        update['array_item_type'] = clone_with_fresh_ids(field.array_item_type)
    return field.model_copy(update=update)


def add_field(schema: JsonSchema, field: Optional[SchemaField] = None) -> JsonSchema:
    """Append a top-level field (a plain text field by default)."""
    field = field if field is not None else new_text_field()
    logger.debug(f"Adding top-level field '{field.name}'")
    return schema.model_copy(update={'fields': schema.fields + (field,)})


def add_child_field(schema: JsonSchema, object_id: str,
                    field: Optional[SchemaField] = None) -> JsonSchema:
    """Append a child to the object field ``object_id``."""
    target = find_field(schema.fields, object_id)
    if not isinstance(target, ObjectField):
        logger.debug(f"add_child_field: {object_id} is not an object field")
        return schema

    child = field if field is not None else new_text_field()
    return update_schema_field(
        schema, object_id,
        lambda current: current.model_copy(update={'children': current.children + (child,)})
    )


def add_array_item_child(schema: JsonSchema, array_id: str,
                         field: Optional[SchemaField] = None) -> JsonSchema:
    """Append a child to the object that is the item type of array ``array_id``."""
    target = find_field(schema.fields, array_id)
    if not isinstance(target, ArrayField) or not isinstance(target.array_item_type, ObjectField):
        logger.debug(f"add_array_item_child: {array_id} is not an array of objects")
        return schema

    return add_child_field(schema, target.array_item_type.id, field)


def _carry_logic(field: SchemaField, new_type: str) -> Any:
    logic = field.logic
    if logic is None:
        return None

    logic_class = LOGIC_CLASSES[new_type]
    if isinstance(logic, logic_class):
        return logic

    required = getattr(logic, 'required', None)
    if required is not None and issubclass(logic_class, BasicLogic):
        return logic_class(required=required)
    return None


def change_field_type(schema: JsonSchema, field_id: str, new_type: str) -> JsonSchema:
    """
    Rebuild a field as a different variant, keeping its id and name.

    Logic is kept when it fits the new variant (otherwise only ``required``
    survives). A new object starts empty; a new array gets a text item type.

    Raises:
        UnknownFieldTypeError: If new_type is not a supported tag
    """
    if new_type not in FIELD_TYPES:
        raise UnknownFieldTypeError(new_type, list(FIELD_TYPES))

    target = find_field(schema.fields, field_id)
    if target is None or target.type == new_type:
        return schema

    def retype(field: SchemaField) -> SchemaField:
        attrs = {'id': field.id, 'logic': _carry_logic(field, new_type)}
        if new_type == 'array':
            attrs['array_item_type'] = TextField(name=DEFAULT_ITEM_NAME)
        return make_field(new_type, field.name, **attrs)

    logger.info(f"Changing type of field '{target.name}': {target.type} -> {new_type}")
    return update_schema_field(schema, field_id, retype)


def rename_field(schema: JsonSchema, field_id: str, name: str) -> JsonSchema:
    target = find_field(schema.fields, field_id)
    if target is None or target.name == name:
        return schema
    return update_schema_field(schema, field_id, lambda field: field.model_copy(update={'name': name}))


def set_field_logic(schema: JsonSchema, field_id: str, **changes: Any) -> JsonSchema:
    """
    Merge constraint changes into a field's logic.

    A value of None clears that constraint. Attributes that are not legal for
    the field's type raise a pydantic ValidationError.
    """
    target = find_field(schema.fields, field_id)
    if target is None:
        return schema

    def merge(field: SchemaField) -> SchemaField:
        current = field.logic.model_dump() if field.logic is not None else {}
        current.update(changes)
        logic = LOGIC_CLASSES[field.type].model_validate(current)
        return field.model_copy(update={'logic': logic})

    return update_schema_field(schema, field_id, merge)


def _parse_number(text: str) -> Any:
    try:
        number = float(text)
    except ValueError:
        raise ValueError(f"'{text}' is not a number")
    return int(number) if number.is_integer() and '.' not in text else number


def parse_enum_values(text: str, field_type: str) -> Optional[Tuple[Any, ...]]:
    """
    Parse a comma separated list of allowed values as typed in the editor.

    Blank entries are skipped and blank text gives None (no enum). Values
    for number fields are converted to int or float.

    Raises:
        ValueError: If a number field gets a value that is not numeric
    """
    values = [part.strip() for part in text.split(',') if part.strip()]
    if not values:
        return None
    if field_type == 'number':
        return tuple(_parse_number(value) for value in values)
    return tuple(values)


def format_enum_values(enum: Optional[Tuple[Any, ...]]) -> str:
    return ', '.join(str(value) for value in enum) if enum else ''


def apply_schema_to_field(schema: JsonSchema, field_id: str, source: JsonSchema) -> JsonSchema:
    """
    Turn a field into an object shaped like another schema.

    The source's fields are cloned with fresh ids so the two documents never
    share identifiers.
    """
    target = find_field(schema.fields, field_id)
    if target is None:
        return schema

    def embed(field: SchemaField) -> SchemaField:
        return ObjectField(
            id=field.id,
            name=field.name,
            logic=_carry_logic(field, 'object'),
            children=tuple(clone_with_fresh_ids(child) for child in source.fields)
        )

    logger.info(f"Embedding schema '{source.name}' into field '{target.name}'")
    return update_schema_field(schema, field_id, embed)


def _edit_containing_scope(schema: JsonSchema, field_id: str, edit: ScopeEdit) -> JsonSchema:
    # Only list scopes qualify: top-level fields and object children.
    for index, field in enumerate(schema.fields):
        if field.id == field_id:
            return schema.model_copy(update={'fields': edit(schema.fields, index)})

    parent = find_parent(schema.fields, field_id)
    if not isinstance(parent, ObjectField):
        return schema

    index = next(i for i, child in enumerate(parent.children) if child.id == field_id)
    children = edit(parent.children, index)
    if children is parent.children:
        return schema
    return update_schema_field(schema, parent.id, lambda field: field.model_copy(update={'children': children}))


def move_field(schema: JsonSchema, field_id: str, offset: int) -> JsonSchema:
    """Move a field up (negative offset) or down within its own scope."""
    def shift(scope: Tuple[SchemaField, ...], index: int) -> Tuple[SchemaField, ...]:
        new_index = max(0, min(len(scope) - 1, index + offset))
        if new_index == index:
            return scope
        items = list(scope)
        items.insert(new_index, items.pop(index))
        return tuple(items)

    result = _edit_containing_scope(schema, field_id, shift)
    if result.fields is schema.fields:
        return schema
    return result


def duplicate_field(schema: JsonSchema, field_id: str) -> JsonSchema:
    """Insert a fresh-id copy of a field right after it."""
    def duplicate(scope: Tuple[SchemaField, ...], index: int) -> Tuple[SchemaField, ...]:
        original = scope[index]
        copy = clone_with_fresh_ids(original).model_copy(update={'name': f"{original.name}_copy"})
        return scope[:index + 1] + (copy,) + scope[index + 1:]

    return _edit_containing_scope(schema, field_id, duplicate)
