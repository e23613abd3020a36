"""
Field model for the schema builder.

A schema is a tree of SchemaField nodes. SchemaField is a closed tagged union
on ``type``: each variant only accepts the logic and structure that are legal
for it, so an object with an item type (or a text field with children) cannot
be constructed at all. Every model is frozen; edits produce new values.

Persisted schemas use camelCase keys (``arrayItemType``, ``minLength``...);
the ``*_from_dict`` / ``*_to_dict`` helpers convert between the two shapes.
"""

import logging
import uuid
from typing import Annotated, Any, Dict, Iterable, Iterator, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .exceptions import DuplicateFieldIdError, UnknownFieldTypeError

logger = logging.getLogger(__name__)

FIELD_TYPES = ('text', 'email', 'url', 'number', 'boolean', 'date', 'object', 'array')
TEXT_LIKE_TYPES = ('text', 'email')
CONTAINER_TYPES = ('object', 'array')


def new_field_id() -> str:
    """Return a fresh, globally unique field id."""
    return str(uuid.uuid4())


class _SchemaModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid', populate_by_name=True)


# Logic (constraint sets)

class BasicLogic(_SchemaModel):
    """Constraints shared by every scalar and object field."""
    required: Optional[bool] = None


class TextLogic(BasicLogic):
    """Constraints for ``text`` and ``email`` fields."""
    min_length: Optional[int] = Field(default=None, alias='minLength', ge=0)
    max_length: Optional[int] = Field(default=None, alias='maxLength', ge=0)
    pattern: Optional[str] = None
    enum: Optional[Tuple[str, ...]] = None


class NumberLogic(BasicLogic):
    """Constraints for ``number`` fields."""
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    enum: Optional[Tuple[Union[int, float], ...]] = None


class ArrayLogic(_SchemaModel):
    """Bounds on the number of rendered/generated array items."""
    min_items: Optional[int] = Field(default=None, alias='minItems', ge=0)
    max_items: Optional[int] = Field(default=None, alias='maxItems', ge=0)


# Field variants

class _FieldBase(_SchemaModel):
    id: str = Field(default_factory=new_field_id)
    name: str


class TextField(_FieldBase):
    type: Literal['text'] = 'text'
    logic: Optional[TextLogic] = None


class EmailField(_FieldBase):
    type: Literal['email'] = 'email'
    logic: Optional[TextLogic] = None


class UrlField(_FieldBase):
    type: Literal['url'] = 'url'
    logic: Optional[BasicLogic] = None


class NumberField(_FieldBase):
    type: Literal['number'] = 'number'
    logic: Optional[NumberLogic] = None


class BooleanField(_FieldBase):
    type: Literal['boolean'] = 'boolean'
    logic: Optional[BasicLogic] = None


class DateField(_FieldBase):
    type: Literal['date'] = 'date'
    logic: Optional[BasicLogic] = None


class ObjectField(_FieldBase):
    type: Literal['object'] = 'object'
    logic: Optional[BasicLogic] = None
    children: Tuple['SchemaField', ...] = ()


class ArrayField(_FieldBase):
    type: Literal['array'] = 'array'
    logic: Optional[ArrayLogic] = None
    array_item_type: Optional['SchemaField'] = Field(default=None, alias='arrayItemType')


SchemaField = Annotated[
    Union[TextField, EmailField, UrlField, NumberField, BooleanField, DateField, ObjectField, ArrayField],
    Field(discriminator='type')
]

ObjectField.model_rebuild()
ArrayField.model_rebuild()

FIELD_CLASSES = {
    'text': TextField,
    'email': EmailField,
    'url': UrlField,
    'number': NumberField,
    'boolean': BooleanField,
    'date': DateField,
    'object': ObjectField,
    'array': ArrayField,
}

LOGIC_CLASSES = {
    'text': TextLogic,
    'email': TextLogic,
    'url': BasicLogic,
    'number': NumberLogic,
    'boolean': BasicLogic,
    'date': BasicLogic,
    'object': BasicLogic,
    'array': ArrayLogic,
}

FIELD_CLASS_TUPLE = tuple(FIELD_CLASSES.values())


def is_schema_field(value: Any) -> bool:
    """Return True if value is one of the SchemaField variants."""
    return isinstance(value, FIELD_CLASS_TUPLE)


def iter_fields(fields: Iterable[SchemaField]) -> Iterator[SchemaField]:
    """
    Yield every field reachable from ``fields`` in pre-order.

    The order matches the locator: a field, then its children, then its
    array item type and whatever hangs below it. Uses an explicit stack so
    deep trees do not grow the Python call stack.
    """
    stack = list(reversed(tuple(fields)))
    while stack:
        field = stack.pop()
        yield field
        if isinstance(field, ObjectField):
            stack.extend(reversed(field.children))
        elif isinstance(field, ArrayField) and field.array_item_type is not None:
            stack.append(field.array_item_type)


def ensure_unique_ids(fields: Iterable[SchemaField]) -> None:
    """
    Check that no id appears twice in the tree.

    Raises:
        DuplicateFieldIdError: naming the first duplicated id
    """
    seen: Dict[str, str] = {}
    for field in iter_fields(fields):
        if field.id in seen:
            logger.error(f"Duplicate field id detected: {field.id}")
            raise DuplicateFieldIdError(field.id, [seen[field.id], field.name])
        seen[field.id] = field.name


class JsonSchema(_SchemaModel):
    """The root container: a named, ordered list of top-level fields."""
    name: str = 'New Schema'
    description: Optional[str] = None
    fields: Tuple[SchemaField, ...] = ()

    @model_validator(mode='after')
    def _check_unique_ids(self) -> 'JsonSchema':
        ensure_unique_ids(self.fields)
        return self


def make_field(field_type: str, name: str, **attrs: Any) -> SchemaField:
    """
    Build a field variant from its type tag.

    Args:
        field_type: One of FIELD_TYPES
        name: Field name
        **attrs: Variant attributes (id, logic, children, array_item_type)

    Raises:
        UnknownFieldTypeError: If field_type is not a supported tag
    """
    field_class = FIELD_CLASSES.get(field_type)
    if field_class is None:
        raise UnknownFieldTypeError(field_type, list(FIELD_TYPES))
    return field_class(name=name, **attrs)


_FIELD_ADAPTER = TypeAdapter(SchemaField)


def field_from_dict(data: Dict[str, Any]) -> SchemaField:
    """Parse a persisted (camelCase) field dictionary."""
    return _FIELD_ADAPTER.validate_python(data)


def field_to_dict(field: SchemaField) -> Dict[str, Any]:
    """Dump a field to its persisted (camelCase) dictionary."""
    return field.model_dump(mode='json', by_alias=True, exclude_none=True)


def schema_from_dict(data: Dict[str, Any]) -> JsonSchema:
    """Parse a persisted schema; ids are checked for uniqueness."""
    return JsonSchema.model_validate(data)


def schema_to_dict(schema: JsonSchema) -> Dict[str, Any]:
    """Dump a schema to the plain structure handed to storage."""
    return schema.model_dump(mode='json', by_alias=True, exclude_none=True)
