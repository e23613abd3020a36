"""
Preview renderer: turn a schema into a representative JSON value.

Scalars render a short description of their constraints, containers recurse.
Rendering is deterministic and never touches the schema it is given.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Union

from .field_model import ArrayField, NumberField, ObjectField, SchemaField

logger = logging.getLogger(__name__)

DEFAULT_MIN_ITEMS = 2
DEFAULT_MAX_ITEMS = 5
UNKNOWN_TYPE_SENTINEL = 'unknown'

JsonValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]


@dataclass(frozen=True)
class PreviewOptions:
    """Rendering switches; collapse state belongs to the editor, not the schema."""
    collapsed_fields: FrozenSet[str] = frozenset()
    for_preview: bool = False
    default_min_items: int = DEFAULT_MIN_ITEMS
    default_max_items: int = DEFAULT_MAX_ITEMS


def unique_key(name: str, used: Set[str]) -> str:
    """
    Pick the rendered key for ``name`` within one scope and reserve it.

    The first occurrence keeps the bare name; later ones try ``_2``,
    ``_3``... upward until a free key is found. A source field literally
    named ``foo_2`` can still collide with a later synthetic ``foo_2``;
    that case is left as-is.
    """
    key = name
    if key in used:
        counter = 2
        while f"{name}_{counter}" in used:
            counter += 1
        key = f"{name}_{counter}"
    used.add(key)
    return key


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _describe_text(field: SchemaField, _options: PreviewOptions) -> str:
    type_name = field.type
    logic = field.logic
    if logic is None:
        return type_name

    if logic.enum:
        return f"{type_name} enum: {', '.join(logic.enum)}"
    if logic.pattern:
        return f"{type_name} pattern: {logic.pattern}"

    min_length, max_length = logic.min_length, logic.max_length
    if min_length is not None and max_length is not None:
        return f"{type_name} with minimum {min_length} and maximum {max_length} characters"
    if min_length is not None:
        return f"{type_name} with minimum {min_length} characters"
    if max_length is not None:
        return f"{type_name} with maximum {max_length} characters"
    return type_name


def _describe_number(field: NumberField, _options: PreviewOptions) -> str:
    logic = field.logic
    if logic is None:
        return 'number'

    if logic.enum:
        return f"number enum: {', '.join(_format_number(value) for value in logic.enum)}"

    if logic.min is not None and logic.max is not None:
        return f"number between {_format_number(logic.min)} and {_format_number(logic.max)}"
    if logic.min is not None:
        return f"number minimum {_format_number(logic.min)}"
    if logic.max is not None:
        return f"number maximum {_format_number(logic.max)}"
    return 'number'


def sample_count(field: ArrayField, options: PreviewOptions) -> int:
    """Number of item samples rendered for an array field."""
    logic = field.logic
    min_items = options.default_min_items
    max_items = options.default_max_items
    if logic is not None:
        if logic.min_items is not None:
            min_items = logic.min_items
        if logic.max_items is not None:
            max_items = logic.max_items

    if options.for_preview:
        return 1
    return min(min_items + 1, max_items)


def _render_array(field: ArrayField, options: PreviewOptions) -> JsonValue:
    count = sample_count(field, options)

    if field.array_item_type is None:
        return []

    if field.id in options.collapsed_fields:
        return f"[ ...{_plural(count, 'item')} ]"

    return [render_field(field.array_item_type, options) for _ in range(count)]


def _render_object(field: ObjectField, options: PreviewOptions) -> JsonValue:
    if field.id in options.collapsed_fields and field.children:
        return f"{{ ...{_plural(len(field.children), 'field')} }}"
    return _render_scope(field.children, options)


def _render_scope(fields: Iterable[SchemaField], options: PreviewOptions) -> Dict[str, JsonValue]:
    rendered: Dict[str, JsonValue] = {}
    used: Set[str] = set()
    for field in fields:
        rendered[unique_key(field.name, used)] = render_field(field, options)
    return rendered


_RENDERERS = {
    'text': _describe_text,
    'email': _describe_text,
    'url': lambda field, _options: 'url',
    'number': _describe_number,
    'boolean': lambda field, _options: 'boolean',
    'date': lambda field, _options: 'date',
    'array': _render_array,
    'object': _render_object,
}


def render_field(field: SchemaField, options: Optional[PreviewOptions] = None) -> JsonValue:
    """
    Render one field as a JSON-like value.

    Args:
        field: Field to render
        options: Collapse set and preview switches (defaults to PreviewOptions())

    Returns:
        A description string for scalars, a list for arrays, a dict for
        objects, or a placeholder string for collapsed containers
    """
    if options is None:
        options = PreviewOptions()

    field_type = getattr(field, 'type', None)
    renderer = _RENDERERS.get(field_type)
    if renderer is None:
        logger.debug(f"No renderer for field type {field_type!r}")
        return UNKNOWN_TYPE_SENTINEL

    return renderer(field, options)


def render_schema(fields: Iterable[SchemaField], options: Optional[PreviewOptions] = None) -> Dict[str, JsonValue]:
    """Render top-level fields into an ordered mapping with unique keys."""
    if options is None:
        options = PreviewOptions()
    return _render_scope(fields, options)


def render_schema_json(fields: Iterable[SchemaField], options: Optional[PreviewOptions] = None,
                       indent: int = 2) -> str:
    """Render the preview as pretty-printed JSON text."""
    return json.dumps(render_schema(fields, options), indent=indent, ensure_ascii=False)
