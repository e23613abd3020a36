"""
JSON structure helpers.

The "structure" of a schema is a type skeleton such as
``{"name": "string", "tags": [{"label": "string"}]}``; it is what the
generation collaborator is asked to fill in. Also provides default values
used when a generated value has to be replaced, and a path index over the
schema tree.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .field_model import ArrayField, ObjectField, SchemaField
from .preview import unique_key

logger = logging.getLogger(__name__)

STRING_TYPES = ('text', 'email', 'url')
DEFAULT_ARRAY_SIZE = 1

_BRACKET_INDEX = re.compile(r'\[\d+\]')
_DOTTED_INDEX = re.compile(r'\.(\d+)(?=\.|$)')


def convert_field_to_structure(field: SchemaField) -> Any:
    """
    Convert a single field to its structure skeleton.

    Args:
        field: Field to convert

    Returns:
        ``"string"``, ``"number"``, ``"boolean"`` or ``"date"`` for scalars,
        a dict for objects, a one-element list for arrays (nested to any depth)
    """
    if field.type in STRING_TYPES:
        return 'string'
    if field.type in ('number', 'boolean', 'date'):
        return field.type
    if isinstance(field, ObjectField):
        return convert_schema_to_structure(field.children)
    if isinstance(field, ArrayField):
        if field.array_item_type is None:
            return ['string']
        return [convert_field_to_structure(field.array_item_type)]
    return 'string'


def convert_schema_to_structure(fields: Iterable[SchemaField]) -> Dict[str, Any]:
    """Convert a scope of fields to a structure dict, keyed like the preview."""
    structure: Dict[str, Any] = {}
    used: Set[str] = set()
    for field in fields:
        structure[unique_key(field.name, used)] = convert_field_to_structure(field)
    return structure


def get_default_value(field: SchemaField) -> Any:
    """
    Get the fallback value for a field type.

    Strings are empty, numbers 0, booleans False, dates the current UTC time
    in ISO format, arrays ``[]`` and objects ``{}``.
    """
    if field.type in STRING_TYPES:
        return ''
    if field.type == 'number':
        return 0
    if field.type == 'boolean':
        return False
    if field.type == 'date':
        return datetime.now(timezone.utc).isoformat()
    if field.type == 'array':
        return []
    if field.type == 'object':
        return {}
    return None


def _default_object(fields: Iterable[SchemaField]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    used: Set[str] = set()
    for field in fields:
        result[unique_key(field.name, used)] = get_default_value(field)
    return result


def _default_item(item: SchemaField) -> Any:
    if isinstance(item, ObjectField):
        return _default_object(item.children)
    if isinstance(item, ArrayField):
        if item.array_item_type is None:
            return ['']
        return [_default_item(item.array_item_type)]
    return get_default_value(item)


def get_default_array_value(field: SchemaField) -> List[Any]:
    """
    Build a placeholder value for an array field.

    At least one item is produced (``min_items`` when larger). Object items
    are filled with per-child defaults, nested arrays hold a single default
    item each.
    """
    if not isinstance(field, ArrayField) or field.array_item_type is None:
        return []

    min_items = field.logic.min_items if field.logic is not None else None
    size = max(DEFAULT_ARRAY_SIZE, min_items or 0)
    return [_default_item(field.array_item_type) for _ in range(size)]


def _item_object(field: ArrayField) -> tuple:
    # Follow the item chain down to the first object, counting array levels.
    depth = 1
    item = field.array_item_type
    while isinstance(item, ArrayField):
        depth += 1
        item = item.array_item_type
    return (item if isinstance(item, ObjectField) else None), depth


def create_field_map(fields: Iterable[SchemaField], prefix: str = '') -> Dict[str, SchemaField]:
    """
    Index fields by dotted path.

    Children of an array's object item type are indexed under ``path[0]``
    (``path[0][0]`` for arrays of arrays), e.g. ``tags[0].name``.

    Args:
        fields: Scope to index
        prefix: Path of the enclosing object, if any

    Returns:
        Mapping of path to field
    """
    field_map: Dict[str, SchemaField] = {}
    used: Set[str] = set()

    for field in fields:
        key = unique_key(field.name, used)
        path = f"{prefix}.{key}" if prefix else key
        field_map[path] = field

        if isinstance(field, ObjectField):
            field_map.update(create_field_map(field.children, path))
        elif isinstance(field, ArrayField):
            item_object, depth = _item_object(field)
            if item_object is not None:
                field_map.update(create_field_map(item_object.children, path + '[0]' * depth))

    return field_map


def normalize_field_path(path: str) -> str:
    """Rewrite any index (``[3]`` or ``.3``) to ``[0]``."""
    path = _BRACKET_INDEX.sub('[0]', path)
    return _DOTTED_INDEX.sub('[0]', path)


def get_field_by_path(path: str, field_map: Dict[str, SchemaField]) -> Optional[SchemaField]:
    """
    Look up a field by a data path such as ``tags.2.name`` or ``tags[2].name``.

    Returns:
        The field, or None when the path is not in the map
    """
    field = field_map.get(normalize_field_path(path))
    if field is None:
        logger.debug(f"No field for path {path}")
    return field


def get_placeholder_value(field: SchemaField) -> Any:
    """
    Fallback for a value that could not be regenerated.

    Arrays get get_default_array_value, objects a dict of per-child defaults,
    everything else get_default_value.
    """
    if isinstance(field, ArrayField):
        return get_default_array_value(field)
    if isinstance(field, ObjectField):
        return _default_object(field.children)
    return get_default_value(field)


def get_array_parent(path: str) -> Optional[str]:
    """
    Path of the array holding a direct element path.

    ``departments.0`` and ``grid.0.1`` give ``departments`` and ``grid``;
    ``departments.0.name`` is not a direct element and gives None.
    """
    parts = path.split('.')
    if len(parts) < 2 or not parts[-1].isdigit():
        return None
    while len(parts) > 1 and parts[-1].isdigit():
        parts.pop()
    return '.'.join(parts)


def set_value_by_path(data: Dict[str, Any], path: str, value: Any) -> None:
    """
    Write ``value`` at a dotted data path, in place.

    Numeric parts index into lists. Missing or non-container intermediate
    values on the way are replaced by empty dicts.

    Raises:
        IndexError: If a list index is out of range
    """
    parts = path.split('.')
    current: Any = data
    for part in parts[:-1]:
        if isinstance(current, list):
            current = current[int(part)]
            continue
        if not isinstance(current.get(part), (dict, list)):
            current[part] = {}
        current = current[part]

    last = parts[-1]
    if isinstance(current, list):
        current[int(last)] = value
    else:
        current[last] = value
