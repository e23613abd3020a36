"""
Locate, update and remove fields anywhere in a schema tree.

All edits are copy-on-write: the path from the scope down to the matched
field is rebuilt, every other subtree is reused by reference, and a scope
without a match comes back as the very same object. Callers can therefore
use ``new is old`` as a cheap "nothing changed" check.

Reachability order for a single field (one definition, shared by update and
remove):

    1. the field itself
    2. its ``children`` (objects)
    3. its ``array_item_type`` node
    4. the item type's ``children``
    5. the item type's own ``array_item_type`` chain (arrays of arrays)

Steps 3-5 fall out of treating the item type slot as a one-element scope.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .exceptions import SchemaInvariantError
from .field_model import (
    ArrayField, JsonSchema, ObjectField, SchemaField, ensure_unique_ids, is_schema_field, iter_fields
)

logger = logging.getLogger(__name__)

Scope = Sequence[SchemaField]
Updater = Callable[[SchemaField], SchemaField]
# Returns the replacement for a matched field, or None to drop it.
Replacer = Callable[[SchemaField], Optional[SchemaField]]


def _splice(scope: Scope, index: int, replacement: Optional[SchemaField]) -> Tuple[SchemaField, ...]:
    middle = () if replacement is None else (replacement,)
    return tuple(scope[:index]) + middle + tuple(scope[index + 1:])


def _rebuild_scope(scope: Scope, target_id: str, replace: Replacer) -> Scope:
    for index, field in enumerate(scope):
        if field.id == target_id:
            return _splice(scope, index, replace(field))

        rebuilt = _rebuild_field(field, target_id, replace)
        if rebuilt is not field:
            # ids are unique, so the first hit is the only one
            return _splice(scope, index, rebuilt)

    return scope


def _rebuild_field(field: SchemaField, target_id: str, replace: Replacer) -> SchemaField:
    if isinstance(field, ObjectField):
        children = _rebuild_scope(field.children, target_id, replace)
        if children is not field.children:
            return field.model_copy(update={'children': children})

    elif isinstance(field, ArrayField) and field.array_item_type is not None:
        slot = (field.array_item_type,)
        rebuilt = _rebuild_scope(slot, target_id, replace)
        if rebuilt is not slot:
            item_type = rebuilt[0] if rebuilt else None
            return field.model_copy(update={'array_item_type': item_type})

    return field


def update_field(scope: Scope, target_id: str, updater: Updater) -> Scope:
    """
    Replace the field with ``target_id`` by ``updater(field)``.

    Args:
        scope: Ordered fields to search (top-level fields or any children)
        target_id: Id of the field to replace
        updater: Function receiving the matched field and returning its replacement

    Returns:
        A new tuple with the rebuilt path, or ``scope`` itself if no field matched

    Raises:
        SchemaInvariantError: If the updater returns something that is not a field
        DuplicateFieldIdError: If the replacement reuses an id already in the scope
    """
    def replace(field: SchemaField) -> SchemaField:
        replacement = updater(field)
        if not is_schema_field(replacement):
            logger.error(f"Updater for field {target_id} returned {type(replacement).__name__}")
            raise SchemaInvariantError(
                'field-variant',
                f"Updater for field '{field.name}' must return a schema field, "
                f"got {type(replacement).__name__}",
                {'field_id': target_id}
            )
        return replacement

    result = _rebuild_scope(scope, target_id, replace)
    if result is scope:
        logger.debug(f"update_field: no field with id {target_id}")
    else:
        ensure_unique_ids(result)
    return result


def remove_field(scope: Scope, target_id: str) -> Scope:
    """
    Remove the field with ``target_id`` wherever it lives.

    Removing an array's item type leaves the array with no item type;
    removing the last child of an object leaves it with no children.

    Returns:
        A new tuple with the rebuilt path, or ``scope`` itself if no field matched
    """
    result = _rebuild_scope(scope, target_id, lambda field: None)
    if result is scope:
        logger.debug(f"remove_field: no field with id {target_id}")
    return result


def update_schema_field(schema: JsonSchema, target_id: str, updater: Updater) -> JsonSchema:
    """Apply update_field to a schema's top-level fields."""
    fields = update_field(schema.fields, target_id, updater)
    if fields is schema.fields:
        return schema
    return schema.model_copy(update={'fields': fields})


def remove_schema_field(schema: JsonSchema, target_id: str) -> JsonSchema:
    """Apply remove_field to a schema's top-level fields."""
    fields = remove_field(schema.fields, target_id)
    if fields is schema.fields:
        return schema
    return schema.model_copy(update={'fields': fields})


def find_field(scope: Scope, target_id: str) -> Optional[SchemaField]:
    """Return the field with ``target_id``, or None."""
    for field in iter_fields(scope):
        if field.id == target_id:
            return field
    return None


def find_parent(scope: Scope, target_id: str) -> Optional[SchemaField]:
    """
    Return the container that directly holds ``target_id``.

    None means the field is top-level (or absent).
    """
    for field in iter_fields(scope):
        if isinstance(field, ObjectField):
            if any(child.id == target_id for child in field.children):
                return field
        elif isinstance(field, ArrayField) and field.array_item_type is not None:
            if field.array_item_type.id == target_id:
                return field
    return None


def collect_field_ids(scope: Scope) -> List[str]:
    return [field.id for field in iter_fields(scope)]


def count_fields(scope: Scope) -> int:
    """Count every node in the tree, array item types included."""
    return sum(1 for _ in iter_fields(scope))
