"""
Diff utilities for schema versions.

Compares two JsonSchema versions with DeepDiff (on their persisted dict form)
and summarises what changed, either as DeepDiff categories or per field id.
"""

from typing import Any, Dict, List, Optional
from deepdiff import DeepDiff
import logging

from .field_model import ArrayField, JsonSchema, ObjectField, SchemaField, field_to_dict, iter_fields, schema_to_dict

logger = logging.getLogger(__name__)

CHANGE_TYPES = (
    'values_changed',
    'dictionary_item_added',
    'dictionary_item_removed',
    'iterable_item_added',
    'iterable_item_removed',
    'type_changes'
)


def calculate_schema_diff(original: JsonSchema, modified: JsonSchema) -> Dict[str, Any]:
    """
    Calculate differences between two schema versions.

    Lists are compared in order (field order is meaningful). Results use
    DeepDiff's verbose level 2, so every category maps a path such as
    ``root['fields'][3]['logic']['required']`` to its old/new values.

    Args:
        original: Previous schema version
        modified: New schema version

    Returns:
        Dict of DeepDiff change categories (empty if identical)
    """
    if original is modified:
        return {}

    diff = DeepDiff(schema_to_dict(original), schema_to_dict(modified), verbose_level=2)
    result = {change_type: dict(diff[change_type]) for change_type in CHANGE_TYPES if change_type in diff}
    logger.debug(f"Schema diff categories: {list(result)}")
    return result


def has_changes(diff: Dict[str, Any]) -> bool:
    """
    Check if there are any changes in the diff.

    Args:
        diff: Diff dictionary from calculate_schema_diff

    Returns:
        True if there are changes, False otherwise
    """
    if not diff:
        return False
    return any(change_type in diff and diff[change_type] for change_type in CHANGE_TYPES)


def get_change_summary(diff: Dict[str, Any]) -> Dict[str, int]:
    """
    Get a summary of changes by type.

    Args:
        diff: Diff dictionary from calculate_schema_diff

    Returns:
        Dictionary with change counts by type
    """
    summary = {
        'modified': len(diff.get('values_changed', {})),
        'added': len(diff.get('dictionary_item_added', {})) + len(diff.get('iterable_item_added', {})),
        'removed': len(diff.get('dictionary_item_removed', {})) + len(diff.get('iterable_item_removed', {})),
        'type_changed': len(diff.get('type_changes', {})),
    }
    summary['total'] = sum(summary.values())
    return summary


def _own_attributes(field: SchemaField) -> Dict[str, Any]:
    # Structure is compared through the descendants themselves.
    data = field_to_dict(field)
    data.pop('children', None)
    data.pop('arrayItemType', None)
    if isinstance(field, ObjectField):
        data['childIds'] = [child.id for child in field.children]
    elif isinstance(field, ArrayField):
        data['itemId'] = field.array_item_type.id if field.array_item_type is not None else None
    return data


def summarize_field_changes(original: JsonSchema, modified: JsonSchema) -> Dict[str, List[str]]:
    """
    Report changed fields by id.

    Returns:
        ``{'added': [...], 'removed': [...], 'modified': [...]}`` where a field
        counts as modified if its own attributes or its list of direct
        children changed
    """
    old_fields = {field.id: field for field in iter_fields(original.fields)}
    new_fields = {field.id: field for field in iter_fields(modified.fields)}

    added = [field_id for field_id in new_fields if field_id not in old_fields]
    removed = [field_id for field_id in old_fields if field_id not in new_fields]
    changed = []
    for field_id, new_field in new_fields.items():
        old_field = old_fields.get(field_id)
        if old_field is None or old_field is new_field:
            continue
        if _own_attributes(old_field) != _own_attributes(new_field):
            changed.append(field_id)

    return {'added': added, 'removed': removed, 'modified': changed}


def diff_field(original: SchemaField, modified: SchemaField) -> Optional[Dict[str, Any]]:
    """DeepDiff of a single field's persisted form, or None if identical."""
    diff = DeepDiff(field_to_dict(original), field_to_dict(modified), verbose_level=2)
    if not diff:
        return None
    return {change_type: dict(diff[change_type]) for change_type in CHANGE_TYPES if change_type in diff}
