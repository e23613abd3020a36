"""
Editing session for a single schema document.

SchemaEditor owns the canonical JsonSchema and swaps it wholesale on each
accepted edit. Previous versions are kept for undo; thanks to structural
sharing a version costs only the rebuilt path. Collapse state is UI state
and lives here, never in the schema.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from . import field_operations, field_tree
from .diff_utils import calculate_schema_diff, get_change_summary, summarize_field_changes
from .exceptions import DuplicateFieldIdError
from .field_model import JsonSchema, SchemaField, ensure_unique_ids, schema_to_dict
from .preview import PreviewOptions, render_schema
from .templates import get_template

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

Mutation = Callable[[JsonSchema], JsonSchema]


class SchemaEditor:
    """Holds one schema plus its undo/redo history and collapse state."""

    def __init__(self, schema: Optional[JsonSchema] = None, history_limit: int = DEFAULT_HISTORY_LIMIT,
                 preview_options: Optional[PreviewOptions] = None):
        self._schema = schema if schema is not None else JsonSchema()
        self._saved = self._schema
        self._undo: List[Tuple[JsonSchema, str]] = []
        self._redo: List[Tuple[JsonSchema, str]] = []
        self._collapsed: Set[str] = set()
        self.history_limit = max(1, history_limit)
        self.preview_options = preview_options or PreviewOptions()

    @classmethod
    def from_template(cls, key: str, **kwargs: Any) -> 'SchemaEditor':
        """
        Start a session from a catalog template.

        Raises:
            TemplateNotFoundError: If the key is unknown
        """
        logger.info(f"Starting editor session from template '{key}'")
        return cls(get_template(key), **kwargs)

    @property
    def schema(self) -> JsonSchema:
        return self._schema

    @property
    def is_dirty(self) -> bool:
        return self._schema is not self._saved

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def history(self) -> List[str]:
        """Descriptions of undoable edits, oldest first."""
        return [description for _, description in self._undo]

    def apply(self, mutation: Mutation, description: str = 'edit') -> bool:
        """
        Run an edit and commit its result.

        Args:
            mutation: Function from the current schema to the next one
            description: Label recorded in the history

        Returns:
            True if the schema changed, False for a no-op

        Raises:
            DuplicateFieldIdError: If the result reuses an id (nothing is committed)
        """
        new_schema = mutation(self._schema)
        if new_schema is self._schema:
            logger.debug(f"Edit '{description}' made no change")
            return False

        try:
            ensure_unique_ids(new_schema.fields)
        except DuplicateFieldIdError:
            logger.error(f"Rejected edit '{description}': duplicate field id")
            raise

        self._undo.append((self._schema, description))
        if len(self._undo) > self.history_limit:
            del self._undo[0]
        self._redo.clear()
        self._schema = new_schema
        logger.info(f"Applied edit: {description}")
        return True

    def undo(self) -> bool:
        if not self._undo:
            return False
        previous, description = self._undo.pop()
        self._redo.append((self._schema, description))
        self._schema = previous
        logger.info(f"Undid edit: {description}")
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        following, description = self._redo.pop()
        self._undo.append((self._schema, description))
        self._schema = following
        logger.info(f"Redid edit: {description}")
        return True

    # Convenience edits

    def update_field(self, field_id: str, updater: Callable[[SchemaField], SchemaField],
                     description: str = 'update field') -> bool:
        return self.apply(lambda schema: field_tree.update_schema_field(schema, field_id, updater), description)

    def remove_field(self, field_id: str) -> bool:
        changed = self.apply(lambda schema: field_tree.remove_schema_field(schema, field_id),
                             f"remove field {field_id}")
        if changed:
            self._prune_collapsed()
        return changed

    def add_field(self, field: Optional[SchemaField] = None) -> bool:
        return self.apply(lambda schema: field_operations.add_field(schema, field), 'add field')

    def add_child_field(self, object_id: str, field: Optional[SchemaField] = None) -> bool:
        return self.apply(lambda schema: field_operations.add_child_field(schema, object_id, field),
                          f"add child to {object_id}")

    def add_array_item_child(self, array_id: str, field: Optional[SchemaField] = None) -> bool:
        return self.apply(lambda schema: field_operations.add_array_item_child(schema, array_id, field),
                          f"add item child to {array_id}")

    def change_field_type(self, field_id: str, new_type: str) -> bool:
        changed = self.apply(lambda schema: field_operations.change_field_type(schema, field_id, new_type),
                             f"change type of {field_id} to {new_type}")
        if changed:
            self._prune_collapsed()
        return changed

    def rename_field(self, field_id: str, name: str) -> bool:
        return self.apply(lambda schema: field_operations.rename_field(schema, field_id, name),
                          f"rename {field_id} to {name}")

    def set_field_logic(self, field_id: str, **changes: Any) -> bool:
        return self.apply(lambda schema: field_operations.set_field_logic(schema, field_id, **changes),
                          f"set logic of {field_id}")

    def apply_schema_to_field(self, field_id: str, source: JsonSchema) -> bool:
        """Turn a field into an object holding a fresh-id copy of ``source``."""
        changed = self.apply(lambda schema: field_operations.apply_schema_to_field(schema, field_id, source),
                             f"apply schema '{source.name}' to {field_id}")
        if changed:
            self._prune_collapsed()
        return changed

    def move_field(self, field_id: str, offset: int) -> bool:
        return self.apply(lambda schema: field_operations.move_field(schema, field_id, offset),
                          f"move {field_id} by {offset}")

    def duplicate_field(self, field_id: str) -> bool:
        return self.apply(lambda schema: field_operations.duplicate_field(schema, field_id),
                          f"duplicate {field_id}")

    def rename_schema(self, name: str) -> bool:
        def rename(schema: JsonSchema) -> JsonSchema:
            return schema if schema.name == name else schema.model_copy(update={'name': name})
        return self.apply(rename, f"rename schema to {name}")

    # Collapse state

    def toggle_collapse(self, field_id: str) -> bool:
        """Flip the collapse flag of a field; returns the new state."""
        if field_id in self._collapsed:
            self._collapsed.discard(field_id)
            return False
        self._collapsed.add(field_id)
        return True

    def is_collapsed(self, field_id: str) -> bool:
        return field_id in self._collapsed

    @property
    def collapsed_fields(self) -> FrozenSet[str]:
        return frozenset(self._collapsed)

    def _prune_collapsed(self) -> None:
        live = set(field_tree.collect_field_ids(self._schema.fields))
        self._collapsed &= live

    # Output

    def preview(self, for_preview: bool = True) -> Dict[str, Any]:
        """Render the current schema with the session's collapse state."""
        options = PreviewOptions(
            collapsed_fields=self.collapsed_fields,
            for_preview=for_preview,
            default_min_items=self.preview_options.default_min_items,
            default_max_items=self.preview_options.default_max_items
        )
        return render_schema(self._schema.fields, options)

    def export(self) -> Dict[str, Any]:
        return schema_to_dict(self._schema)

    def mark_saved(self) -> None:
        self._saved = self._schema
        logger.info(f"Schema '{self._schema.name}' marked as saved")

    def changes_since_saved(self) -> Dict[str, Any]:
        """
        Summarise what changed since the last save.

        Returns:
            Dict with ``summary`` (DeepDiff change counts) and ``fields``
            (added/removed/modified field ids)
        """
        diff = calculate_schema_diff(self._saved, self._schema)
        return {
            'summary': get_change_summary(diff),
            'fields': summarize_field_changes(self._saved, self._schema)
        }
