"""
Validate generated data against a schema.

A dynamic Pydantic model is built from the schema tree (nested models for
objects, constrained lists for arrays) and used to check instances produced
by the generation collaborator. Keys follow the same duplicate-key rule as
the preview, so a schema with two ``name`` fields expects ``name`` and
``name_2``.
"""

from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Sequence, Set, Tuple, Type, Union
import logging

from pydantic import AfterValidator, AnyUrl, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model

from .field_model import ArrayField, JsonSchema, ObjectField, SchemaField
from .preview import unique_key

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
ROOT_FIELD = 'root'


@dataclass
class FieldError:
    """
    One validation problem.

    Attributes:
        field: Dotted path of the failing value (``tags.0.name``), ``root`` for the document
        message: Human readable message
        value: The offending input value
        path: Slash separated path (``/tags/0/name``)
    """
    field: str
    message: str
    value: Any = None
    path: str = ''


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[FieldError] = dataclass_field(default_factory=list)
    data: Optional[Dict[str, Any]] = None


def _as_iso_text(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _check_iso_date(value: str) -> str:
    text = value.replace('Z', '+00:00') if value.endswith('Z') else value
    try:
        datetime.fromisoformat(text)
    except ValueError:
        try:
            date.fromisoformat(text)
        except ValueError:
            raise ValueError(f"'{value}' is not an ISO 8601 date or date-time")
    return value


IsoDate = Annotated[str, BeforeValidator(_as_iso_text), AfterValidator(_check_iso_date)]


def _text_annotation(field: SchemaField, default_pattern: Optional[str] = None) -> Any:
    logic = field.logic
    if logic is not None and logic.enum:
        return Literal[tuple(logic.enum)]

    constraints: Dict[str, Any] = {}
    pattern = default_pattern
    if logic is not None:
        if logic.min_length is not None:
            constraints['min_length'] = logic.min_length
        if logic.max_length is not None:
            constraints['max_length'] = logic.max_length
        if logic.pattern:
            pattern = logic.pattern
    if pattern:
        constraints['pattern'] = pattern
    return Annotated[str, Field(**constraints)] if constraints else str


def _number_annotation(field: SchemaField) -> Any:
    logic = field.logic
    if logic is None:
        return float
    if logic.enum:
        return Literal[tuple(logic.enum)]

    constraints: Dict[str, Any] = {}
    if logic.min is not None:
        constraints['ge'] = logic.min
    if logic.max is not None:
        constraints['le'] = logic.max
    return Annotated[float, Field(**constraints)] if constraints else float


def _array_annotation(field: ArrayField, model_name: str) -> Any:
    if field.array_item_type is None:
        item = Any
    else:
        item = field_annotation(field.array_item_type, f"{model_name}Item")

    constraints: Dict[str, Any] = {}
    if field.logic is not None:
        if field.logic.min_items is not None:
            constraints['min_length'] = field.logic.min_items
        if field.logic.max_items is not None:
            constraints['max_length'] = field.logic.max_items
    return Annotated[List[item], Field(**constraints)] if constraints else List[item]


def field_annotation(field: SchemaField, model_name: str) -> Any:
    """
    Map a schema field to a Pydantic-compatible type annotation.

    Args:
        field: Field to map
        model_name: Name used for nested models generated for objects
    """
    if field.type == 'text':
        return _text_annotation(field)
    if field.type == 'email':
        return _text_annotation(field, EMAIL_PATTERN)
    if field.type == 'url':
        return AnyUrl
    if field.type == 'number':
        return _number_annotation(field)
    if field.type == 'boolean':
        return bool
    if field.type == 'date':
        return IsoDate
    if field.type == 'object':
        if not field.children:
            return Dict[str, Any]
        return _build_model(field.children, model_name)
    if field.type == 'array':
        return _array_annotation(field, model_name)
    return Any


def _is_required(field: SchemaField) -> bool:
    logic = field.logic
    return bool(getattr(logic, 'required', False)) if logic is not None else False


def _build_model(fields: Sequence[SchemaField], model_name: str) -> Type[BaseModel]:
    model_fields: Dict[str, Tuple[Any, Any]] = {}
    used: Set[str] = set()

    for index, schema_field in enumerate(fields):
        key = unique_key(schema_field.name, used)
        nested_name = f"{model_name}_{''.join(ch for ch in key if ch.isalnum()) or index}"
        annotation = field_annotation(schema_field, nested_name)

        if _is_required(schema_field):
            model_fields[f"field_{index}"] = (annotation, Field(..., alias=key))
        else:
            model_fields[f"field_{index}"] = (Optional[annotation], Field(None, alias=key))

    return create_model(
        model_name,
        __config__=ConfigDict(extra='forbid', populate_by_name=False),
        **model_fields
    )


def create_model_from_schema(schema: Union[JsonSchema, Sequence[SchemaField]],
                             model_name: str = "GeneratedRecord") -> Type[BaseModel]:
    """
    Create a Pydantic model from a schema.

    Args:
        schema: JsonSchema or a sequence of top-level fields
        model_name: Name for the generated model class

    Returns:
        Pydantic model class validating one generated instance
    """
    fields = schema.fields if isinstance(schema, JsonSchema) else tuple(schema)
    try:
        model = _build_model(fields, model_name)
    except Exception as e:
        logger.error(f"Failed to create model '{model_name}': {e}")
        raise
    logger.debug(f"Created dynamic model '{model_name}' with {len(fields)} fields")
    return model


def _loc_to_field(loc: Iterable[Any]) -> Tuple[str, str]:
    parts = [str(part) for part in loc]
    if not parts:
        return ROOT_FIELD, ''
    return '.'.join(parts), '/' + '/'.join(parts)


def validate_data(data: Any, schema: Union[JsonSchema, Sequence[SchemaField]],
                  model: Optional[Type[BaseModel]] = None) -> ValidationResult:
    """
    Validate one generated instance against a schema.

    Args:
        data: Instance to validate (expected to be a dict)
        schema: Schema or top-level fields
        model: Pre-built model from create_model_from_schema, to avoid rebuilding

    Returns:
        ValidationResult with per-field errors
    """
    if not isinstance(data, dict):
        return ValidationResult(
            is_valid=False,
            errors=[FieldError(ROOT_FIELD, 'Expected a JSON object', data, '')]
        )

    if model is None:
        model = create_model_from_schema(schema)

    try:
        model.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path, path = _loc_to_field(error.get('loc', ()))
            errors.append(FieldError(field_path, error.get('msg', 'Validation error'),
                                     error.get('input'), path))
        logger.debug(f"Validation failed with {len(errors)} errors")
        return ValidationResult(is_valid=False, errors=errors)

    return ValidationResult(is_valid=True, errors=[], data=data)


def _normalize_value(value: Any, field: SchemaField) -> Any:
    if value is None:
        return value

    if field.type == 'number' and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() and '.' not in value else number

    if field.type == 'boolean' and isinstance(value, str):
        lower = value.strip().lower()
        if lower in ('true', '1'):
            return True
        if lower in ('false', '0'):
            return False
        return value

    if field.type == 'array':
        if not isinstance(value, list):
            return [value]
        item = field.array_item_type
        # Nested arrays are left alone so structural problems still fail validation.
        if item is not None and item.type != 'array':
            return [_normalize_value(entry, item) for entry in value]
        return value

    if isinstance(field, ObjectField) and isinstance(value, dict) and field.children:
        return _normalize_object(value, field.children)

    if field.type == 'date' and isinstance(value, str):
        text = value.replace('Z', '+00:00') if value.endswith('Z') else value
        try:
            return datetime.fromisoformat(text).isoformat()
        except ValueError:
            return value

    return value


def _normalize_object(data: Dict[str, Any], fields: Sequence[SchemaField]) -> Dict[str, Any]:
    normalized = dict(data)
    used: Set[str] = set()
    for schema_field in fields:
        key = unique_key(schema_field.name, used)
        if key in normalized:
            normalized[key] = _normalize_value(normalized[key], schema_field)
    return normalized


def normalize_data(data: Any, schema: Union[JsonSchema, Sequence[SchemaField]]) -> Any:
    """
    Fix common formatting slips before validation.

    Numeric strings become numbers, ``"true"/"1"/"false"/"0"`` become booleans,
    scalars for array fields are wrapped in a list. The input is not modified.
    """
    fields = schema.fields if isinstance(schema, JsonSchema) else tuple(schema)
    if isinstance(data, list):
        return [normalize_data(item, fields) for item in data]
    if not isinstance(data, dict):
        return data
    return _normalize_object(data, fields)


def get_failed_fields(errors: Iterable[FieldError]) -> List[str]:
    """Unique failing field paths in first-seen order, excluding ``root``."""
    seen: List[str] = []
    for error in errors:
        if error.field != ROOT_FIELD and error.field not in seen:
            seen.append(error.field)
    return seen


def group_errors_by_field(errors: Iterable[FieldError]) -> Dict[str, List[FieldError]]:
    groups: Dict[str, List[FieldError]] = {}
    for error in errors:
        groups.setdefault(error.field or ROOT_FIELD, []).append(error)
    return groups
