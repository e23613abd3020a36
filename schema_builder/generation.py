"""
Boundary to the data generation collaborator.

The collaborator itself (an LLM client or anything else) is supplied by the
caller as a DataGenerator. This module builds the instruction text, drives
the retry loop, normalises and validates every returned instance, repairs
failing fields and reports progress.
"""

import copy
import json
import logging
import time
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Optional, Protocol

from .field_model import JsonSchema, SchemaField
from .field_tree import count_fields
from .json_structure import (
    convert_schema_to_structure, create_field_map, get_array_parent, get_field_by_path,
    get_placeholder_value, set_value_by_path
)
from .validation import (
    create_model_from_schema, get_failed_fields, group_errors_by_field, normalize_data, validate_data
)

logger = logging.getLogger(__name__)

STAGES = ('preparing', 'generating', 'validating', 'fixing', 'completed', 'failed')


class DataGenerator(Protocol):
    def generate(self, schema: JsonSchema, structure: Dict[str, Any],
                 prompt: str, count: int) -> List[Dict[str, Any]]:
        ...


class FieldGenerator(Protocol):
    """
    Optional extension of a DataGenerator.

    A generator that also has ``generate_field`` is asked again for each
    failing value; ``path`` is the dotted data path and ``instance`` the
    document being repaired.
    """

    def generate_field(self, field: SchemaField, path: str,
                       instance: Dict[str, Any], prompt: str) -> Any:
        ...


class StaticResponseGenerator:
    """DataGenerator replaying a reply obtained elsewhere, e.g. pasted from an LLM chat."""

    def __init__(self, response: str):
        self.response = response

    def generate(self, schema: JsonSchema, structure: Dict[str, Any],
                 prompt: str, count: int) -> List[Dict[str, Any]]:
        return parse_generated_json(self.response)[:count]


@dataclass
class GenerationProgress:
    stage: str
    message: str
    progress: int
    attempts: Optional[int] = None
    max_attempts: Optional[int] = None
    failed_fields: List[str] = dataclass_field(default_factory=list)
    current_field: Optional[str] = None


ProgressCallback = Callable[[GenerationProgress], None]


@dataclass
class GenerationOptions:
    max_attempts: int = 3
    retry_delay: float = 1.0
    enable_fallback: bool = True
    progress_callback: Optional[ProgressCallback] = None


@dataclass
class GenerationMetadata:
    """
    Summary of one generate_data run.

    ``regenerated_fields`` lists every path that failed first validation,
    ``failed_fields`` the paths still failing after repair.
    """
    total_fields: int
    valid_fields: int
    failed_fields: List[str]
    attempts: int
    generation_time: float
    regenerated_fields: List[str] = dataclass_field(default_factory=list)


@dataclass
class GenerationResult:
    success: bool
    progress: GenerationProgress
    data: List[Dict[str, Any]] = dataclass_field(default_factory=list)
    errors: List[str] = dataclass_field(default_factory=list)
    metadata: Optional[GenerationMetadata] = None


def generation_options_from_config(config: Dict[str, Any],
                                   progress_callback: Optional[ProgressCallback] = None) -> GenerationOptions:
    """Build GenerationOptions from the ``generation`` config section."""
    section = config.get('generation') or {}
    return GenerationOptions(
        max_attempts=int(section.get('max_attempts', 3)),
        retry_delay=float(section.get('retry_delay', 1.0)),
        enable_fallback=bool(section.get('enable_fallback', True)),
        progress_callback=progress_callback
    )


def build_generation_prompt(schema: JsonSchema, prompt: str, count: int) -> str:
    """
    Build the instruction text sent to the collaborator.

    Args:
        schema: Schema to generate instances of
        prompt: User requirements
        count: Number of instances requested

    Returns:
        Deterministic instruction text embedding the JSON structure
    """
    structure = convert_schema_to_structure(schema.fields)
    return (
        "Generate realistic JSON data matching this exact structure:\n"
        f"{json.dumps(structure, indent=2)}\n"
        "\n"
        "Requirements:\n"
        f"1. Return exactly {count} object(s) in a JSON array\n"
        "2. Match the structure exactly - no additional or missing fields\n"
        "3. Generate realistic data based on field names and types\n"
        f"4. Consider the user's specific requirements: {prompt}\n"
        "\n"
        "Return only valid JSON, no explanations."
    )


def parse_generated_json(text: str) -> List[Dict[str, Any]]:
    """
    Parse collaborator output, tolerating Markdown code fences.

    Raises:
        ValueError: If the text is not valid JSON
    """
    cleaned = text.replace('```json', '').replace('```', '').strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON response: {cleaned[:100]}...") from e
    return parsed if isinstance(parsed, list) else [parsed]


def _report(options: GenerationOptions, progress: GenerationProgress) -> GenerationProgress:
    if options.progress_callback is not None:
        options.progress_callback(progress)
    return progress


def _add_unique(target: List[str], paths: List[str]) -> None:
    for path in paths:
        if path not in target:
            target.append(path)


def _regenerate_value(generator: Any, field: SchemaField, path: str,
                      instance: Dict[str, Any], prompt: str) -> Any:
    generate_field = getattr(generator, 'generate_field', None)
    if generate_field is not None:
        try:
            return generate_field(field, path, instance, prompt)
        except Exception as e:
            logger.warning(f"Failed to regenerate field {path}, using default value: {e}")
    return get_placeholder_value(field)


def repair_instance(generator: DataGenerator, data: Dict[str, Any], failed_fields: List[str],
                    schema: JsonSchema, prompt: str,
                    field_map: Optional[Dict[str, SchemaField]] = None,
                    options: Optional[GenerationOptions] = None) -> Dict[str, Any]:
    """
    Replace the failing values of one instance.

    Direct array elements (``tags.1``) are grouped by their array and the
    whole array is replaced once; every other path is replaced on its own.
    Each value comes from ``generator.generate_field`` when the generator has
    one, and falls back to get_placeholder_value when it does not or when
    the call raises. Paths with no matching field are left alone.

    Args:
        generator: The collaborator
        data: Instance to repair (not modified)
        failed_fields: Dotted failing paths from get_failed_fields
        schema: Schema describing the instance
        prompt: User requirements, passed through to generate_field
        field_map: Pre-built create_field_map index
        options: Used for progress reporting only

    Returns:
        A repaired deep copy of ``data``
    """
    options = options or GenerationOptions()
    if field_map is None:
        field_map = create_field_map(schema.fields)
    result = copy.deepcopy(data)

    array_paths: List[str] = []
    for path in failed_fields:
        parent = get_array_parent(path)
        if parent is not None and parent not in array_paths:
            array_paths.append(parent)
    paths = array_paths + [path for path in failed_fields if get_array_parent(path) is None]

    for index, path in enumerate(paths):
        field = get_field_by_path(path, field_map)
        if field is None:
            continue

        _report(options, GenerationProgress(
            'fixing', f"Regenerating field: {path}", round(index / len(paths) * 100),
            failed_fields=list(failed_fields), current_field=path
        ))
        value = _regenerate_value(generator, field, path, result, prompt)
        try:
            set_value_by_path(result, path, value)
        except (IndexError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Could not write repaired value at {path}: {e}")

    return result


def generate_data(generator: DataGenerator, schema: JsonSchema, prompt: str, count: int = 1,
                  options: Optional[GenerationOptions] = None) -> GenerationResult:
    """
    Ask the collaborator for instances and check them against the schema.

    Each attempt calls ``generator.generate`` once. An exception from the
    collaborator consumes the attempt; after the last one a failed result is
    returned. Instances that fail validation after normalisation go through
    repair_instance (unless ``enable_fallback`` is off) and are validated
    again; instances still failing are kept and their failing paths are
    reported in the metadata.

    Args:
        generator: The collaborator
        schema: Schema describing one instance
        prompt: User requirements
        count: Number of instances requested
        options: Retry and progress settings

    Returns:
        GenerationResult
    """
    options = options or GenerationOptions()
    max_attempts = max(1, options.max_attempts)
    start_time = time.monotonic()
    structure = convert_schema_to_structure(schema.fields)

    _report(options, GenerationProgress('preparing', 'Preparing data generation...', 0))

    last_error = 'Maximum attempts exceeded'
    for attempt in range(1, max_attempts + 1):
        _report(options, GenerationProgress(
            'generating',
            f"Generating complete data structure (attempt {attempt}/{max_attempts})...",
            20, attempts=attempt, max_attempts=max_attempts
        ))

        try:
            generated = generator.generate(schema, structure, prompt, count)
        except Exception as e:
            last_error = str(e) or type(e).__name__
            logger.warning(f"Generation attempt {attempt}/{max_attempts} failed: {last_error}")
            if attempt < max_attempts and options.retry_delay > 0:
                time.sleep(options.retry_delay * attempt)
            continue

        _report(options, GenerationProgress('validating', 'Validating generated data...', 60))

        model = create_model_from_schema(schema)
        field_map = create_field_map(schema.fields)
        results: List[Dict[str, Any]] = []
        regenerated_fields: List[str] = []
        failed_fields: List[str] = []
        for instance in generated:
            data = normalize_data(instance, schema)
            validation = validate_data(data, schema, model=model)
            if not validation.is_valid:
                failed = get_failed_fields(validation.errors)
                _add_unique(regenerated_fields, failed)
                for path, errors in group_errors_by_field(validation.errors).items():
                    logger.debug(f"Invalid {path}: {'; '.join(error.message for error in errors)}")

                if options.enable_fallback and failed:
                    _report(options, GenerationProgress(
                        'fixing', f"Fixing {len(failed)} failed fields...", 70, failed_fields=failed
                    ))
                    data = normalize_data(
                        repair_instance(generator, data, failed, schema, prompt, field_map, options), schema
                    )
                    validation = validate_data(data, schema, model=model)

                if not validation.is_valid:
                    _add_unique(failed_fields, get_failed_fields(validation.errors))
            results.append(data)

        if regenerated_fields:
            logger.info(f"Generated data had {len(regenerated_fields)} failing fields: {regenerated_fields}")
        if failed_fields:
            logger.warning(f"Fields still failing after repair: {failed_fields}")

        total_fields = count_fields(schema.fields)
        progress = _report(options, GenerationProgress(
            'completed', 'Data generation completed successfully!', 100, failed_fields=failed_fields
        ))
        return GenerationResult(
            success=True,
            progress=progress,
            data=results,
            metadata=GenerationMetadata(
                total_fields=total_fields,
                valid_fields=max(0, total_fields - len(failed_fields)),
                failed_fields=failed_fields,
                attempts=attempt,
                generation_time=time.monotonic() - start_time,
                regenerated_fields=regenerated_fields
            )
        )

    logger.error(f"Generation failed after {max_attempts} attempts: {last_error}")
    progress = _report(options, GenerationProgress(
        'failed', f"Generation failed after {max_attempts} attempts", 0
    ))
    return GenerationResult(success=False, progress=progress, errors=[f"Generation failed: {last_error}"])
