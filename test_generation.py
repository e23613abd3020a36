"""
Unit tests for the generation boundary.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from schema_builder.field_model import (
    ArrayField, ArrayLogic, JsonSchema, NumberField, NumberLogic, ObjectField, TextField, TextLogic
)
from schema_builder.generation import (
    GenerationOptions, build_generation_prompt, generate_data, generation_options_from_config,
    parse_generated_json, repair_instance
)
from schema_builder.templates import get_template


@pytest.fixture
def schema():
    return JsonSchema(name='Item', fields=(
        TextField(name='name', logic=TextLogic(required=True)),
        NumberField(name='price', logic=NumberLogic(required=True, min=0)),
    ))


def make_generator(*responses):
    """Generator mock returning (or raising) the given responses in order."""
    generator = MagicMock(spec=['generate'])
    generator.generate.side_effect = list(responses)
    return generator


def make_field_generator(*responses, field_values=None, field_error=None):
    """Generator mock that also answers per-field regeneration calls."""
    generator = MagicMock(spec=['generate', 'generate_field'])
    generator.generate.side_effect = list(responses)
    if field_error is not None:
        generator.generate_field.side_effect = field_error
    else:
        generator.generate_field.side_effect = lambda field, path, instance, prompt: field_values[path]
    return generator


@pytest.fixture
def user_schema():
    return get_template('user')


@pytest.fixture
def broken_user():
    return {'id': 'x', 'firstName': 'A', 'lastName': 'Smith', 'email': 'nope', 'isActive': True}


class TestPrompt:
    """Test cases for prompt building and parsing."""

    def test_prompt_embeds_structure(self, schema):
        """Test that the prompt contains the JSON structure and the count."""
        prompt = build_generation_prompt(schema, 'cheap snacks', 3)

        assert json.dumps({'name': 'string', 'price': 'number'}, indent=2) in prompt
        assert 'Return exactly 3 object(s)' in prompt
        assert 'cheap snacks' in prompt

    def test_prompt_is_deterministic(self, schema):
        """Test that identical inputs give identical prompts."""
        assert build_generation_prompt(schema, 'x', 1) == build_generation_prompt(schema, 'x', 1)

    def test_parse_generated_json_strips_fences(self):
        """Test parsing fenced output and single objects."""
        assert parse_generated_json('```json\n[{"a": 1}]\n```') == [{'a': 1}]
        assert parse_generated_json('{"a": 1}') == [{'a': 1}]

    def test_parse_generated_json_invalid(self):
        """Test that invalid output raises ValueError."""
        with pytest.raises(ValueError):
            parse_generated_json('not json')


class TestGenerateData:
    """Test cases for generate_data."""

    def test_successful_generation(self, schema):
        """Test a first-attempt success with normalisation."""
        generator = make_generator([{'name': 'Chips', 'price': '1.5'}])

        result = generate_data(generator, schema, 'snacks', 1, GenerationOptions(retry_delay=0))

        assert result.success
        assert result.data == [{'name': 'Chips', 'price': 1.5}]
        assert result.metadata.attempts == 1
        assert result.metadata.failed_fields == []
        assert result.metadata.total_fields == 2
        assert result.metadata.valid_fields == 2
        assert result.progress.stage == 'completed'

        args = generator.generate.call_args[0]
        assert args[0] is schema
        assert args[1] == {'name': 'string', 'price': 'number'}
        assert args[2:] == ('snacks', 1)

    def test_invalid_instances_are_reported_without_fallback(self, schema):
        """Test that failing fields end up in the metadata when repair is off."""
        generator = make_generator([{'name': 'Chips', 'price': -2}, {'price': 1}])

        result = generate_data(generator, schema, 'snacks', 2,
                               GenerationOptions(retry_delay=0, enable_fallback=False))

        assert result.success
        assert result.data == [{'name': 'Chips', 'price': -2}, {'price': 1}]
        assert result.metadata.failed_fields == ['price', 'name']
        assert result.metadata.regenerated_fields == ['price', 'name']
        assert result.metadata.valid_fields == 0

    def test_failing_fields_fall_back_to_defaults(self, schema):
        """Test that a generator without generate_field gets default values."""
        generator = make_generator([{'name': 'Chips', 'price': -2}, {'price': 1}])

        result = generate_data(generator, schema, 'snacks', 2, GenerationOptions(retry_delay=0))

        assert result.data == [{'name': 'Chips', 'price': 0}, {'price': 1, 'name': ''}]
        assert result.metadata.regenerated_fields == ['price', 'name']
        assert result.metadata.failed_fields == []
        assert result.metadata.valid_fields == 2

    def test_raising_field_generator_uses_defaults(self, user_schema, broken_user):
        """Test that a raising per-field call writes the type default."""
        generator = make_field_generator([broken_user], field_error=RuntimeError('rate limited'))

        result = generate_data(generator, user_schema, 'people', 1, GenerationOptions(retry_delay=0))

        assert result.success
        assert result.data[0]['id'] == 0
        assert result.data[0]['lastName'] == 'Smith'
        assert result.metadata.regenerated_fields == ['id', 'firstName', 'email']
        assert result.metadata.failed_fields == ['firstName', 'email']
        assert result.metadata.valid_fields == 4
        assert generator.generate_field.call_count == 3

    def test_field_generator_repairs_instance(self, user_schema, broken_user):
        """Test that regenerated values are written back and re-validated."""
        values = {'id': 7, 'firstName': 'Ann', 'email': 'ann@example.com'}
        generator = make_field_generator([broken_user], field_values=values)

        result = generate_data(generator, user_schema, 'people', 1, GenerationOptions(retry_delay=0))

        assert result.data == [{
            'id': 7, 'firstName': 'Ann', 'lastName': 'Smith', 'email': 'ann@example.com', 'isActive': True
        }]
        assert result.metadata.failed_fields == []
        assert result.metadata.valid_fields == 6
        field, path, instance, prompt = generator.generate_field.call_args_list[0].args
        assert (field.name, path, prompt) == ('id', 'id', 'people')
        assert instance['lastName'] == 'Smith'
        assert broken_user['id'] == 'x'

    def test_array_elements_regenerated_as_one_array(self):
        """Test that failing elements of one array trigger a single array call."""
        schema = JsonSchema(name='Scores', fields=(
            ArrayField(name='scores', array_item_type=NumberField(name='score', logic=NumberLogic(min=0))),
        ))
        generator = make_field_generator([{'scores': [1, 'x', -3]}], field_values={'scores': [4, 5]})

        result = generate_data(generator, schema, 'p', 1, GenerationOptions(retry_delay=0))

        assert result.data == [{'scores': [4, 5]}]
        assert result.metadata.regenerated_fields == ['scores.1', 'scores.2']
        assert result.metadata.failed_fields == []
        assert generator.generate_field.call_count == 1
        assert generator.generate_field.call_args.args[1] == 'scores'

    def test_progress_stages_with_repair(self, schema):
        """Test that repairs report the fixing stage."""
        progress = []
        generator = make_generator([{'name': 'A', 'price': -1}])
        options = GenerationOptions(retry_delay=0, progress_callback=progress.append)

        generate_data(generator, schema, 'p', 1, options)

        assert [p.stage for p in progress] == [
            'preparing', 'generating', 'validating', 'fixing', 'fixing', 'completed'
        ]
        assert progress[4].current_field == 'price'
        assert progress[3].failed_fields == ['price']

    def test_retries_after_exception(self, schema):
        """Test that a failing attempt is retried."""
        generator = make_generator(RuntimeError('timeout'), [{'name': 'A', 'price': 1}])

        result = generate_data(generator, schema, 'p', 1, GenerationOptions(max_attempts=3, retry_delay=0))

        assert result.success
        assert result.metadata.attempts == 2
        assert generator.generate.call_count == 2

    def test_fails_after_max_attempts(self, schema):
        """Test the failed result after exhausting attempts."""
        generator = make_generator(RuntimeError('down'), RuntimeError('down'))

        result = generate_data(generator, schema, 'p', 1, GenerationOptions(max_attempts=2, retry_delay=0))

        assert not result.success
        assert result.errors == ['Generation failed: down']
        assert result.progress.stage == 'failed'
        assert result.data == []

    def test_retry_delay_grows_per_attempt(self, schema):
        """Test that the wait before a retry scales with the attempt number."""
        generator = make_generator(RuntimeError('a'), RuntimeError('b'), [{'name': 'A', 'price': 1}])

        with patch('schema_builder.generation.time.sleep') as mock_sleep:
            generate_data(generator, schema, 'p', 1, GenerationOptions(max_attempts=3, retry_delay=0.5))

        assert [call.args[0] for call in mock_sleep.call_args_list] == [0.5, 1.0]

    def test_progress_stages(self, schema):
        """Test the progress callback sequence."""
        stages = []
        generator = make_generator([{'name': 'A', 'price': 1}])
        options = GenerationOptions(retry_delay=0, progress_callback=lambda p: stages.append(p.stage))

        generate_data(generator, schema, 'p', 1, options)

        assert stages == ['preparing', 'generating', 'validating', 'completed']

    def test_progress_stages_on_failure(self, schema):
        """Test that the last reported stage is failed."""
        stages = []
        generator = make_generator(RuntimeError('x'))
        options = GenerationOptions(max_attempts=1, retry_delay=0, progress_callback=lambda p: stages.append(p.stage))

        generate_data(generator, schema, 'p', 1, options)

        assert stages == ['preparing', 'generating', 'failed']


class TestOptionsFromConfig:
    """Test cases for generation_options_from_config."""

    def test_reads_generation_section(self):
        """Test that values come from the config section."""
        options = generation_options_from_config({'generation': {'max_attempts': 5, 'retry_delay': 0.1}})

        assert options.max_attempts == 5
        assert options.retry_delay == 0.1

    def test_defaults_when_missing(self):
        """Test defaults without a generation section."""
        options = generation_options_from_config({})

        assert options.max_attempts == 3
        assert options.retry_delay == 1.0


class TestRepairInstance:
    """Test cases for repair_instance."""

    def test_nested_path_repaired_and_unknown_path_skipped(self):
        """Test writing a default below an object and ignoring unmapped paths."""
        schema = JsonSchema(name='Doc', fields=(
            ObjectField(name='author', children=(TextField(name='name'), NumberField(name='age'))),
        ))
        data = {'author': {'name': 'Ann', 'age': 'old'}}

        repaired = repair_instance(make_generator(), data, ['author.age', 'ghost'], schema, 'p')

        assert repaired == {'author': {'name': 'Ann', 'age': 0}}
        assert data['author']['age'] == 'old'

    def test_missing_required_array_gets_min_items(self):
        """Test that an array fallback honours min_items."""
        schema = JsonSchema(name='Doc', fields=(
            ArrayField(name='tags', logic=ArrayLogic(min_items=2), array_item_type=TextField(name='tag')),
        ))

        repaired = repair_instance(make_generator(), {}, ['tags'], schema, 'p')

        assert repaired == {'tags': ['', '']}
