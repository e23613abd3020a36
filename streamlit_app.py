"""
Main Streamlit application for the JSON schema builder.
Build a schema from a template, edit its field tree and watch the live preview.
"""

import json
import logging

import streamlit as st

from schema_builder.config_loader import (
    configure_logging,
    get_config_value,
    get_preview_options,
    load_config,
    validate_config
)
from schema_builder.exceptions import SchemaBuilderError, create_user_friendly_error_message
from schema_builder.field_model import FIELD_TYPES, ArrayField, JsonSchema, ObjectField, SchemaField
from schema_builder.field_operations import format_enum_values, parse_enum_values
from schema_builder.generation import (
    GenerationResult,
    StaticResponseGenerator,
    build_generation_prompt,
    generate_data,
    generation_options_from_config
)
from schema_builder.schema_editor import SchemaEditor
from schema_builder.templates import get_template, list_templates
from schema_builder.validation import validate_data

config = load_config()

# Configure logging dynamically from config
try:
    configure_logging(config)
except Exception as e:
    logging.basicConfig(level=logging.INFO)
    logging.getLogger(__name__).error(f"Failed to configure logging from config: {e}, using INFO level")

logger = logging.getLogger(__name__)

if not validate_config(config):
    logger.warning("Configuration has invalid values, some defaults may apply")

page_title = get_config_value(config, 'ui', 'page_title', 'JSON Schema Builder')
TEMPLATE_NAMES = dict(list_templates())
logger.info(f"Starting app version: {get_config_value(config, 'app', 'version', 'Unknown')}")

st.set_page_config(
    page_title=page_title,
    page_icon="🧩",
    layout="wide",
    initial_sidebar_state="expanded"
)


def init_session_state():
    """Create the editor session once per browser session."""
    if 'editor' not in st.session_state:
        template_key = get_config_value(config, 'ui', 'default_template', 'user')
        st.session_state.editor = new_editor(template_key)
        st.session_state.template_key = template_key
        logger.info(f"Session initialized with template '{template_key}'")


def new_editor(template_key: str) -> SchemaEditor:
    return SchemaEditor.from_template(
        template_key,
        history_limit=int(get_config_value(config, 'editor', 'history_limit', 50)),
        preview_options=get_preview_options(config)
    )


def get_editor() -> SchemaEditor:
    return st.session_state.editor


def show_error(error: SchemaBuilderError):
    """Display a schema builder error with its recovery suggestions."""
    info = create_user_friendly_error_message(error)
    if info['severity'] == 'warning':
        st.warning(f"**{info['title']}**: {info['message']}")
    else:
        st.error(f"**{info['title']}**: {info['message']}")
    for suggestion in info['recovery_suggestions']:
        st.info(f"• {suggestion}")


def run_edit(action, *args, **kwargs):
    """Run an editor action and rerun the page if it changed the schema."""
    try:
        if action(*args, **kwargs):
            st.rerun()
    except SchemaBuilderError as e:
        logger.error(f"Edit failed: {e}")
        show_error(e)
    except ValueError as e:
        logger.warning(f"Rejected edit: {e}")
        st.error(f"Invalid value: {e}")


def render_sidebar():
    editor = get_editor()
    with st.sidebar:
        st.header("Templates")
        keys = list(TEMPLATE_NAMES)
        current = st.session_state.get('template_key', keys[0])
        selected = st.selectbox(
            "Start from template",
            keys,
            index=keys.index(current) if current in keys else 0,
            format_func=lambda key: TEMPLATE_NAMES[key]
        )
        if st.button("Load template", key="load_template"):
            st.session_state.editor = new_editor(selected)
            st.session_state.template_key = selected
            st.rerun()

        st.divider()
        col1, col2 = st.columns(2)
        with col1:
            if st.button("↩️ Undo", disabled=not editor.can_undo, key="undo"):
                editor.undo()
                st.rerun()
        with col2:
            if st.button("↪️ Redo", disabled=not editor.can_redo, key="redo"):
                editor.redo()
                st.rerun()

        if editor.is_dirty:
            changes = editor.changes_since_saved()
            fields = changes['fields']
            st.caption(
                f"Unsaved: {len(fields['added'])} added, {len(fields['removed'])} removed, "
                f"{len(fields['modified'])} modified"
            )
        if st.button("💾 Mark saved", disabled=not editor.is_dirty, key="mark_saved"):
            editor.mark_saved()
            st.rerun()


def render_enum_input(field: SchemaField, key: str):
    """Comma separated allowed values for text, email and number fields."""
    current = getattr(field.logic, 'enum', None)
    text = st.text_input("Allowed values (comma separated)", value=format_enum_values(current),
                         key=f"enum_{key}")
    try:
        enum = parse_enum_values(text, field.type)
    except ValueError as e:
        st.error(f"Invalid value: {e}")
        return
    if enum != current:
        run_edit(get_editor().set_field_logic, field.id, enum=enum)


def render_logic_inputs(field: SchemaField, key: str):
    """Inputs for the most common constraints of a field."""
    editor = get_editor()
    logic = field.logic

    if field.type != 'array':
        required = bool(getattr(logic, 'required', False))
        if st.checkbox("Required", value=required, key=f"req_{key}") != required:
            run_edit(editor.set_field_logic, field.id, required=not required)

    if field.type in ('text', 'email'):
        col1, col2 = st.columns(2)
        with col1:
            min_length = st.number_input("Min length", min_value=0, step=1, key=f"minlen_{key}",
                                         value=getattr(logic, 'min_length', None))
        with col2:
            max_length = st.number_input("Max length", min_value=0, step=1, key=f"maxlen_{key}",
                                         value=getattr(logic, 'max_length', None))
        if (min_length, max_length) != (getattr(logic, 'min_length', None), getattr(logic, 'max_length', None)):
            run_edit(editor.set_field_logic, field.id, min_length=min_length, max_length=max_length)

        current_pattern = getattr(logic, 'pattern', None)
        pattern = st.text_input("Pattern (regex)", value=current_pattern or '', key=f"pattern_{key}")
        if (pattern or None) != current_pattern:
            run_edit(editor.set_field_logic, field.id, pattern=pattern or None)
        render_enum_input(field, key)

    elif field.type == 'number':
        col1, col2 = st.columns(2)
        with col1:
            minimum = st.number_input("Minimum", key=f"min_{key}", value=getattr(logic, 'min', None))
        with col2:
            maximum = st.number_input("Maximum", key=f"max_{key}", value=getattr(logic, 'max', None))
        if (minimum, maximum) != (getattr(logic, 'min', None), getattr(logic, 'max', None)):
            run_edit(editor.set_field_logic, field.id, min=minimum, max=maximum)
        render_enum_input(field, key)

    elif field.type == 'array':
        col1, col2 = st.columns(2)
        with col1:
            min_items = st.number_input("Min items", min_value=0, step=1, key=f"minitems_{key}",
                                        value=getattr(logic, 'min_items', None))
        with col2:
            max_items = st.number_input("Max items", min_value=0, step=1, key=f"maxitems_{key}",
                                        value=getattr(logic, 'max_items', None))
        if (min_items, max_items) != (getattr(logic, 'min_items', None), getattr(logic, 'max_items', None)):
            run_edit(editor.set_field_logic, field.id, min_items=min_items, max_items=max_items)


def render_field_editor(field: SchemaField, depth: int = 0, is_item: bool = False):
    """Render the editing controls for one field and its descendants."""
    editor = get_editor()
    key = field.id
    label = f"{'↳ ' * depth}{field.name} ({field.type})"

    with st.expander(label, expanded=depth == 0):
        col1, col2 = st.columns([3, 2])
        with col1:
            name = st.text_input("Name", value=field.name, key=f"name_{key}")
            if name and name != field.name:
                run_edit(editor.rename_field, field.id, name)
        with col2:
            new_type = st.selectbox("Type", FIELD_TYPES, index=FIELD_TYPES.index(field.type),
                                    key=f"type_{key}")
            if new_type != field.type:
                run_edit(editor.change_field_type, field.id, new_type)

        render_logic_inputs(field, key)

        buttons = st.columns(5)
        with buttons[0]:
            if st.button("🗑️ Remove", key=f"remove_{key}"):
                run_edit(editor.remove_field, field.id)
        if not is_item:
            with buttons[1]:
                if st.button("⬆️", key=f"up_{key}"):
                    run_edit(editor.move_field, field.id, -1)
            with buttons[2]:
                if st.button("⬇️", key=f"down_{key}"):
                    run_edit(editor.move_field, field.id, 1)
            with buttons[3]:
                if st.button("📋 Duplicate", key=f"dup_{key}"):
                    run_edit(editor.duplicate_field, field.id)
        if isinstance(field, (ObjectField, ArrayField)):
            with buttons[4]:
                collapsed = editor.is_collapsed(field.id)
                if st.button("Expand" if collapsed else "Collapse", key=f"collapse_{key}"):
                    editor.toggle_collapse(field.id)
                    st.rerun()

        if isinstance(field, ObjectField):
            if st.button("➕ Add child", key=f"add_child_{key}"):
                run_edit(editor.add_child_field, field.id)

        template_col, apply_col = st.columns([3, 1])
        with template_col:
            template_key = st.selectbox("Replace with template", list(TEMPLATE_NAMES),
                                        format_func=lambda k: TEMPLATE_NAMES[k], key=f"embed_choice_{key}")
        with apply_col:
            if st.button("Apply", key=f"embed_{key}"):
                run_edit(editor.apply_schema_to_field, field.id, get_template(template_key))

    if isinstance(field, ObjectField):
        for child in field.children:
            render_field_editor(child, depth + 1)
    elif isinstance(field, ArrayField) and field.array_item_type is not None:
        render_field_editor(field.array_item_type, depth + 1, is_item=True)


def show_generation_result(result: GenerationResult, schema: JsonSchema):
    if not result.success:
        for error in result.errors:
            st.error(error)
        return

    metadata = result.metadata
    st.success(f"{len(result.data)} record(s), {metadata.valid_fields}/{metadata.total_fields} fields valid")
    if metadata.regenerated_fields:
        st.warning(f"Repaired fields: {', '.join(metadata.regenerated_fields)}")
    for index, record in enumerate(result.data, 1):
        validation = validate_data(record, schema)
        if not validation.is_valid:
            problems = '; '.join(f"{error.field}: {error.message}" for error in validation.errors)
            st.error(f"Record {index} is still invalid: {problems}")

    st.json(result.data)
    st.download_button(
        "📥 Download data",
        data=json.dumps(result.data, indent=2, ensure_ascii=False),
        file_name=f"{schema.name.replace(' ', '_').lower()}_data.json",
        mime="application/json",
        key="download_generated"
    )


def render_generation_panel():
    """Build the generation instruction, then validate and repair a pasted reply."""
    schema = get_editor().schema
    with st.expander("🤖 Generate sample data"):
        prompt = st.text_area("Requirements", key="gen_prompt", placeholder="e.g. customers based in Canada")
        count = st.number_input(
            "Records", min_value=1, max_value=100, step=1, key="gen_count",
            value=int(get_config_value(config, 'generation', 'default_count', 1))
        )
        st.caption("Send this instruction to your data generator and paste its JSON reply below.")
        st.code(build_generation_prompt(schema, prompt, int(count)), language="text")

        response = st.text_area("Generated JSON", key="gen_response", height=200)
        if st.button("✅ Validate and repair", key="gen_validate", disabled=not response.strip()):
            progress_bar = st.progress(0)
            options = generation_options_from_config(
                config, progress_callback=lambda p: progress_bar.progress(p.progress, text=p.message)
            )
            # A pasted reply does not change between attempts.
            options.max_attempts = 1
            result = generate_data(StaticResponseGenerator(response), schema, prompt, int(count), options)
            logger.info(f"Validated pasted data for '{schema.name}': success={result.success}")
            show_generation_result(result, schema)


def render_main_content():
    editor = get_editor()
    schema = editor.schema

    st.title(f"🧩 {page_title}")
    new_name = st.text_input("Schema name", value=schema.name, key="schema_name")
    if new_name and new_name != schema.name:
        run_edit(editor.rename_schema, new_name)

    col1, col2 = st.columns([3, 2])
    with col1:
        st.subheader("Fields")
        if st.button("➕ Add Field", type="primary", key="add_field_btn"):
            run_edit(editor.add_field)
        for field in schema.fields:
            render_field_editor(field)

    with col2:
        st.subheader("Preview")
        compact = st.toggle("Compact arrays", value=True, key="compact_preview")
        st.json(editor.preview(for_preview=compact))

        st.download_button(
            "📤 Export schema",
            data=json.dumps(editor.export(), indent=2, ensure_ascii=False),
            file_name=f"{schema.name.replace(' ', '_').lower()}.json",
            mime="application/json"
        )

    render_generation_panel()


def main():
    """Main application entry point."""
    try:
        init_session_state()
        render_sidebar()
        render_main_content()
    except SchemaBuilderError as e:
        logger.error(f"Application error: {e}")
        show_error(e)


if __name__ == "__main__":
    main()
