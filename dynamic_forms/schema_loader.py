"""
Schema loader for the dynamic forms engine.
Handles loading, building and checking form templates stored as YAML or JSON.
"""

import json
import yaml
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Union
import logging

from pydantic import ValidationError

from .field_definition import FieldDefinition
from .form_exceptions import DuplicateFieldError, SchemaError, log_error_with_context
from .validation_engine import compile_schema_patterns

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = {'.yaml', '.yml', '.json'}


def load_form_template(template_path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Load a form template from a YAML or JSON file.

    Args:
        template_path: Path to the template file

    Returns:
        Template dictionary or None if loading fails
    """
    full_path = Path(template_path)

    if not full_path.exists():
        logger.error(f"Template file not found: {full_path}")
        return None

    suffix = full_path.suffix.lower()
    if suffix not in TEMPLATE_SUFFIXES:
        logger.error(f"Unsupported template file format: {full_path.suffix}")
        return None

    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            if suffix == '.json':
                template = json.load(f)
            else:
                template = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {full_path}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {full_path}: {e}")
        return None
    except (IOError, OSError) as e:
        logger.error(f"Error reading template {full_path}: {e}")
        return None

    if not isinstance(template, dict) or not isinstance(template.get('fields'), list):
        logger.error(f"Template {full_path} must be a mapping with a 'fields' list")
        return None

    logger.info(f"Successfully loaded template: {full_path}")
    return template


def build_field_definitions(raw_fields: Iterable[Dict[str, Any]]) -> List[FieldDefinition]:
    """
    Build and check field definitions from template field entries.

    Args:
        raw_fields: Field entries using template keys

    Returns:
        Field definitions in template order

    Raises:
        SchemaError: If an entry is malformed, an id repeats or a pattern
            does not compile
    """
    fields = []
    for index, raw in enumerate(raw_fields):
        try:
            fields.append(FieldDefinition.from_json(raw))
        except ValidationError as e:
            field_id = raw.get('id', f'#{index}') if isinstance(raw, dict) else f'#{index}'
            error = SchemaError(
                f"Malformed definition for field '{field_id}': {e.error_count()} error(s)",
                {'field_id': field_id, 'errors': e.errors(include_url=False)}
            )
            log_error_with_context(error, "field definition parsing")
            raise error from e

    validate_field_definitions(fields)
    return fields


def validate_field_definitions(fields: Iterable[FieldDefinition]) -> None:
    """
    Check a schema for construction-time errors.

    Raises:
        DuplicateFieldError: If two fields share an id
        InvalidValidatorError: If a pattern validator does not compile
    """
    fields = list(fields)
    seen = set()
    for field in fields:
        if field.id in seen:
            error = DuplicateFieldError(field.id)
            log_error_with_context(error, "schema validation")
            raise error
        seen.add(field.id)

    compiled = compile_schema_patterns(fields)
    logger.debug(f"Schema with {len(fields)} fields validated ({compiled} pattern(s) compiled)")


def load_field_definitions(template_path: Union[str, Path]) -> List[FieldDefinition]:
    """
    Load a template file and build its field definitions.

    Raises:
        SchemaError: If the template cannot be loaded or is malformed
    """
    template = load_form_template(template_path)
    if template is None:
        raise SchemaError(f"Could not load form template: {template_path}",
                          {'template_path': str(template_path)})
    return build_field_definitions(template['fields'])


def template_to_dict(fields: Iterable[FieldDefinition], title: Optional[str] = None) -> Dict[str, Any]:
    """Serialise field definitions to a template dictionary."""
    template: Dict[str, Any] = {}
    if title:
        template['title'] = title
    template['fields'] = [field.to_json() for field in fields]
    return template


def save_form_template(fields: Iterable[FieldDefinition], template_path: Union[str, Path],
                       title: Optional[str] = None) -> bool:
    """
    Save field definitions as a YAML or JSON template.

    Returns:
        True if save was successful, False otherwise
    """
    full_path = Path(template_path)
    template = template_to_dict(fields, title)

    try:
        with open(full_path, 'w', encoding='utf-8') as f:
            if full_path.suffix.lower() == '.json':
                json.dump(template, f, indent=2)
            else:
                yaml.safe_dump(template, f, default_flow_style=False, sort_keys=False)
        logger.info(f"Template saved to {full_path}")
        return True
    except (IOError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save template to {full_path}: {e}")
        return False


def list_available_templates(templates_dir: Union[str, Path]) -> List[str]:
    """
    List all template files in a directory.

    Returns:
        Sorted list of template filenames
    """
    directory = Path(templates_dir)
    if not directory.is_dir():
        return []
    return sorted(f.name for f in directory.iterdir() if f.suffix.lower() in TEMPLATE_SUFFIXES)


def get_template_info(template_path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Get metadata information about a template.

    Returns:
        Dictionary with template metadata or None if the template cannot be loaded
    """
    template = load_form_template(template_path)
    if not template:
        return None

    fields = template['fields']
    return {
        "title": template.get('title', 'Untitled Form'),
        "field_count": len(fields),
        "required_fields": [f.get('id') for f in fields if f.get('required', False)],
        "field_types": {f.get('id'): f.get('type', 'text') for f in fields},
    }
