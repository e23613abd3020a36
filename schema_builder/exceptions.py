"""
Custom exception classes for the schema builder.

Lookup misses during tree edits and unknown field types during rendering are
not errors and never raise; everything here is a programmer/caller error or a
configuration problem that should surface loudly.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class SchemaBuilderError(Exception):
    """
    Base exception for schema builder errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaInvariantError(SchemaBuilderError, ValueError):
    """
    Raised when a schema tree would violate a structural invariant.

    Subclasses ValueError so that pydantic validators report it as a
    regular validation failure.
    """

    def __init__(self, invariant: str, message: str,
                 context: Optional[Dict[str, Any]] = None):
        self.invariant = invariant
        context = dict(context or {})
        context['invariant'] = invariant
        super().__init__(message, context, [
            "Abort the edit and keep the previous schema version",
            "Check the caller that produced the offending field"
        ])


class DuplicateFieldIdError(SchemaInvariantError):
    """Exception raised when the same field id appears twice in one tree."""

    def __init__(self, field_id: str, names: Optional[List[str]] = None):
        self.field_id = field_id
        names = names or []
        message = f"Field id '{field_id}' is not unique in the schema"
        if names:
            message += f" (used by: {', '.join(names)})"
        super().__init__('unique-id', message, {'field_id': field_id, 'names': names})


class UnknownFieldTypeError(SchemaInvariantError):
    """Exception raised when a field is requested with a type outside the closed set."""

    def __init__(self, field_type: Any, supported: Optional[List[str]] = None):
        self.field_type = field_type
        supported = supported or []
        message = f"Unsupported field type '{field_type}'"
        if supported:
            message += f". Supported types: {', '.join(supported)}"
        super().__init__('closed-type-set', message,
                         {'field_type': field_type, 'supported': supported})


class TemplateNotFoundError(SchemaBuilderError):
    """Exception raised when a template key is not in the catalog."""

    def __init__(self, key: str, available: List[str]):
        self.key = key
        super().__init__(
            f"Schema template '{key}' does not exist",
            {'key': key, 'available': available},
            [f"Use one of: {', '.join(available)}"]
        )


class ConfigurationLoadError(SchemaBuilderError):
    """
    Exception raised when configuration file loading fails.

    This includes YAML parsing errors, file not found, permission issues, etc.
    """

    def __init__(self, config_path: Path, original_error: Exception,
                 message: Optional[str] = None):
        self.config_path = config_path
        self.original_error = original_error

        if message is None:
            message = f"Failed to load configuration from {config_path}: {str(original_error)}"

        context = {
            'config_path': str(config_path),
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check if config.yaml exists and is readable",
            "Verify YAML syntax is correct",
            "Application will use default configuration as fallback"
        ]

        super().__init__(message, context, recovery_suggestions)


def create_user_friendly_error_message(error: SchemaBuilderError) -> Dict[str, Any]:
    """
    Create user-friendly error message for display in UI.

    Args:
        error: SchemaBuilderError instance

    Returns:
        Dictionary with formatted error information for UI display
    """
    error_details = error.get_full_details()

    error_type_info = {
        'DuplicateFieldIdError': {
            'title': 'Duplicate Field Id',
            'icon': '🧬',
            'severity': 'error'
        },
        'UnknownFieldTypeError': {
            'title': 'Unsupported Field Type',
            'icon': '🏷️',
            'severity': 'error'
        },
        'SchemaInvariantError': {
            'title': 'Invalid Schema Edit',
            'icon': '🧩',
            'severity': 'error'
        },
        'TemplateNotFoundError': {
            'title': 'Template Not Found',
            'icon': '📋',
            'severity': 'warning'
        },
        'ConfigurationLoadError': {
            'title': 'Configuration File Error',
            'icon': '📄',
            'severity': 'warning'
        }
    }

    error_type = error_details['error_type']
    type_info = error_type_info.get(error_type, {
        'title': 'Schema Builder Error',
        'icon': '❌',
        'severity': 'error'
    })

    return {
        'title': f"{type_info['icon']} {type_info['title']}",
        'message': error_details['message'],
        'severity': type_info['severity'],
        'context': error_details['context'],
        'recovery_suggestions': error_details['recovery_suggestions']
    }


def log_error_with_context(error: SchemaBuilderError, operation: str) -> None:
    """
    Log error with full context information.

    Args:
        error: SchemaBuilderError instance
        operation: Description of the operation that failed
    """
    logger.error(f"Schema error during {operation}")
    logger.error(f"Error type: {type(error).__name__}")
    logger.error(f"Error message: {error.message}")

    if error.context:
        logger.error("Error context:")
        for key, value in error.context.items():
            logger.error(f"  {key}: {value}")

    if error.recovery_suggestions:
        logger.info("Recovery suggestions:")
        for i, suggestion in enumerate(error.recovery_suggestions, 1):
            logger.info(f"  {i}. {suggestion}")
