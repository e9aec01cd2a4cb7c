"""
Headless dynamic forms engine: schema-driven field state, validation,
resource lifecycle and submission for form renderers.
"""

from .engine_config import EngineConfig
from .field_definition import FieldDefinition, FieldKind, FieldOption, Validator, ValidatorType
from .form_controller import FormController
from .form_exceptions import (
    FormEngineError, SchemaError, DuplicateFieldError, InvalidValidatorError,
    FieldLookupError, SubmissionInProgressError, ConfigurationLoadError
)
from .form_state import FieldState, FormState
from .notifications import FormChannel
from .validation_engine import ValidationEngine

__version__ = "0.1.0"
