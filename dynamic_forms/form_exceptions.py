"""
Custom exception classes for the dynamic forms engine.

This module provides the error taxonomy used by the form engine. Schema and
lookup errors abort the enclosing operation; field validation and submission
failures are recovered into form state and never raised.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class FormEngineError(Exception):
    """
    Base exception for form engine errors.
    
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


class SchemaError(FormEngineError):
    """
    Exception raised when a form schema is malformed.
    
    A form must not be usable once this has been raised during construction.
    """


class DuplicateFieldError(SchemaError):
    """Exception raised when two field definitions share the same id."""
    
    def __init__(self, field_id: str, message: Optional[str] = None):
        self.field_id = field_id
        
        if message is None:
            message = f"Duplicate field id in form schema: '{field_id}'"
        
        recovery_suggestions = [
            "Give every field definition a unique id",
            "Check templates merged from several sources for repeated entries"
        ]
        
        super().__init__(message, {'field_id': field_id}, recovery_suggestions)


class InvalidValidatorError(SchemaError):
    """
    Exception raised when a validator definition cannot be used.
    
    This includes unparsable regular expressions in pattern validators.
    """
    
    def __init__(self, field_id: str, validator_type: str, value: Optional[str],
                 reason: str, message: Optional[str] = None):
        self.field_id = field_id
        self.validator_type = validator_type
        self.value = value
        self.reason = reason
        
        if message is None:
            message = f"Invalid '{validator_type}' validator on field '{field_id}': {reason}"
        
        context = {
            'field_id': field_id,
            'validator_type': validator_type,
            'validator_value': value,
            'reason': reason
        }
        
        recovery_suggestions = [
            f"Check the validator value for field '{field_id}'",
            "Verify regular expression syntax for pattern validators"
        ]
        
        super().__init__(message, context, recovery_suggestions)


class FieldLookupError(FormEngineError, KeyError):
    """Exception raised when an operation references a field id not in the schema."""
    
    def __init__(self, field_id: str, operation: str):
        self.field_id = field_id
        self.operation = operation
        message = f"Unknown field id '{field_id}' in {operation}"
        super().__init__(message, {'field_id': field_id, 'operation': operation})


class SubmissionInProgressError(FormEngineError):
    """Exception raised when the form is asked to act while a submission is in flight."""
    
    def __init__(self, operation: str):
        self.operation = operation
        message = f"Cannot {operation} while a submission is in progress"
        super().__init__(message, {'operation': operation},
                         ["Wait for the pending submission to complete"])


class ConfigurationLoadError(FormEngineError):
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
            "Check if the configuration file exists and is readable",
            "Verify YAML syntax is correct",
            "Engine will use default configuration as fallback"
        ]
        
        super().__init__(message, context, recovery_suggestions)


def log_error_with_context(error: FormEngineError, operation: str) -> None:
    """
    Log error with full context information.
    
    Args:
        error: FormEngineError instance
        operation: Description of the operation that failed
    """
    logger.error(f"Form engine error during {operation}")
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
