"""
Validation engine for the dynamic forms engine.

Evaluates a field value against the field's validators as a short-circuit
pipeline in fixed priority order, returning the first failing message.
Validator lookups are cached per field id on the engine instance; compiled
regular expressions are cached process-wide with a size bound.
"""

from datetime import datetime
from functools import lru_cache
from typing import Callable, Dict, Iterable, Optional, Pattern, Tuple
import logging
import re

from .field_definition import FieldDefinition, Validator, ValidatorType, VALIDATION_ORDER
from .form_exceptions import InvalidValidatorError, log_error_with_context

logger = logging.getLogger(__name__)

DEFAULT_PATTERN_CACHE_SIZE = 256

REQUIRED_MESSAGE = "The {label} field is required"
EMAIL_MESSAGE = "Invalid email format"
PHONE_MESSAGE = "Invalid phone number"
PATTERN_MESSAGE = "Invalid format"
FUTURE_DATE_MESSAGE = "Date must be in the future"
PAST_DATE_MESSAGE = "Date must be in the past"
DATE_FORMAT_MESSAGE = "Invalid date format"
MIN_LENGTH_MESSAGE = "Must be at least {limit} characters"
MAX_LENGTH_MESSAGE = "Must not exceed {limit} characters"

EMAIL_REGEX = re.compile(r'^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$')
PHONE_REGEX = re.compile(r'^\d{10}$')

# Date format tokens as used in field templates, longest first
_FORMAT_TOKENS = {
    'yyyy': '%Y', 'yy': '%y',
    'MM': '%m', 'M': '%m',
    'dd': '%d', 'd': '%d',
    'HH': '%H', 'H': '%H',
    'hh': '%I', 'h': '%I',
    'mm': '%M', 'ss': '%S',
    'a': '%p',
}
_FORMAT_TOKEN_REGEX = re.compile('|'.join(sorted(_FORMAT_TOKENS, key=len, reverse=True)))


def _build_pattern_compiler(maxsize: int) -> Callable[[str], Pattern]:
    return lru_cache(maxsize=maxsize)(re.compile)


_compile_pattern = _build_pattern_compiler(DEFAULT_PATTERN_CACHE_SIZE)


def get_compiled_pattern(pattern: str) -> Pattern:
    """Return the compiled form of a pattern, compiling it at most once while cached."""
    return _compile_pattern(pattern)


def configure_pattern_cache(maxsize: int) -> None:
    """Replace the process-wide pattern cache with one holding at most ``maxsize`` entries."""
    global _compile_pattern
    if maxsize <= 0:
        raise ValueError("pattern cache size must be positive")
    _compile_pattern = _build_pattern_compiler(maxsize)
    logger.debug(f"Pattern cache resized to {maxsize} entries")


def clear_pattern_cache() -> None:
    """Drop every compiled pattern from the process-wide cache."""
    _compile_pattern.cache_clear()


def pattern_cache_info():
    """Return hit/miss statistics for the process-wide pattern cache."""
    return _compile_pattern.cache_info()


@lru_cache(maxsize=64)
def translate_date_format(fmt: str) -> str:
    """
    Translate a template date format (e.g. ``dd/MM/yyyy HH:mm``) to strptime syntax.

    Args:
        fmt: Date format as declared on the field

    Returns:
        Equivalent strptime format string
    """
    return _FORMAT_TOKEN_REGEX.sub(lambda m: _FORMAT_TOKENS[m.group(0)], fmt)


def parse_date(value: str, fmt: Optional[str] = None) -> datetime:
    """
    Strictly parse a date value.

    ISO-8601 is always accepted; when ``fmt`` is given the field's declared
    format is tried as well.

    Raises:
        ValueError: If the value matches neither representation
    """
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        if not fmt:
            raise
    return datetime.strptime(value, translate_date_format(fmt))


def compile_schema_patterns(fields: Iterable[FieldDefinition]) -> int:
    """
    Precompile every pattern validator in a schema.

    Args:
        fields: Field definitions of one form

    Returns:
        Number of pattern validators compiled

    Raises:
        InvalidValidatorError: If a pattern cannot be compiled
    """
    compiled = 0
    for field in fields:
        for validator in field.validators:
            if validator.type is not ValidatorType.PATTERN or validator.value is None:
                continue
            try:
                get_compiled_pattern(validator.value)
            except re.error as e:
                error = InvalidValidatorError(field.id, validator.type.value, validator.value, str(e))
                log_error_with_context(error, "schema pattern compilation")
                raise error from e
            compiled += 1
    return compiled


class ValidationEngine:
    """Evaluates field values against their validators."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        """
        Args:
            now: Clock used by the date validators, defaults to ``datetime.now``
        """
        self._now = now or datetime.now
        self._validator_cache: Dict[str, Tuple[FieldDefinition, Dict[ValidatorType, Validator]]] = {}
        self._checks = {
            ValidatorType.REQUIRED: self._check_required,
            ValidatorType.EMAIL: self._check_email,
            ValidatorType.PHONE: self._check_phone,
            ValidatorType.PATTERN: self._check_pattern,
            ValidatorType.FUTURE_DATE: self._check_future_date,
            ValidatorType.PAST_DATE: self._check_past_date,
            ValidatorType.MIN_LENGTH: self._check_min_length,
            ValidatorType.MAX_LENGTH: self._check_max_length,
        }

    def validate(self, field: FieldDefinition, value: Optional[str]) -> Optional[str]:
        """
        Validate a value for a field.

        Args:
            field: Field definition
            value: Canonical string value, or None

        Returns:
            Error message for the first failing validator, or None if valid
        """
        validators = self.validators_for(field)

        if not value:
            if field.required:
                custom = validators.get(ValidatorType.REQUIRED)
                if custom is not None and custom.message:
                    return custom.message
                return REQUIRED_MESSAGE.format(label=field.label)
            return None

        for validator_type in VALIDATION_ORDER:
            validator = validators.get(validator_type)
            if validator is None:
                continue
            error = self._checks[validator_type](value, field, validator)
            if error is not None:
                return error
        return None

    def validators_for(self, field: FieldDefinition) -> Dict[ValidatorType, Validator]:
        """Return the cached validator-type lookup for a field, building it on first use."""
        entry = self._validator_cache.get(field.id)
        # Entries are reused only for an equal definition
        if entry is not None and (entry[0] is field or entry[0] == field):
            return entry[1]
        lookup = field.validator_map()
        self._validator_cache[field.id] = (field, lookup)
        return lookup

    def clear_validator_cache(self, field_id: Optional[str] = None) -> None:
        """Clear the validator lookup for one field, or for all fields."""
        if field_id is not None:
            self._validator_cache.pop(field_id, None)
        else:
            self._validator_cache.clear()

    @property
    def cached_field_ids(self):
        return set(self._validator_cache)

    def _check_required(self, value, field, validator):
        if not value:
            return validator.message or REQUIRED_MESSAGE.format(label=field.label)
        return None

    def _check_email(self, value, field, validator):
        if not EMAIL_REGEX.match(value):
            return validator.message or EMAIL_MESSAGE
        return None

    def _check_phone(self, value, field, validator):
        if not PHONE_REGEX.match(value):
            return validator.message or PHONE_MESSAGE
        return None

    def _check_pattern(self, value, field, validator):
        if validator.value is None:
            return None
        if not get_compiled_pattern(validator.value).search(value):
            return validator.message or PATTERN_MESSAGE
        return None

    def _check_future_date(self, value, field, validator):
        return self._check_date(value, field, validator, future=True)

    def _check_past_date(self, value, field, validator):
        return self._check_date(value, field, validator, future=False)

    def _check_date(self, value, field, validator, future: bool):
        try:
            parsed = parse_date(value, field.format)
        except ValueError:
            return DATE_FORMAT_MESSAGE

        now = self._now()
        if parsed.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone()
        elif parsed.tzinfo is None and now.tzinfo is not None:
            parsed = parsed.replace(tzinfo=now.tzinfo)

        if future and parsed < now:
            return validator.message or FUTURE_DATE_MESSAGE
        if not future and parsed > now:
            return validator.message or PAST_DATE_MESSAGE
        return None

    def _check_min_length(self, value, field, validator):
        limit = _parse_limit(validator.value)
        if limit is not None and len(value) < limit:
            return validator.message or MIN_LENGTH_MESSAGE.format(limit=limit)
        return None

    def _check_max_length(self, value, field, validator):
        limit = _parse_limit(validator.value)
        if limit is not None and len(value) > limit:
            return validator.message or MAX_LENGTH_MESSAGE.format(limit=limit)
        return None


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    """Parse a length threshold; unparsable thresholds count as 0."""
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(f"Unparsable length threshold '{raw}', treating as 0")
        return 0
