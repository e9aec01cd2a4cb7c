"""
Field schema models for the dynamic forms engine.
Defines the immutable field and validator descriptions a form is built from,
and their lossless JSON template representation.
"""

from enum import Enum
from typing import Dict, Any, Optional, Tuple
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_MULTISELECT_DELIMITER = ","


class FieldKind(str, Enum):
    """Closed set of field kinds a template may declare."""
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    SELECT = "select"
    DATE = "date"
    DATETIME = "datetime"
    TEXTAREA = "textarea"
    ADDRESS = "address"
    MULTISELECT = "multiselect"
    BOOLEAN = "boolean"
    SPACER = "spacer"
    BUTTON = "button"

    @classmethod
    def from_tag(cls, tag: Any) -> "FieldKind":
        """Resolve a template type tag, falling back to text for unknown tags."""
        if isinstance(tag, cls):
            return tag
        try:
            return cls(str(tag))
        except ValueError:
            logger.warning(f"Unknown field type '{tag}', defaulting to text")
            return cls.TEXT


class ValidatorType(str, Enum):
    """Validator types, declared in evaluation priority order."""
    REQUIRED = "required"
    EMAIL = "email"
    PHONE = "phone"
    PATTERN = "pattern"
    FUTURE_DATE = "future_date"
    PAST_DATE = "past_date"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"


VALIDATION_ORDER: Tuple[ValidatorType, ...] = tuple(ValidatorType)


def canonical_value(value: Any, delimiter: str = DEFAULT_MULTISELECT_DELIMITER) -> str:
    """
    Convert a raw field value to its canonical string representation.

    Args:
        value: Raw value reported by a renderer or template
        delimiter: Separator used for multiselect id lists

    Returns:
        Canonical string ("" for None, "true"/"false" for booleans,
        delimited ids for sequences)
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return delimiter.join(str(item) for item in value)
    return str(value)


class Validator(BaseModel):
    """One named validation rule bound to a field."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: ValidatorType
    value: Optional[str] = None
    message: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        # Templates written by hand often carry numeric thresholds
        if v is None:
            return v
        return str(v)

    def to_json(self) -> Dict[str, Any]:
        """Create a JSON representation of this validator."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Validator":
        """Create a validator from a JSON mapping."""
        return cls.model_validate(data)


class FieldOption(BaseModel):
    """Selectable option for select and multiselect fields."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return canonical_value(v)


class FieldDefinition(BaseModel):
    """
    Immutable description of one form field.

    Attribute names are Pythonic; the template keys (``type``,
    ``initialValue``, ``insert``, ``enableMask`` ...) are accepted as aliases
    and used when serialising.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str = ""
    kind: FieldKind = Field(default=FieldKind.TEXT, alias="type")
    placeholder: str = ""
    initial_value: str = Field(default="", alias="initialValue")
    required: bool = False
    disabled: bool = False
    readonly: bool = False
    include_in_output: bool = Field(default=True, alias="insert")
    mask_enabled: bool = Field(default=False, alias="enableMask")
    format: Optional[str] = None
    selector: Optional[str] = None
    selector_label: Optional[str] = Field(default=None, alias="selectorLabel")
    validators: Tuple[Validator, ...] = ()
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    options: Tuple[FieldOption, ...] = ()
    multiline: bool = False
    rows: int = 1

    @field_validator("kind", mode="before")
    @classmethod
    def _resolve_kind(cls, v):
        return FieldKind.from_tag(v)

    @field_validator("initial_value", mode="before")
    @classmethod
    def _canonicalise_initial_value(cls, v):
        return canonical_value(v)

    @field_validator("validators", "options", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return () if v is None else v

    @property
    def is_boolean(self) -> bool:
        return self.kind is FieldKind.BOOLEAN

    def validator_map(self) -> Dict[ValidatorType, Validator]:
        """
        Build the validator-type lookup for this field.

        A field has at most one active validator per type; later duplicates
        overwrite earlier ones.
        """
        lookup: Dict[ValidatorType, Validator] = {}
        for validator in self.validators:
            if validator.type in lookup:
                logger.debug(f"Field '{self.id}' redefines '{validator.type.value}' validator")
            lookup[validator.type] = validator
        return lookup

    def to_json(self) -> Dict[str, Any]:
        """Create a JSON representation using template keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "FieldDefinition":
        """Create a field definition from a JSON template mapping."""
        return cls.model_validate(data)
