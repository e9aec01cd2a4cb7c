"""
Runtime form state for the dynamic forms engine.
Holds the mutable per-field state and the aggregate state of one form instance,
with JSON round-tripping for draft save/restore.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Any, List, Mapping, Optional
import logging

from .field_definition import DEFAULT_MULTISELECT_DELIMITER, FieldKind, canonical_value
from .form_exceptions import FieldLookupError

logger = logging.getLogger(__name__)

ValueComparator = Callable[[str, str], bool]


def values_equal(current: str, initial: str) -> bool:
    """Exact comparison used for most field kinds."""
    return current == initial


def values_equal_ignore_case(current: str, initial: str) -> bool:
    """Case-insensitive comparison, so "True" and "true" are the same boolean."""
    return current.lower() == initial.lower()


_KIND_COMPARATORS: Dict[FieldKind, ValueComparator] = {
    FieldKind.BOOLEAN: values_equal_ignore_case,
}


def comparator_for(kind: Optional[FieldKind]) -> ValueComparator:
    """Return the modification comparison strategy for a field kind."""
    return _KIND_COMPARATORS.get(kind, values_equal)


@dataclass
class FieldState:
    """
    Mutable state of one field instance.

    Attributes:
        value: Current canonical string value
        initial_value: Value captured at creation/reset time
        is_initial: True while the value matches the initial value
        is_valid: Result of the last validation pass
        is_submitted: True after a successful submission including this field
        error: Validation message when invalid
    """
    value: str = ""
    initial_value: Optional[str] = None
    is_initial: bool = True
    is_valid: bool = True
    is_submitted: bool = False
    error: Optional[str] = None
    equals: ValueComparator = field(default=values_equal, repr=False, compare=False)

    def __post_init__(self):
        if self.initial_value is None:
            self.initial_value = self.value

    @property
    def is_modified(self) -> bool:
        return not self.equals(self.value, self.initial_value)

    def apply_value(self, value: str, error: Optional[str]) -> None:
        """Set a new value together with its validation result."""
        self.value = value
        self.is_initial = not self.is_modified
        self.is_submitted = False
        self.apply_validation(error)

    def apply_validation(self, error: Optional[str]) -> None:
        self.is_valid = error is None
        self.error = error

    def restore_initial(self, error: Optional[str]) -> None:
        """Return to the captured initial value and the Initial state."""
        self.value = self.initial_value
        self.is_initial = True
        self.is_submitted = False
        self.apply_validation(error)

    def to_json(self) -> Dict[str, Any]:
        """Create a JSON representation of this field state."""
        data = {
            'value': self.value,
            'initialValue': self.initial_value,
            'initial': self.is_initial,
            'valid': self.is_valid,
            'submitted': self.is_submitted,
        }
        if self.error is not None:
            data['error'] = self.error
        return data

    @classmethod
    def from_json(cls, data: Mapping[str, Any], kind: Optional[FieldKind] = None,
                  delimiter: str = DEFAULT_MULTISELECT_DELIMITER) -> "FieldState":
        """Create a field state from a JSON mapping, canonicalising its values."""
        initial_value = data.get('initialValue')
        return cls(
            value=canonical_value(data.get('value'), delimiter),
            initial_value=None if initial_value is None else canonical_value(initial_value, delimiter),
            is_initial=data.get('initial', True),
            is_valid=data.get('valid', True),
            is_submitted=data.get('submitted', False),
            error=data.get('error'),
            equals=comparator_for(kind),
        )


@dataclass
class FormState:
    """Aggregate state of every field in one form instance."""
    fields: Dict[str, FieldState] = field(default_factory=dict)
    is_submitting: bool = False
    is_submitted: bool = False
    global_error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return all(state.is_valid for state in self.fields.values())

    @property
    def has_modifications(self) -> bool:
        return any(state.is_modified for state in self.fields.values())

    @property
    def fields_needing_validation(self) -> List[str]:
        """Ids of fields that are modified or currently invalid, in schema order."""
        return [
            field_id for field_id, state in self.fields.items()
            if state.is_modified or not state.is_valid
        ]

    @property
    def values(self) -> Dict[str, str]:
        return {field_id: state.value for field_id, state in self.fields.items()}

    def get_field(self, field_id: str, operation: str = "field lookup") -> FieldState:
        """
        Get the state of a field.

        Raises:
            FieldLookupError: If the id is not part of this form
        """
        try:
            return self.fields[field_id]
        except KeyError:
            raise FieldLookupError(field_id, operation) from None

    def reset(self, errors: Mapping[str, Optional[str]]) -> None:
        """
        Restore every field to its initial value in place.

        Args:
            errors: Validation result of each field's initial value
        """
        for field_id, state in self.fields.items():
            state.restore_initial(errors.get(field_id))
        self.is_submitted = False
        self.global_error = None

    def to_json(self) -> Dict[str, Any]:
        """Create a JSON representation of this form state."""
        return {
            'fields': {field_id: state.to_json() for field_id, state in self.fields.items()},
            'isSubmitting': self.is_submitting,
            'isSubmitted': self.is_submitted,
            'globalError': self.global_error,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any],
                  kinds: Optional[Mapping[str, FieldKind]] = None) -> "FormState":
        """
        Create a form state from a JSON mapping.

        Args:
            data: Serialised form state
            kinds: Optional field kinds by id, used to pick comparison strategies
        """
        kinds = kinds or {}
        fields = {
            field_id: FieldState.from_json(field_data, kinds.get(field_id))
            for field_id, field_data in (data.get('fields') or {}).items()
        }
        return cls(
            fields=fields,
            is_submitting=data.get('isSubmitting', False),
            is_submitted=data.get('isSubmitted', False),
            global_error=data.get('globalError'),
        )
