"""
Form controller for the dynamic forms engine.

The controller is the facade renderers call into. It owns the form state, the
validation engine, the editing resources and the notification channels of one
form instance, and keeps them consistent across value changes, visibility
events, submission and reset.
"""

from types import MappingProxyType
from typing import Awaitable, Callable, Dict, Any, Iterable, List, Mapping, Optional, Union
import inspect
import logging

from .config_loader import get_engine_config
from .engine_config import EngineConfig
from .field_definition import FieldDefinition, canonical_value
from .form_exceptions import FieldLookupError, SubmissionInProgressError, log_error_with_context
from .form_state import FieldState, FormState, comparator_for
from .notifications import FormChannel, Listener, NotificationHub
from .resource_manager import FieldResource, ResourceManager
from .schema_loader import validate_field_definitions
from .state_diff import calculate_changes
from .validation_engine import ValidationEngine, configure_pattern_cache, pattern_cache_info

logger = logging.getLogger(__name__)

OnFormSubmit = Callable[[Mapping[str, str]], Union[Awaitable[None], None]]
OnFormValidate = Callable[[FieldDefinition, Optional[str]], Optional[str]]
OnFormReset = Callable[[], None]

SUBMISSION_FAILED_MESSAGE = "Submission failed: {error}"


class FormController:
    """
    Orchestrates field state, validation, resources and notifications for one form.

    Args:
        fields: Field definitions in display order
        on_submit: Async (or plain) callable receiving the output mapping
        on_validate: Replaces the built-in validation engine when given
        on_reset: Called after every completed reset
        config: Engine configuration; either an EngineConfig or a full
            configuration dictionary
        clock: Monotonic time source for the resource sweep
        engine: Validation engine to use instead of a fresh one

    Raises:
        SchemaError: If the field definitions are malformed
    """

    def __init__(self, fields: Iterable[FieldDefinition],
                 on_submit: Optional[OnFormSubmit] = None,
                 on_validate: Optional[OnFormValidate] = None,
                 on_reset: Optional[OnFormReset] = None,
                 config: Union[EngineConfig, Dict[str, Any], None] = None,
                 clock: Optional[Callable[[], float]] = None,
                 engine: Optional[ValidationEngine] = None):
        if isinstance(config, dict):
            config = get_engine_config(config)
        self._config = config or EngineConfig()
        if pattern_cache_info().maxsize != self._config.pattern_cache_size:
            configure_pattern_cache(self._config.pattern_cache_size)

        fields = list(fields)
        validate_field_definitions(fields)

        self._fields: Dict[str, FieldDefinition] = {field.id: field for field in fields}
        self._engine = engine or ValidationEngine()
        self._validate = on_validate or self._engine.validate
        self._on_submit = on_submit
        self._on_reset = on_reset
        self._is_loading = False

        self._state = FormState()
        for field in fields:
            state = FieldState(
                value=field.initial_value,
                initial_value=field.initial_value,
                equals=comparator_for(field.kind),
            )
            state.apply_validation(self._validate(field, state.value))
            self._state.fields[field.id] = state

        self._notifications = NotificationHub(self._fields)
        self._resources = ResourceManager(
            value_provider=lambda field_id: self._state.fields[field_id].value,
            idle_threshold=self._config.idle_threshold_seconds,
            clock=clock,
            on_destroy=self._engine.clear_validator_cache,
        )

        logger.info(f"Form controller initialised with {len(fields)} fields")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def engine(self) -> ValidationEngine:
        return self._engine

    @property
    def resources(self) -> ResourceManager:
        return self._resources

    @property
    def fields(self) -> List[FieldDefinition]:
        return list(self._fields.values())

    @property
    def values(self) -> Dict[str, str]:
        """Current value of every field."""
        return self._state.values

    @property
    def output_data(self) -> Dict[str, str]:
        """Current values restricted to fields included in the submission output."""
        return {
            field_id: self._state.fields[field_id].value
            for field_id, field in self._fields.items()
            if field.include_in_output
        }

    @property
    def is_valid(self) -> bool:
        return self._state.is_valid

    @property
    def has_modifications(self) -> bool:
        return self._state.has_modifications

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_processing(self) -> bool:
        """True while the form is loading or submitting."""
        return self._is_loading or self._state.is_submitting

    def get_field(self, field_id: str) -> FieldDefinition:
        return self._require_field(field_id, "get_field")

    def get_field_state(self, field_id: str) -> FieldState:
        self._require_field(field_id, "get_field_state")
        return self._state.fields[field_id]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe_field(self, field_id: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to changes of one field; the listener receives its FieldState."""
        self._require_field(field_id, "subscribe_field")
        return self._notifications.field_channel(field_id).subscribe(listener)

    def subscribe_form(self, channel: FormChannel, listener: Listener) -> Callable[[], None]:
        """Subscribe to a form-level channel."""
        return self._notifications.form_channel(channel).subscribe(listener)

    # ------------------------------------------------------------------
    # Value changes
    # ------------------------------------------------------------------

    def update_field_value(self, field_id: str, value: Any) -> bool:
        """
        Apply a new value to a field.

        The value is validated and the field's state, edit buffer and channel
        are updated together. An unchanged value is a no-op.

        Returns:
            True if the value changed, False otherwise

        Raises:
            FieldLookupError: If the field id is not part of the form
        """
        field = self._require_field(field_id, "update_field_value")
        state = self._state.fields[field_id]
        new_value = canonical_value(value, self._config.multiselect_delimiter)

        if new_value == state.value:
            return False

        was_valid = self._state.is_valid
        error = self._validate(field, new_value)

        with self._notifications.batch():
            state.apply_value(new_value, error)
            self._resources.sync_value(field_id, new_value)
            self._notifications.notify_field(field_id, state)
            if self._state.is_valid != was_valid:
                self._notifications.notify_form(FormChannel.VALIDITY, self._state.is_valid)

        logger.debug(f"Field '{field_id}' updated (valid={state.is_valid})")
        return True

    def set_loading(self, loading: bool) -> None:
        """Set the external loading flag."""
        if loading == self._is_loading:
            return
        self._is_loading = loading
        self._notifications.notify_form(FormChannel.PROCESSING, self.is_processing)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self) -> bool:
        """
        Validate the form and hand its output to the submit collaborator.

        Only fields that are modified or currently invalid are re-validated.
        Collaborator failures are recorded as the form's global error.

        Returns:
            True if the submission completed successfully

        Raises:
            SubmissionInProgressError: If a submission is already in flight
        """
        if self._state.is_submitting:
            error = SubmissionInProgressError("submit")
            log_error_with_context(error, "submit")
            raise error

        self._revalidate(self._state.fields_needing_validation)

        if not self._state.is_valid:
            invalid = [fid for fid, state in self._state.fields.items() if not state.is_valid]
            logger.info(f"Submission blocked by {len(invalid)} invalid field(s): {invalid}")
            return False

        with self._notifications.batch():
            self._state.is_submitting = True
            self._state.is_submitted = False
            if self._state.global_error is not None:
                self._state.global_error = None
                self._notifications.notify_form(FormChannel.GLOBAL_ERROR, None)
            self._notifications.notify_form(FormChannel.PROCESSING, True)

        output = MappingProxyType(self.output_data)
        succeeded = False
        failure = None
        try:
            if self._on_submit is not None:
                result = self._on_submit(output)
                if inspect.isawaitable(result):
                    await result
            succeeded = True
        except Exception as e:
            logger.error(f"Form submission failed: {e}", exc_info=True)
            failure = SUBMISSION_FAILED_MESSAGE.format(error=e)
        finally:
            self._complete_submission(succeeded, failure)

        if succeeded:
            logger.info(f"Form submitted with {len(output)} output field(s)")
        return succeeded

    def _revalidate(self, field_ids: Iterable[str]) -> None:
        was_valid = self._state.is_valid
        with self._notifications.batch():
            for field_id in field_ids:
                state = self._state.fields[field_id]
                error = self._validate(self._fields[field_id], state.value)
                if error != state.error or (error is None) != state.is_valid:
                    state.apply_validation(error)
                    self._notifications.notify_field(field_id, state)
            if self._state.is_valid != was_valid:
                self._notifications.notify_form(FormChannel.VALIDITY, self._state.is_valid)

    def _complete_submission(self, succeeded: bool, failure: Optional[str]) -> None:
        with self._notifications.batch():
            self._state.is_submitting = False
            if succeeded:
                self._state.is_submitted = True
                for field_id, state in self._state.fields.items():
                    state.is_submitted = True
                    self._notifications.notify_field(field_id, state)
            elif failure is not None:
                self._state.global_error = failure
                self._notifications.notify_form(FormChannel.GLOBAL_ERROR, failure)
            self._notifications.notify_form(FormChannel.PROCESSING, self.is_processing)
            self._notifications.notify_form(FormChannel.SUBMISSION, self._state.is_submitted)

    # ------------------------------------------------------------------
    # Reset, draft save/restore
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """
        Restore every field to its initial value in one transition.

        Raises:
            SubmissionInProgressError: If a submission is in flight
        """
        if self._state.is_submitting:
            raise SubmissionInProgressError("reset")

        errors = {
            field_id: self._validate(self._fields[field_id], state.initial_value)
            for field_id, state in self._state.fields.items()
        }

        with self._notifications.batch():
            self._state.reset(errors)
            self._sync_and_notify_all()

        logger.info("Form reset to initial values")
        if self._on_reset is not None:
            self._on_reset()

    def snapshot(self) -> Dict[str, Any]:
        """Return the JSON-shaped state of the form, e.g. to save a draft."""
        return self._state.to_json()

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        """
        Restore a previously saved snapshot into this form.

        Restored values are re-validated. Fields unknown to this form are
        ignored; fields missing from the snapshot keep their current state.

        Raises:
            SubmissionInProgressError: If a submission is in flight
        """
        if self._state.is_submitting:
            raise SubmissionInProgressError("restore")

        if snapshot.get('isSubmitting'):
            logger.warning("Snapshot was taken mid-submission; restoring as not submitting")

        with self._notifications.batch():
            for field_id, field_data in (snapshot.get('fields') or {}).items():
                field = self._fields.get(field_id)
                if field is None:
                    logger.warning(f"Ignoring unknown field '{field_id}' in snapshot")
                    continue
                restored = FieldState.from_json(field_data, field.kind,
                                               self._config.multiselect_delimiter)
                if 'initialValue' not in field_data:
                    restored.initial_value = field.initial_value
                restored.is_initial = not restored.is_modified
                restored.apply_validation(self._validate(field, restored.value))
                self._state.fields[field_id] = restored

            self._state.is_submitted = bool(snapshot.get('isSubmitted', False))
            self._state.global_error = snapshot.get('globalError')
            self._sync_and_notify_all()

        logger.info("Form state restored from snapshot")

    def get_changes(self) -> Dict[str, Dict[str, Any]]:
        """Per-field changes between initial and current values."""
        initial = {fid: state.initial_value for fid, state in self._state.fields.items()}
        modified = {fid for fid, state in self._state.fields.items() if state.is_modified}
        return calculate_changes(initial, self._state.values, modified)

    def _sync_and_notify_all(self) -> None:
        for field_id, state in self._state.fields.items():
            self._resources.sync_value(field_id, state.value)
            self._notifications.notify_field(field_id, state)
        self._notifications.notify_form(FormChannel.VALIDITY, self._state.is_valid)
        self._notifications.notify_form(FormChannel.GLOBAL_ERROR, self._state.global_error)
        self._notifications.notify_form(FormChannel.PROCESSING, self.is_processing)
        self._notifications.notify_form(FormChannel.SUBMISSION, self._state.is_submitted)

    # ------------------------------------------------------------------
    # Visibility and resources
    # ------------------------------------------------------------------

    def mark_visible(self, field_id: str) -> FieldResource:
        """Record a field as on screen; its editing resource is ready on return."""
        self._require_field(field_id, "mark_visible")
        return self._resources.mark_visible(field_id)

    def mark_invisible(self, field_id: str) -> None:
        self._require_field(field_id, "mark_invisible")
        self._resources.mark_invisible(field_id)

    def set_visibility(self, field_id: str, visible: bool) -> None:
        """Handle a renderer visibility event."""
        if visible:
            self.mark_visible(field_id)
        else:
            self.mark_invisible(field_id)

    def get_resource(self, field_id: str) -> FieldResource:
        """Return the field's editing resource, allocating it if needed."""
        self._require_field(field_id, "get_resource")
        return self._resources.get_or_create(field_id)

    def dispose(self) -> None:
        """Tear the form down: destroy every resource and drop every subscription."""
        self._resources.dispose()
        self._notifications.dispose()
        self._engine.clear_validator_cache()
        logger.info("Form controller disposed")

    def _require_field(self, field_id: str, operation: str) -> FieldDefinition:
        field = self._fields.get(field_id)
        if field is None:
            error = FieldLookupError(field_id, operation)
            log_error_with_context(error, operation)
            raise error
        return field
