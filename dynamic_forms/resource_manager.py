"""
Per-field editing resource lifecycle for the dynamic forms engine.

Editing resources (an edit buffer and a focus handle per field) are allocated
lazily when a field is first shown or accessed, and reclaimed by a debounced
sweep once the field has been off screen for longer than the idle threshold.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_IDLE_THRESHOLD = 60.0


class EditBuffer:
    """Text buffer a renderer edits a field through."""

    def __init__(self, text: str = ""):
        self.text = text
        self.version = 0
        self.disposed = False

    def set_text(self, text: str) -> None:
        if text != self.text:
            self.text = text
            self.version += 1

    def dispose(self) -> None:
        self.disposed = True


class FocusHandle:
    """Keyboard focus handle for one field."""

    def __init__(self):
        self.has_focus = False
        self.disposed = False

    def request_focus(self) -> None:
        if not self.disposed:
            self.has_focus = True

    def unfocus(self) -> None:
        self.has_focus = False

    def dispose(self) -> None:
        self.has_focus = False
        self.disposed = True


@dataclass
class FieldResource:
    """Editing resources owned for one field."""
    field_id: str
    buffer: EditBuffer
    focus: FocusHandle = field(default_factory=FocusHandle)
    created_at: float = 0.0

    @property
    def disposed(self) -> bool:
        return self.buffer.disposed

    def dispose(self) -> None:
        if self.disposed:
            return
        self.buffer.dispose()
        self.focus.dispose()


class ResourceManager:
    """
    Owns the editing resources of one form.

    Args:
        value_provider: Returns the current value of a field, used to seed new buffers
        idle_threshold: Seconds between sweeps, and the minimum time a field
            must stay off screen before its resource is reclaimed
        clock: Monotonic time source in seconds
        on_destroy: Called with the field id whenever a resource is destroyed
    """

    def __init__(self, value_provider: Callable[[str], str],
                 idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
                 clock: Optional[Callable[[], float]] = None,
                 on_destroy: Optional[Callable[[str], None]] = None):
        if idle_threshold < 0:
            raise ValueError("idle_threshold must not be negative")
        self._value_provider = value_provider
        self._idle_threshold = idle_threshold
        self._clock = clock or time.monotonic
        self._on_destroy = on_destroy
        self._resources: Dict[str, FieldResource] = {}
        self._visible: Set[str] = set()
        self._hidden_since: Dict[str, float] = {}
        self._last_sweep = self._clock()

    @property
    def idle_threshold(self) -> float:
        return self._idle_threshold

    @property
    def resource_ids(self) -> Set[str]:
        return set(self._resources)

    @property
    def visible_ids(self) -> Set[str]:
        return set(self._visible)

    def __contains__(self, field_id: str) -> bool:
        return field_id in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def get(self, field_id: str) -> Optional[FieldResource]:
        """Return the live resource for a field without allocating one."""
        return self._resources.get(field_id)

    def get_or_create(self, field_id: str) -> FieldResource:
        """Return the field's resource, allocating one seeded with its current value."""
        resource = self._resources.get(field_id)
        if resource is not None:
            return resource

        now = self._clock()
        resource = FieldResource(
            field_id=field_id,
            buffer=EditBuffer(self._value_provider(field_id)),
            created_at=now,
        )
        self._resources[field_id] = resource
        if field_id not in self._visible:
            self._hidden_since[field_id] = now
        logger.debug(f"Allocated editing resource for '{field_id}'")
        return resource

    def sync_value(self, field_id: str, value: str) -> None:
        """Update an allocated buffer to a value set outside the renderer."""
        resource = self._resources.get(field_id)
        if resource is not None:
            resource.buffer.set_text(value)

    def is_visible(self, field_id: str) -> bool:
        return field_id in self._visible

    def mark_visible(self, field_id: str) -> FieldResource:
        """Record a field as on screen and make sure its resource is ready."""
        self._visible.add(field_id)
        self._hidden_since.pop(field_id, None)
        resource = self.get_or_create(field_id)
        self.maybe_sweep()
        return resource

    def mark_invisible(self, field_id: str) -> None:
        """Record a field as off screen. Its resource is kept until a sweep reclaims it."""
        self._visible.discard(field_id)
        self._hidden_since.setdefault(field_id, self._clock())
        self.maybe_sweep()

    def maybe_sweep(self) -> int:
        """Run a sweep if at least one idle threshold has passed since the last one."""
        if self._clock() - self._last_sweep < self._idle_threshold:
            return 0
        return self.sweep()

    def sweep(self) -> int:
        """
        Reclaim resources of fields that are off screen.

        A resource survives while its field is visible, while it holds focus,
        or until its field has been hidden for the idle threshold.

        Returns:
            Number of resources destroyed
        """
        now = self._clock()
        self._last_sweep = now
        destroyed = 0

        for field_id, resource in list(self._resources.items()):
            if field_id in self._visible or resource.focus.has_focus:
                continue
            hidden_since = self._hidden_since.get(field_id, resource.created_at)
            if now - hidden_since < self._idle_threshold:
                continue
            if self.destroy(field_id):
                destroyed += 1

        if destroyed:
            logger.info(f"Visibility sweep reclaimed {destroyed} editing resource(s)")
        return destroyed

    def destroy(self, field_id: str) -> bool:
        """
        Destroy a field's resource.

        Returns:
            True if a resource was destroyed, False if none was allocated
        """
        resource = self._resources.pop(field_id, None)
        if resource is None:
            return False
        resource.dispose()
        self._hidden_since.pop(field_id, None)
        if self._on_destroy is not None:
            self._on_destroy(field_id)
        logger.debug(f"Destroyed editing resource for '{field_id}'")
        return True

    def dispose(self) -> None:
        """Destroy every resource; used on form teardown."""
        for field_id in list(self._resources):
            self.destroy(field_id)
        self._visible.clear()
        self._hidden_since.clear()
