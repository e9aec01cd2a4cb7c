"""
Change notification channels for the dynamic forms engine.

Renderers subscribe to one field's channel (or to a form-level channel) and
repaint only what changed. Mutations that compose one logical change are
grouped with ``NotificationHub.batch()`` so each channel fires once.
"""

from collections import OrderedDict
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Tuple
import logging

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class FormChannel(str, Enum):
    """Form-level observables."""
    VALIDITY = "validity"
    PROCESSING = "processing"
    GLOBAL_ERROR = "global_error"
    SUBMISSION = "submission"


class ChangeNotifier:
    """A single publish/subscribe channel."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, payload: Any = None) -> None:
        """Deliver a payload to every listener, in subscription order."""
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Listener on channel '{self.name}' failed: {e}", exc_info=True)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def clear(self) -> None:
        self._listeners.clear()


class NotificationHub:
    """Owns the per-field and form-level channels of one form."""

    def __init__(self, field_ids: Iterable[str]):
        self._field_channels: Dict[str, ChangeNotifier] = {
            field_id: ChangeNotifier(f"field:{field_id}") for field_id in field_ids
        }
        self._form_channels: Dict[FormChannel, ChangeNotifier] = {
            channel: ChangeNotifier(channel.value) for channel in FormChannel
        }
        self._batch_depth = 0
        self._pending: "OrderedDict[Tuple[str, Any], Any]" = OrderedDict()

    def field_channel(self, field_id: str) -> ChangeNotifier:
        return self._field_channels[field_id]

    def form_channel(self, channel: FormChannel) -> ChangeNotifier:
        return self._form_channels[FormChannel(channel)]

    def notify_field(self, field_id: str, payload: Any = None) -> None:
        self._emit(("field", field_id), payload)

    def notify_form(self, channel: FormChannel, payload: Any = None) -> None:
        self._emit(("form", FormChannel(channel)), payload)

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    @contextmanager
    def batch(self) -> Iterator[None]:
        """
        Coalesce notifications raised inside the block.

        Each channel fires at most once, with its latest payload, when the
        outermost batch exits. Batches nest.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._flush()

    def dispose(self) -> None:
        """Drop every subscription and anything still pending."""
        self._pending.clear()
        for notifier in self._field_channels.values():
            notifier.clear()
        for notifier in self._form_channels.values():
            notifier.clear()

    def _emit(self, key: Tuple[str, Any], payload: Any) -> None:
        if self._batch_depth:
            self._pending[key] = payload
            return
        self._deliver(key, payload)

    def _flush(self) -> None:
        pending, self._pending = self._pending, OrderedDict()
        for key, payload in pending.items():
            self._deliver(key, payload)

    def _deliver(self, key: Tuple[str, Any], payload: Any) -> None:
        scope, name = key
        if scope == "field":
            self._field_channels[name].notify(payload)
        else:
            self._form_channels[name].notify(payload)
