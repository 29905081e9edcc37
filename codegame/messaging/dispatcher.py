"""Name-keyed listener registry used for every event the client delivers."""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NewType
from uuid import uuid4

import structlog

logger = structlog.get_logger()

ListenerId = NewType("ListenerId", str)

Listener = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ListenerRegistration:
    name: str
    callback: Listener
    once: bool = False


def _describe(callback: Listener) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)[:100]


class EventDispatcher:
    """
    Delivers events to listeners registered by event name.

    Listeners for one name run in registration order. A listener that raises
    is logged and skipped; it never stops delivery to the remaining listeners.
    Coroutine functions are accepted as listeners and run as tasks on the
    current event loop.
    """

    def __init__(self) -> None:
        self._listeners: dict[ListenerId, ListenerRegistration] = {}
        # dict keys keep insertion order, so they double as an ordered set
        self._groups: dict[str, dict[ListenerId, None]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def register(self, name: str, callback: Listener, *, once: bool = False) -> ListenerId:
        listener_id = ListenerId(uuid4().hex)
        self._groups.setdefault(name, {})[listener_id] = None
        self._listeners[listener_id] = ListenerRegistration(name=name, callback=callback, once=once)
        return listener_id

    def remove(self, listener_id: ListenerId) -> bool:
        """Remove a listener. Return False if no listener has this id."""
        registration = self._listeners.pop(listener_id, None)
        if registration is None:
            return False
        group = self._groups.get(registration.name)
        if group is not None:
            group.pop(listener_id, None)
            if not group:
                del self._groups[registration.name]
        return True

    def clear(self) -> None:
        self._listeners.clear()
        self._groups.clear()

    def has_listeners(self, name: str) -> bool:
        return bool(self._groups.get(name))

    def __len__(self) -> int:
        return len(self._listeners)

    def dispatch(self, name: str, *payload: Any) -> bool:
        """Invoke every listener registered for ``name`` with ``payload``.

        Return False when nobody listens for ``name``, True otherwise.
        """
        group = self._groups.get(name)
        if not group:
            return False

        for listener_id in list(group):
            registration = self._listeners.get(listener_id)
            if registration is None:
                # removed by a listener that ran earlier in this dispatch
                continue
            if registration.once:
                self.remove(listener_id)
            self._invoke(name, registration.callback, payload)
        return True

    def _invoke(self, name: str, callback: Listener, payload: tuple[Any, ...]) -> None:
        try:
            result = callback(*payload)
        except Exception:
            logger.exception("unhandled exception in listener", event_name=name, listener=_describe(callback))
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._finish_task(name, callback, t))

    def _finish_task(self, name: str, callback: Listener, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "unhandled exception in listener",
                event_name=name,
                listener=_describe(callback),
                exc_info=exc,
            )
