from collections import defaultdict
from dataclasses import dataclass
import logging
from typing import Callable, DefaultDict, List, Type


Handler = Callable[[object], None]


@dataclass(frozen=True)
class _Subscription:
    priority: int
    order: int
    handler: Handler


class EventBus:
    """Synchronous in-process notifications keyed by event class.

    Handlers run lowest priority first, then in subscription order. A handler
    that raises is logged and skipped so the rest still hear the event.
    """

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[Type[object], List[_Subscription]] = defaultdict(list)
        self._next_order = 0
        self._last_publish_errors: List[Exception] = []
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Type[object], handler: Handler, *, priority: int = 100) -> None:
        subscriptions = self._subscriptions[event_type]
        subscriptions.append(_Subscription(int(priority), self._next_order, handler))
        self._next_order += 1
        subscriptions.sort(key=lambda sub: (sub.priority, sub.order))

    def unsubscribe(self, event_type: Type[object], handler: Handler) -> bool:
        subscriptions = self._subscriptions.get(event_type, [])
        for index, subscription in enumerate(subscriptions):
            if subscription.handler == handler:
                del subscriptions[index]
                return True
        return False

    def subscriber_count(self, event_type: Type[object]) -> int:
        return len(self._subscriptions.get(event_type, []))

    def publish(self, event: object) -> None:
        self._last_publish_errors = []
        event_type = type(event)
        # Iterate a copy: handlers may unsubscribe themselves.
        for subscription in list(self._subscriptions.get(event_type, [])):
            try:
                subscription.handler(event)
            except Exception as exc:
                self._last_publish_errors.append(exc)
                handler = subscription.handler
                self._logger.exception(
                    "%s handler failed",
                    event_type.__name__,
                    extra={
                        "event_type": event_type.__name__,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "priority": subscription.priority,
                    },
                )

    def last_publish_errors(self) -> List[Exception]:
        return list(self._last_publish_errors)
