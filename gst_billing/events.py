"""
Typed notifications between parts of the client.

Only the events listed in BillingEvent can be published or subscribed to;
anything else is a programming error.
"""
from __future__ import annotations
from collections import defaultdict
from enum import Enum
from typing import Any, Callable
from loguru import logger


class BillingEvent(str, Enum):
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    PRODUCT_ADDED = "product_added"
    PRODUCT_UPDATED = "product_updated"
    PRODUCT_DELETED = "product_deleted"
    INVOICE_CREATED = "invoice_created"
    PROFILE_UPDATED = "profile_updated"


Handler = Callable[[BillingEvent, Any], None]


def _check(event: Any) -> BillingEvent:
    if not isinstance(event, BillingEvent):
        raise TypeError(f"Unknown billing event: {event!r}")
    return event


class EventBus:
    def __init__(self):
        self._handlers: dict[BillingEvent, list[Handler]] = defaultdict(list)

    def subscribe(self, event: BillingEvent, handler: Handler) -> None:
        self._handlers[_check(event)].append(handler)

    def unsubscribe(self, event: BillingEvent, handler: Handler) -> None:
        handlers = self._handlers.get(_check(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: BillingEvent, payload: Any = None) -> None:
        """Call every handler of ``event`` in subscription order; handler errors are logged."""
        handlers = list(self._handlers.get(_check(event), []))
        logger.debug(f"Publishing {event.value} to {len(handlers)} handler(s)")
        for handler in handlers:
            try:
                handler(event, payload)
            except Exception as e:
                # One failing subscriber must not stop the others or the publisher
                logger.error(f"Handler {handler!r} failed on {event.value}: {e}")
