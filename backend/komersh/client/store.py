# Overview: Client-side resource cache with explicit per-mutation invalidation.

"""
ResourceStore caches API payloads keyed by (resource, id), where id is None
for the collection itself. Nothing expires on a timer: each mutation names
the resources it touches in MUTATION_INVALIDATIONS, and invalidating a
resource drops its cached list and rows and calls its subscribers.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)

_MISSING = object()

# mutation name -> resources whose cached data it makes stale
MUTATION_INVALIDATIONS: dict[str, tuple[str, ...]] = {
    "create_potential_product": ("potential-products", "activity-log"),
    "update_potential_product": ("potential-products", "activity-log"),
    "delete_potential_product": ("potential-products", "activity-log"),
    "upload_potential_product_image": ("potential-products", "activity-log"),
    "buy_potential_product": ("potential-products", "inventory", "dashboard", "activity-log"),
    "update_inventory": ("inventory", "dashboard", "activity-log"),
    "delete_inventory": ("inventory", "dashboard", "activity-log"),
    "upload_inventory_image": ("inventory", "activity-log"),
    "sell_inventory": ("inventory", "sales-orders", "dashboard", "activity-log", "notifications"),
    "update_sales_order": ("sales-orders", "dashboard", "activity-log"),
    "create_bank_account": ("bank-accounts", "dashboard", "activity-log"),
    "update_bank_account": ("bank-accounts", "dashboard", "activity-log"),
    "delete_bank_account": ("bank-accounts", "dashboard", "activity-log"),
    "adjust_balance": ("bank-accounts", "dashboard", "activity-log"),
    "create_expense": ("expenses", "bank-accounts", "dashboard", "activity-log", "notifications"),
    "update_expense": ("expenses", "dashboard", "activity-log"),
    "delete_expense": ("expenses", "dashboard", "activity-log"),
    "create_task": ("tasks", "activity-log", "notifications"),
    "update_task": ("tasks", "activity-log", "notifications"),
    "move_task": ("tasks", "activity-log"),
    "delete_task": ("tasks", "activity-log"),
    "upload_attachment": ("attachments", "activity-log"),
    "update_attachment": ("attachments",),
    "delete_attachment": ("attachments", "activity-log"),
    "change_user_role": ("users", "activity-log"),
    "deactivate_user": ("users", "activity-log"),
    "reactivate_user": ("users", "activity-log"),
    "create_invitation": ("invitations", "activity-log"),
    "resend_invitation": ("invitations", "activity-log"),
    "delete_invitation": ("invitations", "activity-log"),
    "accept_invitation": ("auth-user",),
    "update_profile": ("auth-user", "users"),
    "change_password": ("auth-user",),
    "mark_notification_read": ("notifications",),
    "mark_all_notifications_read": ("notifications",),
}


class ResourceStore:
    """Thread-safe cache of API payloads keyed by (resource, id)."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, Hashable], Any] = {}
        self._subscribers: dict[str, list[Callable[[str], None]]] = defaultdict(list)
        self._lock = threading.RLock()

    def get(self, resource: str, id: Hashable = None, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get((resource, id), default)

    def has(self, resource: str, id: Hashable = None) -> bool:
        with self._lock:
            return (resource, id) in self._entries

    def put(self, resource: str, value: Any, id: Hashable = None) -> None:
        with self._lock:
            self._entries[(resource, id)] = value

    def keys(self) -> list[tuple[str, Hashable]]:
        with self._lock:
            return list(self._entries)

    def subscribe(self, resource: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """Call `callback(resource)` whenever the resource is invalidated. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers[resource].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(resource, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def invalidate(self, resource: str, id: Hashable = _MISSING) -> None:
        """
        Drop cached data for a resource and notify its subscribers.

        Without an id every entry of the resource goes; with an id only that
        row and the resource's collection entry go.
        """
        with self._lock:
            if id is _MISSING:
                stale = [key for key in self._entries if key[0] == resource]
            else:
                stale = [(resource, id), (resource, None)]
            for key in stale:
                self._entries.pop(key, None)
            callbacks = list(self._subscribers.get(resource, ()))

        for callback in callbacks:
            callback(resource)

    def invalidate_for(self, mutation: str) -> tuple[str, ...]:
        """Invalidate everything a named mutation touches. Unknown mutations are a programming error."""
        try:
            resources = MUTATION_INVALIDATIONS[mutation]
        except KeyError:
            raise KeyError(f"No invalidation rule for mutation {mutation!r}") from None
        for resource in resources:
            self.invalidate(resource)
        logger.debug("Mutation %s invalidated %s", mutation, ", ".join(resources))
        return resources

    def clear(self) -> None:
        """Drop every entry and notify every subscribed resource (login / logout)."""
        with self._lock:
            resources = {key[0] for key in self._entries} | set(self._subscribers)
            self._entries.clear()
        for resource in sorted(resources):
            for callback in list(self._subscribers.get(resource, ())):
                callback(resource)
