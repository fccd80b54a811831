# Overview: httpx-based Python client for the Komersh JSON API.

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import httpx

from .store import ResourceStore

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """A non-2xx API response."""

    def __init__(self, status: int, message: str, field: str | None = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.field = field


def _encode(value: Any) -> Any:
    """Make request bodies JSON-safe: Decimals as strings, dates as ISO strings."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _compact(body: dict) -> dict:
    """Drop optional fields the caller left unset."""
    return {k: v for k, v in body.items() if v is not None}


class KomershClient:
    """
    Session-cookie API client.

    Reads go through a ResourceStore; every mutation invalidates the
    resources listed for it in MUTATION_INVALIDATIONS.
    """

    def __init__(
        self,
        base_url: str,
        *,
        store: ResourceStore | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.store = store or ResourceStore()
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "KomershClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- transport --

    def _request(self, method: str, path: str, *, json: Any = None, params: dict | None = None, files=None, data=None):
        response = self._http.request(
            method,
            path,
            json=_encode(json) if json is not None else None,
            params=params,
            files=files,
            data=data,
        )
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") if isinstance(body, dict) else None
            field = body.get("field") if isinstance(body, dict) else None
            raise ApiClientError(response.status_code, message or response.reason_phrase, field)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _read(self, resource: str, path: str, id=None, params: dict | None = None):
        cached = self.store.get(resource, id)
        if cached is not None:
            return cached
        data = self._request("GET", path, params=params)
        self.store.put(resource, data, id)
        return data

    def _mutate(self, mutation: str, method: str, path: str, **kwargs):
        data = self._request(method, path, **kwargs)
        self.store.invalidate_for(mutation)
        return data

    # -- auth --

    def login(self, email: str, password: str) -> dict:
        user = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.store.clear()
        self.store.put("auth-user", user)
        return user

    def logout(self) -> dict:
        body = self._request("POST", "/api/auth/logout")
        self.store.clear()
        return body

    def current_user(self) -> dict:
        return self._read("auth-user", "/api/auth/user")

    def update_profile(self, **fields) -> dict:
        return self._mutate("update_profile", "PUT", "/api/account/profile", json=fields)

    def change_password(self, current_password: str | None, new_password: str, confirm_password: str) -> dict:
        body = {
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmPassword": confirm_password,
        }
        return self._mutate("change_password", "PUT", "/api/account/password", json=_compact(body))

    # -- potential products --

    def list_potential_products(self) -> list[dict]:
        return self._read("potential-products", "/api/potential-products")

    def get_potential_product(self, product_id: int) -> dict:
        return self._read("potential-products", f"/api/potential-products/{product_id}", id=product_id)

    def create_potential_product(self, data: dict) -> dict:
        return self._mutate("create_potential_product", "POST", "/api/potential-products", json=data)

    def update_potential_product(self, product_id: int, data: dict) -> dict:
        return self._mutate("update_potential_product", "PUT", f"/api/potential-products/{product_id}", json=data)

    def delete_potential_product(self, product_id: int) -> None:
        self._mutate("delete_potential_product", "DELETE", f"/api/potential-products/{product_id}")

    def buy_potential_product(self, product_id: int, quantity: int, unit_cost, **extra) -> dict:
        body = {"quantity": quantity, "unitCost": unit_cost, **extra}
        return self._mutate("buy_potential_product", "POST", f"/api/potential-products/{product_id}/buy", json=body)

    def upload_potential_product_image(self, product_id: int, filename: str, content: bytes, content_type: str) -> dict:
        return self._mutate(
            "upload_potential_product_image",
            "POST",
            f"/api/potential-products/{product_id}/image",
            files={"image": (filename, content, content_type)},
        )

    # -- inventory --

    def list_inventory(self) -> list[dict]:
        return self._read("inventory", "/api/inventory")

    def get_inventory_item(self, item_id: int) -> dict:
        return self._read("inventory", f"/api/inventory/{item_id}", id=item_id)

    def update_inventory_item(self, item_id: int, data: dict) -> dict:
        return self._mutate("update_inventory", "PUT", f"/api/inventory/{item_id}", json=data)

    def delete_inventory_item(self, item_id: int) -> None:
        self._mutate("delete_inventory", "DELETE", f"/api/inventory/{item_id}")

    def sell_inventory(self, item_id: int, channel: str, quantity_sold: int, selling_price_per_unit, **extra) -> dict:
        body = {
            "channel": channel,
            "quantitySold": quantity_sold,
            "sellingPricePerUnit": selling_price_per_unit,
            **extra,
        }
        return self._mutate("sell_inventory", "POST", f"/api/inventory/{item_id}/sell", json=body)

    # -- sales orders --

    def list_sales_orders(self) -> list[dict]:
        return self._read("sales-orders", "/api/sales-orders")

    def update_sales_order(self, order_id: int, data: dict) -> dict:
        return self._mutate("update_sales_order", "PUT", f"/api/sales-orders/{order_id}", json=data)

    # -- bank accounts and expenses --

    def list_bank_accounts(self) -> list[dict]:
        return self._read("bank-accounts", "/api/bank-accounts")

    def create_bank_account(self, data: dict) -> dict:
        return self._mutate("create_bank_account", "POST", "/api/bank-accounts", json=data)

    def update_bank_account(self, account_id: int, data: dict) -> dict:
        return self._mutate("update_bank_account", "PUT", f"/api/bank-accounts/{account_id}", json=data)

    def delete_bank_account(self, account_id: int) -> None:
        self._mutate("delete_bank_account", "DELETE", f"/api/bank-accounts/{account_id}")

    def adjust_balance(self, account_id: int, amount, type: str, description: str | None = None) -> dict:
        body = {"amount": amount, "type": type, "description": description}
        return self._mutate("adjust_balance", "POST", f"/api/bank-accounts/{account_id}/adjust", json=_compact(body))

    def list_expenses(self) -> list[dict]:
        return self._read("expenses", "/api/expenses")

    def create_expense(self, data: dict) -> dict:
        return self._mutate("create_expense", "POST", "/api/expenses", json=data)

    def update_expense(self, expense_id: int, data: dict) -> dict:
        return self._mutate("update_expense", "PUT", f"/api/expenses/{expense_id}", json=data)

    def delete_expense(self, expense_id: int) -> None:
        self._mutate("delete_expense", "DELETE", f"/api/expenses/{expense_id}")

    # -- tasks --

    def list_tasks(self) -> list[dict]:
        return self._read("tasks", "/api/tasks")

    def task_board(self) -> dict:
        return self._read("tasks", "/api/tasks/board", id="board")

    def create_task(self, data: dict) -> dict:
        return self._mutate("create_task", "POST", "/api/tasks", json=data)

    def update_task(self, task_id: int, data: dict) -> dict:
        return self._mutate("update_task", "PUT", f"/api/tasks/{task_id}", json=data)

    def move_task(self, task_id: int, status: str) -> dict:
        return self._mutate("move_task", "POST", f"/api/tasks/{task_id}/move", json={"status": status})

    def delete_task(self, task_id: int) -> None:
        self._mutate("delete_task", "DELETE", f"/api/tasks/{task_id}")

    # -- attachments --

    def list_attachments(self) -> list[dict]:
        return self._read("attachments", "/api/attachments")

    def upload_attachment(self, filename: str, content: bytes, content_type: str, folder: str | None = None) -> dict:
        return self._mutate(
            "upload_attachment",
            "POST",
            "/api/attachments/upload",
            files={"file": (filename, content, content_type)},
            data={"folder": folder} if folder else None,
        )

    def delete_attachment(self, attachment_id: int) -> None:
        self._mutate("delete_attachment", "DELETE", f"/api/attachments/{attachment_id}")

    # -- users and invitations --

    def list_users(self) -> list[dict]:
        return self._read("users", "/api/users")

    def change_user_role(self, user_id: int, role: str) -> dict:
        return self._mutate("change_user_role", "PUT", f"/api/users/{user_id}/role", json={"role": role})

    def deactivate_user(self, user_id: int) -> dict:
        return self._mutate("deactivate_user", "POST", f"/api/users/{user_id}/deactivate")

    def reactivate_user(self, user_id: int) -> dict:
        return self._mutate("reactivate_user", "POST", f"/api/users/{user_id}/reactivate")

    def list_invitations(self) -> list[dict]:
        return self._read("invitations", "/api/invitations")

    def create_invitation(self, email: str, role: str) -> dict:
        return self._mutate("create_invitation", "POST", "/api/invitations", json={"email": email, "role": role})

    def resend_invitation(self, invitation_id: int) -> dict:
        return self._mutate("resend_invitation", "POST", f"/api/invitations/{invitation_id}/resend")

    def delete_invitation(self, invitation_id: int) -> None:
        self._mutate("delete_invitation", "DELETE", f"/api/invitations/{invitation_id}")

    def verify_invitation(self, token: str) -> dict:
        return self._request("GET", "/api/invitations/verify", params={"token": token})

    def accept_invitation(self, token: str, password: str, first_name: str | None = None, last_name: str | None = None) -> dict:
        body = {"token": token, "password": password, "firstName": first_name, "lastName": last_name}
        result = self._request("POST", "/api/invitations/accept", json=_compact(body))
        self.store.clear()
        return result

    # -- activity, notifications, dashboard, settings --

    def activity_log(self) -> list[dict]:
        return self._read("activity-log", "/api/activity-log")

    def notifications(self) -> list[dict]:
        return self._read("notifications", "/api/notifications")

    def mark_notification_read(self, notification_id: int) -> dict:
        return self._mutate("mark_notification_read", "POST", f"/api/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> dict:
        return self._mutate("mark_all_notifications_read", "POST", "/api/notifications/mark-all-read")

    def dashboard_stats(self, currency: str = "USD") -> dict:
        return self._read("dashboard", "/api/dashboard/stats", id=currency, params={"currency": currency})

    def settings(self) -> dict:
        return self._read("settings", "/api/settings")
