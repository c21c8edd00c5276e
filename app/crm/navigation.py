from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.crm.rbac import INVITE_USERS, VIEW_CUSTOMERS, VIEW_DASHBOARD, VIEW_TRANSACTIONS, user_has_permission


@dataclass(frozen=True)
class MenuItem:
    title: str
    endpoint: str
    icon: str
    permission: str | None = None


MENU_ITEMS: tuple[MenuItem, ...] = (
    MenuItem("Dashboard", "routes.index", "layout-dashboard", VIEW_DASHBOARD),
    MenuItem("Customers", "customers.customers_list", "users", VIEW_CUSTOMERS),
    MenuItem("Transactions", "transactions.transactions_list", "credit-card", VIEW_TRANSACTIONS),
    MenuItem("Invite Users", "invite.invite_get", "user-plus", INVITE_USERS),
)


def visible_menu_items(user: Any) -> list[MenuItem]:
    return [item for item in MENU_ITEMS if item.permission is None or user_has_permission(user, item.permission)]


def is_active(item: MenuItem, endpoint: str | None) -> bool:
    """Same blueprint counts as active so detail pages highlight their list."""
    if not endpoint:
        return False
    if endpoint == item.endpoint:
        return True
    if item.endpoint == "routes.index":
        return False
    return endpoint.split(".", 1)[0] == item.endpoint.split(".", 1)[0]
