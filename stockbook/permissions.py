from __future__ import annotations

import copy
import re
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .store import RecordStore

SUPER_ROLE = "super"


def _route(enabled: bool, category: str, description: str) -> dict[str, Any]:
    return {"enabled": enabled, "category": category, "description": description}


DEFAULT_ROUTE_PERMISSIONS: dict[str, dict[str, dict[str, Any]]] = {
    "dashboard": {
        "/dashboard": _route(True, "Dashboard", "Main Dashboard"),
        "/whatsapp": _route(True, "Dashboard", "Send Bills via WhatsApp"),
    },
    "inventory": {
        "/items": _route(True, "Inventory", "Items Management"),
        "/items/new": _route(True, "Inventory", "Add New Item"),
        "/items/:id": _route(True, "Inventory", "View Item Details"),
        "/items/:id/edit": _route(True, "Inventory", "Edit Item"),
        "/stock": _route(False, "Inventory", "Stock Management"),
        "/stock/adjust/:id": _route(False, "Inventory", "Stock Adjustments"),
        "/stock/movements": _route(False, "Inventory", "Stock Movements"),
    },
    "sales": {
        "/bills": _route(True, "Sales & Orders", "Bills Management"),
        "/bills/new": _route(True, "Sales & Orders", "Create New Bill"),
        "/bills/:id": _route(True, "Sales & Orders", "View Bill"),
        "/bills/:id/print": _route(True, "Sales & Orders", "Print Bill"),
        "/quotations": _route(False, "Sales & Orders", "Quotations Management"),
        "/quotations/new": _route(False, "Sales & Orders", "Create New Quotation"),
        "/quotations/:id": _route(False, "Sales & Orders", "View Quotation"),
    },
    "customers": {
        "/customers": _route(True, "Customers", "Customer Management"),
        "/customers/new": _route(True, "Customers", "Add New Customer"),
        "/customers/:id": _route(True, "Customers", "View Customer"),
    },
    "reports": {
        "/reports": _route(True, "Reports", "Reports Dashboard"),
        "/reports/sales": _route(True, "Reports", "Sales Report"),
        "/reports/stock": _route(True, "Reports", "Stock Report"),
    },
    "settings": {
        "/settings": _route(True, "Settings", "Company Settings"),
        "/users": _route(True, "Settings", "User Management"),
        "/data": _route(True, "Settings", "Backup & Restore"),
    },
}


def default_document(timestamp: str) -> dict[str, Any]:
    return {"permissions": copy.deepcopy(DEFAULT_ROUTE_PERMISSIONS), "lastUpdated": timestamp}


def load_route_permissions(store: "RecordStore") -> dict[str, dict[str, dict[str, Any]]]:
    permissions = store.read_collection("route-permissions").get("permissions")
    return permissions if isinstance(permissions, dict) else {}


def _pattern(route: str) -> re.Pattern[str]:
    parts = [("[^/]+" if part.startswith(":") else re.escape(part)) for part in route.split("/")]
    return re.compile("^" + "/".join(parts) + "$")


def find_route(permissions: dict, path: str) -> Optional[dict[str, Any]]:
    """Return the permission entry governing ``path``, or None if uncontrolled."""
    for routes in permissions.values():
        if not isinstance(routes, dict):
            continue
        for route, entry in routes.items():
            if route == path:
                return entry
            if ":" in route and _pattern(route).match(path):
                return entry
    return None


def is_route_enabled(store: "RecordStore", path: str, role: str | None = None) -> bool:
    if role == SUPER_ROLE:
        return True
    entry = find_route(load_route_permissions(store), path)
    if not isinstance(entry, dict):
        return True
    return bool(entry.get("enabled", True))


def set_route_enabled(store: "RecordStore", group: str, route: str, enabled: bool) -> bool:
    with store.locked("route-permissions"):
        document = store.read_collection("route-permissions")
        entry = document.get("permissions", {}).get(group, {}).get(route)
        if not isinstance(entry, dict):
            return False
        entry["enabled"] = bool(enabled)
        document["lastUpdated"] = store.timestamp()
        return store.write_collection("route-permissions", document)
