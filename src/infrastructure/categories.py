from __future__ import annotations

from typing import Any


class CategoryCatalog:
    """Category lookup used to decorate views. Seeded with a default catalog."""

    def __init__(self, categories: dict[str, dict[str, Any]] | None = None) -> None:
        self._categories: dict[str, dict[str, Any]] = categories if categories is not None else {
            "cat_groceries": {"name": "Groceries", "icon": "pi-shopping-cart", "kind": "expense"},
            "cat_housing": {"name": "Housing", "icon": "pi-home", "kind": "expense"},
            "cat_transport": {"name": "Transport", "icon": "pi-car", "kind": "expense"},
            "cat_subscriptions": {"name": "Subscriptions", "icon": "pi-replay", "kind": "expense"},
            "cat_leisure": {"name": "Leisure", "icon": "pi-ticket", "kind": "expense"},
            "cat_salary": {"name": "Salary", "icon": "pi-wallet", "kind": "income"},
            "cat_freelance": {"name": "Freelance", "icon": "pi-briefcase", "kind": "income"},
        }

    def find_category(self, category_id: str) -> dict[str, Any] | None:
        found = self._categories.get(category_id)
        if found is None:
            return None
        return {"id": category_id, **found}
