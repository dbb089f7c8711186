# Overview: Closed enumerations of gated features and the actions on them.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Feature(str, Enum):
    """Shop areas a plan or worker grant can cover."""
    INVOICE = "invoice"
    INVENTORY = "inventory"
    SALES = "sales"
    CREDITS = "credits"
    CUSTOMERS = "customers"
    EXPENSES = "expenses"
    RECEIVE_PAYMENT = "receive_payment"
    CASH_CREDIT = "cash_credit"
    WORKERS = "workers"

    @classmethod
    def parse(cls, value) -> "Feature | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"

    @classmethod
    def parse(cls, value) -> "Action | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class FeaturePermission:
    """The four-flag grant carried by plans, admin overrides and worker rows."""
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    def allows(self, action: Action) -> bool:
        if action is Action.VIEW:
            return self.can_view
        if action is Action.CREATE:
            return self.can_create
        if action is Action.EDIT:
            return self.can_edit
        if action is Action.DELETE:
            return self.can_delete
        return False

    @classmethod
    def from_flags(cls, flags: dict) -> "FeaturePermission":
        """Build from a plan-style map: {"view": bool, "create": bool, ...}."""
        return cls(
            can_view=bool(flags.get("view", False)),
            can_create=bool(flags.get("create", False)),
            can_edit=bool(flags.get("edit", False)),
            can_delete=bool(flags.get("delete", False)),
        )

    @classmethod
    def full(cls) -> "FeaturePermission":
        return cls(True, True, True, True)

    def to_flags(self) -> dict:
        return {
            "view": self.can_view,
            "create": self.can_create,
            "edit": self.can_edit,
            "delete": self.can_delete,
        }
