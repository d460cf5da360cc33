"""
Session-side view of the signed-in user.

The backend owns the user record; the portal keeps the copy returned by
/auth/login (or /auth/me) in the session and wraps it here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ROLES = ("resident", "business", "collector", "admin")
CUSTOMER_ROLES = ("resident", "business")
ACCOUNT_STATUSES = ("active", "pending", "suspended")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    email: str
    role: str
    phone: str = ""
    address: dict[str, Any] = field(default_factory=dict)
    collector_info: dict[str, Any] = field(default_factory=dict)
    device_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> "CurrentUser | None":
        if not data:
            return None
        user_id = data.get("_id") or data.get("id")
        if not user_id:
            return None
        return cls(
            id=str(user_id),
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=data.get("userType") or "",
            phone=data.get("phone") or "",
            address=dict(data.get("address") or {}),
            collector_info=dict(data.get("collectorInfo") or {}),
            device_id=data.get("deviceId") or None,
            raw=dict(data),
        )

    @property
    def is_active(self) -> bool:
        return (self.raw.get("accountStatus") or "active") != "suspended"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_collector(self) -> bool:
        return self.role == "collector"

    @property
    def is_customer(self) -> bool:
        return self.role in CUSTOMER_ROLES

    @property
    def city(self) -> str:
        return self.address.get("city") or ""

    @property
    def district(self) -> str:
        return self.address.get("district") or ""

    @property
    def first_name(self) -> str:
        return (self.name.split(" ")[0] if self.name else "") or "Customer"

    @property
    def last_name(self) -> str:
        return " ".join(self.name.split(" ")[1:]) if self.name else ""
