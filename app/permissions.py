"""Roles, default permissions and the per-request account context"""

from dataclasses import dataclass, field

OWNER = "OWNER"
ADMIN = "ADMIN"
TECH = "TECH"
CUSTOMER = "CUSTOMER"

ROLES = (OWNER, ADMIN, TECH, CUSTOMER)

ALL_PERMISSIONS = (
    "manage_users",
    "manage_account",
    "manage_business",
    "view_reports",
    "manage_team",
    "manage_inventory",
    "manage_automations",
    "view_financial",
    "manage_leads",
    "export_data",
)

DEFAULT_ROLE_PERMISSIONS: dict[str, list[str]] = {
    OWNER: list(ALL_PERMISSIONS),
    ADMIN: [
        "manage_business",
        "view_reports",
        "manage_team",
        "manage_inventory",
        "manage_automations",
        "view_financial",
        "manage_leads",
    ],
    # Limited to their assigned jobs
    TECH: ["manage_business"],
    CUSTOMER: [],
}


@dataclass
class AccountContext:
    account_id: int
    user_id: int
    role: str
    permissions: list[str] = field(default_factory=list)
    client_id: int | None = None
    email: str | None = None

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    @property
    def can_manage_admin(self) -> bool:
        return self.role in (OWNER, ADMIN)

    @property
    def can_access_tech(self) -> bool:
        return self.role in (OWNER, ADMIN, TECH)

    @property
    def is_customer(self) -> bool:
        return self.role == CUSTOMER


def resolve_permissions(role: str, extra: list[str] | None = None) -> list[str]:
    """Role defaults plus any valid per-user grants, without duplicates"""
    permissions = list(DEFAULT_ROLE_PERMISSIONS.get(role, []))
    for permission in extra or []:
        if permission in ALL_PERMISSIONS and permission not in permissions:
            permissions.append(permission)
    return permissions
