from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    CLAIMS_EMPLOYEE = "CLAIMS_EMPLOYEE"
    OPERATIONS_EMPLOYEE = "OPERATIONS_EMPLOYEE"
    ADMIN_EMPLOYEE = "ADMIN_EMPLOYEE"
    CLIENT_ADMIN = "CLIENT_ADMIN"
    AFFILIATE = "AFFILIATE"


class RoleGroup(StrEnum):
    BROKER_EMPLOYEES = "BROKER_EMPLOYEES"
    SENIOR_CLAIM_MANAGERS = "SENIOR_CLAIM_MANAGERS"
    SUPER_ADMIN_ONLY = "SUPER_ADMIN_ONLY"
    ALL_AUTHORIZED = "ALL_AUTHORIZED"


ROLE_GROUPS: dict[RoleGroup, frozenset[Role]] = {
    RoleGroup.BROKER_EMPLOYEES: frozenset(
        {Role.SUPER_ADMIN, Role.CLAIMS_EMPLOYEE, Role.OPERATIONS_EMPLOYEE, Role.ADMIN_EMPLOYEE}
    ),
    RoleGroup.SENIOR_CLAIM_MANAGERS: frozenset({Role.SUPER_ADMIN, Role.CLAIMS_EMPLOYEE}),
    RoleGroup.SUPER_ADMIN_ONLY: frozenset({Role.SUPER_ADMIN}),
    RoleGroup.ALL_AUTHORIZED: frozenset(Role),
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.SUPER_ADMIN: "Full administrative access",
    Role.CLAIMS_EMPLOYEE: "Broker employee handling claims",
    Role.OPERATIONS_EMPLOYEE: "Broker employee handling operations",
    Role.ADMIN_EMPLOYEE: "Broker employee handling administration",
    Role.CLIENT_ADMIN: "Administrator for one or more client companies",
    Role.AFFILIATE: "Insured affiliate of a client company",
}


def parse_role(value: str | None) -> Role | None:
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def in_group(role: Role | None, group: RoleGroup) -> bool:
    return role is not None and role in ROLE_GROUPS[group]


def is_broker_employee(role: Role | None) -> bool:
    return in_group(role, RoleGroup.BROKER_EMPLOYEES)


def is_senior_claim_manager(role: Role | None) -> bool:
    return in_group(role, RoleGroup.SENIOR_CLAIM_MANAGERS)


def is_super_admin(role: Role | None) -> bool:
    return role is Role.SUPER_ADMIN
