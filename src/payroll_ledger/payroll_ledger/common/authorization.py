from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..core.enums import Role
from ..core.exceptions import AuthorizationError

PAYROLL_ROLES = frozenset({Role.ADMIN, Role.MANAGER})


class PayrollAuthorizer(Protocol):
    """Answers whether the current caller may run payroll operations."""

    def can_perform_payroll(self) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class RoleAuthorizer:
    """Admin and manager may perform payroll operations."""

    role: Role | None

    def can_perform_payroll(self) -> bool:
        return self.role in PAYROLL_ROLES


def require_payroll_permission(authorizer: PayrollAuthorizer, operation: str) -> None:
    if not authorizer.can_perform_payroll():
        raise AuthorizationError("You are not allowed to perform payroll operations", operation=operation)
