from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller roles supplied by the external auth layer."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AttendanceStatus(str, Enum):
    """Daily attendance mark as stored in the database."""

    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half_day"


class AdvanceStatus(str, Enum):
    """Lifecycle of a cash advance: pending -> consumed, exactly once."""

    PENDING = "pending"
    CONSUMED = "consumed"


class PaymentStatus(str, Enum):
    ISSUED = "issued"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
