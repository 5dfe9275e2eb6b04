from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from src.payroll_ledger.payroll_ledger.core.enums import AdvanceStatus, PaymentMethod
from src.payroll_ledger.payroll_ledger.core.exceptions import (
    AuthorizationError,
    DuplicateRecordError,
    InsufficientEarningsError,
    NotFoundError,
    RequestInProgressError,
    ValidationError,
)
from src.payroll_ledger.payroll_ledger.payroll.model import BatchEntry

MON = date(2026, 3, 2)
FRI = date(2026, 3, 6)


def test_pay_without_advances(container, admin, mark_days, fixed_today):
    mark_days(1, MON, 5)

    payment = container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)

    assert payment.basic_amount == Decimal("2500.00")
    assert payment.net_amount == Decimal("2500.00")
    assert payment.advance_deduction == Decimal("0.00")
    assert payment.payment_date == fixed_today
    assert payment.payment_method == PaymentMethod.CASH
    assert payment.work_days == 5
    assert len(payment.attendance_ids) == 5


def test_pay_deducts_pending_advances(container, admin, mark_days):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=800, issue_date=date(2026, 3, 4))

    payment = container.payroll_service.pay(
        authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, deduct_advances=True
    )

    assert payment.advance_deduction == Decimal("800.00")
    assert payment.net_amount == Decimal("1700.00")
    assert container.advance_ledger.get_outstanding_balance(1) == Decimal("0.00")
    assert [a.consumed_by_payment_id for a in container.advance_ledger.list_history(1)] == [payment.payment_id]


def test_pay_keeps_advances_when_not_deducting(container, admin, mark_days):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=800)

    payment = container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)

    assert payment.net_amount == Decimal("2500.00")
    assert container.advance_ledger.get_outstanding_balance(1) == Decimal("800.00")


def test_advances_exceeding_earnings_are_rejected(container, admin, mark_days, payment_repo, advance_repo):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=3000)

    with pytest.raises(InsufficientEarningsError):
        container.payroll_service.pay(
            authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, deduct_advances=True
        )

    assert payment_repo.all() == []
    assert [a.status for a in advance_repo.all()] == [AdvanceStatus.PENDING]
    assert advance_repo.mark_consumed_calls == 0


def test_same_period_twice_is_duplicate(container, admin, mark_days):
    mark_days(1, MON, 5)
    first = container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)

    with pytest.raises(DuplicateRecordError) as exc:
        container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)

    assert exc.value.details["payment_id"] == first.payment_id


def test_overlapping_period_cannot_pay_attendance_twice(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    monday = container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=MON)

    with pytest.raises(DuplicateRecordError) as exc:
        container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)

    assert exc.value.details["attendance_ids"] == list(monday.attendance_ids)
    assert exc.value.details["payment_ids"] == [monday.payment_id]
    assert payment_repo.all() == [monday]

    rest = container.payroll_service.pay(
        authorizer=admin, employee_id=1, period_start=date(2026, 3, 3), period_end=FRI
    )
    assert rest.net_amount == Decimal("2000.00")
    assert not set(rest.attendance_ids) & set(monday.attendance_ids)


def test_preview_flags_already_paid_attendance(container, admin, mark_days):
    mark_days(1, MON, 5)
    container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=MON)

    [row] = container.payroll_service.preview_batch(employee_ids=[1], period_start=MON, period_end=FRI)

    assert row.would_fail is True
    assert row.error


def test_pay_validates_inputs(container, admin, plain_user):
    svc = container.payroll_service
    with pytest.raises(AuthorizationError):
        svc.pay(authorizer=plain_user, employee_id=1, period_start=MON, period_end=FRI)
    with pytest.raises(ValidationError):
        svc.pay(authorizer=admin, employee_id=1, period_start=FRI, period_end=MON)
    with pytest.raises(ValidationError):
        svc.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, payment_method="crypto")
    with pytest.raises(NotFoundError):
        svc.pay(authorizer=admin, employee_id=9, period_start=MON, period_end=FRI)


def test_failed_payment_write_releases_advances(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=800)
    payment_repo.fail_next_create = True

    with pytest.raises(RuntimeError):
        container.payroll_service.pay(
            authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, deduct_advances=True
        )

    assert payment_repo.all() == []
    assert container.advance_ledger.get_outstanding_balance(1) == Decimal("800.00")

    retry = container.payroll_service.pay(
        authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, deduct_advances=True
    )
    assert retry.net_amount == Decimal("1700.00")


def test_concurrent_pays_consume_advances_once(container, admin, mark_days, advance_repo):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=800)
    barrier = threading.Barrier(2)

    def run(start, end):
        barrier.wait()
        return container.payroll_service.pay(
            authorizer=admin, employee_id=1, period_start=start, period_end=end, deduct_advances=True
        )

    with ThreadPoolExecutor(max_workers=2) as pool:
        a = pool.submit(run, MON, date(2026, 3, 4))
        b = pool.submit(run, date(2026, 3, 5), FRI)
        payments = [a.result(), b.result()]

    assert sum(p.advance_deduction for p in payments) == Decimal("800.00")
    assert advance_repo.mark_consumed_calls == 1


def test_repeat_while_in_flight_is_rejected(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    entered = threading.Event()
    proceed = threading.Event()
    original_create = payment_repo.create

    def slow_create(payment):
        entered.set()
        proceed.wait(timeout=5)
        original_create(payment)

    payment_repo.create = slow_create

    with ThreadPoolExecutor(max_workers=1) as pool:
        first = pool.submit(
            container.payroll_service.pay, authorizer=admin, employee_id=1, period_start=MON, period_end=FRI
        )
        assert entered.wait(timeout=5)
        try:
            with pytest.raises(RequestInProgressError):
                container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)
        finally:
            proceed.set()
        assert first.result().net_amount == Decimal("2500.00")


def test_batch_collects_failures_per_entry(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    mark_days(2, MON, 5)
    mark_days(3, MON, 1)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=3, amount=1000)

    result = container.payroll_service.pay_batch(
        authorizer=admin,
        entries=[
            BatchEntry(employee_id=1, period_start=MON, period_end=FRI),
            BatchEntry(employee_id=3, deduct_advances=True, period_start=MON, period_end=FRI),
            BatchEntry(employee_id=2, period_start=MON, period_end=FRI),
        ],
        payment_method="bank_transfer",
    )

    assert [p.employee_id for p in result.succeeded] == [1, 2]
    assert [(f.employee_id, f.code) for f in result.failed] == [(3, "INSUFFICIENT_EARNINGS")]
    assert {p.payment_id for p in payment_repo.all()} == {p.payment_id for p in result.succeeded}
    assert result.total_net == Decimal("4500.00")
    assert all(p.payment_method == PaymentMethod.BANK_TRANSFER for p in result.succeeded)
    assert container.advance_ledger.get_outstanding_balance(3) == Decimal("1000.00")


def test_batch_override_and_duplicates(container, admin, mark_days, fixed_today):
    mark_days(1, fixed_today, 1)

    result = container.payroll_service.pay_batch(
        authorizer=admin,
        entries=[
            BatchEntry(employee_id=1, basic_amount_override=Decimal("650")),
            BatchEntry(employee_id=2, basic_amount_override=0),
            BatchEntry(employee_id=1),
        ],
    )

    [paid] = result.succeeded
    assert paid.basic_amount == Decimal("650.00")
    assert paid.overtime_amount == Decimal("0.00")
    assert paid.basic_overridden is True
    assert paid.pay_period_start == paid.pay_period_end == fixed_today
    assert [(f.employee_id, f.code) for f in result.failed] == [(2, "INVALID_AMOUNT"), (1, "DUPLICATE_RECORD")]


def test_batch_requires_permission(container, plain_user, payment_repo):
    with pytest.raises(AuthorizationError):
        container.payroll_service.pay_batch(authorizer=plain_user, entries=[BatchEntry(employee_id=1)])

    assert payment_repo.all() == []


def test_batch_scopes_storage_errors_to_entry(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    payment_repo.fail_next_create = True

    result = container.payroll_service.pay_batch(
        authorizer=admin,
        entries=[BatchEntry(employee_id=1, period_start=MON, period_end=FRI)],
    )

    assert result.succeeded == []
    assert result.failed[0].code == "UNEXPECTED_ERROR"


def test_preview_has_no_side_effects(container, admin, mark_days, payment_repo):
    mark_days(1, MON, 5)
    mark_days(3, MON, 1)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=3, amount=1000)

    rows = container.payroll_service.preview_batch(
        employee_ids=[1, 3, 404], period_start=MON, period_end=FRI, deduct_advances=True
    )

    assert rows[0].projected_net == Decimal("2500.00")
    assert rows[0].hours_based_amount == Decimal("2500.00")
    assert rows[1].would_fail is True
    assert rows[1].pending_advances == Decimal("1000.00")
    assert rows[2].would_fail is True and rows[2].error
    assert payment_repo.all() == []


def test_history_and_employee_summary(container, admin, mark_days, fixed_today):
    mark_days(1, MON, 5)
    container.payroll_service.pay(authorizer=admin, employee_id=1, period_start=MON, period_end=FRI)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=100)

    assert len(container.payroll_service.list_payments(employee_id=1)) == 1
    assert container.payroll_service.list_payments(employee_id=2) == []

    summary = container.payroll_service.get_employee_summary(1, start=date(2026, 3, 1), end=fixed_today)
    assert summary.total_paid == Decimal("2500.00")
    assert summary.payments_count == 1
    assert summary.pending_advances == Decimal("100.00")
    assert summary.total_work_days == 5


def test_wage_calculation_is_read_only(container, mark_days, payment_repo):
    mark_days(1, MON, 3)

    breakdown = container.wage_service.calculate(1, MON, FRI)

    assert breakdown.basic_amount == Decimal("1500.00")
    assert payment_repo.all() == []
    with pytest.raises(NotFoundError):
        container.wage_service.calculate(404, MON, FRI)


def test_recover_orphaned_advances(container, admin, mark_days):
    mark_days(1, MON, 5)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=1, amount=800)
    container.advance_ledger.issue_advance(authorizer=admin, employee_id=2, amount=50)
    container.payroll_service.pay(
        authorizer=admin, employee_id=1, period_start=MON, period_end=FRI, deduct_advances=True
    )
    container.advance_ledger.consume(2, "never-written")

    assert container.payroll_service.recover_orphaned_advances(authorizer=admin) == 1
    assert container.advance_ledger.get_outstanding_balance(1) == Decimal("0.00")
    assert container.advance_ledger.get_outstanding_balance(2) == Decimal("50.00")
