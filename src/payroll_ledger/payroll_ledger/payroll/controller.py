from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
    current_authorizer,
    json_body,
    login_required,
    optional_date,
    parse_date,
    parse_bool,
    parse_int,
    to_json,
)
from ..container import Container
from .model import BatchEntry


def register(app: Flask, container: Container) -> None:
    def _period(source: dict) -> tuple:
        today = container.clock.today()
        start = parse_date(source.get("period_start") or source.get("start"), "period_start", default=today.replace(day=1))
        end = parse_date(source.get("period_end") or source.get("end"), "period_end", default=today)
        return start, end

    @app.route("/api/payroll/wages/<int:employee_id>", methods=["GET"], endpoint="calculate_wages")
    @login_required
    def calculate_wages(employee_id: int):
        start, end = _period(request.args)
        breakdown = container.wage_service.calculate(employee_id, start, end)
        return jsonify({**to_json(breakdown), "gross_amount": str(breakdown.gross_amount)})

    @app.route("/api/payroll/payments", methods=["POST"], endpoint="pay_employee")
    @login_required
    def pay_employee():
        data = json_body()
        start, end = _period(data)
        payment = container.payroll_service.pay(
            authorizer=current_authorizer(),
            employee_id=parse_int(data.get("employee_id"), "employee_id"),
            period_start=start,
            period_end=end,
            payment_date=optional_date(data.get("payment_date"), "payment_date"),
            payment_method=data.get("payment_method") or "cash",
            deduct_advances=parse_bool(data.get("deduct_advances"), "deduct_advances"),
        )
        return jsonify(to_json(payment)), 201

    @app.route("/api/payroll/payments", methods=["GET"], endpoint="list_payments")
    @login_required
    def list_payments():
        employee_id = request.args.get("employee_id")
        payments = container.payroll_service.list_payments(
            employee_id=parse_int(employee_id, "employee_id") if employee_id else None,
            start=optional_date(request.args.get("start"), "start"),
            end=optional_date(request.args.get("end"), "end"),
        )
        return jsonify({"payments": to_json(payments)})

    @app.route("/api/payroll/payments/<payment_id>/payslip", methods=["GET"], endpoint="payslip")
    @login_required
    def payslip(payment_id: str):
        return jsonify(container.payslip_summarizer.summarize(payment_id).to_dict())

    @app.route("/api/payroll/batch", methods=["POST"], endpoint="pay_batch")
    @login_required
    def pay_batch():
        data = json_body()
        entries = [
            BatchEntry(
                employee_id=parse_int(e.get("employee_id"), "employee_id"),
                deduct_advances=parse_bool(e.get("deduct_advances"), "deduct_advances"),
                basic_amount_override=e.get("basic_amount_override"),
                period_start=optional_date(e.get("period_start") or data.get("period_start"), "period_start"),
                period_end=optional_date(e.get("period_end") or data.get("period_end"), "period_end"),
            )
            for e in data.get("entries") or []
        ]
        result = container.payroll_service.pay_batch(
            authorizer=current_authorizer(),
            entries=entries,
            payment_date=optional_date(data.get("payment_date"), "payment_date"),
            payment_method=data.get("payment_method") or "cash",
        )
        return jsonify({**to_json(result), "total_net": str(result.total_net)})

    @app.route("/api/payroll/batch/preview", methods=["POST"], endpoint="preview_batch")
    @login_required
    def preview_batch():
        data = json_body()
        start, end = _period(data)
        rows = container.payroll_service.preview_batch(
            employee_ids=[parse_int(i, "employee_ids") for i in data.get("employee_ids") or []],
            period_start=start,
            period_end=end,
            deduct_advances=parse_bool(data.get("deduct_advances"), "deduct_advances"),
        )
        return jsonify({"rows": to_json(rows)})

    @app.route("/api/payroll/employees/<int:employee_id>/summary", methods=["GET"], endpoint="employee_payroll_summary")
    @login_required
    def employee_payroll_summary(employee_id: int):
        start, end = _period(request.args)
        summary = container.payroll_service.get_employee_summary(employee_id, start=start, end=end)
        return jsonify(to_json(summary))

    @app.route("/api/payroll/maintenance/recover-advances", methods=["POST"], endpoint="recover_orphaned_advances")
    @login_required
    def recover_orphaned_advances():
        released = container.payroll_service.recover_orphaned_advances(authorizer=current_authorizer())
        return jsonify({"released": released})
