from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_authorizer, json_body, login_required, optional_date, parse_int, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/advances", methods=["POST"], endpoint="issue_advance")
    @login_required
    def issue_advance():
        data = json_body()
        advance = container.advance_ledger.issue_advance(
            authorizer=current_authorizer(),
            employee_id=parse_int(data.get("employee_id"), "employee_id"),
            amount=data.get("amount"),
            issue_date=optional_date(data.get("issue_date"), "issue_date"),
            notes=data.get("notes"),
        )
        return jsonify(to_json(advance)), 201

    @app.route("/api/advances/<int:employee_id>", methods=["GET"], endpoint="employee_advances")
    @login_required
    def employee_advances(employee_id: int):
        ledger = container.advance_ledger
        return jsonify(
            {
                "employee_id": employee_id,
                "outstanding_balance": str(ledger.get_outstanding_balance(employee_id)),
                "pending": to_json(ledger.list_pending(employee_id)),
                "history": to_json(ledger.list_history(employee_id)),
            }
        )
