from __future__ import annotations

from datetime import date

from flask import Flask, jsonify, request

from ..common.http import current_authorizer, json_body, login_required, parse_date, parse_int, to_json
from ..container import Container
from .model import AttendanceMark


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance", methods=["POST"], endpoint="record_attendance")
    @login_required
    def record_attendance():
        data = json_body()
        record = container.attendance_service.record_attendance(
            authorizer=current_authorizer(),
            employee_id=parse_int(data.get("employee_id"), "employee_id"),
            work_date=parse_date(data.get("work_date"), "work_date", default=container.clock.today()),
            status=data.get("status") or "",
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            notes=data.get("notes"),
        )
        return jsonify(to_json(record)), 201

    @app.route("/api/attendance/<int:employee_id>/<work_date>", methods=["PUT"], endpoint="amend_attendance")
    @login_required
    def amend_attendance(employee_id: int, work_date: str):
        data = json_body()
        record = container.attendance_service.amend_attendance(
            authorizer=current_authorizer(),
            employee_id=employee_id,
            work_date=parse_date(work_date, "work_date"),
            status=data.get("status"),
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            overtime_hours=data.get("overtime_hours"),
            notes=data.get("notes"),
        )
        return jsonify(to_json(record))

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="record_attendance_bulk")
    @login_required
    def record_attendance_bulk():
        data = json_body()
        marks = [
            AttendanceMark(
                employee_id=parse_int(m.get("employee_id"), "employee_id"),
                status=m.get("status") or "",
                check_in=m.get("check_in"),
                check_out=m.get("check_out"),
                notes=m.get("notes"),
            )
            for m in data.get("marks") or []
        ]
        result = container.attendance_service.record_bulk(
            authorizer=current_authorizer(),
            work_date=parse_date(data.get("work_date"), "work_date", default=container.clock.today()),
            marks=marks,
        )
        return jsonify(to_json(result))

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_day_summary")
    @login_required
    def attendance_day_summary():
        work_date: date = parse_date(request.args.get("date"), "date", default=container.clock.today())
        summary = container.attendance_service.get_day_summary(work_date)
        return jsonify({**to_json(summary), "total": summary.total})

    @app.route("/api/attendance/<int:employee_id>", methods=["GET"], endpoint="attendance_for_period")
    @login_required
    def attendance_for_period(employee_id: int):
        today = container.clock.today()
        start = parse_date(request.args.get("start"), "start", default=today.replace(day=1))
        end = parse_date(request.args.get("end"), "end", default=today)
        records = container.attendance_service.list_for_period(employee_id=employee_id, start=start, end=end)
        return jsonify({"records": to_json(records)})
