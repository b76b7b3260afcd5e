from __future__ import annotations

import csv
import io

from flask import Flask

from ..auth.tokens import Principal
from ..common.datetime_utils import format_rfc3339
from ..common.http import json_body
from ..common.responses import success_response
from ..common.validators import parse_id
from ..container import Container
from ..core.enums import Role
from .model import EventRoster

ROSTER_CSV_FIELDS = ["student_id", "student_name", "matric_number", "status", "marked_time"]


def register(app: Flask, container: Container) -> None:
    gate = container.gate
    service = container.attendance_service

    def _write_roster_csv(*, roster: EventRoster, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=ROSTER_CSV_FIELDS)
        writer.writeheader()
        for entry in roster.attendance_records:
            writer.writerow(
                {
                    "student_id": entry.student_id,
                    "student_name": entry.student_name,
                    "matric_number": entry.matric_number,
                    "status": entry.status.value,
                    "marked_time": format_rfc3339(entry.marked_time),
                }
            )

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/lecturer/qrcode/generate", methods=["POST"], endpoint="generate_qrcode")
    @gate.require(Role.LECTURER)
    def generate_qrcode(*, principal: Principal):
        data = json_body()
        created = service.create_session(
            lecturer_id=principal.user_id,
            course_code=data.get("course_code"),
            course_name=data.get("course_name"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            venue=data.get("venue"),
            department=data.get("department"),
        )
        return success_response("QR code generated successfully", created, status=201)

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="check_in")
    @gate.require(Role.STUDENT)
    def check_in(*, principal: Principal):
        data = json_body()
        result = service.check_in(student_id=principal.user_id, qr_token=data.get("qr_token"))
        return success_response("Attendance marked successfully", result)

    @app.route("/api/attendance/student/records", methods=["GET"], endpoint="student_records")
    @gate.require(Role.STUDENT)
    def student_records(*, principal: Principal):
        history = service.get_student_history(principal.user_id)
        return success_response("Attendance records retrieved successfully", history)

    @app.route("/api/attendance/<event_id>", methods=["GET"], endpoint="event_roster")
    @gate.require(Role.LECTURER)
    def event_roster(event_id: str, *, principal: Principal):
        roster = service.get_roster(principal, parse_id(event_id, "event ID"))
        return success_response("Event attendance retrieved successfully", roster)

    @app.route("/api/attendance/<event_id>/export.csv", methods=["GET"], endpoint="event_roster_csv")
    @gate.require(Role.LECTURER)
    def event_roster_csv(event_id: str, *, principal: Principal):
        roster = service.get_roster(principal, parse_id(event_id, "event ID"))
        filename = f"attendance_{roster.course_code}_{roster.event_id}.csv".replace(" ", "_")
        return _write_roster_csv(roster=roster, filename=filename)

    @app.route("/api/events/lecturer", methods=["GET"], endpoint="lecturer_events")
    @gate.require(Role.LECTURER)
    def lecturer_events(*, principal: Principal):
        events = service.list_lecturer_events(principal.user_id)
        return success_response("Events retrieved successfully", events)
