from __future__ import annotations

from flask import Flask, request

from ..auth.gate import ensure_owner_or_staff
from ..auth.tokens import Principal
from ..common.responses import success_response
from ..common.validators import parse_id
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError


def _query_param(*names: str):
    for name in names:
        value = request.args.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def register(app: Flask, container: Container) -> None:
    gate = container.gate
    service = container.analytics_service

    # ---- student ----

    @app.route("/api/analytics/student/<student_id>", methods=["GET"], endpoint="student_metrics")
    @gate.require()
    def student_metrics(student_id: str, *, principal: Principal):
        sid = parse_id(student_id, "student ID")
        ensure_owner_or_staff(principal, sid)
        return success_response("Student metrics retrieved successfully", service.student_metrics(sid))

    @app.route("/api/analytics/student/<student_id>/insights", methods=["GET"], endpoint="student_insights")
    @gate.require()
    def student_insights(student_id: str, *, principal: Principal):
        sid = parse_id(student_id, "student ID")
        ensure_owner_or_staff(principal, sid)
        return success_response("Student insights retrieved successfully", service.student_insights(sid))

    # ---- lecturer ----

    @app.route("/api/analytics/lecturer/courses", methods=["GET"], endpoint="lecturer_course_metrics")
    @gate.require(Role.LECTURER)
    def lecturer_course_metrics(*, principal: Principal):
        data = service.lecturer_course_metrics(principal.user_id)
        return success_response("Lecturer course metrics retrieved successfully", data)

    @app.route("/api/analytics/lecturer/course/<course_code>", methods=["GET"], endpoint="lecturer_course_performance")
    @gate.require(Role.LECTURER)
    def lecturer_course_performance(course_code: str, *, principal: Principal):
        data = service.course_performance(principal.user_id, course_code)
        return success_response("Course performance retrieved successfully", data)

    @app.route("/api/analytics/lecturer/summary", methods=["GET"], endpoint="lecturer_summary")
    @gate.require(Role.LECTURER)
    def lecturer_summary(*, principal: Principal):
        return success_response("Lecturer summary retrieved successfully", service.lecturer_summary(principal.user_id))

    @app.route("/api/analytics/lecturer/insights", methods=["GET"], endpoint="lecturer_insights")
    @gate.require(Role.LECTURER)
    def lecturer_insights(*, principal: Principal):
        return success_response("Lecturer insights retrieved successfully", service.lecturer_insights(principal.user_id))

    # ---- admin ----

    @app.route("/api/analytics/admin/overview", methods=["GET"], endpoint="admin_overview")
    @gate.require(Role.ADMIN, Role.LECTURER)
    def admin_overview(*, principal: Principal):
        return success_response("Admin overview retrieved successfully", service.admin_overview())

    @app.route("/api/analytics/admin/department/<department>", methods=["GET"], endpoint="department_deep_dive")
    @gate.require(Role.ADMIN, Role.LECTURER)
    def department_deep_dive(department: str, *, principal: Principal):
        data = service.department_deep_dive(department)
        return success_response("Department metrics retrieved successfully", data)

    @app.route("/api/analytics/admin/departments", methods=["GET"], endpoint="department_stats")
    @gate.require(Role.ADMIN, Role.LECTURER)
    def department_stats(*, principal: Principal):
        return success_response("Department statistics retrieved successfully", service.department_stats())

    @app.route("/api/analytics/admin/realtime", methods=["GET"], endpoint="realtime_dashboard")
    @gate.require(Role.ADMIN, Role.LECTURER)
    def realtime_dashboard(*, principal: Principal):
        return success_response("Real-time dashboard retrieved successfully", service.realtime())

    # ---- cross-cutting ----

    @app.route("/api/analytics/temporal", methods=["GET"], endpoint="temporal_analytics")
    @gate.require()
    def temporal_analytics(*, principal: Principal):
        start = _query_param("start", "start_date")
        end = _query_param("end", "end_date")
        if start is None or end is None:
            raise ValidationError("start and end query parameters are required")
        data = service.temporal(start=start, end=end, granularity=_query_param("granularity"))
        return success_response("Temporal analytics retrieved successfully", data)

    @app.route("/api/analytics/anomalies", methods=["GET"], endpoint="anomalies")
    @gate.require()
    def anomalies(*, principal: Principal):
        return success_response("Anomaly scan completed", service.anomalies())

    @app.route("/api/analytics/predictions/student/<student_id>", methods=["GET"], endpoint="predict_student")
    @gate.require()
    def predict_student(student_id: str, *, principal: Principal):
        sid = parse_id(student_id, "student ID")
        ensure_owner_or_staff(principal, sid)
        return success_response("Prediction generated successfully", service.predict_student(sid))

    @app.route("/api/analytics/predictions/course/<course_code>", methods=["GET"], endpoint="predict_course")
    @gate.require()
    def predict_course(course_code: str, *, principal: Principal):
        return success_response("Prediction generated successfully", service.predict_course(course_code))

    @app.route("/api/analytics/benchmark", methods=["GET"], endpoint="benchmark")
    @gate.require()
    def benchmark(*, principal: Principal):
        entity_type = _query_param("entity_type")
        entity_id = _query_param("entity_id")
        if entity_type is None or entity_id is None:
            raise ValidationError("entity_type and entity_id query parameters are required")
        if entity_type == "student":
            ensure_owner_or_staff(principal, parse_id(entity_id, "entity_id"))
        data = service.benchmark(entity_type=entity_type, entity_id=entity_id)
        return success_response("Benchmark comparison retrieved successfully", data)

    @app.route("/api/analytics/charts/<chart_type>", methods=["GET"], endpoint="chart_data")
    @gate.require()
    def chart_data(chart_type: str, *, principal: Principal):
        entity_type = _query_param("entity_type")
        entity_id = _query_param("entity_id")
        if entity_type is None or entity_id is None:
            raise ValidationError("entity_type and entity_id query parameters are required")
        if entity_type == "student":
            ensure_owner_or_staff(principal, parse_id(entity_id, "entity_id"))
        data = service.chart(chart_type, entity_type=entity_type, entity_id=entity_id)
        return success_response("Chart data retrieved successfully", data)
