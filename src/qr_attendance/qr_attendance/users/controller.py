from __future__ import annotations

from flask import Flask

from ..common.http import json_body
from ..common.responses import success_response
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth = container.auth_service

    @app.route("/api/auth/register-student", methods=["POST"], endpoint="register_student")
    def register_student():
        data = json_body()
        student_id = auth.register_student(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            password=data.get("password"),
            matric_number=data.get("matric_number"),
        )
        return success_response("Student registered successfully", {"id": student_id}, status=201)

    @app.route("/api/auth/register-lecturer", methods=["POST"], endpoint="register_lecturer")
    def register_lecturer():
        data = json_body()
        lecturer_id = auth.register_lecturer(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            password=data.get("password"),
            department=data.get("department"),
            staff_id=data.get("staff_id"),
        )
        return success_response("Lecturer registered successfully", {"id": lecturer_id}, status=201)

    @app.route("/api/auth/login-student", methods=["POST"], endpoint="login_student")
    def login_student():
        data = json_body()
        result = auth.login_student(email=data.get("email"), password=data.get("password"))
        return success_response("Login successful", result)

    @app.route("/api/auth/login-lecturer", methods=["POST"], endpoint="login_lecturer")
    def login_lecturer():
        data = json_body()
        result = auth.login_lecturer(email=data.get("email"), password=data.get("password"))
        return success_response("Login successful", result)

    @app.route("/api/auth/login-admin", methods=["POST"], endpoint="login_admin")
    def login_admin():
        data = json_body()
        result = auth.login_admin(email=data.get("email"), password=data.get("password"))
        return success_response("Login successful", result)
