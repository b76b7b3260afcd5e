"""QR Attendance package.

Organized by feature modules (users, attendance, analytics, admin) with a
thin Flask controller layer over service and repository layers.
"""
