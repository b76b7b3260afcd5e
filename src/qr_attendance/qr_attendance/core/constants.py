"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

LATE_THRESHOLD_MINUTES = 5
AT_RISK_THRESHOLD = 75.0
CRITICAL_THRESHOLD = 50.0
ENGAGEMENT_ATTENDANCE_WEIGHT = 0.7
ENGAGEMENT_PUNCTUALITY_WEIGHT = 0.3

PREDICTION_WINDOW_WEEKS = 4
PREDICTION_CONFIDENCE = 65.0
STUDENT_TREND_MONTHS = 3
LECTURER_TREND_WEEKS = 8
DUPLICATE_WINDOW_SECONDS = 60
FREQUENT_LATE_COUNT = 3

STUDENT_TOKEN_MINUTES = 60
LECTURER_TOKEN_MINUTES = 60
ADMIN_TOKEN_DAYS = 7

MIN_PASSWORD_LENGTH = 6
DEFAULT_AUDIT_LIMIT = 100
MAX_AUDIT_LIMIT = 500

QR_BOX_SIZE = 8
QR_BORDER = 4
QR_IMAGE_SIZE = 256

SHUTDOWN_GRACE_SECONDS = 10
DB_PING_TIMEOUT_SECONDS = 3
