import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./vaidhya.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Access tokens are issued by the auth service; this API only verifies them
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Razorpay Configuration
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
RAZORPAY_TIMEOUT_SECONDS = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "15"))

# Fast2SMS Configuration (appointment notifications)
FAST2SMS_API_KEY = os.getenv("FAST2SMS_API_KEY")
FAST2SMS_API_URL = os.getenv("FAST2SMS_API_URL", "https://www.fast2sms.com/dev/bulkV2")
NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"

# Video/audio call sessions
CALL_APP_ID = os.getenv("CALL_APP_ID", "")
CALL_TOKEN_SECRET = os.getenv("CALL_TOKEN_SECRET") or SECRET_KEY
CALL_TOKEN_TTL_SECONDS = int(os.getenv("CALL_TOKEN_TTL_SECONDS", "3600"))

# Slot lookups run on the clinic's wall clock (weekday + HH:MM)
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Asia/Kolkata")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")

# Provider subscription (INR 2,000 for one year)
SUBSCRIPTION_AMOUNT = float(os.getenv("SUBSCRIPTION_AMOUNT", "2000"))
SUBSCRIPTION_DURATION_DAYS = int(os.getenv("SUBSCRIPTION_DURATION_DAYS", "365"))

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
