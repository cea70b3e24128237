import os


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _get_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


# Cloud Storage
SOURCE_BUCKET = os.getenv("SOURCE_BUCKET", "pdf-to-png")
# empty string means "write the PNG back into the source bucket"
DESTINATION_BUCKET = os.getenv("DESTINATION_BUCKET", "pdf-to-png-output")

# Credentials: inline service-account JSON, else application default credentials
SERVICE_ACCOUNT_JSON = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON", "")

# Order tracking (Realtime Database)
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "")
DASHBOARD_ID = os.getenv("DASHBOARD_ID", "")
APPROVED_STATUS = os.getenv("APPROVED_STATUS", "")
NOTIFY_ONCE = _get_bool("NOTIFY_ONCE")

# Completion webhook
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
WEBHOOK_WORKFLOW = os.getenv("WEBHOOK_WORKFLOW", "")
WEBHOOK_TIMEOUT_SEC = float(os.getenv("WEBHOOK_TIMEOUT_SEC", "30"))

# Rasterization
GHOSTSCRIPT_BIN = os.getenv("GHOSTSCRIPT_BIN", "gs")
GHOSTSCRIPT_TIMEOUT_SEC = _get_float("GHOSTSCRIPT_TIMEOUT_SEC")
WORK_DIR = os.getenv("WORK_DIR") or None

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
