import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./billing.db")
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    NOTIFICATION_WEBHOOK = data.get("NOTIFICATION_WEBHOOK", None)

    # Payment gateways
    GATEWAY_TIMEOUT_SECONDS = float(data.get("GATEWAY_TIMEOUT_SECONDS", 30))
    GATEWAY_ENDPOINTS = data.get("GATEWAY_ENDPOINTS", {})  # gateway_key -> base URL

    # Auto-billing
    AUTO_BILL_ENABLED = bool(data.get("AUTO_BILL_ENABLED", True))
    AUTO_BILL_MAX_TRIES = int(data.get("AUTO_BILL_MAX_TRIES", 3))
    AUTO_BILL_CONCURRENCY = int(data.get("AUTO_BILL_CONCURRENCY", 5))
    AUTO_BILL_INTERVAL_SECONDS = data.get("AUTO_BILL_INTERVAL_SECONDS", 3600)

    # Ledger reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
    RECONCILIATION_TOLERANCE = data.get("RECONCILIATION_TOLERANCE", "0.01")
