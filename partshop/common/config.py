import os
from dataclasses import dataclass, replace
from pathlib import Path
import json
from typing import Dict, List, Optional


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    store_base_url: str
    currency: str
    support_email: str = "support@autopartshub.com"
    low_stock_threshold: int = 5


ALLOWED_HOT_KEYS = {"CURRENCY", "SUPPORT_EMAIL", "LOW_STOCK_THRESHOLD"}
SENSITIVE_KEYS = {"SECRET_KEY", "DATABASE_URL", "STRIPE_SECRET_KEY", "STRIPE_PUBLIC_KEY"}
# read once at startup
RESTART_KEYS = SENSITIVE_KEYS | {"STORE_BASE_URL", "LOG_LEVEL"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "USD").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_threshold(value) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValueError("LOW_STOCK_THRESHOLD must be an integer")
    if v < 0:
        raise ValueError("LOW_STOCK_THRESHOLD must be >= 0")
    return v


def _load_settings_file(path: Optional[Path] = None) -> dict:
    path = path or Path(os.getenv("PARTSHOP_DATA_DIR", "data")) / "settings.json"
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def load_env(settings_path: Optional[Path] = None) -> AppConfig:
    # data/settings.json first, environment as fallback
    s = _load_settings_file(settings_path)
    database_url = os.getenv("DATABASE_URL", "sqlite:///data/partshop.db")
    secret_key = os.getenv("SECRET_KEY", "dev_secret")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    store_base_url = (s.get("STORE_BASE_URL") or os.getenv("STORE_BASE_URL") or "http://127.0.0.1:5000").rstrip("/")
    currency = validate_currency(s.get("CURRENCY") or os.getenv("CURRENCY"))
    support_email = s.get("SUPPORT_EMAIL") or os.getenv("SUPPORT_EMAIL") or "support@autopartshub.com"
    threshold = validate_threshold(s.get("LOW_STOCK_THRESHOLD", os.getenv("LOW_STOCK_THRESHOLD", 5)))
    return AppConfig(
        database_url=database_url,
        secret_key=secret_key,
        log_level=log_level,
        store_base_url=store_base_url,
        currency=currency,
        support_email=support_email,
        low_stock_threshold=threshold,
    )


def refresh_non_sensitive(overrides: Dict[str, str], current: AppConfig) -> AppConfig:
    updates = {k: v for k, v in (overrides or {}).items() if k in ALLOWED_HOT_KEYS}
    return replace(
        current,
        currency=validate_currency(updates.get("CURRENCY", current.currency)),
        support_email=str(updates.get("SUPPORT_EMAIL", current.support_email)).strip(),
        low_stock_threshold=validate_threshold(updates.get("LOW_STOCK_THRESHOLD", current.low_stock_threshold)),
    )


def requires_restart(changed_keys: List[str]) -> bool:
    if not changed_keys:
        return False
    return any(k in RESTART_KEYS for k in changed_keys)
