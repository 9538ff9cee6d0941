"""Storefront application settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .common.config import AppConfig, load_env


DEFAULT_SETTINGS = {
    "SUPPORT_EMAIL": "support@autopartshub.com",
    "CURRENCY": "USD",
    "LOW_STOCK_THRESHOLD": 5,
    "NOTIFICATIONS": {
        "new-order": True,
        "low-stock": True,
        "customer-support": False,
    },
}


@dataclass
class ShopConfig:
    """Wraps the storefront's runtime settings."""

    app: AppConfig
    data_root: Path
    stripe_secret_key: Optional[str] = None
    stripe_public_key: Optional[str] = None
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None
    max_line_quantity: int = 10
    testing: bool = False

    @property
    def secret_key(self) -> str:
        return self.app.secret_key

    @property
    def data_dir(self) -> Path:
        return self.data_root

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def checkout_success_url(self) -> str:
        return f"{self.app.store_base_url}/api/checkout/success"

    @property
    def checkout_cancel_url(self) -> str:
        return f"{self.app.store_base_url}/api/checkout/cancel"

    @classmethod
    def load(cls, data_root: Optional[Path] = None) -> "ShopConfig":
        """Build settings from .env and environment variables, and make sure
        the data directory and settings file exist."""

        # existing environment wins over .env
        load_dotenv(".env", override=False)

        data_root = Path(data_root or os.environ.get("PARTSHOP_DATA_DIR", "data")).resolve()
        data_root.mkdir(parents=True, exist_ok=True)
        settings_file = data_root / "settings.json"
        if not settings_file.exists():
            settings_file.write_text(
                json.dumps(DEFAULT_SETTINGS, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )

        config = cls(
            app=load_env(settings_file),
            data_root=data_root,
            stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY") or None,
            stripe_public_key=os.environ.get("STRIPE_PUBLIC_KEY") or None,
            bootstrap_admin_email=os.environ.get("PARTSHOP_ADMIN_EMAIL") or None,
            bootstrap_admin_password=os.environ.get("PARTSHOP_ADMIN_PASSWORD") or None,
            max_line_quantity=int(os.environ.get("PARTSHOP_MAX_LINE_QUANTITY", "10")),
        )
        return config
