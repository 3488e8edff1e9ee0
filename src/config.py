# src/config.py
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass
class Config:
    """애플리케이션 설정. 기본값 -> YAML 파일 -> 환경 변수 순서로 덮어씁니다."""

    database_url: str = f"sqlite:///{PROJECT_ROOT / 'tracker.db'}"
    jwt_secret: str = "dev-secret-change-me"
    jwt_refresh_secret: str = "dev-refresh-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7
    jwt_refresh_expire_minutes: int = 60 * 24 * 30
    log_level: str = "INFO"
    host: str = ""
    port: int = 8000

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Config":
        config = cls()

        env_file = os.environ.get("TRACKER_CONFIG_FILE")
        if config_file is None and env_file:
            config_file = Path(env_file)

        if config_file and config_file.exists():
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
            for key, value in data.items():
                if hasattr(config, key):
                    config._set(key, value)

        for f in fields(cls):
            value = os.environ.get(f"TRACKER_{f.name.upper()}")
            if value is not None:
                config._set(f.name, value)

        return config

    def _set(self, key: str, value) -> None:
        expected_type = type(getattr(self, key))
        setattr(self, key, expected_type(value))


settings = Config.load()
