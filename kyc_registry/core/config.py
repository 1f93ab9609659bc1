from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")
_PEM_PUBLIC_HEADER = "-----BEGIN PUBLIC KEY-----"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    authority_role: str = "admin"
    authority_subjects: tuple[str, ...] = ()
    metadata_base_uri: str = ""
    jwt_public_key: str | None = None  # PEM; None means an ephemeral dev/test key
    jwt_issuer: str = "kyc-registry"
    jwt_audience: str = "kyc-registry"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def uses_allowlist_authority(self) -> bool:
        return bool(self.authority_subjects)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false")
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    log_json = _parse_bool("LOG_JSON", log_json_raw)
    database_url = _getenv("DATABASE_URL", "") or None

    authority_role = _getenv("AUTHORITY_ROLE", "admin")
    if not authority_role:
        raise ValueError("AUTHORITY_ROLE must be non-empty")

    # PEM blocks often arrive with escaped newlines from env files.
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None
    if jwt_public_key and not jwt_public_key.startswith(_PEM_PUBLIC_HEADER):
        raise ValueError("JWT_PUBLIC_KEY must be a PEM-encoded public key")
    if jwt_public_key is None and app_env_raw == "prod":
        raise ValueError("JWT_PUBLIC_KEY is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        authority_role=authority_role,
        authority_subjects=_parse_csv(_getenv("AUTHORITY_SUBJECTS", "")),
        metadata_base_uri=_getenv("METADATA_BASE_URI", ""),
        jwt_public_key=jwt_public_key,
        jwt_issuer=_getenv("JWT_ISSUER", "kyc-registry"),
        jwt_audience=_getenv("JWT_AUDIENCE", "kyc-registry"),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
