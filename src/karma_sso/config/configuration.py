# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from dataclasses import dataclass, fields
from typing import Any, Optional

from .loader import get_bool_env, get_int_env, get_optional_str_env, get_str_env

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_MS = 60 * 60 * 1000
ENV_PREFIX = "KARMA_SSO_"


@dataclass(frozen=True, kw_only=True)
class SDKConfig:
    """Immutable settings for one client context."""

    client_id: Optional[str] = None
    subdomain: Optional[str] = None
    auth_domain: Optional[str] = None
    project_id: Optional[str] = None
    debug: bool = False
    session_timeout: int = DEFAULT_SESSION_TIMEOUT_MS  # milliseconds
    storage_prefix: str = "karma_sso"
    storage_path: str = "karma_sso.db"
    origin: Optional[str] = None
    request_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.session_timeout <= 0:
            raise ValueError("session_timeout must be a positive number of milliseconds")
        if not self.storage_prefix:
            raise ValueError("storage_prefix must not be empty")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @property
    def storage_origin(self) -> str:
        """Scope under which durable state is kept."""
        if self.origin:
            return self.origin
        if self.subdomain and self.auth_domain:
            return f"https://{self.subdomain}.{self.auth_domain}"
        return "default"

    @property
    def auth_base_url(self) -> Optional[str]:
        if not self.auth_domain:
            return None
        if self.auth_domain.startswith(("http://", "https://")):
            return self.auth_domain.rstrip("/")
        return f"https://{self.auth_domain}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "SDKConfig":
        """Build a config from ``KARMA_SSO_*`` environment variables."""
        values: dict[str, Any] = {
            "client_id": get_optional_str_env(f"{ENV_PREFIX}CLIENT_ID"),
            "subdomain": get_optional_str_env(f"{ENV_PREFIX}SUBDOMAIN"),
            "auth_domain": get_optional_str_env(f"{ENV_PREFIX}AUTH_DOMAIN"),
            "project_id": get_optional_str_env(f"{ENV_PREFIX}PROJECT_ID"),
            "debug": get_bool_env(f"{ENV_PREFIX}DEBUG", False),
            "session_timeout": get_int_env(f"{ENV_PREFIX}SESSION_TIMEOUT", DEFAULT_SESSION_TIMEOUT_MS),
            "storage_prefix": get_str_env(f"{ENV_PREFIX}STORAGE_PREFIX", "karma_sso"),
            "storage_path": get_str_env(f"{ENV_PREFIX}STORAGE_PATH", "karma_sso.db"),
            "origin": get_optional_str_env(f"{ENV_PREFIX}ORIGIN"),
            "request_timeout": float(get_int_env(f"{ENV_PREFIX}REQUEST_TIMEOUT", 10)),
        }
        known = {f.name for f in fields(cls)}
        values.update({k: v for k, v in overrides.items() if k in known and v is not None})
        config = cls(**values)
        logger.debug("Loaded SDK config for client %s (origin %s)", config.client_id, config.storage_origin)
        return config
