"""Endpoint and credential configuration for the speech service client."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from volc_speech.errors import ConfigurationError

DEFAULT_BASE_URL = "https://openspeech.bytedance.com"


@dataclass(frozen=True)
class ClientConfig:
    access_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 30.0

    @classmethod
    def from_env(cls, dotenv_path: str | os.PathLike | None = None) -> "ClientConfig":
        """Read VOLCENGINE_* variables, loading a .env file first when present."""
        load_dotenv(dotenv_path)
        token = (os.environ.get("VOLCENGINE_ACCESS_TOKEN") or "").strip()
        if not token:
            raise ConfigurationError("VOLCENGINE_ACCESS_TOKEN is not set")
        raw_timeout = os.environ.get("VOLCENGINE_TIMEOUT_S", str(cls.timeout_s))
        try:
            timeout_s = float(raw_timeout)
        except ValueError as e:
            raise ConfigurationError(
                f"VOLCENGINE_TIMEOUT_S must be a number, got {raw_timeout!r}"
            ) from e
        return cls(
            access_token=token,
            base_url=os.environ.get("VOLCENGINE_BASE_URL", cls.base_url),
            timeout_s=timeout_s,
        )
