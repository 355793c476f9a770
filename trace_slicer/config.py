"""
Runtime settings, read from the environment.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

DEFAULT_PROVIDER_URL = "http://localhost:8545"
DEFAULT_RPC_TIMEOUT = 60
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    provider_url: str = DEFAULT_PROVIDER_URL
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    log_level: str = "INFO"
    log_format: str = "console"
    disable_storage: bool = True
    enable_memory: bool = False

    def __post_init__(self):
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unsupported log level: {self.log_level}. Supported levels: {', '.join(LOG_LEVELS)}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Unsupported log format: {self.log_format}. Supported formats: {', '.join(LOG_FORMATS)}")
        if self.rpc_timeout <= 0:
            raise ValueError(f"RPC timeout must be positive, got {self.rpc_timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from WEB3_PROVIDER_URL, RPC_TIMEOUT, LOG_LEVEL, LOG_FORMAT,
        TRACE_DISABLE_STORAGE and TRACE_ENABLE_MEMORY."""
        env = os.environ if environ is None else environ
        return cls(
            provider_url=env.get("WEB3_PROVIDER_URL", DEFAULT_PROVIDER_URL),
            rpc_timeout=int(env.get("RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT)),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_format=env.get("LOG_FORMAT", "console").lower(),
            disable_storage=_env_flag(env.get("TRACE_DISABLE_STORAGE"), True),
            enable_memory=_env_flag(env.get("TRACE_ENABLE_MEMORY"), False),
        )

    def tracer_config(self) -> Dict[str, Any]:
        """Options for debug_traceTransaction's struct logger. The stack is always
        recorded because call matching reads callee addresses from it."""
        return {
            "disableStack": False,
            "disableStorage": self.disable_storage,
            "enableMemory": self.enable_memory,
        }
