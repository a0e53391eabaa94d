"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final

logger = logging.getLogger(__name__)

ENV_PROD: Final = "PROD"
ENV_PPE: Final = "PPE"
KNOWN_ENVIRONMENTS: Final[frozenset[str]] = frozenset({ENV_PROD, ENV_PPE})

# Build API hosts that accept the user build token
BUILD_API_ENDPOINTS: Final[dict[str, str]] = {
    ENV_PROD: "https://op-build-prod.azurewebsites.net",
    ENV_PPE: "https://op-build-sandbox2.azurewebsites.net",
}

DEFAULT_TEMPLATE: Final = "https://github.com/Microsoft/templates.docs.msft.pr"
DEFAULT_BINARY: Final = "docfx"

# Ambient token used to build a basic-auth header for github.com
GITHUB_TOKEN_ENV: Final = "DOCS_BUILD_GITHUB_TOKEN"
GITHUB_HOST: Final = "https://github.com"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_float(env: Mapping[str, str], name: str) -> float | None:
    value = env.get(name)
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}")
        return None
    return parsed if parsed > 0 else None


@dataclass
class Settings:
    """Build orchestrator settings.

    Attributes:
        binary: Path or name of the build tool executable
        working_directory: Directory the tool runs in (its install dir)
        environment: Deployment environment tag (PROD or PPE)
        debug_mode: Pass --verbose to the tool
        telemetry_opt_in: Forward the telemetry key to the tool
        telemetry_keys: Instrumentation key per environment
        template: Template argument passed to the tool
        phase_timeout: Seconds before a phase is force-killed (None = never)
    """

    binary: str = DEFAULT_BINARY
    working_directory: str | None = None
    environment: str = ENV_PROD
    debug_mode: bool = False
    telemetry_opt_in: bool = False
    telemetry_keys: dict[str, str] = field(default_factory=dict)
    template: str = DEFAULT_TEMPLATE
    phase_timeout: float | None = None

    def __post_init__(self) -> None:
        self.environment = self.environment.upper()
        if self.environment not in KNOWN_ENVIRONMENTS:
            raise ValueError(
                f"Unknown environment {self.environment!r}, "
                f"expected one of {sorted(KNOWN_ENVIRONMENTS)}"
            )

    @property
    def build_api_endpoint(self) -> str:
        return BUILD_API_ENDPOINTS[self.environment]

    @property
    def telemetry_key(self) -> str | None:
        return self.telemetry_keys.get(self.environment) or None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Load settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)
        """
        env = os.environ if env is None else env
        telemetry_keys = {
            name: env[f"DOCS_BUILD_AI_KEY_{name}"]
            for name in KNOWN_ENVIRONMENTS
            if env.get(f"DOCS_BUILD_AI_KEY_{name}")
        }
        return cls(
            binary=env.get("DOCS_BUILD_BINARY") or DEFAULT_BINARY,
            working_directory=env.get("DOCS_BUILD_WORKDIR") or None,
            environment=env.get("DOCS_ENVIRONMENT") or ENV_PROD,
            debug_mode=_env_flag(env, "DOCS_BUILD_DEBUG"),
            telemetry_opt_in=_env_flag(env, "DOCS_BUILD_TELEMETRY"),
            telemetry_keys=telemetry_keys,
            template=env.get("DOCS_BUILD_TEMPLATE") or DEFAULT_TEMPLATE,
            phase_timeout=_env_float(env, "DOCS_BUILD_PHASE_TIMEOUT"),
        )
