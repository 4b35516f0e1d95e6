"""Configuration settings for AWS Dev Services.

Settings are read once from environment variables (and an optional ``.env``
file) into immutable values that are passed explicitly to the provisioner and
the client factory.

Per-service options use the ``AWS_DEVSERVICES_<SERVICE>_`` prefix, e.g.
``AWS_DEVSERVICES_DYNAMODB_SHARED=true``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values

from aws_devservices.clients import AWSClientSettings
from aws_devservices.config import DEFAULT_SERVICE_NAME, ProvisioningConfig, parse_bool, parse_properties
from aws_devservices.log import configure_logging
from aws_devservices.provisioner import DEFAULT_STARTUP_TIMEOUT
from aws_devservices.services import ServiceKind

DEFAULT_ENV_FILE = Path(__file__).parent.parent / ".env"


def _devservices_config(kind: ServiceKind, env: Mapping[str, str]) -> ProvisioningConfig:
    """Dev Services configuration for one service kind."""
    prefix = kind.env_prefix
    enabled = env.get(prefix + "ENABLED", "")
    return ProvisioningConfig(
        enabled=parse_bool(enabled) if enabled.strip() else None,
        shared=parse_bool(env.get(prefix + "SHARED", "false")),
        service_name=env.get(prefix + "SERVICE_NAME") or DEFAULT_SERVICE_NAME,
        endpoint_override=env.get(prefix + "ENDPOINT_OVERRIDE") or None,
        container_properties=parse_properties(env.get(prefix + "CONTAINER_PROPERTIES")),
        services=(kind,),
        image_name=env.get(prefix + "IMAGE_NAME") or None,
    )


def _aws_config(env: Mapping[str, str]) -> AWSClientSettings:
    credentials_type = env.get("AWS_CREDENTIALS_TYPE", "").lower()
    if not credentials_type:
        # Profiles and keys are picked up by the default chain unless asked otherwise
        credentials_type = "default"
    return AWSClientSettings(
        region=env.get("AWS_DEFAULT_REGION", env.get("AWS_REGION", "us-east-1")),
        credentials_type=credentials_type,
        access_key_id=env.get("AWS_ACCESS_KEY_ID") or None,
        secret_access_key=env.get("AWS_SECRET_ACCESS_KEY") or None,
        session_token=env.get("AWS_SESSION_TOKEN") or None,
        profile_name=env.get("AWS_PROFILE") or None,
    )


@dataclass(frozen=True)
class DevServicesSettings:
    """Dev Services configuration for every requested AWS service."""

    services: Dict[ServiceKind, ProvisioningConfig] = field(default_factory=dict)
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "DevServicesSettings":
        names = env.get("AWS_DEVSERVICES_SERVICES", ServiceKind.DYNAMODB.value)
        kinds = []
        for name in names.split(","):
            if name.strip():
                kind = ServiceKind.parse(name)
                if kind not in kinds:
                    kinds.append(kind)

        timeout = float(env.get("AWS_DEVSERVICES_STARTUP_TIMEOUT", DEFAULT_STARTUP_TIMEOUT))
        if timeout <= 0:
            raise ValueError("AWS_DEVSERVICES_STARTUP_TIMEOUT must be positive")

        return cls(
            services={kind: _devservices_config(kind, env) for kind in kinds},
            startup_timeout=timeout,
        )


@dataclass(frozen=True)
class Settings:
    """Main settings value aggregating all configuration."""

    environment: str = "development"
    log_level: str = "INFO"
    aws: AWSClientSettings = field(default_factory=AWSClientSettings)
    devservices: DevServicesSettings = field(default_factory=DevServicesSettings)

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "Settings":
        """Build settings from an environment mapping."""
        return cls(
            environment=env.get("ENVIRONMENT", "development"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            aws=_aws_config(env),
            devservices=DevServicesSettings.from_env(env),
        )

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def validate(self) -> Tuple[str, ...]:
        """Validate configuration and return the list of problems found."""
        errors = []

        if self.is_production:
            for kind, config in self.devservices.services.items():
                if config.effective_enabled and config.endpoint_override is None:
                    errors.append(
                        f"Dev services must not start containers in production "
                        f"(set {kind.env_prefix}ENABLED=false)"
                    )

        for kind, config in self.devservices.services.items():
            if config.shared and not kind.supports_sharing:
                errors.append(f"{kind.env_prefix}SHARED is not supported for {kind.value}")

        return tuple(errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary (useful for debugging)."""
        return {
            "environment": self.environment,
            "log_level": self.log_level,
            "aws": {
                "region": self.aws.region,
                "credentials_type": self.aws.credentials_type,
                "profile_name": self.aws.profile_name,
                # Don't include secrets in dict
            },
            "devservices": {
                "startup_timeout": self.devservices.startup_timeout,
                "services": {
                    kind.value: {
                        "enabled": config.effective_enabled,
                        "shared": config.shared,
                        "service_name": config.service_name,
                        "endpoint_override": config.endpoint_override,
                        "container_properties": dict(config.container_properties),
                        "image": config.image,
                    }
                    for kind, config in self.devservices.services.items()
                },
            },
        }


def load_settings(
    env: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = DEFAULT_ENV_FILE
) -> Settings:
    """
    Load settings once.

    Values from ``env_file`` are used as defaults; the process environment (or
    ``env`` when given) takes precedence.
    """
    values: Dict[str, str] = {}
    if env_file is not None and Path(env_file).exists():
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ if env is None else env)
    settings = Settings.from_env(values)
    configure_logging(settings.log_level)
    return settings
