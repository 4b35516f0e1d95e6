"""Provisioning configuration for a local AWS emulator container."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .services import Emulator, ServiceKind

DEFAULT_SERVICE_NAME = "localstack"


def parse_bool(value: Any) -> bool:
    """Parse a configuration flag; accepts booleans and the strings true/false."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_properties(value: Any) -> Dict[str, str]:
    """
    Parse container properties.

    Accepts a mapping, or a string of comma separated KEY=VALUE pairs such as
    ``SERVICES=dynamodb,DEBUG=1``.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}

    properties = {}
    for item in str(value).split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, val = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid container property {item!r}, expected KEY=VALUE")
        properties[key.strip()] = val.strip()
    return properties


@dataclass(frozen=True)
class ProvisioningConfig:
    """
    Dev Services configuration for one emulator container.

    Attributes:
        enabled: Whether a local emulator should be used. When unset it
            defaults to true unless an endpoint override is configured.
        shared: Look up a running container labelled with ``service_name``
            before starting a new one, and label started containers so that
            other processes can reuse them.
        service_name: Value of the discovery label.
        endpoint_override: Explicit endpoint; bypasses provisioning entirely.
        container_properties: Forwarded verbatim to the container environment.
        services: AWS services this container has to serve.
        image_name: Container image; defaults to the emulator image.
    """

    enabled: Optional[bool] = None
    shared: bool = False
    service_name: str = DEFAULT_SERVICE_NAME
    endpoint_override: Optional[str] = None
    container_properties: Mapping[str, str] = field(default_factory=dict)
    services: Tuple[ServiceKind, ...] = (ServiceKind.DYNAMODB,)
    image_name: Optional[str] = None

    def __post_init__(self):
        if not self.service_name or not self.service_name.strip():
            raise ValueError("service_name must not be empty")
        if not self.services:
            raise ValueError("at least one service is required")

        services = tuple(self.services)
        emulators = {kind.emulator for kind in services}
        if len(emulators) > 1:
            raise ValueError(
                "services served by different emulators cannot share a container: "
                + ", ".join(kind.value for kind in services)
            )

        object.__setattr__(self, "services", services)
        object.__setattr__(
            self, "container_properties", MappingProxyType(dict(self.container_properties))
        )

    @property
    def effective_enabled(self) -> bool:
        if self.enabled is not None:
            return self.enabled
        return self.endpoint_override is None

    @property
    def emulator(self) -> Emulator:
        return self.services[0].emulator

    @property
    def image(self) -> str:
        return self.image_name or self.emulator.image

    @property
    def unshareable_service(self) -> Optional[ServiceKind]:
        """First configured service that forbids shared mode, if any."""
        for kind in self.services:
            if not kind.supports_sharing:
                return kind
        return None

    @classmethod
    def from_mapping(
        cls, options: Mapping[str, Any], services: Tuple[ServiceKind, ...] = (ServiceKind.DYNAMODB,)
    ) -> "ProvisioningConfig":
        """
        Build a config from option names as they appear in configuration files.

        Recognised keys are ``enabled``, ``shared``, ``service-name``,
        ``endpoint-override``, ``container-properties`` and ``image-name``.
        Unknown keys are rejected.
        """
        known = {
            "enabled",
            "shared",
            "service-name",
            "endpoint-override",
            "container-properties",
            "image-name",
        }
        unknown = set(options) - known
        if unknown:
            raise ValueError(f"Unknown dev services options: {', '.join(sorted(unknown))}")

        enabled = options.get("enabled")
        return cls(
            enabled=None if enabled in (None, "") else parse_bool(enabled),
            shared=parse_bool(options.get("shared", False)),
            service_name=options.get("service-name") or DEFAULT_SERVICE_NAME,
            endpoint_override=options.get("endpoint-override") or None,
            container_properties=parse_properties(options.get("container-properties")),
            services=services,
            image_name=options.get("image-name") or None,
        )
