"""
Starting Dev Services for several AWS services at once.

Services configured with the same service name (and served by the same
emulator) are grouped into a single container, so an application using
DynamoDB and S3 gets one LocalStack instance serving both.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .config import ProvisioningConfig
from .errors import IncompatibleGroupConfig
from .provisioner import DEFAULT_STARTUP_TIMEOUT, EndpointDecision, LocalServiceProvisioner
from .runtime import ContainerRuntime, DockerContainerRuntime
from .services import Emulator, ServiceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceGroup:
    """Services resolved through one provisioning call."""

    kinds: Tuple[ServiceKind, ...]
    config: ProvisioningConfig


def _merge(key: Tuple[str, Emulator], members: List[Tuple[ServiceKind, ProvisioningConfig]]):
    service_name = key[0]
    first_kind, first = members[0]

    properties: Dict[str, str] = {}
    property_owner: Dict[str, ServiceKind] = {}
    for kind, config in members:
        if config.shared != first.shared:
            raise IncompatibleGroupConfig(
                f"{first_kind.value} and {kind.value} use service name {service_name!r} "
                f"but disagree on shared mode"
            )
        if config.image != first.image:
            raise IncompatibleGroupConfig(
                f"{first_kind.value} and {kind.value} use service name {service_name!r} "
                f"but request different images ({first.image}, {config.image})"
            )
        for name, value in config.container_properties.items():
            if name in properties and properties[name] != value:
                raise IncompatibleGroupConfig(
                    f"Container property {name} is set to {properties[name]!r} by "
                    f"{property_owner[name].value} and {value!r} by {kind.value}"
                )
            properties[name] = value
            property_owner[name] = kind

    kinds = tuple(kind for kind, _ in members)
    merged = ProvisioningConfig(
        enabled=True,
        shared=first.shared,
        service_name=service_name,
        container_properties=properties,
        services=kinds,
        image_name=first.image_name,
    )
    return ServiceGroup(kinds=kinds, config=merged)


def group_configs(configs: Mapping[ServiceKind, ProvisioningConfig]) -> List[ServiceGroup]:
    """
    Group per-service configs into provisioning units.

    Services with an endpoint override or with dev services disabled are
    resolved on their own. The others are merged by service name and emulator.
    """
    groups: List[ServiceGroup] = []
    pending: Dict[Tuple[str, Emulator], List[Tuple[ServiceKind, ProvisioningConfig]]] = {}

    for kind, config in configs.items():
        if config.endpoint_override is not None or not config.effective_enabled:
            groups.append(ServiceGroup(kinds=(kind,), config=config))
            continue
        key = (config.service_name, kind.emulator)
        pending.setdefault(key, []).append((kind, config))

    for key, members in pending.items():
        groups.append(_merge(key, members))
    return groups


def start_dev_services(
    configs: Mapping[ServiceKind, ProvisioningConfig],
    provisioner: LocalServiceProvisioner,
) -> Dict[ServiceKind, EndpointDecision]:
    """Resolve an endpoint for every configured service kind."""
    decisions: Dict[ServiceKind, EndpointDecision] = {}
    for group in group_configs(configs):
        decision = provisioner.resolve_endpoint(group.config)
        if len(group.kinds) > 1:
            logger.info(
                f"Services {', '.join(k.value for k in group.kinds)} share "
                f"{decision.endpoint or 'the AWS endpoints'}"
            )
        for kind in group.kinds:
            decisions[kind] = decision
    return decisions


@contextmanager
def dev_services(
    configs: Mapping[ServiceKind, ProvisioningConfig],
    runtime: Optional[ContainerRuntime] = None,
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
) -> Iterator[Dict[ServiceKind, EndpointDecision]]:
    """
    Start Dev Services for a session.

    Containers started here are stopped when the block exits. Docker is used
    unless another runtime is given.

    Usage:
        settings = load_settings()
        with dev_services(settings.devservices.services) as decisions:
            client = create_client(ServiceKind.DYNAMODB, decisions[ServiceKind.DYNAMODB], settings.aws)
    """
    runtime = runtime or DockerContainerRuntime()
    with LocalServiceProvisioner(runtime, startup_timeout=startup_timeout) as provisioner:
        yield start_dev_services(configs, provisioner)
