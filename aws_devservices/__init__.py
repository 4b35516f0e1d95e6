"""
Dev Services for AWS clients.

Starts, discovers and shares local AWS emulator containers (LocalStack, or
Moto for Cognito) and tells AWS clients which endpoint to use.
"""

from .config import ProvisioningConfig
from .devservices import dev_services, start_dev_services
from .errors import (
    AmbiguousSharedContainer,
    ContainerRuntimeUnavailable,
    IncompatibleGroupConfig,
    ProvisionError,
    ProvisioningCancelled,
    SharingUnsupported,
    StartupTimeout,
)
from .log import configure_logging
from .provisioner import (
    DISCOVERY_LABEL,
    EndpointDecision,
    LocalServiceProvisioner,
    provisioned_endpoint,
)
from .runtime import ContainerHandle, ContainerRuntime, ContainerSpec, DockerContainerRuntime
from .services import Emulator, ServiceKind

__all__ = [
    'ProvisioningConfig',
    'EndpointDecision',
    'LocalServiceProvisioner',
    'provisioned_endpoint',
    'DISCOVERY_LABEL',
    'dev_services',
    'start_dev_services',
    'configure_logging',

    'ContainerHandle',
    'ContainerRuntime',
    'ContainerSpec',
    'DockerContainerRuntime',

    'Emulator',
    'ServiceKind',

    'ProvisionError',
    'AmbiguousSharedContainer',
    'SharingUnsupported',
    'StartupTimeout',
    'ProvisioningCancelled',
    'ContainerRuntimeUnavailable',
    'IncompatibleGroupConfig',
]
