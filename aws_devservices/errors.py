"""Exceptions raised while provisioning local AWS emulator containers."""


class ProvisionError(Exception):
    """Base exception for Dev Services provisioning errors."""
    pass


class AmbiguousSharedContainer(ProvisionError):
    """Raised when several running containers carry the same discovery label."""

    def __init__(self, service_name: str, container_ids):
        self.service_name = service_name
        self.container_ids = list(container_ids)
        super().__init__(
            f"Found {len(self.container_ids)} shared containers labelled "
            f"'{service_name}': {', '.join(self.container_ids)}"
        )


class SharingUnsupported(ProvisionError):
    """Raised when shared mode is requested for a service whose emulator cannot be shared."""

    def __init__(self, service_kind):
        self.service_kind = service_kind
        super().__init__(f"Sharing is not supported for the {service_kind.value} dev service")


class StartupTimeout(ProvisionError):
    """Raised when a started container does not become ready in time."""

    def __init__(self, container_id: str, timeout: float):
        self.container_id = container_id
        self.timeout = timeout
        super().__init__(f"Container {container_id} was not ready after {timeout:.1f}s")


class ProvisioningCancelled(ProvisionError):
    """Raised when the readiness wait is interrupted through the cancel event."""
    pass


class ContainerRuntimeUnavailable(ProvisionError):
    """Raised when the container engine cannot be reached."""
    pass


class IncompatibleGroupConfig(ProvisionError):
    """Raised when services grouped under one service name disagree on container settings."""
    pass
