"""
Local service provisioner.

Decides whether AWS clients should use an explicitly configured endpoint, the
real cloud endpoint, a running shared emulator container or a freshly started
one, and tracks the containers it started so they are stopped exactly once.
"""

import atexit
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .config import ProvisioningConfig
from .errors import (
    AmbiguousSharedContainer,
    ProvisioningCancelled,
    SharingUnsupported,
    StartupTimeout,
)
from .runtime import ContainerHandle, ContainerRuntime, ContainerSpec
from .services import Emulator

logger = logging.getLogger(__name__)

DISCOVERY_LABEL = "aws-dev-service-localstack"
DEFAULT_STARTUP_TIMEOUT = 60.0

_registry_lock = threading.Lock()
_service_locks: Dict[str, threading.Lock] = {}


def _lock_for(service_name: str) -> threading.Lock:
    with _registry_lock:
        return _service_locks.setdefault(service_name, threading.Lock())


@dataclass(frozen=True)
class EndpointDecision:
    """
    Outcome of provisioning.

    ``endpoint`` is None when clients should use the real AWS endpoint.
    ``started`` is True only when this provisioner started (and owns) the
    container behind the endpoint.
    """

    endpoint: Optional[str]
    started: bool
    container: Optional[ContainerHandle] = None

    @property
    def is_local(self) -> bool:
        return self.container is not None


def container_spec(config: ProvisioningConfig, shared: bool) -> ContainerSpec:
    """Container to start for ``config``; the discovery label is attached only when shared."""
    environment = {}
    if config.emulator is Emulator.LOCALSTACK:
        environment["SERVICES"] = ",".join(kind.value for kind in config.services)
    environment.update(config.container_properties)

    labels = {DISCOVERY_LABEL: config.service_name} if shared else {}
    return ContainerSpec(
        image=config.image,
        port=config.emulator.port,
        environment=environment,
        labels=labels,
        health_path=config.emulator.health_path,
    )


class LocalServiceProvisioner:
    """
    Resolves endpoints for Dev Services configurations.

    Containers started by the provisioner are owned by it and stopped by
    ``close()``, which also runs at interpreter exit. Containers discovered
    through the shared label are borrowed and never stopped.

    Usage:
        with LocalServiceProvisioner(DockerContainerRuntime()) as provisioner:
            decision = provisioner.resolve_endpoint(config)
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.runtime = runtime
        self.startup_timeout = startup_timeout
        self.cancel_event = cancel_event or threading.Event()
        self._owned: List[ContainerHandle] = []
        self._owned_lock = threading.Lock()
        self._exit_hook_registered = False

    @property
    def owned_containers(self) -> List[ContainerHandle]:
        with self._owned_lock:
            return list(self._owned)

    def resolve_endpoint(self, config: ProvisioningConfig) -> EndpointDecision:
        """
        Decide which endpoint clients configured by ``config`` should use.

        Raises:
            SharingUnsupported: shared mode requested for a service whose
                emulator cannot be shared
            AmbiguousSharedContainer: several running containers carry the
                discovery label
            StartupTimeout: the started container never became ready
            ProvisioningCancelled: the cancel event was set while waiting
            ContainerRuntimeUnavailable: the container engine is unreachable
        """
        if config.endpoint_override is not None:
            logger.info(
                f"Endpoint override {config.endpoint_override} configured, "
                f"skipping dev services for {config.service_name}"
            )
            return EndpointDecision(endpoint=config.endpoint_override, started=False)

        if not config.effective_enabled:
            logger.info(f"Dev services disabled for {config.service_name}, using AWS endpoints")
            return EndpointDecision(endpoint=None, started=False)

        if config.shared:
            unshareable = config.unshareable_service
            if unshareable is not None:
                logger.error(f"Shared dev services requested for {unshareable.value}")
                raise SharingUnsupported(unshareable)

        with _lock_for(config.service_name):
            if config.shared:
                borrowed = self._discover(config)
                if borrowed is not None:
                    return borrowed
            return self._start(config)

    def _discover(self, config: ProvisioningConfig) -> Optional[EndpointDecision]:
        matches = self.runtime.list_containers(
            DISCOVERY_LABEL, config.service_name, config.emulator.port
        )
        if len(matches) > 1:
            logger.error(
                f"{len(matches)} containers labelled {DISCOVERY_LABEL}={config.service_name}"
            )
            raise AmbiguousSharedContainer(config.service_name, [m.id for m in matches])
        if not matches:
            logger.debug(f"No shared container labelled {config.service_name} found")
            return None

        container = matches[0]
        logger.info(
            f"Reusing shared container {container.id[:12]} for {config.service_name} "
            f"at {container.exposed_endpoint}"
        )
        return EndpointDecision(
            endpoint=container.exposed_endpoint, started=False, container=container
        )

    def _start(self, config: ProvisioningConfig) -> EndpointDecision:
        handle = self.runtime.start_container(container_spec(config, config.shared))
        self._adopt(handle)

        try:
            ready = self.runtime.wait_until_ready(handle, self.startup_timeout, self.cancel_event)
        except BaseException:
            self._release(handle)
            raise

        if not ready:
            self._release(handle)
            if self.cancel_event.is_set():
                raise ProvisioningCancelled(
                    f"Provisioning of {config.service_name} was cancelled"
                )
            logger.error(f"Container {handle.id[:12]} not ready after {self.startup_timeout}s")
            raise StartupTimeout(handle.id, self.startup_timeout)

        logger.info(
            f"Started dev services container {handle.id[:12]} for {config.service_name} "
            f"at {handle.exposed_endpoint}"
        )
        return EndpointDecision(endpoint=handle.exposed_endpoint, started=True, container=handle)

    def _adopt(self, handle: ContainerHandle) -> None:
        with self._owned_lock:
            self._owned.append(handle)
            if not self._exit_hook_registered:
                atexit.register(self.close)
                self._exit_hook_registered = True

    def _release(self, handle: ContainerHandle) -> bool:
        """Stop an owned container; returns False if it was already released."""
        with self._owned_lock:
            if handle not in self._owned:
                return False
            self._owned.remove(handle)
        self.runtime.stop_container(handle)
        return True

    def release(self, decision: EndpointDecision) -> None:
        """Stop the container behind ``decision`` if this provisioner owns it."""
        if decision.started and decision.container is not None:
            self._release(decision.container)

    def close(self, raise_errors: bool = True) -> None:
        """
        Stop every owned container. Safe to call more than once.

        The first stop failure is re-raised unless ``raise_errors`` is False,
        in which case failures are only logged.
        """
        errors = []
        for handle in reversed(self.owned_containers):
            try:
                self._release(handle)
            except Exception as e:
                logger.error(f"Failed to stop container {handle.id[:12]}: {e}")
                errors.append(e)

        with self._owned_lock:
            if self._exit_hook_registered:
                atexit.unregister(self.close)
                self._exit_hook_registered = False

        if errors and raise_errors:
            raise errors[0]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # A failed stop must not mask the exception leaving the block
        self.close(raise_errors=exc_type is None)


@contextmanager
def provisioned_endpoint(
    config: ProvisioningConfig,
    runtime: ContainerRuntime,
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
) -> Iterator[EndpointDecision]:
    """
    Resolve one endpoint for the duration of a ``with`` block.

    An owned container is stopped when the block exits, whichever way it exits.
    """
    with LocalServiceProvisioner(runtime, startup_timeout=startup_timeout) as provisioner:
        yield provisioner.resolve_endpoint(config)
