"""
Container runtime boundary used by the provisioner.

The provisioner only needs four operations from a container engine: list
containers by label, start a container, wait for it to report ready and stop
it. ``DockerContainerRuntime`` implements them on top of the Docker SDK.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlparse

import docker
import requests
from docker.errors import DockerException, NotFound

from .errors import ContainerRuntimeUnavailable

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class ContainerHandle:
    """Reference to a running emulator container."""

    id: str
    exposed_endpoint: str
    labels: Dict[str, str] = field(default_factory=dict)
    health_path: str = "/"


@dataclass(frozen=True)
class ContainerSpec:
    """Everything needed to start an emulator container."""

    image: str
    port: int
    environment: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)
    health_path: str = "/"


class ContainerRuntime:
    """Base class for container engines driven by the provisioner."""

    def list_containers(
        self, label_key: str, label_value: str, port: Optional[int] = None
    ) -> List[ContainerHandle]:
        """
        Return running containers whose ``label_key`` label equals ``label_value``.

        When ``port`` is given, the endpoint of each handle is the host binding
        of that container port.
        """
        raise NotImplementedError

    def start_container(self, spec: ContainerSpec) -> ContainerHandle:
        raise NotImplementedError

    def wait_until_ready(
        self,
        handle: ContainerHandle,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        """Block until the container answers its health check; False on timeout."""
        return wait_for_http(handle.exposed_endpoint + handle.health_path, timeout, cancel_event)

    def stop_container(self, handle: ContainerHandle) -> None:
        raise NotImplementedError


def wait_for_http(
    url: str,
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
    interval: float = POLL_INTERVAL,
) -> bool:
    """
    Poll ``url`` until it answers with a non-5xx status.

    Waiting between attempts goes through ``cancel_event.wait`` so that a
    caller can interrupt the poll by setting the event. Returns False when the
    deadline passes or the event is set.
    """
    cancel_event = cancel_event or threading.Event()
    deadline = time.monotonic() + timeout

    while not cancel_event.is_set():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        try:
            response = requests.get(url, timeout=min(remaining, 5.0))
            if response.status_code < 500:
                return True
            logger.debug(f"{url} answered {response.status_code}, retrying")
        except requests.exceptions.RequestException as e:
            logger.debug(f"{url} not reachable yet: {e}")

        if cancel_event.wait(min(interval, max(deadline - time.monotonic(), 0))):
            return False
    return False


def docker_host_address(base_url: Optional[str] = None) -> str:
    """Host on which published container ports are reachable."""
    base_url = base_url if base_url is not None else os.getenv("DOCKER_HOST", "")
    parsed = urlparse(base_url)
    if parsed.scheme in ("tcp", "http", "https") and parsed.hostname:
        return parsed.hostname
    return "127.0.0.1"


class DockerContainerRuntime(ContainerRuntime):
    """Container runtime backed by the local Docker daemon."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
                self._client.ping()
            except (DockerException, requests.exceptions.RequestException) as e:
                raise ContainerRuntimeUnavailable(f"Docker is not reachable: {e}") from e
        return self._client

    @property
    def host(self) -> str:
        return docker_host_address(getattr(self.client.api, "base_url", ""))

    def list_containers(
        self, label_key: str, label_value: str, port: Optional[int] = None
    ) -> List[ContainerHandle]:
        try:
            containers = self.client.containers.list(
                filters={"label": f"{label_key}={label_value}", "status": "running"}
            )
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeUnavailable(f"Listing containers failed: {e}") from e

        handles = []
        for container in containers:
            endpoint = self._published_endpoint(container, port)
            if endpoint is None:
                logger.warning(f"Ignoring container {container.short_id}: no published port")
                continue
            handles.append(
                ContainerHandle(
                    id=container.id,
                    exposed_endpoint=endpoint,
                    labels=dict(container.labels),
                )
            )
        return handles

    def start_container(self, spec: ContainerSpec) -> ContainerHandle:
        logger.info(f"Starting container from image {spec.image}")
        try:
            container = self.client.containers.run(
                spec.image,
                detach=True,
                environment=dict(spec.environment),
                labels=dict(spec.labels),
                ports={f"{spec.port}/tcp": None},
            )
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeUnavailable(f"Starting {spec.image} failed: {e}") from e

        # Nobody holds a handle yet, so the container is removed here on failure
        try:
            container.reload()
            endpoint = self._published_endpoint(container, spec.port)
            if endpoint is None:
                raise ContainerRuntimeUnavailable(
                    f"Container {container.short_id} did not publish port {spec.port}"
                )
        except (DockerException, requests.exceptions.RequestException) as e:
            self._discard(container)
            raise ContainerRuntimeUnavailable(f"Inspecting {container.short_id} failed: {e}") from e
        except ContainerRuntimeUnavailable:
            self._discard(container)
            raise

        return ContainerHandle(
            id=container.id,
            exposed_endpoint=endpoint,
            labels=dict(spec.labels),
            health_path=spec.health_path,
        )

    def stop_container(self, handle: ContainerHandle) -> None:
        try:
            container = self.client.containers.get(handle.id)
            container.stop()
            container.remove()
        except NotFound:
            logger.info(f"Container {handle.id[:12]} already gone")
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerRuntimeUnavailable(f"Stopping {handle.id[:12]} failed: {e}") from e
        logger.info(f"Stopped container {handle.id[:12]}")

    def _discard(self, container) -> None:
        try:
            container.stop()
            container.remove()
        except (DockerException, requests.exceptions.RequestException) as e:
            logger.error(f"Failed to remove container {container.short_id}: {e}")

    def _published_endpoint(self, container, port: Optional[int] = None) -> Optional[str]:
        ports = container.attrs.get("NetworkSettings", {}).get("Ports") or {}
        for container_port, bindings in ports.items():
            if port is not None and container_port != f"{port}/tcp":
                continue
            if not bindings:
                continue
            host_port = bindings[0].get("HostPort")
            if host_port:
                return f"http://{self.host}:{host_port}"
        return None
