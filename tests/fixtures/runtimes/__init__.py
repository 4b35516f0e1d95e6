"""
Container runtimes for testing the provisioner without Docker.

``InMemoryContainerRuntime`` records every call and fakes containers;
``MotoServerRuntime`` backs each "container" with a real moto server so
clients can talk to an actual HTTP endpoint.
"""

from .in_memory import FakeContainer, InMemoryContainerRuntime
from .moto_server import MotoServerRuntime, free_port

__all__ = [
    'FakeContainer',
    'InMemoryContainerRuntime',
    'MotoServerRuntime',
    'free_port',
]
