"""Test configuration and shared fixtures for AWS Dev Services."""

import os
import threading
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from aws_devservices.clients import AWSClientSettings
from aws_devservices.provisioner import LocalServiceProvisioner
from tests.fixtures.runtimes import InMemoryContainerRuntime, MotoServerRuntime


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for testing."""
    with patch.dict(
        os.environ,
        {
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_SECURITY_TOKEN": "testing",
            "AWS_SESSION_TOKEN": "testing",
            "AWS_DEFAULT_REGION": "us-east-1",
        },
    ):
        yield


@pytest.fixture
def aws_settings():
    """Client settings using static test credentials."""
    return AWSClientSettings(
        region="us-east-1",
        credentials_type="static",
        access_key_id="testing",
        secret_access_key="testing",
    )


@pytest.fixture
def runtime():
    """In-memory container runtime."""
    return InMemoryContainerRuntime()


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def provisioner(runtime, cancel_event):
    """Provisioner over the in-memory runtime; owned containers stopped on teardown."""
    with LocalServiceProvisioner(runtime, startup_timeout=1.0, cancel_event=cancel_event) as p:
        yield p


@pytest.fixture
def moto_runtime():
    """Runtime backing containers with in-process moto servers."""
    runtime = MotoServerRuntime()
    yield runtime
    runtime.stop_all()


@pytest.fixture
def mock_dynamodb_client(aws_credentials):
    """Mock DynamoDB client for testing."""
    with mock_aws():
        yield boto3.client("dynamodb", region_name="us-east-1")


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    with patch.dict(
        os.environ,
        {
            "LOG_LEVEL": "DEBUG",
            "ENVIRONMENT": "testing",
        },
    ):
        yield
