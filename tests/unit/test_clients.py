"""Unit tests for boto3 client construction."""

from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from aws_devservices.clients import (
    AWSClientSettings,
    client_kwargs,
    create_client,
    create_session,
)
from aws_devservices.provisioner import EndpointDecision
from aws_devservices.services import ServiceKind
from tests.factories import ContainerHandleFactory


@pytest.fixture
def local_decision():
    handle = ContainerHandleFactory(exposed_endpoint="http://127.0.0.1:49153")
    return EndpointDecision(endpoint=handle.exposed_endpoint, started=True, container=handle)


class TestAWSClientSettings:
    """Validation of credentials settings."""

    def test_unknown_credentials_type(self):
        with pytest.raises(ValueError, match="credentials type"):
            AWSClientSettings(credentials_type="sso")

    def test_static_requires_keys(self):
        with pytest.raises(ValueError):
            AWSClientSettings(credentials_type="static", access_key_id="AKIA_TEST")


class TestClientKwargs:
    """Keyword arguments derived from a decision."""

    def test_provisioned_container_uses_emulator_credentials(self, local_decision, aws_settings):
        kwargs = client_kwargs(local_decision, aws_settings)

        assert kwargs == {
            "region_name": "us-east-1",
            "endpoint_url": "http://127.0.0.1:49153",
            "aws_access_key_id": "test",
            "aws_secret_access_key": "test",
        }

    def test_borrowed_container_uses_emulator_credentials(self, local_decision, aws_settings):
        borrowed = EndpointDecision(
            endpoint=local_decision.endpoint, started=False, container=local_decision.container
        )

        assert client_kwargs(borrowed, aws_settings)["aws_access_key_id"] == "test"

    def test_override_keeps_configured_credentials(self):
        aws = AWSClientSettings(
            region="eu-west-1",
            credentials_type="static",
            access_key_id="AKIA_TEST",
            secret_access_key="secret",
            session_token="token",
        )
        decision = EndpointDecision(endpoint="http://emulator:4566", started=False)

        assert client_kwargs(decision, aws) == {
            "region_name": "eu-west-1",
            "endpoint_url": "http://emulator:4566",
            "aws_access_key_id": "AKIA_TEST",
            "aws_secret_access_key": "secret",
            "aws_session_token": "token",
        }

    def test_cloud_with_default_chain(self):
        decision = EndpointDecision(endpoint=None, started=False)

        assert client_kwargs(decision, AWSClientSettings()) == {"region_name": "us-east-1"}


class TestSessions:
    """Session selection for credential providers."""

    def test_profile_session_for_cloud_endpoint(self):
        aws = AWSClientSettings(credentials_type="profile", profile_name="dev")

        with patch("aws_devservices.clients.boto3.session.Session") as session_cls:
            create_session(EndpointDecision(endpoint=None, started=False), aws)

        session_cls.assert_called_once_with(profile_name="dev")

    def test_profile_ignored_for_provisioned_container(self, local_decision):
        aws = AWSClientSettings(credentials_type="profile", profile_name="dev")

        with patch("aws_devservices.clients.boto3.session.Session") as session_cls:
            create_session(local_decision, aws)

        session_cls.assert_called_once_with()


class TestCreateClient:
    """Clients created against moto's mocked AWS endpoints."""

    def test_client_points_at_container(self, local_decision, aws_settings):
        client = create_client(ServiceKind.DYNAMODB, local_decision, aws_settings)

        assert client.meta.endpoint_url == "http://127.0.0.1:49153"
        assert client.meta.region_name == "us-east-1"

    def test_cloud_client_uses_aws_endpoint(self, aws_settings):
        client = create_client(
            ServiceKind.DYNAMODB, EndpointDecision(endpoint=None, started=False), aws_settings
        )

        assert client.meta.endpoint_url == "https://dynamodb.us-east-1.amazonaws.com"

    def test_disabled_devservices_reach_mocked_dynamodb(self, aws_credentials, aws_settings):
        """With dev services disabled the client talks to (mocked) AWS."""
        with mock_aws():
            client = create_client(
                ServiceKind.DYNAMODB, EndpointDecision(endpoint=None, started=False), aws_settings
            )
            client.create_table(
                TableName="fruits",
                KeySchema=[{"AttributeName": "name", "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": "name", "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )

            tables = boto3.client("dynamodb", region_name="us-east-1").list_tables()

        assert tables["TableNames"] == ["fruits"]
