"""boto3 client construction from provisioning decisions."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3

from .provisioner import EndpointDecision
from .services import ServiceKind

logger = logging.getLogger(__name__)

# Credentials accepted by LocalStack and Moto
EMULATOR_ACCESS_KEY_ID = "test"
EMULATOR_SECRET_ACCESS_KEY = "test"

CREDENTIALS_TYPES = ("default", "static", "profile")


@dataclass(frozen=True)
class AWSClientSettings:
    """Region and credentials provider used for AWS clients."""

    region: str = "us-east-1"
    credentials_type: str = "default"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    profile_name: Optional[str] = None

    def __post_init__(self):
        if self.credentials_type not in CREDENTIALS_TYPES:
            raise ValueError(
                f"Unknown credentials type {self.credentials_type!r}, "
                f"expected one of {', '.join(CREDENTIALS_TYPES)}"
            )
        if self.credentials_type == "static" and not (
            self.access_key_id and self.secret_access_key
        ):
            raise ValueError("static credentials require an access key id and a secret access key")
        if self.credentials_type == "profile" and not self.profile_name:
            raise ValueError("profile credentials require a profile name")


def client_kwargs(decision: EndpointDecision, aws: AWSClientSettings) -> Dict[str, Any]:
    """
    Keyword arguments for ``boto3.client`` / ``Session.client``.

    Containers provisioned by Dev Services get the emulator's fixed
    credentials. Endpoint overrides and real AWS endpoints keep the configured
    credentials provider.
    """
    kwargs: Dict[str, Any] = {"region_name": aws.region}

    if decision.endpoint:
        kwargs["endpoint_url"] = decision.endpoint

    if decision.is_local:
        kwargs["aws_access_key_id"] = EMULATOR_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = EMULATOR_SECRET_ACCESS_KEY
    elif aws.credentials_type == "static":
        kwargs["aws_access_key_id"] = aws.access_key_id
        kwargs["aws_secret_access_key"] = aws.secret_access_key
        if aws.session_token:
            kwargs["aws_session_token"] = aws.session_token

    return kwargs


def create_session(decision: EndpointDecision, aws: AWSClientSettings) -> boto3.session.Session:
    """Session resolving credentials the way ``aws`` asks for."""
    if aws.credentials_type == "profile" and not decision.is_local:
        return boto3.session.Session(profile_name=aws.profile_name)
    return boto3.session.Session()


def create_client(kind: ServiceKind, decision: EndpointDecision, aws: AWSClientSettings):
    """Create a boto3 client for ``kind`` honouring the provisioning decision."""
    kwargs = client_kwargs(decision, aws)
    logger.debug(f"Creating {kind.value} client with endpoint {kwargs.get('endpoint_url', 'default')}")
    return create_session(decision, aws).client(kind.value, **kwargs)
