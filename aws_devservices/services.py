"""
AWS services that can be emulated locally and the emulators serving them.

Every service runs on LocalStack except the Cognito identity provider, which
is served by Moto. Moto containers cannot be discovered by label, so those
services never support shared mode.
"""

from enum import Enum


class Emulator(Enum):
    """Emulator container images used by Dev Services."""

    LOCALSTACK = ("localstack/localstack:3.4", 4566, "/_localstack/health", True)
    MOTO = ("motoserver/moto:5.0.6", 5000, "/moto-api/", False)

    def __init__(self, image: str, port: int, health_path: str, supports_sharing: bool):
        self.image = image
        self.port = port
        self.health_path = health_path
        self.supports_sharing = supports_sharing


class ServiceKind(Enum):
    """AWS services known to Dev Services, keyed by their boto3 service name."""

    DYNAMODB = "dynamodb"
    S3 = "s3"
    SQS = "sqs"
    SNS = "sns"
    KMS = "kms"
    SECRETSMANAGER = "secretsmanager"
    SSM = "ssm"
    SES = "ses"
    IAM = "iam"
    LAMBDA = "lambda"
    COGNITO_IDP = "cognito-idp"

    @property
    def emulator(self) -> Emulator:
        if self is ServiceKind.COGNITO_IDP:
            return Emulator.MOTO
        return Emulator.LOCALSTACK

    @property
    def supports_sharing(self) -> bool:
        return self.emulator.supports_sharing

    @property
    def env_prefix(self) -> str:
        """Prefix of the environment variables configuring this service."""
        return "AWS_DEVSERVICES_" + self.name + "_"

    @classmethod
    def parse(cls, name: str) -> "ServiceKind":
        """Look up a service kind by name, ignoring case and surrounding blanks."""
        normalized = name.strip().lower().replace("_", "-")
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"Unknown AWS dev service: {name!r}")
