"""Parameter-store keys, synth-time lookups and pre-flight verification."""

import logging
from dataclasses import dataclass
from typing import Any

import boto3
from aws_cdk import aws_ssm as ssm
from botocore.exceptions import ClientError
from constructs import Construct

from stacks.errors import MissingParameterError

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_KEY = "/all/awsAccountNumber"
HOSTED_ZONE_ID_KEY = "/all/aws/route53/{zone_name}/hostedZoneId"

_NOT_FOUND_CODES = {"ParameterNotFound", "ParameterVersionNotFound"}


@dataclass(frozen=True)
class Lookups:
    """Values read from the parameter store at synth time."""

    account_number: str
    hosted_zone_id: str


def hosted_zone_id_key(zone_name: str) -> str:
    return HOSTED_ZONE_ID_KEY.format(zone_name=zone_name)


def lookup_values(scope: Construct, zone_name: str) -> Lookups:
    """Read the account number and hosted-zone id through CDK context lookups.

    Unresolved lookups are reported by the CDK toolkit, which fails the synth.
    """
    return Lookups(
        account_number=ssm.StringParameter.value_from_lookup(scope, ACCOUNT_NUMBER_KEY),
        hosted_zone_id=ssm.StringParameter.value_from_lookup(
            scope, hosted_zone_id_key(zone_name)
        ),
    )


def verify_secret_parameter(
    name: str,
    version: int,
    region: str,
    client: Any | None = None,
) -> None:
    """Fail fast if a SecureString parameter version does not exist.

    Args:
        name: Parameter name, e.g. ``/devA/BookStack/DB_PASS``.
        version: Pinned parameter version.
        region: AWS region holding the parameter.
        client: Optional SSM client (tests pass a mock).

    Raises:
        MissingParameterError: If the parameter or version is absent.
    """
    ssm_client = client or boto3.client("ssm", region_name=region)
    try:
        ssm_client.get_parameter(Name=f"{name}:{version}", WithDecryption=False)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
            raise MissingParameterError(name, version) from e
        raise
    logger.info("Verified SSM parameter %s version %s", name, version)
