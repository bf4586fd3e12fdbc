"""Environment-specific names for the BookStack deployment."""

import re
from dataclasses import dataclass

from stacks.config import Settings
from stacks.errors import ConfigurationError

SERVICE_NAME = "BookStack"

# Valid as a CloudFormation stack-name prefix and as a DNS label prefix
_ENVIRONMENT_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9-]*")


@dataclass(frozen=True)
class ResolvedNames:
    """Names derived from a single environment identifier."""

    environment: str
    stack_id: str
    hostname: str
    full_url: str
    database_username: str
    database_name: str
    secret_parameter_path: str
    vpc_name: str


def stack_id_for(environment: str) -> str:
    return f"{environment}{SERVICE_NAME}"


def resolve_names(environment: str, settings: Settings) -> ResolvedNames:
    """Derive every environment-specific name.

    The production environment is served from the bare base domain; every
    other environment gets ``{environment}-{base_domain}``.

    Args:
        environment: Environment identifier, e.g. ``devA``.
        settings: Deployment settings providing the domain and production id.

    Returns:
        The resolved names.

    Raises:
        ConfigurationError: If the identifier is not a letter followed by
            letters, digits or hyphens.
    """
    if not _ENVIRONMENT_PATTERN.fullmatch(environment):
        raise ConfigurationError(f"invalid environment identifier: {environment!r}")

    if environment == settings.production_environment:
        hostname = settings.base_domain
    else:
        hostname = f"{environment}-{settings.base_domain}"

    stack_id = stack_id_for(environment)
    return ResolvedNames(
        environment=environment,
        stack_id=stack_id,
        hostname=hostname,
        full_url=f"https://{hostname}",
        database_username=f"{stack_id}RdsAdmin",
        database_name=f"{stack_id}Rds",
        secret_parameter_path=f"/{environment}/{SERVICE_NAME}/DB_PASS",
        vpc_name=f"{environment}Vpc",
    )
