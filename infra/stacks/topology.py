"""Assemble one BookStack stack per environment."""

import logging
from typing import Any

import aws_cdk as cdk

from stacks.book_stack import BookStack
from stacks.config import Settings, select_profile
from stacks.naming import resolve_names
from stacks.parameters import verify_secret_parameter

logger = logging.getLogger(__name__)


def build_topology(
    app: cdk.App,
    settings: Settings,
    environments: list[str] | None = None,
    account: str | None = None,
    ssm_client: Any | None = None,
) -> list[BookStack]:
    """Declare a stack for every environment.

    All names, profiles and secret parameters are resolved before the first
    stack is created, so a failure leaves the app empty.

    Args:
        app: The CDK app.
        settings: Deployment settings.
        environments: Environments to build; defaults to ``settings.environments``.
        account: Target AWS account.
        ssm_client: Optional SSM client used for parameter verification.

    Returns:
        The declared stacks, in environment order.
    """
    plans = []
    for environment in environments or settings.environments:
        names = resolve_names(environment, settings)
        profile = select_profile(settings, environment)
        if settings.verify_parameters:
            verify_secret_parameter(
                names.secret_parameter_path,
                settings.db_password_parameter_version,
                settings.region,
                client=ssm_client,
            )
        plans.append((names, profile))

    env = cdk.Environment(account=account, region=settings.region)
    stacks = []
    for names, profile in plans:
        logger.info("Building %s for environment %s", names.stack_id, names.environment)
        stacks.append(
            BookStack(
                app,
                names.stack_id,
                names=names,
                profile=profile,
                settings=settings,
                env=env,
            )
        )
    return stacks
