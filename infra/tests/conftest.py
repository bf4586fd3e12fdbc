"""Shared fixtures for the infrastructure tests."""

from collections.abc import Callable

import aws_cdk as cdk
import pytest

from stacks.book_stack import BookStack
from stacks.config import Settings, select_profile
from stacks.naming import resolve_names

ACCOUNT = "123456789012"
ADMIN_CIDR = "203.0.113.10/32"


@pytest.fixture
def settings() -> Settings:
    """Default settings with parameter verification turned off."""
    return Settings(_env_file=None, verify_parameters=False)


@pytest.fixture
def make_stack() -> Callable[..., BookStack]:
    """Factory synthesizing a BookStack for one environment."""

    def _make(environment: str = "devA", **overrides: object) -> BookStack:
        settings = Settings(_env_file=None, verify_parameters=False, **overrides)
        names = resolve_names(environment, settings)
        return BookStack(
            cdk.App(),
            names.stack_id,
            names=names,
            profile=select_profile(settings, environment),
            settings=settings,
            env=cdk.Environment(account=ACCOUNT, region=settings.region),
        )

    return _make
