"""Tests for assembling stacks across environments."""

from unittest.mock import MagicMock

import aws_cdk as cdk
import pytest
from botocore.exceptions import ClientError

from stacks.config import NetworkExposure, Settings
from stacks.errors import ConfigurationError, MissingParameterError
from stacks.topology import build_topology

ACCOUNT = "123456789012"


def _stacks(app: cdk.App) -> list[cdk.Stack]:
    return [child for child in app.node.children if cdk.Stack.is_stack(child)]


class TestBuildTopology:
    """One stack per environment, nothing built on failure."""

    def test_one_stack_per_environment(self) -> None:
        """Each environment gets its own stack."""
        app = cdk.App()
        settings = Settings(
            _env_file=None,
            environments=["devA", "devB"],
            verify_parameters=False,
        )

        stacks = build_topology(app, settings, account=ACCOUNT)

        assert [s.stack_name for s in stacks] == ["devABookStack", "devBBookStack"]
        assert [s.names.hostname for s in stacks] == [
            "devA-docs.wmaug.org",
            "devB-docs.wmaug.org",
        ]
        assert all(s.region == "us-east-2" for s in stacks)

    def test_explicit_environments_override_settings(self) -> None:
        """Passed environments replace the configured list."""
        app = cdk.App()
        settings = Settings(_env_file=None, verify_parameters=False)

        stacks = build_topology(app, settings, environments=["devC"], account=ACCOUNT)

        assert [s.names.environment for s in stacks] == ["devC"]

    def test_profile_follows_overrides(self) -> None:
        """Each stack receives its own profile."""
        app = cdk.App()
        settings = Settings(
            _env_file=None,
            environments=["devA", "legacyA"],
            exposure_overrides={"legacyA": "restricted"},
            admin_cidr="203.0.113.10/32",
            verify_parameters=False,
        )

        stacks = build_topology(app, settings, account=ACCOUNT)

        assert [s.profile.exposure for s in stacks] == [
            NetworkExposure.PUBLIC,
            NetworkExposure.RESTRICTED,
        ]

    def test_verifies_each_secret_parameter(self) -> None:
        """Every environment's secret parameter is checked."""
        app = cdk.App()
        client = MagicMock()
        settings = Settings(_env_file=None, environments=["devA", "devB"])

        build_topology(app, settings, account=ACCOUNT, ssm_client=client)

        names = [c.kwargs["Name"] for c in client.get_parameter.call_args_list]
        assert names == ["/devA/BookStack/DB_PASS:2", "/devB/BookStack/DB_PASS:2"]

    def test_missing_parameter_aborts_before_any_stack(self) -> None:
        """A missing parameter leaves the app empty."""
        app = cdk.App()
        client = MagicMock()
        client.get_parameter.side_effect = [
            {"Parameter": {"Version": 2}},
            ClientError(
                {"Error": {"Code": "ParameterVersionNotFound", "Message": "missing"}},
                "GetParameter",
            ),
        ]
        settings = Settings(_env_file=None, environments=["devA", "devB"])

        with pytest.raises(MissingParameterError):
            build_topology(app, settings, account=ACCOUNT, ssm_client=client)

        assert _stacks(app) == []

    @pytest.mark.parametrize("bad", ["dev B", "dev_B", "1dev"])
    def test_invalid_environment_aborts_before_any_stack(self, bad: str) -> None:
        """An invalid identifier leaves the app empty."""
        app = cdk.App()
        settings = Settings(
            _env_file=None,
            environments=["devA", bad],
            verify_parameters=False,
        )

        with pytest.raises(ConfigurationError):
            build_topology(app, settings, account=ACCOUNT)

        assert _stacks(app) == []
