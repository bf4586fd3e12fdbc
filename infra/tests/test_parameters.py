"""Tests for parameter keys and pre-flight verification.

All SSM calls are mocked via MagicMock. No network calls.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from stacks.errors import MissingParameterError
from stacks.parameters import ACCOUNT_NUMBER_KEY, hosted_zone_id_key, verify_secret_parameter


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetParameter")


class TestKeys:
    """Lookup keys."""

    def test_account_number_key(self) -> None:
        """Account number lookup key."""
        assert ACCOUNT_NUMBER_KEY == "/all/awsAccountNumber"

    def test_hosted_zone_key(self) -> None:
        """Hosted zone lookup key includes the zone name."""
        assert hosted_zone_id_key("wmaug.org") == "/all/aws/route53/wmaug.org/hostedZoneId"


class TestVerifySecretParameter:
    """Fail-fast check for the pinned SecureString version."""

    def test_existing_version(self) -> None:
        """An existing version is fetched by name and version."""
        client = MagicMock()
        client.get_parameter.return_value = {"Parameter": {"Version": 2}}

        verify_secret_parameter("/devA/BookStack/DB_PASS", 2, "us-east-2", client=client)

        client.get_parameter.assert_called_once_with(
            Name="/devA/BookStack/DB_PASS:2", WithDecryption=False
        )

    @pytest.mark.parametrize("code", ["ParameterNotFound", "ParameterVersionNotFound"])
    def test_missing(self, code: str) -> None:
        """Missing parameters or versions raise MissingParameterError."""
        client = MagicMock()
        client.get_parameter.side_effect = _client_error(code)

        with pytest.raises(MissingParameterError) as exc_info:
            verify_secret_parameter("/devA/BookStack/DB_PASS", 2, "us-east-2", client=client)

        assert exc_info.value.name == "/devA/BookStack/DB_PASS"
        assert exc_info.value.version == 2
        assert "/devA/BookStack/DB_PASS:2" in str(exc_info.value)

    def test_other_errors_propagate(self) -> None:
        """Unrelated SSM errors are not translated."""
        client = MagicMock()
        client.get_parameter.side_effect = _client_error("AccessDeniedException")

        with pytest.raises(ClientError):
            verify_secret_parameter("/devA/BookStack/DB_PASS", 2, "us-east-2", client=client)
