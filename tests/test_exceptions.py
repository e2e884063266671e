import pytest

from rollout.exceptions import (
    AlreadyVerified,
    BroadcastError,
    ConfigurationError,
    ConfirmationError,
    RolloutError,
    VerificationError,
)


@pytest.mark.parametrize(
    "error", [ConfigurationError, BroadcastError, ConfirmationError, VerificationError, AlreadyVerified]
)
def test_catch_all_as_rollout_error(error):
    with pytest.raises(RolloutError):
        raise error("test")


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        raise ConfigurationError("test")


def test_already_verified_is_verification_error():
    with pytest.raises(VerificationError):
        raise AlreadyVerified("Contract source code already verified")
