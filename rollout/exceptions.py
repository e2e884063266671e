"""Exception taxonomy for deployment and verification runs."""


class RolloutError(Exception):
    """Base exception for rollout errors."""

    pass


class ConfigurationError(RolloutError, ValueError):
    """Raised when required configuration is missing or invalid; fatal to the run."""

    pass


class BroadcastError(RolloutError):
    """Raised when a deployment transaction could not be submitted."""

    pass


class ConfirmationError(RolloutError):
    """Raised when a submitted transaction was not confirmed as a contract creation."""

    pass


class VerificationError(RolloutError):
    """Raised when the explorer rejects a source verification request."""

    pass


class AlreadyVerified(VerificationError):
    """Raised when the explorer reports the contract source as already verified."""

    pass
