import os
import typing
from dataclasses import dataclass, field
from typing import Optional

from rollout.constants import (
    CONFIRMATION_TIMEOUT_ENVVAR,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_SETTLING_DELAY,
    EXPLORER_API_KEY_ENVVAR,
    LEGACY_NETWORK_URL_ENVVAR,
    NETWORK_URL_ENVVAR,
    SETTLING_DELAY_ENVVAR,
    SIGNING_KEY_ENVVAR,
)
from rollout.exceptions import ConfigurationError


def _get_required(environ: typing.Mapping[str, str], envvar: str) -> str:
    value = environ.get(envvar)
    if not value:
        raise ConfigurationError(f"{envvar} is not set.")
    return value


def _get_seconds(environ: typing.Mapping[str, str], envvar: str, default: float) -> float:
    value = environ.get(envvar)
    if value is None or value == "":
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigurationError(f"{envvar} must be a number of seconds, got '{value}'.")
    if seconds < 0:
        raise ConfigurationError(f"{envvar} must not be negative, got '{value}'.")
    return seconds


@dataclass(frozen=True)
class RolloutConfig:
    """Everything a run needs from the outside world, gathered once."""

    network_url: str
    signing_key: Optional[str] = field(default=None, repr=False)
    explorer_api_key: Optional[str] = field(default=None, repr=False)
    settling_delay: float = DEFAULT_SETTLING_DELAY
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    verify: bool = True

    @classmethod
    def from_env(
        cls,
        environ: Optional[typing.Mapping[str, str]] = None,
        require_signer: bool = True,
        verify: bool = True,
        settling_delay: Optional[float] = None,
    ) -> "RolloutConfig":
        """
        Builds the configuration from environment variables.

        Explicit arguments take precedence over the environment. Raises
        ConfigurationError naming the first missing variable.
        """
        environ = os.environ if environ is None else environ

        network_url = environ.get(NETWORK_URL_ENVVAR) or environ.get(LEGACY_NETWORK_URL_ENVVAR)
        if not network_url:
            raise ConfigurationError(f"{NETWORK_URL_ENVVAR} is not set.")
        signing_key = _get_required(environ, SIGNING_KEY_ENVVAR) if require_signer else None
        explorer_api_key = _get_required(environ, EXPLORER_API_KEY_ENVVAR) if verify else None

        if settling_delay is None:
            settling_delay = _get_seconds(environ, SETTLING_DELAY_ENVVAR, DEFAULT_SETTLING_DELAY)
        elif settling_delay < 0:
            raise ConfigurationError(f"settling delay must not be negative, got {settling_delay}.")

        confirmation_timeout = _get_seconds(
            environ, CONFIRMATION_TIMEOUT_ENVVAR, DEFAULT_CONFIRMATION_TIMEOUT
        )
        return cls(
            network_url=network_url,
            signing_key=signing_key,
            explorer_api_key=explorer_api_key,
            settling_delay=settling_delay,
            confirmation_timeout=confirmation_timeout,
            verify=verify,
        )
