import json
import time
import typing
from typing import Any, Callable, Dict, Optional

import requests
from eth_typing import ChecksumAddress

from rollout.artifacts import ArtifactStore
from rollout.collaborators import Verifier
from rollout.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    ETHERSCAN_API_URL,
    VERIFICATION_MAX_POLLS,
    VERIFICATION_POLL_INTERVAL,
)
from rollout.exceptions import AlreadyVerified, VerificationError

ALREADY_VERIFIED = "already verified"
PENDING = "pending"


def _is_already_verified(message: str) -> bool:
    return ALREADY_VERIFIED in message.lower()


class EtherscanVerifier(Verifier):
    """
    Submits standard-JSON source verification requests to an Etherscan-compatible
    explorer API and polls until the explorer reaches a verdict.
    """

    def __init__(
        self,
        api_key: str,
        chain_id: int,
        artifacts: ArtifactStore,
        api_url: str = ETHERSCAN_API_URL,
        poll_interval: float = VERIFICATION_POLL_INTERVAL,
        max_polls: int = VERIFICATION_MAX_POLLS,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.chain_id = chain_id
        self.artifacts = artifacts
        self.api_url = api_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.request_timeout = request_timeout
        self.sleep = sleep
        self.session = session or requests.Session()

    def _request(self, method: str, params: Dict[str, Any], data: Optional[Dict] = None) -> Dict:
        query = {"chainid": self.chain_id, "apikey": self.api_key, **params}
        try:
            response = self.session.request(
                method, self.api_url, params=query, data=data, timeout=self.request_timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise VerificationError(f"Explorer request failed: {e}") from e
        except ValueError as e:
            raise VerificationError(f"Explorer returned an invalid response: {e}") from e

    def submit(
        self, address: ChecksumAddress, constructor_arguments: typing.Sequence[Any], contract_name: str
    ) -> str:
        """Submits a verification request and returns the explorer's request GUID."""
        artifact = self.artifacts.get(contract_name)
        encoded_arguments = artifact.encode_constructor_arguments(constructor_arguments)
        build_info = artifact.load_build_info()

        data = {
            "codeformat": "solidity-standard-json-input",
            "sourceCode": json.dumps(build_info["input"]),
            "contractaddress": address,
            "contractname": artifact.fully_qualified_name,
            "compilerversion": f"v{build_info['solcLongVersion']}",
            "constructorArguements": encoded_arguments,  # sic, the API's spelling
        }
        result = self._request(
            "POST", params={"module": "contract", "action": "verifysourcecode"}, data=data
        )
        message = str(result.get("result") or result.get("message") or "")
        if str(result.get("status")) != "1":
            if _is_already_verified(message):
                raise AlreadyVerified(message)
            raise VerificationError(message or f"Verification request for {address} rejected.")
        return message

    def check_status(self, guid: str) -> Optional[str]:
        """Returns the verdict once reached, or None while the request is pending."""
        result = self._request(
            "GET", params={"module": "contract", "action": "checkverifystatus", "guid": guid}
        )
        message = str(result.get("result") or "")
        if str(result.get("status")) == "1":
            return message
        if PENDING in message.lower():
            return None
        if _is_already_verified(message):
            raise AlreadyVerified(message)
        raise VerificationError(message or f"Verification {guid} failed.")

    def verify(
        self, address: ChecksumAddress, constructor_arguments: typing.Sequence[Any], contract_name: str
    ) -> None:
        guid = self.submit(address, constructor_arguments, contract_name)
        for _ in range(self.max_polls):
            self.sleep(self.poll_interval)
            if self.check_status(guid) is not None:
                return
        raise VerificationError(
            f"Timed out waiting for verification of {contract_name} at {address} (guid {guid})."
        )
