from pathlib import Path

import rollout

#
# Filesystem
#

ROLLOUT_DIR = Path(rollout.__file__).parent
CONSTRUCTOR_PARAMS_DIR = ROLLOUT_DIR / "constructor_params"
ARTIFACTS_DIR = Path("deployments")
HARDHAT_ARTIFACTS_DIR = Path("artifacts")

#
# Environment
#

NETWORK_URL_ENVVAR = "RPC_URL"
LEGACY_NETWORK_URL_ENVVAR = "SEPOLIA_RPC_URL"
SIGNING_KEY_ENVVAR = "PRIVATE_KEY"
EXPLORER_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"
SETTLING_DELAY_ENVVAR = "SETTLING_DELAY"
CONFIRMATION_TIMEOUT_ENVVAR = "CONFIRMATION_TIMEOUT"

#
# Timing (seconds)
#

# explorer indexers lag behind finality
DEFAULT_SETTLING_DELAY = 30
DEFAULT_CONFIRMATION_TIMEOUT = 120
DEFAULT_REQUEST_TIMEOUT = 30
VERIFICATION_POLL_INTERVAL = 5
VERIFICATION_MAX_POLLS = 12

#
# Networks
#

# hardhat, anvil/ganache
LOCAL_CHAIN_IDS = (31337, 1337)

ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"

#
# Variables
#

VARIABLE_PREFIX = "$"
DEPLOYER_VARIABLE = "deployer"
