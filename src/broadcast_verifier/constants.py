"""Configuration constants for broadcast-verifier."""

DEFAULT_VERIFIER_URL = "https://contracts.tempo.xyz"
DEFAULT_COMPILER_VERSION = "0.8.22+commit.4fc1097e"

# Polling budget: attempts x interval, independent of the per-request timeout
DEFAULT_POLL_INTERVAL = 3.0  # seconds
DEFAULT_MAX_POLL_ATTEMPTS = 20
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_BUILD_TIMEOUT = 600.0  # seconds
# How often a running forge build checks for cancellation
BUILD_CANCEL_CHECK_INTERVAL = 0.2  # seconds

# Only transactions of this type are deployments
CREATE_TRANSACTION_TYPE = "CREATE"

# Directories searched (in order) for <ContractName>.sol
DEFAULT_SEARCH_DIRS = ("contracts", "lib")

# Contracts whose source lives behind a remapping or in a differently named file.
# These paths are passed to forge as-is; they are not checked on disk.
CONTRACT_PATH_OVERRIDES = {
    "TransparentUpgradeableProxy": (
        "node_modules/@fraxfinance/layerzero-v2-upgradeable/messagelib/contracts/"
        "upgradeable/proxy/TransparentUpgradeableProxy.sol"
    ),
    "ProxyAdmin": (
        "node_modules/@fraxfinance/layerzero-v2-upgradeable/messagelib/contracts/"
        "upgradeable/proxy/ProxyAdmin.sol"
    ),
    "FraxProxyAdmin": "contracts/FraxProxyAdmin.sol",
    "ImplementationMock": "contracts/ImplementationMock.sol",
    "FraxOFTMintableAdapterUpgradeableTIP20": (
        "contracts/tempo/oft-upgradeable/FraxOFTMintableAdapterUpgradeableTIP20.sol"
    ),
    "FrxUSDPolicyAdminTempo": "contracts/frxUsd/FrxUSDPolicyAdminTempo.sol",
    "FraxOFTWalletUpgradeable": "contracts/FraxOFTWalletUpgradeable.sol",
}

# Fields of the contract-info response that prove a verified match
VERIFIED_INFO_FIELDS = ("matchId", "match", "verifiedAt")

# Substrings of a free-text status probe that mean "verified"
VERIFIED_TEXT_MARKERS = ("verified", "perfect", "partial")

# Exact JSON status values that mean "verified"
VERIFIED_STATUS_VALUES = (
    "verified",
    "perfect",
    "partial",
    "match",
    "exact_match",
    "perfect_match",
    "partial_match",
    "full_match",
    "complete",
    "completed",
)

# Environment variables read by VerifierConfig.from_env
ENV_VERIFIER_URL = "VERIFIER_URL"
ENV_COMPILER_VERSION = "VERIFIER_COMPILER_VERSION"
ENV_POLL_INTERVAL = "VERIFIER_POLL_INTERVAL"
ENV_MAX_POLL_ATTEMPTS = "VERIFIER_MAX_POLL_ATTEMPTS"
