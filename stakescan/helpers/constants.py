"""Common configuration constants used across the application."""

# Token units
TOKEN_DECIMALS = 18
"""Decimals of the native staking token"""

WEI_PER_TOKEN = 10**TOKEN_DECIMALS
"""Base units per whole token"""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
"""The zero address, never a valid candidate"""

# Scan tuning
DEFAULT_CHUNK_SIZE = 100_000
"""Blocks per eth_getLogs request during the full network scan"""

DEFAULT_PROBE_BATCH_SIZE = 3
"""Candidates probed (or validators resolved) concurrently"""

DELEGATOR_SCAN_RANGES = 5
"""Number of block ranges scanned by delegator discovery"""

DELEGATOR_RANGE_SIZE = 1_000_000
"""Blocks per delegator discovery range"""

TRANSACTION_SCAN_RANGES = 6
"""Number of block ranges scanned by transaction history"""

TRANSACTION_RANGE_SIZE = 500_000
"""Blocks per transaction history range"""

RECENT_TRANSACTIONS_LIMIT = 250
"""Transactions returned in the `recent` slice of a history"""

# Verification thresholds
MIN_STAKE_WEI = WEI_PER_TOKEN // 1000
"""Minimum stake (0.001 token) a validator contract must hold"""

MAX_COMMISSION_RATE = 1_000_000
"""Upper bound of a commission rate in basis points (100%)"""

DEFAULT_COMMISSION_RATE = 500
"""Commission assumed when a creation transaction carries none"""

DEFAULT_WITHDRAWAL_FEE_GWEI = 1
"""Withdrawal fee assumed when a creation transaction carries none"""

DEFAULT_ACTIVE_STAKE = 32
"""Tokens at or above which a validator counts as active"""

DEFAULT_MIN_VALIDATORS = 10
"""Sanity threshold for accepting a freshly built snapshot"""

# Timeouts in seconds
PROBE_TIMEOUT = 5.0
"""Per-probe eth_call timeout used by the verifier"""

CALL_TIMEOUT = 15.0
"""Default eth_call / transaction lookup timeout"""

SCAN_TIMEOUT = 20.0
"""Timeout for one eth_getLogs range request"""

METADATA_TIMEOUT = 10.0
"""Timeout for alternate-endpoint metadata lookups"""

PING_TIMEOUT = 5.0
"""Timeout for RPC health pings"""

# Retry Configuration
RETRY_BASE_DELAY = 1.0
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 60.0
"""Maximum delay between retries in seconds"""

# Refresh loop
DEFAULT_REFRESH_INTERVAL = 60.0
"""Seconds between two timer-triggered refresh cycles"""

DEFAULT_METADATA_FALLBACK_FROM_BLOCK = 0x200000
"""First block searched on alternate endpoints for creation transactions"""

# Metadata
AVATAR_URL_TEMPLATE = (
    "https://s3.amazonaws.com/keybase_processed_uploads/{identity}_360_360.jpg"
)
"""Keybase avatar location derived from a validator identity key"""

DEFAULT_FALLBACK_RPC_URLS = "https://evmrpc-testnet.0g.ai,https://rpc-testnet.0g.ai"
"""Alternate endpoints searched when the primary has pruned history"""

DEFAULT_STAKING_CONTRACT = "0xea224dBB52F57752044c0C86aD50930091F561B9"
"""Staking contract whose logs drive validator discovery"""

DEFAULT_DELEGATION_CONTRACT = "0xE37bfc9e900bC5cC3279952B90f6Be9A53ED6949"
"""Contract receiving delegate/undelegate transactions"""

DEFAULT_KNOWN_DELEGATORS = (
    "0xDc3346345317f8b110657AAe0DB36afb3D4aCAa0,"
    "0xdc334e35794a06e8e71652537c401d6eebf6cf0a,"
    "0xb984b1f158963417467900b4be868f83dea007fc,"
    "0x565e66aa2bcb27116937983f2f208efabf620ab2,"
    "0x14d932723a2e3358aef7fde3468ded2e7c7662f5"
)
"""Previously observed owners probed by delegator discovery"""


__all__ = [
    "AVATAR_URL_TEMPLATE",
    "CALL_TIMEOUT",
    "DEFAULT_ACTIVE_STAKE",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_COMMISSION_RATE",
    "DEFAULT_DELEGATION_CONTRACT",
    "DEFAULT_FALLBACK_RPC_URLS",
    "DEFAULT_KNOWN_DELEGATORS",
    "DEFAULT_METADATA_FALLBACK_FROM_BLOCK",
    "DEFAULT_MIN_VALIDATORS",
    "DEFAULT_PROBE_BATCH_SIZE",
    "DEFAULT_REFRESH_INTERVAL",
    "DEFAULT_STAKING_CONTRACT",
    "DEFAULT_WITHDRAWAL_FEE_GWEI",
    "DELEGATOR_RANGE_SIZE",
    "DELEGATOR_SCAN_RANGES",
    "MAX_COMMISSION_RATE",
    "METADATA_TIMEOUT",
    "MIN_STAKE_WEI",
    "PING_TIMEOUT",
    "PROBE_TIMEOUT",
    "RECENT_TRANSACTIONS_LIMIT",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "SCAN_TIMEOUT",
    "TOKEN_DECIMALS",
    "TRANSACTION_RANGE_SIZE",
    "TRANSACTION_SCAN_RANGES",
    "WEI_PER_TOKEN",
    "ZERO_ADDRESS",
]
