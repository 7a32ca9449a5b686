"""Shared endpoint and transport constants for the balance/rate sources."""

CMC_QUOTES_URL = "https://pro-api.coinmarketcap.com/v1/cryptocurrency/quotes/latest"
CMC_API_KEY_HEADER = "X-CMC_PRO_API_KEY"

POKT_BALANCE_PATH = "/v1/query/balance"
POKT_SERVICE_ID = "F000"
POKT_SCALE = 10**6
POKT_PROBES = 5
POKT_ATTEMPTS_PER_PROBE = 5

ETH_RPC_PATH = "/v1"
ETH_SERVICE_ID = "eth"
ETH_MAX_ATTEMPTS = 5
ERC20_BALANCE_OF_SELECTOR = "0x70a08231"

TARGET_SERVICE_HEADER = "Target-Service-Id"

DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_UNIT = 0.1


def pokt_balance_url(path_api_url: str) -> str:
    """Return the balance query endpoint under the PATH API base URL."""
    return f"{path_api_url.rstrip('/')}{POKT_BALANCE_PATH}"


def default_eth_rpc_url(path_api_url: str) -> str:
    """Return the JSON-RPC endpoint used when no explicit ETH RPC URL is set."""
    return f"{path_api_url.rstrip('/')}{ETH_RPC_PATH}"
