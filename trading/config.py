"""
Network Registry
Static per-chain configuration and trading defaults

RPC endpoints come from the environment (load it with python-dotenv in the
entry script). An optional config.json may override RPC URLs and trading
defaults:

    {
        "chains": {"BSC": {"rpc": "https://..."}},
        "trading": {"slippage_bps": 500, "gas_limit": 400000}
    }
"""

import os
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Any, Optional

from .exceptions import InputError

logger = logging.getLogger(__name__)

CONFIG_FILE = Path('config.json')

# V3 fee tiers in the order they are tried (0.01%, 0.05%, 0.3%, 1%)
V3_FEE_TIERS = (100, 500, 3000, 10000)

MAX_UINT256 = 2 ** 256 - 1
BPS_DENOMINATOR = 10000
NATIVE_DECIMALS = 18

DEADLINE_SECONDS = 300
APPROVAL_GAS_LIMIT = 100000
DEFAULT_GAS_LIMIT = 500000
MIN_GAS_LIMIT = 21000
MAX_GAS_LIMIT = 1000000
DEFAULT_SLIPPAGE_BPS = 1000
CONFIRMATION_TIMEOUT = 180


@dataclass(frozen=True)
class NetworkConfig:
    """Addresses and endpoint for one supported chain"""

    key: str
    name: str
    rpc_url: str
    chain_id: int
    native_symbol: str
    v2_router: str
    v2_weth: str
    v3_router: str
    v3_quoter: str
    v3_weth: str
    edge_router: str
    explorer_url: str = ''

    def tx_url(self, tx_hash: str) -> str:
        """Explorer link for a transaction hash"""
        return f"{self.explorer_url}/tx/{tx_hash}"


@dataclass(frozen=True)
class TradingDefaults:
    """Per-wallet settings used when the caller supplies none"""

    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    gas_limit: int = DEFAULT_GAS_LIMIT
    confirmation_timeout: float = CONFIRMATION_TIMEOUT


EDGE_ROUTER = '0xDfB50fB4BE4A0F7E9A7e5641944471bB0D2902D9'


def _eth_rpc_url() -> str:
    rpc_url = os.getenv('ETH_RPC_URL', '')
    if rpc_url:
        return rpc_url
    alchemy_key = os.getenv('ALCHEMY_API_KEY', '')
    if alchemy_key:
        return f"https://eth-mainnet.g.alchemy.com/v2/{alchemy_key}"
    return 'https://eth.llamarpc.com'


def _bsc_rpc_url() -> str:
    return (
        os.getenv('QUICKNODE_BSC_URL')
        or os.getenv('BSC_RPC_URL')
        or 'https://bsc-dataseed.binance.org'
    )


def build_networks() -> Dict[str, NetworkConfig]:
    """Build the ETH and BSC configurations from the current environment"""
    return {
        'ETH': NetworkConfig(
            key='ETH',
            name='Ethereum',
            rpc_url=_eth_rpc_url(),
            chain_id=1,
            native_symbol='ETH',
            v2_router='0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D',  # Uniswap V2 Router
            v2_weth='0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2',
            v3_router='0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45',  # Uniswap V3 Router
            v3_quoter='0x61fFE014bA17989E743c5F6cB21bF9697530B21e',  # Uniswap QuoterV2
            v3_weth='0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2',
            edge_router=EDGE_ROUTER,
            explorer_url='https://etherscan.io',
        ),
        'BSC': NetworkConfig(
            key='BSC',
            name='BSC',
            rpc_url=_bsc_rpc_url(),
            chain_id=56,
            native_symbol='BNB',
            v2_router='0x10ED43C718714eb63d5aA57B78B54704E256024E',  # PancakeSwap V2 Router
            v2_weth='0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c',
            v3_router='0x13f4EA83D0bd40E75C8222255bc855a974568Dd4',  # PancakeSwap V3 Router
            v3_quoter='0xB048Bbc1Ee6b733FFfCFb9e9CeF7375518e25997',  # PancakeSwap V3 Quoter
            v3_weth='0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c',
            edge_router=EDGE_ROUTER,
            explorer_url='https://bscscan.com',
        ),
    }


def load_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load optional overrides from config.json"""
    if not config_file.exists():
        return {}

    with open(config_file, 'r') as f:
        config = json.load(f)

    logger.info(f"Loaded configuration overrides from {config_file}")
    return config


def load_networks(config_file: Path = CONFIG_FILE) -> Dict[str, NetworkConfig]:
    """
    Build the network registry, applying RPC overrides from config.json

    Args:
        config_file: Optional JSON file with a 'chains' section

    Returns:
        Mapping of network key ('ETH', 'BSC') to NetworkConfig
    """
    networks = build_networks()
    overrides = load_config(config_file).get('chains', {})

    for chain_key, chain_config in overrides.items():
        key = chain_key.upper()
        if key not in networks:
            logger.warning(f"Ignoring unsupported chain in config: {chain_key}")
            continue
        if chain_config.get('rpc'):
            networks[key] = replace(networks[key], rpc_url=chain_config['rpc'])

    return networks


def load_trading_defaults(config_file: Path = CONFIG_FILE) -> TradingDefaults:
    """Trading defaults from the environment, overridden by config.json"""
    trading = load_config(config_file).get('trading', {})

    return TradingDefaults(
        slippage_bps=int(trading.get(
            'slippage_bps', os.getenv('DEFAULT_SLIPPAGE_BPS', DEFAULT_SLIPPAGE_BPS)
        )),
        gas_limit=int(trading.get(
            'gas_limit', os.getenv('DEFAULT_GAS_LIMIT', DEFAULT_GAS_LIMIT)
        )),
        confirmation_timeout=float(trading.get(
            'confirmation_timeout', os.getenv('CONFIRMATION_TIMEOUT', CONFIRMATION_TIMEOUT)
        )),
    )


def get_network(network: str, networks: Optional[Dict[str, NetworkConfig]] = None) -> NetworkConfig:
    """
    Look up a network by key

    Args:
        network: 'ETH' or 'BSC' (case-insensitive)
        networks: Registry to search, defaults to the environment registry

    Returns:
        NetworkConfig for the key
    """
    registry = networks if networks is not None else load_networks()
    config = registry.get((network or '').upper())
    if config is None:
        raise InputError(
            f"Invalid network selected: {network}. Supported: {', '.join(registry)}"
        )
    return config
