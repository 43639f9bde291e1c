"""
Trading Package for the Edge Router Trading Bot

Each module handles one concern:
- config: Network registry (ETH, BSC) and trading defaults
- ChainClient: RPC connection and local signing
- TokenContract: ERC-20 reads, allowance and approval
- PoolRouter: V3 fee-tier / V2 venue discovery
- TradeExecutor: Buy and sell orchestration through the edge router
- TokenScanner: DexScreener network detection
"""

from .config import NetworkConfig, TradingDefaults, load_networks, load_trading_defaults, get_network
from .chain_client import ChainClient
from .token_contract import TokenContract
from .pool_router import PoolRouter, PoolQuote, Venue, Direction
from .trade_executor import TradeExecutor, TradeIntent, TradeResult, TradeStage
from .token_scanner import TokenScanner
from .exceptions import (
    TradeError,
    InputError,
    InsufficientFundsError,
    InsufficientBalanceError,
    InsufficientTokenBalanceError,
    NoViablePoolError,
    InvalidMinimumAmountError,
    ApprovalFailedError,
    TransactionRevertedError,
    RPCError,
    ConfirmationTimeoutError,
)

__all__ = [
    'NetworkConfig',
    'TradingDefaults',
    'load_networks',
    'load_trading_defaults',
    'get_network',
    'ChainClient',
    'TokenContract',
    'PoolRouter',
    'PoolQuote',
    'Venue',
    'Direction',
    'TradeExecutor',
    'TradeIntent',
    'TradeResult',
    'TradeStage',
    'TokenScanner',
    'TradeError',
    'InputError',
    'InsufficientFundsError',
    'InsufficientBalanceError',
    'InsufficientTokenBalanceError',
    'NoViablePoolError',
    'InvalidMinimumAmountError',
    'ApprovalFailedError',
    'TransactionRevertedError',
    'RPCError',
    'ConfirmationTimeoutError',
]
