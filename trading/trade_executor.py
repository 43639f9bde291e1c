"""
Trade Executor
Runs one buy or sell through the edge router, bound to one network and one key

A trade moves strictly forward through its stages:

    INIT -> BALANCE_CHECK -> [APPROVAL_CHECK -> APPROVAL_SUBMIT ->
    APPROVAL_CONFIRM] -> QUOTE -> SUBMIT -> CONFIRM -> DONE

and ends in FAILED from any of them. Every TradeError raised here records the
stage it failed in. Submitted transactions are never resubmitted.
"""

import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, Union

from .abis import EDGE_ROUTER_ABI
from .chain_client import ChainClient
from .config import (
    NetworkConfig,
    get_network,
    MAX_UINT256,
    NATIVE_DECIMALS,
    DEADLINE_SECONDS,
    APPROVAL_GAS_LIMIT,
    DEFAULT_GAS_LIMIT,
    DEFAULT_SLIPPAGE_BPS,
    CONFIRMATION_TIMEOUT,
)
from .exceptions import (
    TradeError,
    InputError,
    InsufficientBalanceError,
    InsufficientTokenBalanceError,
    ApprovalFailedError,
    TransactionRevertedError,
    RPCError,
)
from .pool_router import PoolRouter, PoolQuote, Venue, Direction
from .token_contract import TokenContract
from .units import (
    Amount,
    parse_units,
    format_units,
    parse_positive_units,
    is_raw_amount,
    parse_raw_amount,
    parse_percentage,
    percentage_of,
    calculate_minimum_out,
    validate_slippage_bps,
    validate_gas_limit,
)

logger = logging.getLogger(__name__)


class TradeStage(Enum):
    INIT = 'INIT'
    QUOTE = 'QUOTE'
    BALANCE_CHECK = 'BALANCE_CHECK'
    APPROVAL_CHECK = 'APPROVAL_CHECK'
    APPROVAL_SUBMIT = 'APPROVAL_SUBMIT'
    APPROVAL_CONFIRM = 'APPROVAL_CONFIRM'
    SUBMIT = 'SUBMIT'
    CONFIRM = 'CONFIRM'
    DONE = 'DONE'
    FAILED = 'FAILED'


@dataclass
class TradeIntent:
    """
    A single trade request

    Attributes:
        token_address: Token to buy or sell
        direction: Direction.BUY or Direction.SELL
        amount: Native amount for buys; token amount, raw base units or "N%" for sells
        slippage_bps: Tolerated output reduction in basis points
        gas_limit: Gas limit for the swap transaction
    """

    token_address: str
    direction: Direction
    amount: Union[str, int, Decimal]
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    gas_limit: int = DEFAULT_GAS_LIMIT


@dataclass
class TradeResult:
    """Outcome of a confirmed swap"""

    transaction_hash: str
    confirmed: bool
    expected_out: int
    minimum_out: int
    token_symbol: str
    decimals: int
    direction: Direction
    amount_in: int
    formatted_out: str
    venue: Venue
    fee_tier: Optional[int] = None
    explorer_url: str = ''
    receipt: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def hash(self) -> str:
        return self.transaction_hash

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'hash': self.transaction_hash,
            'confirmed': self.confirmed,
            'expectedOut': str(self.expected_out),
            'minimumOut': str(self.minimum_out),
            'symbol': self.token_symbol,
            'decimals': self.decimals,
            'venue': self.venue.value,
            'feeTier': self.fee_tier,
            'explorerUrl': self.explorer_url,
        }
        if self.direction is Direction.BUY:
            result['tokenAmount'] = self.formatted_out
        else:
            result['ethAmount'] = self.formatted_out
        return result


class TradeExecutor:
    """Quotes, approves, submits and confirms swaps for one wallet on one network"""

    def __init__(
        self,
        network: Union[str, NetworkConfig],
        private_key: str,
        client: Optional[ChainClient] = None,
        confirmation_timeout: float = CONFIRMATION_TIMEOUT
    ):
        """
        Initialize the executor

        Args:
            network: 'ETH', 'BSC' or a NetworkConfig
            private_key: Hex private key (with or without 0x prefix)
            client: Existing ChainClient, created from network and key if omitted
            confirmation_timeout: Seconds to wait for each receipt
        """
        if not network or not (private_key or client):
            raise InputError('Network and private key are required')

        self.network = network if isinstance(network, NetworkConfig) else get_network(network)
        self.client = client or ChainClient(self.network, private_key)
        self.confirmation_timeout = confirmation_timeout

        self.router = PoolRouter(self.client, self.network)
        self.edge_router = self.client.contract(self.network.edge_router, EDGE_ROUTER_ABI)
        self.edge_router_address = self.network.edge_router

        self.stage = TradeStage.INIT
        self._context = ''

        logger.info(
            f"TradeExecutor ready on {self.network.name} (chain {self.network.chain_id}) "
            f"for {self.client.address}, edge router {self.edge_router_address}"
        )

    @property
    def wallet_address(self) -> str:
        return self.client.address

    @contextmanager
    def _stage(self, stage: TradeStage):
        self.stage = stage
        logger.debug(f"{self._context}: {stage.value}")
        try:
            yield
        except TradeError as e:
            if e.stage is None:
                e.stage = stage.value
            self.stage = TradeStage.FAILED
            logger.error(f"{self._context} failed at {stage.value}: {e.message}")
            raise
        except Exception:
            self.stage = TradeStage.FAILED
            logger.error(f"{self._context} failed at {stage.value}", exc_info=True)
            raise

    def _deadline(self) -> int:
        return int(time.time()) + DEADLINE_SECONDS

    def _gas_price(self) -> int:
        return self.client.get_fee_data()['gas_price']

    def _confirm(self, tx_hash: str) -> Dict[str, Any]:
        receipt = self.client.wait_for_receipt(tx_hash, self.confirmation_timeout)
        if not receipt.get('status'):
            raise TransactionRevertedError(tx_hash, receipt)
        logger.info(f"Transaction confirmed! Block: {receipt.get('blockNumber')}")
        return receipt

    # ------------------------------------------------------------------
    # Swap calls
    # ------------------------------------------------------------------

    def _v3_params(self, quote: PoolQuote, minimum_out: int, deadline: int) -> Dict[str, Any]:
        token_in, token_out = quote.path
        return {
            'tokenIn': token_in,
            'tokenOut': token_out,
            'fee': quote.fee_tier,
            'recipient': self.wallet_address,
            'deadline': deadline,
            'amountIn': quote.amount_in,
            'amountOutMinimum': minimum_out,
            'sqrtPriceLimitX96': 0,
        }

    def _buy_function(self, quote: PoolQuote, minimum_out: int, deadline: int):
        if quote.venue is Venue.V2:
            return self.edge_router.functions.swapExactETHForTokensSupportingFeeOnTransferTokens(
                self.network.v2_router,
                minimum_out,
                list(quote.path),
                self.wallet_address,
                deadline
            )
        return self.edge_router.functions.exactInputSingle(
            self.network.v3_router,
            self._v3_params(quote, minimum_out, deadline)
        )

    def _sell_function(self, quote: PoolQuote, minimum_out: int, deadline: int):
        if quote.venue is Venue.V2:
            return self.edge_router.functions.swapExactTokensForETHSupportingFeeOnTransferTokens(
                self.network.v2_router,
                quote.amount_in,
                minimum_out,
                list(quote.path),
                self.wallet_address,
                deadline
            )
        return self.edge_router.functions.exactInputSingle(
            self.network.v3_router,
            self._v3_params(quote, minimum_out, deadline)
        )

    # ------------------------------------------------------------------
    # Buy / sell
    # ------------------------------------------------------------------

    def execute(self, intent: TradeIntent) -> TradeResult:
        """Run a TradeIntent"""
        if intent.direction is Direction.BUY:
            return self.execute_buy(
                intent.token_address, intent.amount, intent.slippage_bps, intent.gas_limit
            )
        return self.execute_sell(
            intent.token_address, intent.amount, intent.slippage_bps, intent.gas_limit
        )

    def execute_buy(
        self,
        token_address: str,
        native_amount: Amount,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TradeResult:
        """
        Buy a token with the native currency

        Args:
            token_address: Token contract address
            native_amount: Amount of ETH/BNB to spend, as a decimal string
            slippage_bps: Tolerated output reduction in basis points
            gas_limit: Gas limit for the swap transaction

        Returns:
            TradeResult of the confirmed swap
        """
        symbol_native = self.network.native_symbol
        self._context = f"Buy {token_address} for {native_amount} {symbol_native}"
        logger.info(f"=== Starting buy: {native_amount} {symbol_native} -> {token_address} ===")

        with self._stage(TradeStage.INIT):
            token = TokenContract(self.client, token_address)
            amount_in = parse_positive_units(native_amount, NATIVE_DECIMALS)
            validate_slippage_bps(slippage_bps)
            validate_gas_limit(gas_limit)
            symbol, decimals = token.symbol(), token.decimals()

        with self._stage(TradeStage.BALANCE_CHECK):
            balance = self.client.get_balance()
            if balance < amount_in:
                raise InsufficientBalanceError(
                    have=format_units(balance, NATIVE_DECIMALS),
                    need=format_units(amount_in, NATIVE_DECIMALS),
                    symbol=symbol_native
                )

        with self._stage(TradeStage.QUOTE):
            quote = self.router.detect_pool(token.address, amount_in, Direction.BUY)
            minimum_out = calculate_minimum_out(quote.amount_out, slippage_bps)
            logger.info(
                f"Quote via {quote.label}: expected {format_units(quote.amount_out, decimals)} {symbol}, "
                f"minimum {format_units(minimum_out, decimals)} {symbol}"
            )

        with self._stage(TradeStage.SUBMIT):
            function = self._buy_function(quote, minimum_out, self._deadline())
            tx_hash = self.client.send_transaction(
                function,
                value=amount_in,
                gas_limit=gas_limit,
                gas_price=self._gas_price()
            )

        with self._stage(TradeStage.CONFIRM):
            receipt = self._confirm(tx_hash)

        self.stage = TradeStage.DONE
        logger.info(f"Buy successful! Explorer: {self.network.tx_url(tx_hash)}")

        return TradeResult(
            transaction_hash=tx_hash,
            confirmed=True,
            expected_out=quote.amount_out,
            minimum_out=minimum_out,
            token_symbol=symbol,
            decimals=decimals,
            direction=Direction.BUY,
            amount_in=amount_in,
            formatted_out=format_units(quote.amount_out, decimals),
            venue=quote.venue,
            fee_tier=quote.fee_tier,
            explorer_url=self.network.tx_url(tx_hash),
            receipt=receipt,
        )

    def _resolve_sell_amount(self, amount_tokens: Amount, balance: int, decimals: int) -> int:
        """Decimal string, raw base units, or a percentage of the current balance"""
        if isinstance(amount_tokens, bool):
            raise InputError(f"Invalid sell amount: {amount_tokens!r}")
        if isinstance(amount_tokens, int):
            return amount_tokens
        if isinstance(amount_tokens, Decimal):
            return parse_units(amount_tokens, decimals)

        text = str(amount_tokens).strip()
        if text.endswith('%'):
            amount = percentage_of(balance, parse_percentage(text))
            logger.info(f"Selling {text} of balance = {amount} base units")
            return amount
        if is_raw_amount(text):
            return parse_raw_amount(text)
        return parse_units(text, decimals)

    def execute_sell(
        self,
        token_address: str,
        amount_tokens: Amount,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TradeResult:
        """
        Sell a token for the native currency

        Args:
            token_address: Token contract address
            amount_tokens: "1.5" (tokens), "1500000" or "0x..." (base units), or "50%"
                of the current on-chain balance
            slippage_bps: Tolerated output reduction in basis points
            gas_limit: Gas limit for the swap transaction

        Returns:
            TradeResult of the confirmed swap
        """
        self._context = f"Sell {amount_tokens} of {token_address}"
        logger.info(f"=== Starting sell: {amount_tokens} of {token_address} ===")

        with self._stage(TradeStage.INIT):
            token = TokenContract(self.client, token_address)
            validate_slippage_bps(slippage_bps)
            validate_gas_limit(gas_limit)
            symbol, decimals = token.symbol(), token.decimals()

        with self._stage(TradeStage.BALANCE_CHECK):
            balance = token.balance_of()
            logger.info(f"Current balance: {format_units(balance, decimals)} {symbol}")

            amount_in = self._resolve_sell_amount(amount_tokens, balance, decimals)
            if amount_in <= 0:
                raise InputError(
                    f"Sell amount must be greater than zero "
                    f"(balance {format_units(balance, decimals)} {symbol})"
                )
            if balance < amount_in:
                raise InsufficientTokenBalanceError(
                    have=format_units(balance, decimals),
                    need=format_units(amount_in, decimals),
                    symbol=symbol
                )

        self._ensure_allowance(token, amount_in)

        with self._stage(TradeStage.QUOTE):
            quote = self.router.detect_pool(token.address, amount_in, Direction.SELL)
            minimum_out = calculate_minimum_out(quote.amount_out, slippage_bps)
            logger.info(
                f"Quote via {quote.label}: expected "
                f"{format_units(quote.amount_out, NATIVE_DECIMALS)} {self.network.native_symbol}, "
                f"minimum {format_units(minimum_out, NATIVE_DECIMALS)} {self.network.native_symbol}"
            )

        with self._stage(TradeStage.SUBMIT):
            function = self._sell_function(quote, minimum_out, self._deadline())
            tx_hash = self.client.send_transaction(
                function,
                value=0,
                gas_limit=gas_limit,
                gas_price=self._gas_price()
            )

        with self._stage(TradeStage.CONFIRM):
            receipt = self._confirm(tx_hash)

        self.stage = TradeStage.DONE
        logger.info(f"Sell successful! Explorer: {self.network.tx_url(tx_hash)}")

        return TradeResult(
            transaction_hash=tx_hash,
            confirmed=True,
            expected_out=quote.amount_out,
            minimum_out=minimum_out,
            token_symbol=symbol,
            decimals=decimals,
            direction=Direction.SELL,
            amount_in=amount_in,
            formatted_out=format_units(quote.amount_out, NATIVE_DECIMALS),
            venue=quote.venue,
            fee_tier=quote.fee_tier,
            explorer_url=self.network.tx_url(tx_hash),
            receipt=receipt,
        )

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def _approve_and_confirm(self, token: TokenContract, amount: int) -> Dict[str, Any]:
        with self._stage(TradeStage.APPROVAL_SUBMIT):
            try:
                approve_hash = token.approve(
                    self.edge_router_address,
                    amount,
                    gas_limit=APPROVAL_GAS_LIMIT,
                    gas_price=self._gas_price()
                )
            except RPCError as e:
                raise ApprovalFailedError(f"Approval submission failed for {token.address}: {e.message}")

        with self._stage(TradeStage.APPROVAL_CONFIRM):
            try:
                receipt = self.client.wait_for_receipt(approve_hash, self.confirmation_timeout)
            except RPCError as e:
                raise ApprovalFailedError(
                    f"Approval {approve_hash} did not confirm: {e.message}",
                    tx_hash=approve_hash
                )
            if not receipt.get('status'):
                raise ApprovalFailedError(
                    f"Approval transaction reverted: {approve_hash}",
                    tx_hash=approve_hash
                )

        logger.info(f"Token approval set: {approve_hash}")
        return receipt

    def _ensure_allowance(self, token: TokenContract, amount: int) -> Optional[Dict[str, Any]]:
        """Approve the edge router for MAX_UINT256 when its allowance is below amount"""
        with self._stage(TradeStage.APPROVAL_CHECK):
            allowance = token.allowance(self.edge_router_address)
            logger.info(f"Current allowance: {allowance}")
            if allowance >= amount:
                return None

        logger.info('Setting token approval...')
        return self._approve_and_confirm(token, MAX_UINT256)

    def approve_token(self, token_address: str, amount: int = MAX_UINT256) -> Dict[str, Any]:
        """
        Approve the edge router and wait for the approval receipt

        Returns:
            Approval receipt
        """
        self._context = f"Approve {token_address}"
        with self._stage(TradeStage.INIT):
            token = TokenContract(self.client, token_address)
        return self._approve_and_confirm(token, amount)

    def check_allowance(self, token_address: str, amount: Union[int, str]) -> bool:
        """True when the edge router may already spend amount (base units)"""
        token = TokenContract(self.client, token_address)
        if isinstance(amount, str):
            if not is_raw_amount(amount):
                raise InputError(f"Allowance amount must be in base units: {amount!r}")
            amount = parse_raw_amount(amount)

        allowance = token.allowance(self.edge_router_address)
        logger.info(f"Current allowance for {token.address}: {allowance}")
        return allowance >= amount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_token_balance(self, token_address: str) -> Dict[str, Any]:
        """
        Wallet balance of a token

        Returns:
            {'balance': int, 'symbol': str, 'decimals': int, 'formatted': str}
        """
        token = TokenContract(self.client, token_address)
        balance = token.balance_of()
        symbol, decimals = token.symbol(), token.decimals()

        return {
            'balance': balance,
            'symbol': symbol,
            'decimals': decimals,
            'formatted': format_units(balance, decimals),
        }

    def get_token_info(self, token_address: str) -> Dict[str, Any]:
        token = TokenContract(self.client, token_address)
        decimals = token.decimals()
        total_supply = token.total_supply()

        return {
            'address': token.address,
            'name': token.name(),
            'symbol': token.symbol(),
            'decimals': decimals,
            'total_supply': total_supply,
            'formatted_supply': format_units(total_supply, decimals),
        }

    def get_token_price(self, token_address: str, amount: Amount = '1') -> Dict[str, Any]:
        """
        Tokens received for a native amount, using the same venue search as buys

        Returns:
            {'venue', 'fee_tier', 'amount_in', 'amount_out', 'price'}
        """
        token = TokenContract(self.client, token_address)
        amount_in = parse_positive_units(amount, NATIVE_DECIMALS)
        quote = self.router.detect_pool(token.address, amount_in, Direction.BUY)

        return {
            'venue': quote.venue.value,
            'fee_tier': quote.fee_tier,
            'amount_in': amount_in,
            'amount_out': quote.amount_out,
            'price': format_units(quote.amount_out, token.decimals()),
        }

    def estimate_gas(
        self,
        token_address: str,
        native_amount: Amount,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    ) -> int:
        """Gas estimate for buying token_address with native_amount"""
        token = TokenContract(self.client, token_address)
        amount_in = parse_positive_units(native_amount, NATIVE_DECIMALS)
        quote = self.router.detect_pool(token.address, amount_in, Direction.BUY)
        minimum_out = calculate_minimum_out(quote.amount_out, slippage_bps)

        function = self._buy_function(quote, minimum_out, self._deadline())
        return self.client.estimate_gas(function, value=amount_in)
