"""
Pool Router
Venue and fee-tier discovery for a token against the wrapped native token

Venues are tried in a fixed order: V3 at 0.01%, 0.05%, 0.3%, 1%, then V2.
The first venue quoting a non-zero output wins, even when a later venue
would quote more.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Optional, Tuple, List, Callable

from web3.exceptions import ContractLogicError, Web3Exception

from .abis import QUOTER_V3_ABI, ROUTER_V2_ABI
from .chain_client import ChainClient, rpc_errors
from .config import NetworkConfig, V3_FEE_TIERS
from .exceptions import InputError, NoViablePoolError

logger = logging.getLogger(__name__)


class Venue(Enum):
    V2 = 'V2'
    V3 = 'V3'


class Direction(Enum):
    BUY = 'buy'
    SELL = 'sell'


@dataclass(frozen=True)
class PoolQuote:
    """Executable quote from one venue"""

    venue: Venue
    amount_in: int
    amount_out: int
    path: Tuple[str, ...]
    fee_tier: Optional[int] = None

    @property
    def label(self) -> str:
        if self.venue is Venue.V3:
            return f"V3 {fee_tier_label(self.fee_tier)}"
        return 'V2'


def fee_tier_label(fee_tier: int) -> str:
    """100 -> '0.01%'"""
    return f"{fee_tier / 10000:g}%"


QuoteAttempt = Callable[[str, int, Direction], Optional[PoolQuote]]


class PoolRouter:
    """Finds an executable venue for a swap on one network"""

    def __init__(self, client: ChainClient, network: NetworkConfig):
        self.network = network
        self.quoter_v3 = client.contract(network.v3_quoter, QUOTER_V3_ABI)
        self.router_v2 = client.contract(network.v2_router, ROUTER_V2_ABI)

    def strategies(self) -> List[Tuple[str, QuoteAttempt]]:
        """Ordered (label, attempt) pairs, V3 tiers first then V2"""
        attempts: List[Tuple[str, QuoteAttempt]] = [
            (f"V3 {fee_tier_label(fee_tier)}", partial(self.quote_v3, fee_tier=fee_tier))
            for fee_tier in V3_FEE_TIERS
        ]
        attempts.append(('V2', self.quote_v2))
        return attempts

    def _path(self, weth: str, token_address: str, direction: Direction) -> Tuple[str, ...]:
        if direction is Direction.BUY:
            return (weth, token_address)
        return (token_address, weth)

    def quote_v3(
        self,
        token_address: str,
        amount_in: int,
        direction: Direction,
        fee_tier: int
    ) -> Optional[PoolQuote]:
        """
        Quote one V3 fee tier

        Returns:
            PoolQuote, or None when the tier has no pool or no output
        """
        token_in, token_out = self._path(self.network.v3_weth, token_address, direction)
        params = {
            'tokenIn': token_in,
            'tokenOut': token_out,
            'amountIn': amount_in,
            'fee': fee_tier,
            'sqrtPriceLimitX96': 0,
        }

        logger.info(f"Checking {fee_tier_label(fee_tier)} fee tier")
        try:
            result = self.quoter_v3.functions.quoteExactInputSingle(params).call()
        except (Web3Exception, OSError) as e:
            logger.info(f"Error with {fee_tier_label(fee_tier)} fee tier: {e}")
            return None

        amount_out = result[0] if isinstance(result, (list, tuple)) else result
        logger.info(f"V3 {fee_tier_label(fee_tier)} amount out: {amount_out}")

        if not amount_out or amount_out <= 0:
            return None

        return PoolQuote(
            venue=Venue.V3,
            amount_in=amount_in,
            amount_out=int(amount_out),
            path=(token_in, token_out),
            fee_tier=fee_tier
        )

    def quote_v2(
        self,
        token_address: str,
        amount_in: int,
        direction: Direction
    ) -> Optional[PoolQuote]:
        """
        Quote the V2 router along [WETH, token] (reversed for sells)

        Returns:
            PoolQuote, or None when the pair does not exist or quotes zero
        """
        path = self._path(self.network.v2_weth, token_address, direction)
        logger.info(f"V2 pool check, path: {list(path)}, amount in: {amount_in}")

        with rpc_errors('getAmountsOut', token=token_address, amount_in=amount_in):
            try:
                amounts = self.router_v2.functions.getAmountsOut(amount_in, list(path)).call()
            except ContractLogicError as e:
                logger.info(f"No V2 pair for {token_address}: {e}")
                return None

        if not amounts or len(amounts) < 2:
            raise NoViablePoolError(token_address, 'Invalid amounts returned from router')

        amount_out = int(amounts[-1])
        if amount_out <= 0:
            return None

        return PoolQuote(
            venue=Venue.V2,
            amount_in=amount_in,
            amount_out=amount_out,
            path=path
        )

    def detect_pool(
        self,
        token_address: str,
        amount_in: int,
        direction: Direction = Direction.BUY
    ) -> PoolQuote:
        """
        Find the first venue that can execute the swap

        Args:
            token_address: Checksummed token address
            amount_in: Input amount in base units (wei for buys, token units for sells)
            direction: BUY quotes native -> token, SELL quotes token -> native

        Returns:
            PoolQuote for the winning venue
        """
        if not token_address or not amount_in or amount_in <= 0:
            raise InputError('Token address and a positive amount are required')

        logger.info(f"Detecting pool for {token_address} ({direction.value}, amount in {amount_in})")

        for label, attempt in self.strategies():
            quote = attempt(token_address, amount_in, direction)
            if quote is not None:
                logger.info(f"Using {label} pool, amount out: {quote.amount_out}")
                return quote

        raise NoViablePoolError(token_address)
