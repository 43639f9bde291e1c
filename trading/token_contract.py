"""
Token Contract
Typed ERC-20/BEP-20 accessor bound to a ChainClient

Metadata reads (symbol, decimals, name, totalSupply) fall back to defaults,
since non-standard tokens routinely revert or return garbage there. Balance,
allowance and approve failures propagate.
"""

import logging
from typing import Optional

from web3.exceptions import Web3Exception

from .abis import ERC20_ABI
from .chain_client import ChainClient, rpc_errors, to_checksum
from .config import NATIVE_DECIMALS, APPROVAL_GAS_LIMIT

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = 'UNKNOWN'
DEFAULT_NAME = 'UNKNOWN'


class TokenContract:
    """ERC-20 calls against a single token address"""

    def __init__(self, client: ChainClient, token_address: str):
        self.client = client
        self.address = to_checksum(token_address, 'token address')
        self.contract = client.contract(self.address, ERC20_ABI)

    def _read_or_default(self, function_name: str, default):
        try:
            return getattr(self.contract.functions, function_name)().call()
        except (Web3Exception, OSError, ValueError, OverflowError) as e:
            logger.warning(f"{function_name}() failed for {self.address}, using {default!r}: {e}")
            return default

    def symbol(self) -> str:
        return self._read_or_default('symbol', DEFAULT_SYMBOL) or DEFAULT_SYMBOL

    def name(self) -> str:
        return self._read_or_default('name', DEFAULT_NAME) or DEFAULT_NAME

    def decimals(self) -> int:
        decimals = self._read_or_default('decimals', NATIVE_DECIMALS)
        if not isinstance(decimals, int) or not 0 <= decimals <= 77:
            logger.warning(f"Unusable decimals {decimals!r} for {self.address}, using {NATIVE_DECIMALS}")
            return NATIVE_DECIMALS
        return decimals

    def total_supply(self) -> int:
        return self._read_or_default('totalSupply', 0)

    def balance_of(self, owner: Optional[str] = None) -> int:
        """Raw token balance of owner (defaults to the wallet)"""
        owner = owner or self.client.address
        with rpc_errors('balanceOf', token=self.address, owner=owner):
            return self.contract.functions.balanceOf(owner).call()

    def allowance(self, spender: str, owner: Optional[str] = None) -> int:
        owner = owner or self.client.address
        with rpc_errors('allowance', token=self.address, owner=owner, spender=spender):
            return self.contract.functions.allowance(owner, spender).call()

    def approve(
        self,
        spender: str,
        amount: int,
        gas_limit: int = APPROVAL_GAS_LIMIT,
        gas_price: Optional[int] = None
    ) -> str:
        """
        Submit approve(spender, amount)

        Args:
            spender: Address allowed to move the wallet's tokens
            amount: Allowance in base units
            gas_limit: Gas limit for the approval
            gas_price: Legacy gas price, current network price if omitted

        Returns:
            Approval transaction hash (not yet confirmed)
        """
        logger.info(f"Approving {spender} to spend {self.address}")
        return self.client.send_transaction(
            self.contract.functions.approve(spender, amount),
            gas_limit=gas_limit,
            gas_price=gas_price
        )
