"""
Trade Errors
Exception hierarchy raised by the trading engine

Each class maps to a different caller reaction:
- InputError: ask the user to correct the input
- InsufficientFundsError: ask the user for more funds or a smaller amount
- NoViablePoolError: token untradeable right now, may retry later
- ApprovalFailedError / TransactionRevertedError: abort, inspect on-chain
- RPCError: transient provider failure, reads may be retried
"""

from typing import Optional, Dict, Any


class TradeError(Exception):
    """Base exception for all trading engine errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        stage: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class InputError(TradeError):
    """Malformed address, key, amount, percentage or trade setting"""

    pass


class InsufficientFundsError(TradeError):
    """Wallet holds less than the trade needs"""

    def __init__(
        self,
        message: str,
        have: str,
        need: str,
        symbol: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.have = have
        self.need = need
        self.symbol = symbol


class InsufficientBalanceError(InsufficientFundsError):
    """Native currency balance is below the buy amount"""

    def __init__(self, have: str, need: str, symbol: str):
        super().__init__(
            f"Insufficient {symbol} balance. Have: {have} {symbol}, Need: {need} {symbol}",
            have=have,
            need=need,
            symbol=symbol
        )


class InsufficientTokenBalanceError(InsufficientFundsError):
    """Token balance is below the sell amount"""

    def __init__(self, have: str, need: str, symbol: str):
        super().__init__(
            f"Insufficient token balance. Have: {have} {symbol}, Need: {need} {symbol}",
            have=have,
            need=need,
            symbol=symbol
        )


class NoViablePoolError(TradeError):
    """No V3 fee tier nor V2 path returned a usable quote"""

    def __init__(self, token_address: str, message: Optional[str] = None):
        super().__init__(
            message or f"No viable V3 or V2 pool found for {token_address}",
            details={'token_address': token_address}
        )
        self.token_address = token_address


class InvalidMinimumAmountError(TradeError):
    """Minimum output rounded down to zero"""

    pass


class ApprovalFailedError(TradeError):
    """Approval transaction reverted or never confirmed"""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message, details={'tx_hash': tx_hash})
        self.tx_hash = tx_hash


class TransactionRevertedError(TradeError):
    """Swap transaction was mined with status 0"""

    def __init__(self, tx_hash: str, receipt: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Transaction reverted on-chain: {tx_hash}",
            details={'tx_hash': tx_hash}
        )
        self.tx_hash = tx_hash
        self.receipt = receipt


class RPCError(TradeError):
    """Transient provider or network failure"""

    pass


class ConfirmationTimeoutError(RPCError):
    """No receipt observed before the confirmation timeout"""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(
            f"Transaction {tx_hash} not confirmed after {timeout:.0f}s. "
            f"Check the explorer before retrying",
            details={'tx_hash': tx_hash, 'timeout': timeout}
        )
        self.tx_hash = tx_hash
        self.timeout = timeout
