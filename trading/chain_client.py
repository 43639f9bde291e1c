"""
Chain Client
Owns one JSON-RPC connection and one signing account for a network
"""

import re
import logging
from contextlib import contextmanager
from typing import Optional, Dict, Any, List

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from .config import NetworkConfig, CONFIRMATION_TIMEOUT
from .exceptions import InputError, RPCError, ConfirmationTimeoutError

logger = logging.getLogger(__name__)

_PRIVATE_KEY_RE = re.compile(r'^0x[0-9a-fA-F]{64}$')

RECEIPT_POLL_LATENCY = 3
RPC_REQUEST_TIMEOUT = 30


def normalize_private_key(private_key: str) -> str:
    """Return the key as 0x-prefixed hex, accepting it with or without the prefix"""
    key = (private_key or '').strip()
    if not key.lower().startswith('0x'):
        key = f"0x{key}"
    key = '0x' + key[2:]

    if not _PRIVATE_KEY_RE.match(key):
        raise InputError("Invalid private key format: expected 32 bytes of hex")
    return key


def to_checksum(address: str, label: str = 'address') -> str:
    """Checksum an address, raising InputError for malformed input"""
    if not isinstance(address, str) or not Web3.is_address(address.strip()):
        raise InputError(f"Invalid {label}: {address!r}")
    return Web3.to_checksum_address(address.strip())


@contextmanager
def rpc_errors(action: str, **context: Any):
    """Re-raise provider failures as RPCError, logged with call context"""
    try:
        yield
    except (Web3Exception, OSError) as e:
        details = ', '.join(f"{k}={v}" for k, v in context.items())
        logger.error(f"RPC failure during {action} ({details}): {e}")
        raise RPCError(f"RPC failure during {action}: {e}", details=dict(context, action=action))


class ChainClient:
    """Web3 provider and local signer for a single network"""

    def __init__(
        self,
        network: NetworkConfig,
        private_key: str,
        web3: Optional[Web3] = None
    ):
        """
        Initialize the chain client

        Args:
            network: Network configuration
            private_key: Hex encoded private key (with or without 0x prefix)
            web3: Preconfigured Web3 instance, built from network.rpc_url if omitted
        """
        self.network = network
        self.w3 = web3 or Web3(Web3.HTTPProvider(
            network.rpc_url,
            request_kwargs={'timeout': RPC_REQUEST_TIMEOUT}
        ))

        try:
            self.account: LocalAccount = Account.from_key(normalize_private_key(private_key))
        except ValueError as e:
            logger.error(f"Failed to load private key: {e}")
            raise InputError(f"Invalid private key format: {e}")

        self.address = self.account.address
        logger.info(f"Initialized {network.name} wallet: {self.address}")

    def ensure_connected(self) -> int:
        """
        Check the RPC endpoint is reachable and on the expected chain

        Returns:
            Chain id reported by the endpoint
        """
        with rpc_errors('connect', network=self.network.key):
            if not self.w3.is_connected():
                raise RPCError(f"Failed to connect to {self.network.name} RPC")
            chain_id = self.w3.eth.chain_id

        if chain_id != self.network.chain_id:
            logger.warning(
                f"Connected to chain ID {chain_id}, expected {self.network.chain_id} "
                f"({self.network.name})"
            )
        return chain_id

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        """Contract handle bound to this connection"""
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def get_balance(self, address: Optional[str] = None) -> int:
        """Native balance in wei (defaults to the wallet)"""
        address = address or self.address
        with rpc_errors('getBalance', address=address):
            return self.w3.eth.get_balance(address)

    def get_fee_data(self) -> Dict[str, Optional[int]]:
        """
        Current fee data

        Returns:
            {'gas_price': int, 'base_fee': int or None}
        """
        with rpc_errors('getFeeData', network=self.network.key):
            gas_price = self.w3.eth.gas_price
            block = self.w3.eth.get_block('latest')

        return {
            'gas_price': gas_price,
            'base_fee': block.get('baseFeePerGas'),
        }

    def build_transaction(
        self,
        contract_function,
        value: int = 0,
        gas_limit: Optional[int] = None,
        gas_price: Optional[int] = None
    ) -> Dict[str, Any]:
        """Fill a legacy transaction for a contract call from the wallet"""
        with rpc_errors('buildTransaction', function=contract_function.fn_name):
            params = {
                'from': self.address,
                'value': value,
                'nonce': self.w3.eth.get_transaction_count(self.address, 'pending'),
                'chainId': self.network.chain_id,
                'gasPrice': gas_price if gas_price is not None else self.w3.eth.gas_price,
            }
            if gas_limit is not None:
                params['gas'] = gas_limit
            return contract_function.build_transaction(params)

    def send_transaction(
        self,
        contract_function,
        value: int = 0,
        gas_limit: Optional[int] = None,
        gas_price: Optional[int] = None
    ) -> str:
        """
        Sign and broadcast a contract call

        Args:
            contract_function: Bound web3 ContractFunction
            value: Native value to attach, in wei
            gas_limit: Gas limit; estimated by the node when omitted
            gas_price: Legacy gas price; current network price when omitted

        Returns:
            0x-prefixed transaction hash
        """
        transaction = self.build_transaction(contract_function, value, gas_limit, gas_price)

        logger.info(f"Signing {contract_function.fn_name} transaction...")
        signed_tx = self.account.sign_transaction(transaction)

        with rpc_errors('sendRawTransaction', function=contract_function.fn_name, value=value):
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    def estimate_gas(self, contract_function, value: int = 0) -> int:
        with rpc_errors('estimateGas', function=contract_function.fn_name, value=value):
            return contract_function.estimate_gas({'from': self.address, 'value': value})

    def wait_for_receipt(self, tx_hash: str, timeout: float = CONFIRMATION_TIMEOUT) -> Dict[str, Any]:
        """
        Block until one receipt is observed

        The transaction is never rebroadcast; a timeout leaves it in whatever
        state the network holds it.

        Args:
            tx_hash: Transaction hash
            timeout: Seconds to wait

        Returns:
            Transaction receipt
        """
        logger.info(f"Waiting for confirmation: {tx_hash}")
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout,
                poll_latency=RECEIPT_POLL_LATENCY
            )
        except TimeExhausted:
            logger.warning(f"Transaction confirmation timeout: {tx_hash}")
            raise ConfirmationTimeoutError(tx_hash, timeout)
        except (Web3Exception, OSError) as e:
            logger.error(f"Error waiting for transaction {tx_hash}: {e}")
            raise RPCError(
                f"Error waiting for transaction {tx_hash}: {e}",
                details={'tx_hash': tx_hash}
            )

        logger.info(f"Receipt for {tx_hash}: status={receipt.get('status')} block={receipt.get('blockNumber')}")
        return receipt

    def explorer_url(self, tx_hash: str) -> str:
        return self.network.tx_url(tx_hash)
