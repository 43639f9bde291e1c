"""
Shared fixtures: an in-memory chain behind a mocked ChainClient

FakeChain records every read, submission and receipt wait in `events` so
tests can assert on call ordering.
"""

from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from trading.config import build_networks

WALLET = '0x' + '2' * 40
TOKEN = '0x' + '1' * 40
GAS_PRICE = 5 * 10 ** 9
ETHER = 10 ** 18

TEST_PRIVATE_KEY = '0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318'


def make_function(name, *args):
    """Stand-in for a bound web3 ContractFunction"""
    function = MagicMock()
    function.fn_name = name
    function.args = args
    return function


class FakeChain:
    """Token, quoter, V2 router and edge router state for one network"""

    def __init__(self, network):
        self.network = network
        self.contracts = {}
        self.events = []
        self.sent = []
        self.receipt_status = {}

        self.native_balance = 0
        self.token_symbol = 'TKN'
        self.token_decimals = 18
        self.token_name = 'Test Token'
        self.token_supply = 1000000 * ETHER
        self.token_balance = 0
        self.allowance = 0

        # fee tier -> amount out or exception; missing tiers revert
        self.quotes_v3 = {}
        # full getAmountsOut result or exception
        self.v2_amounts = ContractLogicError('execution reverted')

        self.client = MagicMock()
        self.client.address = WALLET
        self.client.network = network
        self.client.contract.side_effect = self._contract
        self.client.get_balance.side_effect = self._get_balance
        self.client.get_fee_data.return_value = {'gas_price': GAS_PRICE, 'base_fee': None}
        self.client.send_transaction.side_effect = self._send
        self.client.wait_for_receipt.side_effect = self._wait
        self.client.estimate_gas.return_value = 210000

        self._wire_token(TOKEN)
        self._wire_quoter()
        self._wire_v2_router()
        self._wire_edge_router()

    def contract(self, address):
        return self._contract(address, None)

    def _contract(self, address, abi):
        if address not in self.contracts:
            self.contracts[address] = MagicMock(name=f"contract {address}")
        return self.contracts[address]

    def _call(self, value, event=None):
        call = MagicMock()

        def _do_call(*args, **kwargs):
            if event:
                self.events.append(event)
            if isinstance(value, Exception):
                raise value
            return value

        call.call.side_effect = _do_call
        return call

    def _get_balance(self, address=None):
        self.events.append('getBalance')
        return self.native_balance

    def _send(self, function, value=0, gas_limit=None, gas_price=None):
        tx_hash = '0x' + f"{len(self.sent) + 1:064x}"
        self.sent.append({
            'function': function,
            'value': value,
            'gas_limit': gas_limit,
            'gas_price': gas_price,
            'hash': tx_hash,
        })
        self.events.append(f"send:{function.fn_name}")
        return tx_hash

    def _wait(self, tx_hash, timeout=None):
        self.events.append(f"receipt:{tx_hash}")
        status = self.receipt_status.get(tx_hash, 1)
        if isinstance(status, Exception):
            raise status
        return {'status': status, 'blockNumber': 100, 'transactionHash': tx_hash}

    def _wire_token(self, address):
        functions = self.contract(address).functions
        functions.symbol.side_effect = lambda: self._call(self.token_symbol)
        functions.decimals.side_effect = lambda: self._call(self.token_decimals)
        functions.name.side_effect = lambda: self._call(self.token_name)
        functions.totalSupply.side_effect = lambda: self._call(self.token_supply)
        functions.balanceOf.side_effect = lambda owner: self._call(self.token_balance, 'balanceOf')
        functions.allowance.side_effect = lambda owner, spender: self._call(self.allowance, 'allowance')
        functions.approve.side_effect = lambda spender, amount: make_function('approve', spender, amount)

    def _v3_result(self, fee):
        result = self.quotes_v3.get(fee, ContractLogicError('execution reverted'))
        if isinstance(result, Exception):
            return result
        return [result, 0, 0, 0]

    def _wire_quoter(self):
        quoter = self.contract(self.network.v3_quoter)
        quoter.functions.quoteExactInputSingle.side_effect = lambda params: self._call(
            self._v3_result(params['fee']), f"quote:V3:{params['fee']}"
        )

    def _wire_v2_router(self):
        router = self.contract(self.network.v2_router)
        router.functions.getAmountsOut.side_effect = lambda amount_in, path: self._call(
            self.v2_amounts, 'quote:V2'
        )

    def _wire_edge_router(self):
        functions = self.contract(self.network.edge_router).functions
        for name in (
            'swapExactETHForTokensSupportingFeeOnTransferTokens',
            'swapExactTokensForETHSupportingFeeOnTransferTokens',
            'exactInputSingle',
        ):
            getattr(functions, name).side_effect = (
                lambda *args, _name=name: make_function(_name, *args)
            )

    @property
    def quote_events(self):
        return [event for event in self.events if event.startswith('quote:')]


@pytest.fixture
def network():
    return build_networks()['ETH']


@pytest.fixture
def chain(network):
    return FakeChain(network)
