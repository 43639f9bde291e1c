"""
Unit tests for the chain client.

Tests cover:
- Private key normalization and address checksumming
- Transaction building and signing against a mocked provider
- Receipt waiting and error translation
"""

from unittest.mock import MagicMock

import pytest
from web3.exceptions import TimeExhausted

from trading.chain_client import ChainClient, normalize_private_key, rpc_errors, to_checksum
from trading.exceptions import ConfirmationTimeoutError, InputError, RPCError

from conftest import GAS_PRICE, TEST_PRIVATE_KEY, TOKEN

TX_HASH = b'\x12' * 32


@pytest.fixture
def web3():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.gas_price = GAS_PRICE
    w3.eth.chain_id = 1
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.get_block.return_value = {'baseFeePerGas': 10 ** 9}
    return w3


@pytest.fixture
def client(network, web3):
    return ChainClient(network, TEST_PRIVATE_KEY, web3=web3)


def contract_function(name='exactInputSingle'):
    function = MagicMock()
    function.fn_name = name
    function.build_transaction.side_effect = lambda params: dict(params, to=TOKEN, data='0x')
    return function


class TestKeysAndAddresses:

    def test_key_without_prefix(self):
        assert normalize_private_key(TEST_PRIVATE_KEY[2:]) == TEST_PRIVATE_KEY

    def test_key_with_prefix_and_whitespace(self):
        assert normalize_private_key(f"  {TEST_PRIVATE_KEY}\n") == TEST_PRIVATE_KEY

    @pytest.mark.parametrize("key", ["", "0x1234", "zz" * 32, None])
    def test_invalid_key(self, key):
        with pytest.raises(InputError):
            normalize_private_key(key)

    def test_client_rejects_bad_key(self, network, web3):
        with pytest.raises(InputError):
            ChainClient(network, 'not-a-key', web3=web3)

    def test_client_derives_address(self, client):
        assert client.address.startswith('0x')
        assert len(client.address) == 42

    def test_to_checksum(self):
        lower = '0xdfb50fb4be4a0f7e9a7e5641944471bb0d2902d9'
        assert to_checksum(lower) != lower
        assert to_checksum(lower).lower() == lower

    @pytest.mark.parametrize("address", ["0x123", "hello", "", None])
    def test_to_checksum_rejects_invalid(self, address):
        with pytest.raises(InputError):
            to_checksum(address)


class TestTransactions:
    """Test building, signing and sending."""

    def test_build_transaction(self, client, web3):
        function = contract_function()

        transaction = client.build_transaction(function, value=100, gas_limit=300000, gas_price=3)

        assert transaction['from'] == client.address
        assert transaction['value'] == 100
        assert transaction['nonce'] == 7
        assert transaction['chainId'] == 1
        assert transaction['gasPrice'] == 3
        assert transaction['gas'] == 300000
        web3.eth.get_transaction_count.assert_called_once_with(client.address, 'pending')

    def test_build_transaction_defaults_gas_price(self, client):
        transaction = client.build_transaction(contract_function())

        assert transaction['gasPrice'] == GAS_PRICE
        assert 'gas' not in transaction

    def test_send_transaction_signs_and_returns_hex(self, client, web3):
        tx_hash = client.send_transaction(contract_function(), value=10 ** 17, gas_limit=300000)

        assert tx_hash == '0x' + '12' * 32
        raw = web3.eth.send_raw_transaction.call_args.args[0]
        assert isinstance(raw, bytes) and len(raw) > 0

    def test_send_failure_is_rpc_error(self, client, web3):
        web3.eth.send_raw_transaction.side_effect = OSError('connection reset')

        with pytest.raises(RPCError):
            client.send_transaction(contract_function(), gas_limit=300000, gas_price=1)

    def test_estimate_gas(self, client):
        function = contract_function()
        function.estimate_gas.return_value = 123456

        assert client.estimate_gas(function, value=5) == 123456
        function.estimate_gas.assert_called_once_with({'from': client.address, 'value': 5})

    def test_fee_data(self, client):
        assert client.get_fee_data() == {'gas_price': GAS_PRICE, 'base_fee': 10 ** 9}


class TestReceipts:
    """Test receipt waiting."""

    def test_returns_receipt(self, client, web3):
        web3.eth.wait_for_transaction_receipt.return_value = {'status': 1, 'blockNumber': 5}

        receipt = client.wait_for_receipt('0xabc', timeout=10)

        assert receipt['status'] == 1
        web3.eth.wait_for_transaction_receipt.assert_called_once_with(
            '0xabc', timeout=10, poll_latency=3
        )

    def test_timeout(self, client, web3):
        web3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted('timed out')

        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            client.wait_for_receipt('0xabc', timeout=10)

        assert exc_info.value.tx_hash == '0xabc'
        assert isinstance(exc_info.value, RPCError)

    def test_provider_error(self, client, web3):
        web3.eth.wait_for_transaction_receipt.side_effect = OSError('boom')

        with pytest.raises(RPCError):
            client.wait_for_receipt('0xabc')


class TestConnection:

    def test_ensure_connected(self, client):
        assert client.ensure_connected() == 1

    def test_not_connected(self, client, web3):
        web3.is_connected.return_value = False

        with pytest.raises(RPCError):
            client.ensure_connected()

    def test_chain_id_mismatch_only_warns(self, client, web3):
        web3.eth.chain_id = 56
        assert client.ensure_connected() == 56

    def test_rpc_errors_passes_other_exceptions(self):
        with pytest.raises(KeyError):
            with rpc_errors('test'):
                raise KeyError('x')
