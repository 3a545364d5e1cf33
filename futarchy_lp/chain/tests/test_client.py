"""
Tests for the chain client against a mocked web3 connection.
"""

from unittest.mock import Mock, PropertyMock

import pytest
from hexbytes import HexBytes

from ...errors import AdapterCallReverted, TransactionReverted
from ..client import ChainClient, hex_str, log_data, topic_to_address
from ..gas import SPLIT_MERGE_GAS_OVERHEAD, GasPolicy

GWEI = 10**9
SIGNER = "0x00000000000000000000000000000000000000aa"
TX_HASH = HexBytes(b"\x12" * 32)


@pytest.fixture
def web3():
    w3 = Mock()
    w3.eth.get_block.return_value = {"baseFeePerGas": 10 * GWEI}
    w3.eth.max_priority_fee = 1 * GWEI
    w3.eth.gas_price = 5 * GWEI
    w3.eth.get_transaction_count.return_value = 5
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "logs": [], "gasUsed": 21000}
    return w3


@pytest.fixture
def signer():
    account = Mock()
    account.address = SIGNER
    account.sign_transaction.return_value = Mock(raw_transaction=b"signed")
    return account


@pytest.fixture
def client(web3, signer):
    return ChainClient(web3, signer, GasPolicy(min_priority_fee_per_gas=2 * GWEI), chain_id=100)


def contract_fn(estimate=100000):
    fn = Mock()
    if isinstance(estimate, Exception):
        fn.estimate_gas.side_effect = estimate
    else:
        fn.estimate_gas.return_value = estimate
    fn.build_transaction.side_effect = lambda tx: dict(tx)
    return fn


class TestHelpers:
    """Log and topic helpers."""

    def test_hex_str(self):
        assert hex_str(HexBytes(b"\xab\xcd")) == "0xabcd"
        assert hex_str("ABCD") == "0xabcd"

    def test_topic_to_address(self):
        topic = HexBytes(b"\x00" * 12 + bytes.fromhex("aa" * 20))
        assert topic_to_address(topic).lower() == "0x" + "aa" * 20

    def test_log_data_from_hex(self):
        assert log_data({"data": "0x0102"}) == b"\x01\x02"
        assert log_data({}) == b""


class TestFees:
    """Fee parameters from network data."""

    @pytest.mark.asyncio
    async def test_eip1559_fees_floored(self, client):
        fees = await client.fee_params()
        assert fees == {"maxFeePerGas": 22 * GWEI, "maxPriorityFeePerGas": 2 * GWEI}

    @pytest.mark.asyncio
    async def test_priority_fee_suggestion_failure(self, client, web3):
        type(web3.eth).max_priority_fee = PropertyMock(side_effect=ValueError("method not found"))
        fees = await client.fee_params()
        assert fees["maxPriorityFeePerGas"] == 2 * GWEI

    @pytest.mark.asyncio
    async def test_legacy_chain(self, client, web3):
        web3.eth.get_block.return_value = {}
        assert await client.fee_params() == {"gasPrice": 5 * GWEI}

    @pytest.mark.asyncio
    async def test_legacy_chain_fallback_gas_price(self, web3, signer):
        web3.eth.get_block.return_value = {}
        type(web3.eth).gas_price = PropertyMock(side_effect=ConnectionError("rpc down"))
        client = ChainClient(
            web3, signer, GasPolicy(min_priority_fee_per_gas=1), chain_id=100, fallback_gas_price=25 * GWEI
        )
        assert await client.fee_params() == {"gasPrice": 25 * GWEI}


class TestSend:
    """Transaction submission."""

    @pytest.mark.asyncio
    async def test_send_builds_buffered_transaction(self, client, web3, signer):
        fn = contract_fn(100000)
        result = await client.send(fn, gas_fallback=1500000, gas_overhead=SPLIT_MERGE_GAS_OVERHEAD)

        tx = fn.build_transaction.call_args[0][0]
        assert tx["gas"] == 100000 * 130 // 100 + SPLIT_MERGE_GAS_OVERHEAD
        assert tx["nonce"] == 5
        assert tx["chainId"] == 100
        assert tx["maxPriorityFeePerGas"] == 2 * GWEI
        web3.eth.get_transaction_count.assert_called_once_with(client.address, "pending")
        web3.eth.send_raw_transaction.assert_called_once_with(b"signed")
        assert result.tx_hash == "0x" + "12" * 32
        assert result.gas_used == 21000

    @pytest.mark.asyncio
    async def test_send_uses_fallback_when_estimation_fails(self, client):
        fn = contract_fn(ValueError("execution reverted"))
        await client.send(fn, gas_fallback=1500000)
        assert fn.build_transaction.call_args[0][0]["gas"] == 1500000

    @pytest.mark.asyncio
    async def test_send_respects_minimum_gas_limit(self, client):
        fn = contract_fn(1000)
        await client.send(fn, gas_fallback=1, gas_overhead=0, min_gas_limit=5000000)
        assert fn.build_transaction.call_args[0][0]["gas"] == 5000000

    @pytest.mark.asyncio
    async def test_reverted_receipt_raises_typed_error(self, client, web3):
        web3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "logs": []}
        with pytest.raises(AdapterCallReverted) as exc_info:
            await client.send(contract_fn(), gas_fallback=1, revert_error=AdapterCallReverted)
        assert exc_info.value.tx_hash == "0x" + "12" * 32

    @pytest.mark.asyncio
    async def test_submission_failure_raises(self, client, web3):
        web3.eth.send_raw_transaction.side_effect = ValueError("nonce too low")
        with pytest.raises(TransactionReverted, match="failed to submit") as exc_info:
            await client.send(contract_fn(), gas_fallback=1)
        assert exc_info.value.reason == "nonce too low"
