"""Tests for the ledger gateway: signers, contract registry, transactions and event decoding."""
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from insurechain.core.exceptions import (
    ContractNotConfigured,
    InvalidAddress,
    InvalidKey,
    LedgerUnavailable,
    TransactionReverted,
    TransactionTimeout,
    UnknownContract,
    ValidationError,
)
from insurechain.ledger import (
    CLAIM_CONTRACT,
    POLICY_CONTRACT,
    ContractHandle,
    ContractRegistry,
    EventFound,
    EventNotFound,
    LedgerGateway,
    Receipt,
    to_address,
)
from insurechain.ledger.abi import CLAIM_CONTRACT_ABI, POLICY_CONTRACT_ABI

from tests.fakes import DEPLOYMENTS, INSURER_ADDRESS, INSURER_KEY, PATIENT_ADDRESS

TX_HASH = HexBytes(b"\x11" * 32)
BLOCK_HASH = HexBytes(b"\x22" * 32)


def _topic_uint(value: int) -> HexBytes:
    return HexBytes(value.to_bytes(32, "big"))


def _topic_address(address: str) -> HexBytes:
    return HexBytes(b"\x00" * 12 + bytes.fromhex(address[2:]))


def _log(address: str, topics: list, data: bytes, index: int = 0) -> dict:
    return {
        "address": address,
        "topics": topics,
        "data": HexBytes(data),
        "logIndex": index,
        "transactionIndex": 0,
        "transactionHash": TX_HASH,
        "blockHash": BLOCK_HASH,
        "blockNumber": 7,
        "removed": False,
    }


def claim_submitted_log(claim_id: int, policy_id: int, amount: int, index: int = 0) -> dict:
    signature = Web3.keccak(text="ClaimSubmitted(uint256,uint256,address,uint256)")
    return _log(
        DEPLOYMENTS[CLAIM_CONTRACT],
        [signature, _topic_uint(claim_id), _topic_uint(policy_id), _topic_address(PATIENT_ADDRESS)],
        encode(["uint256"], [amount]),
        index,
    )


def status_changed_log(claim_id: int, status: int, index: int = 0) -> dict:
    signature = Web3.keccak(text="ClaimStatusChanged(uint256,uint8)")
    return _log(
        DEPLOYMENTS[CLAIM_CONTRACT],
        [signature, _topic_uint(claim_id)],
        encode(["uint8"], [status]),
        index,
    )


def transfer_log(index: int = 0) -> dict:
    """An ERC-20 Transfer from some other contract."""
    signature = Web3.keccak(text="Transfer(address,address,uint256)")
    return _log(
        "0x0000000000000000000000000000000000000abc",
        [signature, _topic_address(INSURER_ADDRESS), _topic_address(PATIENT_ADDRESS)],
        encode(["uint256"], [1]),
        index,
    )


def receipt_with(logs: list) -> Receipt:
    return Receipt(tx_hash=Web3.to_hex(TX_HASH), status=1, block_number=7, logs=logs)


@pytest.fixture
def gateway() -> LedgerGateway:
    return LedgerGateway(
        w3=MagicMock(),
        registry=ContractRegistry(deployments=dict(DEPLOYMENTS), address_overrides={}),
        chain_id=31337,
        receipt_timeout=1,
        poll_latency=0.01,
    )


@pytest.fixture
def claim_handle(gateway) -> ContractHandle:
    contract = Web3().eth.contract(address=DEPLOYMENTS[CLAIM_CONTRACT], abi=CLAIM_CONTRACT_ABI)
    return ContractHandle(
        name=CLAIM_CONTRACT,
        address=DEPLOYMENTS[CLAIM_CONTRACT],
        contract=contract,
        signer=gateway.get_signer(INSURER_KEY),
    )


# =============================================================================
# Signers and contracts
# =============================================================================


def test_get_signer_derives_address(gateway):
    signer = gateway.get_signer(INSURER_KEY)
    assert signer.address == INSURER_ADDRESS


@pytest.mark.parametrize("key", ["", None, "0x1234", "not-a-key"])
def test_get_signer_invalid_key(gateway, key):
    with pytest.raises(InvalidKey) as exc_info:
        gateway.get_signer(key)
    assert exc_info.value.code == "INVALID_KEY"


def test_get_contract_unknown_name(gateway):
    with pytest.raises(UnknownContract):
        gateway.get_contract("TokenContract", gateway.get_signer(INSURER_KEY))


def test_get_contract_not_configured():
    gateway = LedgerGateway(w3=MagicMock(), registry=ContractRegistry(deployments={}, address_overrides={}))
    with pytest.raises(ContractNotConfigured) as exc_info:
        gateway.get_contract(POLICY_CONTRACT)
    assert exc_info.value.status_code == 503


@pytest.mark.parametrize("address", ["0xnot-an-address", "0x1234", 42])
def test_registry_rejects_malformed_address(address):
    registry = ContractRegistry(deployments={POLICY_CONTRACT: address}, address_overrides={})
    with pytest.raises(ContractNotConfigured) as exc_info:
        registry.resolve(POLICY_CONTRACT)
    assert exc_info.value.code == "CONTRACT_NOT_CONFIGURED"
    assert "not a hex address" in exc_info.value.message


def test_registry_prefers_overrides_and_file_abi():
    custom_abi = [{"type": "event", "name": "Custom", "anonymous": False, "inputs": []}]
    registry = ContractRegistry(
        deployments={"contracts": {}, POLICY_CONTRACT: {"address": DEPLOYMENTS[POLICY_CONTRACT], "abi": custom_abi}},
        address_overrides={POLICY_CONTRACT: DEPLOYMENTS[CLAIM_CONTRACT]},
    )
    deployment = registry.resolve(POLICY_CONTRACT)
    assert deployment.address == DEPLOYMENTS[CLAIM_CONTRACT]
    assert deployment.abi == custom_abi


def test_registry_uses_bundled_abi():
    registry = ContractRegistry(deployments={POLICY_CONTRACT: DEPLOYMENTS[POLICY_CONTRACT]}, address_overrides={})
    assert registry.resolve(POLICY_CONTRACT).abi == POLICY_CONTRACT_ABI


def test_to_address():
    assert to_address(INSURER_ADDRESS.lower()) == INSURER_ADDRESS
    with pytest.raises(InvalidAddress):
        to_address("0x1234")


# =============================================================================
# Event decoding
# =============================================================================


def test_decode_event_found(gateway, claim_handle):
    receipt = receipt_with([claim_submitted_log(claim_id=4, policy_id=2, amount=750)])
    result = gateway.decode_event(claim_handle, receipt, "ClaimSubmitted")
    assert isinstance(result, EventFound)
    assert result.args["claimId"] == 4
    assert result.args["policyId"] == 2
    assert result.args["beneficiary"] == PATIENT_ADDRESS
    assert result.args["amount"] == 750


def test_decode_event_skips_unrelated_logs(gateway, claim_handle):
    receipt = receipt_with([
        transfer_log(0),
        status_changed_log(4, 0, 1),
        claim_submitted_log(claim_id=4, policy_id=2, amount=750, index=2),
    ])
    result = gateway.decode_event(claim_handle, receipt, "ClaimSubmitted")
    assert isinstance(result, EventFound)
    assert result.log_index == 2


def test_decode_event_returns_first_match(gateway, claim_handle):
    receipt = receipt_with([
        claim_submitted_log(claim_id=1, policy_id=1, amount=1, index=0),
        claim_submitted_log(claim_id=2, policy_id=1, amount=1, index=1),
    ])
    result = gateway.decode_event(claim_handle, receipt, "ClaimSubmitted")
    assert result.args["claimId"] == 1


def test_decode_event_no_logs(gateway, claim_handle):
    result = gateway.decode_event(claim_handle, receipt_with([]), "ClaimSubmitted")
    assert isinstance(result, EventNotFound)


def test_decode_event_only_unrelated_logs(gateway, claim_handle):
    receipt = receipt_with([transfer_log(0), status_changed_log(4, 1, 1)])
    assert isinstance(gateway.decode_event(claim_handle, receipt, "ClaimSubmitted"), EventNotFound)


def test_decode_event_unknown_event_name(gateway, claim_handle):
    receipt = receipt_with([claim_submitted_log(1, 1, 1)])
    assert isinstance(gateway.decode_event(claim_handle, receipt, "PolicyIssued"), EventNotFound)


# =============================================================================
# Transactions
# =============================================================================


def _mock_contract(fn: MagicMock) -> MagicMock:
    contract = MagicMock()
    contract.functions.__getitem__.return_value = MagicMock(return_value=fn)
    return contract


def _tx_fn() -> MagicMock:
    fn = MagicMock()
    fn.build_transaction = AsyncMock(return_value={
        "to": DEPLOYMENTS[CLAIM_CONTRACT],
        "value": 0,
        "gas": 100000,
        "gasPrice": 1000000000,
        "nonce": 3,
        "chainId": 31337,
        "data": "0x",
    })
    fn.call = AsyncMock()
    return fn


def _raw_receipt(status: int = 1) -> dict:
    return {"transactionHash": TX_HASH, "status": status, "blockNumber": 7, "gasUsed": 21000, "logs": []}


@pytest.fixture
def tx_setup(gateway):
    fn = _tx_fn()
    handle = ContractHandle(
        name=CLAIM_CONTRACT,
        address=DEPLOYMENTS[CLAIM_CONTRACT],
        contract=_mock_contract(fn),
        signer=gateway.get_signer(INSURER_KEY),
    )
    w3 = gateway._w3
    w3.eth.get_transaction_count = AsyncMock(return_value=3)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=_raw_receipt())
    return gateway, handle, fn, w3


@pytest.mark.asyncio
async def test_submit_and_confirm(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    receipt = await gateway.submit_and_confirm(handle, "approveClaim", 1)

    assert receipt.tx_hash == Web3.to_hex(TX_HASH)
    assert receipt.status == 1
    assert receipt.block_number == 7
    params = fn.build_transaction.call_args.args[0]
    assert params["from"] == INSURER_ADDRESS
    assert params["nonce"] == 3
    assert params["chainId"] == 31337
    w3.eth.get_transaction_count.assert_awaited_once_with(INSURER_ADDRESS, "pending")
    w3.eth.send_raw_transaction.assert_awaited_once()


@pytest.mark.asyncio
async def test_submit_revert_during_estimation(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    fn.build_transaction.side_effect = ContractLogicError("execution reverted: Invalid claim status")
    with pytest.raises(TransactionReverted) as exc_info:
        await gateway.submit_and_confirm(handle, "approveClaim", 1)
    assert "Invalid claim status" in exc_info.value.message
    w3.eth.send_raw_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_status_zero_receipt(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    w3.eth.wait_for_transaction_receipt.return_value = _raw_receipt(status=0)
    with pytest.raises(TransactionReverted) as exc_info:
        await gateway.submit_and_confirm(handle, "approveClaim", 1)
    assert exc_info.value.tx_hash == Web3.to_hex(TX_HASH)


@pytest.mark.asyncio
async def test_submit_timeout(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("no receipt")
    with pytest.raises(TransactionTimeout) as exc_info:
        await gateway.submit_and_confirm(handle, "approveClaim", 1)
    assert exc_info.value.status_code == 504
    assert exc_info.value.tx_hash == Web3.to_hex(TX_HASH)


@pytest.mark.asyncio
async def test_submit_node_unreachable(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    w3.eth.get_transaction_count.side_effect = aiohttp.ClientConnectionError("refused")
    with pytest.raises(LedgerUnavailable):
        await gateway.submit_and_confirm(handle, "approveClaim", 1)


@pytest.mark.asyncio
async def test_submit_requires_signer(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    read_only = ContractHandle(name=handle.name, address=handle.address, contract=handle.contract)
    with pytest.raises(InvalidKey):
        await gateway.submit_and_confirm(read_only, "approveClaim", 1)
    w3.eth.get_transaction_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_unknown_method(gateway, claim_handle):
    with pytest.raises(ValidationError) as exc_info:
        await gateway.submit_and_confirm(claim_handle, "burnClaim", 1)
    assert exc_info.value.code == "UNKNOWN_METHOD"


@pytest.mark.asyncio
async def test_call_maps_revert(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    fn.call.side_effect = ContractLogicError("execution reverted")
    with pytest.raises(TransactionReverted):
        await gateway.call(handle, "getClaim", 1)


@pytest.mark.asyncio
async def test_call_returns_values(tx_setup):
    gateway, handle, fn, w3 = tx_setup
    fn.call.return_value = (1, PATIENT_ADDRESS)
    assert await gateway.call(handle, "getClaim", 1) == (1, PATIENT_ADDRESS)
    fn.call.assert_awaited_once_with({"from": INSURER_ADDRESS})
