"""Ledger gateway.

Turns a private key and a logical contract name into an authenticated
contract handle, submits transactions, waits for their inclusion and
decodes events from the resulting receipts.

Failure mapping:
- bad private key -> InvalidKey
- unknown contract name -> UnknownContract
- revert during gas estimation, rejected send, or status-0 receipt
  -> TransactionReverted
- no receipt within the timeout -> TransactionTimeout
- node unreachable -> LedgerUnavailable
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import aiohttp
from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError as EthValidationError
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    ABIFunctionNotFound,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
)

from insurechain.config import (
    LEDGER_CHAIN_ID,
    LEDGER_RPC_TIMEOUT_SECONDS,
    LEDGER_RPC_URL,
    RECEIPT_POLL_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
)
from insurechain.core.exceptions import (
    InvalidAddress,
    InvalidKey,
    LedgerUnavailable,
    TransactionReverted,
    TransactionTimeout,
    ValidationError,
)
from insurechain.ledger.contracts import ContractRegistry
from insurechain.ledger.events import EventFound, EventLookup, EventNotFound

log = logging.getLogger(__name__)

# Errors raised by the HTTP transport underneath AsyncHTTPProvider
_TRANSPORT_ERRORS = (ProviderConnectionError, aiohttp.ClientError, asyncio.TimeoutError, OSError)

# Errors raised when a log does not decode against an event ABI
_DECODE_ERRORS = (Web3Exception, DecodingError, ValueError, KeyError)


def to_address(value: str) -> str:
    """Checksum ``value`` as a ledger address.

    Raises:
        InvalidAddress: ``value`` is not a 20-byte hex address.
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddress(str(value))
    return Web3.to_checksum_address(value)


@dataclass(frozen=True)
class Signer:
    """Account derived from a private key."""
    address: str
    account: LocalAccount = field(repr=False)


@dataclass(frozen=True)
class ContractHandle:
    """A deployed contract bound to a signer."""
    name: str
    address: str
    contract: Any = field(repr=False)
    signer: Optional[Signer] = None

    @property
    def event_names(self) -> list[str]:
        return [e["name"] for e in self.contract.abi if e.get("type") == "event"]


@dataclass
class Receipt:
    """Confirmation record of an included transaction."""
    tx_hash: str
    status: int
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    logs: list[Any] = field(default_factory=list)

    @classmethod
    def from_web3(cls, raw: Any) -> "Receipt":
        return cls(
            tx_hash=Web3.to_hex(raw["transactionHash"]),
            status=int(raw.get("status", 1)),
            block_number=raw.get("blockNumber"),
            gas_used=raw.get("gasUsed"),
            logs=list(raw.get("logs") or []),
        )


def _revert_reason(e: ContractLogicError) -> str:
    message = getattr(e, "message", None) or str(e)
    return message or "Transaction reverted"


class LedgerGateway:
    """Submits transactions to the insurance contracts and decodes events."""

    def __init__(
        self,
        w3: Optional[AsyncWeb3] = None,
        registry: Optional[ContractRegistry] = None,
        chain_id: Optional[int] = LEDGER_CHAIN_ID,
        receipt_timeout: float = RECEIPT_TIMEOUT_SECONDS,
        poll_latency: float = RECEIPT_POLL_SECONDS,
    ):
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(LEDGER_RPC_URL, request_kwargs={"timeout": LEDGER_RPC_TIMEOUT_SECONDS})
        )
        self._registry = registry or ContractRegistry()
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self._poll_latency = poll_latency

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    # -------------------------------------------------------------------------
    # Handles
    # -------------------------------------------------------------------------

    def get_signer(self, private_key: str) -> Signer:
        """Derive the signing account for ``private_key``.

        Raises:
            InvalidKey: The key is empty or does not derive an account.
        """
        if not private_key:
            raise InvalidKey("Private key is required")
        try:
            account = Account.from_key(private_key)
        except (ValueError, TypeError, EthValidationError) as e:
            raise InvalidKey(f"Private key cannot derive an account: {type(e).__name__}")
        return Signer(address=account.address, account=account)

    def get_contract(self, name: str, signer: Optional[Signer] = None) -> ContractHandle:
        """Bind the named contract to ``signer`` (None for read-only use).

        Raises:
            UnknownContract: ``name`` is not a known contract.
            ContractNotConfigured: No deployed address for the contract.
        """
        deployment = self._registry.resolve(name)
        address = Web3.to_checksum_address(deployment.address)
        contract = self._w3.eth.contract(address=address, abi=deployment.abi)
        return ContractHandle(name=name, address=address, contract=contract, signer=signer)

    def _bind(self, handle: ContractHandle, method: str, args: tuple) -> Any:
        try:
            return handle.contract.functions[method](*args)
        except ABIFunctionNotFound:
            raise ValidationError(f"{handle.name} has no method {method}", code="UNKNOWN_METHOD")
        except Web3Exception as e:
            raise ValidationError(f"Invalid arguments for {handle.name}.{method}: {e}")

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._w3.eth.chain_id
        return self._chain_id

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def submit_and_confirm(self, handle: ContractHandle, method: str, *args) -> Receipt:
        """Send ``method(*args)`` as a transaction and wait for its receipt.

        Raises:
            TransactionReverted: The ledger rejected the transaction.
            TransactionTimeout: No receipt within the configured timeout.
            LedgerUnavailable: The node could not be reached.
        """
        if handle.signer is None:
            raise InvalidKey("Private key is required to send transactions")
        fn = self._bind(handle, method, args)
        signer = handle.signer

        try:
            nonce = await self._w3.eth.get_transaction_count(signer.address, "pending")
            tx = await fn.build_transaction({
                "from": signer.address,
                "nonce": nonce,
                "chainId": await self._get_chain_id(),
            })
            signed = signer.account.sign_transaction(tx)
            tx_hash = Web3.to_hex(await self._w3.eth.send_raw_transaction(signed.raw_transaction))
        except ContractLogicError as e:
            reason = _revert_reason(e)
            log.warning(f"{handle.name}.{method} rejected: {reason}")
            raise TransactionReverted(reason)
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailable(f"Ledger node unreachable: {e}")
        except Web3Exception as e:
            log.warning(f"{handle.name}.{method} rejected by node: {e}")
            raise TransactionReverted(str(e))

        log.info(f"{handle.name}.{method} sent: {tx_hash}", extra={"tx_hash": tx_hash})

        try:
            raw = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._receipt_timeout,
                poll_latency=self._poll_latency,
            )
        except TimeExhausted:
            raise TransactionTimeout(tx_hash, self._receipt_timeout)
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailable(f"Lost ledger node while waiting for {tx_hash}: {e}")

        receipt = Receipt.from_web3(raw)
        if receipt.status == 0:
            raise TransactionReverted(f"{handle.name}.{method} reverted on-chain", tx_hash=tx_hash)

        log.info(
            f"{handle.name}.{method} confirmed in block {receipt.block_number}: {tx_hash}",
            extra={"tx_hash": tx_hash},
        )
        return receipt

    async def call(self, handle: ContractHandle, method: str, *args) -> Any:
        """Run a read-only contract call.

        Raises:
            TransactionReverted: The call reverted.
            LedgerUnavailable: The node could not be reached.
        """
        fn = self._bind(handle, method, args)
        try:
            return await fn.call({"from": handle.signer.address} if handle.signer else {})
        except ContractLogicError as e:
            raise TransactionReverted(_revert_reason(e))
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailable(f"Ledger node unreachable: {e}")

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def decode_event(self, handle: ContractHandle, receipt: Receipt, event_name: str) -> EventLookup:
        """Find the first log in ``receipt`` that decodes to ``event_name``.

        Each log is decoded against the contract's event ABIs in turn. Logs
        that decode against none of them are skipped: they may come from
        other contracts touched by the same transaction.
        """
        event_names = handle.event_names
        for entry in receipt.logs:
            for name in event_names:
                try:
                    decoded = handle.contract.events[name]().process_log(entry)
                except _DECODE_ERRORS:
                    continue
                if decoded["event"] == event_name:
                    return EventFound(
                        name=event_name,
                        args=dict(decoded["args"]),
                        log_index=decoded.get("logIndex"),
                    )
                break
        log.info(f"No {event_name} event in receipt {receipt.tx_hash}")
        return EventNotFound(name=event_name)


_ledger_gateway: Optional[LedgerGateway] = None


def get_ledger_gateway() -> LedgerGateway:
    """Get or create the ledger gateway singleton."""
    global _ledger_gateway
    if _ledger_gateway is None:
        _ledger_gateway = LedgerGateway()
    return _ledger_gateway


async def close_ledger_gateway() -> None:
    """Close the ledger gateway singleton."""
    global _ledger_gateway
    if _ledger_gateway is not None:
        await _ledger_gateway.close()
        _ledger_gateway = None


def reset_ledger_gateway() -> None:
    """Reset the singleton (for testing)."""
    global _ledger_gateway
    _ledger_gateway = None
