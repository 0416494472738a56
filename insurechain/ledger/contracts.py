"""Contract deployment registry.

Maps a logical contract name to its deployed address and ABI. Addresses
come from per-contract environment overrides first, then the deployments
file; ABIs come from the deployments file when it carries one, else from
the bundled ABIs.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from eth_utils import is_hex_address

from insurechain.config import CONTRACT_ADDRESS_OVERRIDES, DEPLOYMENTS
from insurechain.core.exceptions import ContractNotConfigured, UnknownContract
from insurechain.ledger.abi import BUNDLED_ABIS, CONTRACT_NAMES

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractDeployment:
    """A deployed contract's address and ABI."""
    name: str
    address: str
    abi: list[dict]


class ContractRegistry:
    """Resolves logical contract names to deployments."""

    def __init__(
        self,
        deployments: Optional[dict[str, Any]] = None,
        address_overrides: Optional[dict[str, str]] = None,
    ):
        self._deployments = DEPLOYMENTS if deployments is None else deployments
        self._overrides = CONTRACT_ADDRESS_OVERRIDES if address_overrides is None else address_overrides

    def resolve(self, name: str) -> ContractDeployment:
        """Return the deployment for ``name``.

        Raises:
            UnknownContract: ``name`` is not one of the three contracts.
            ContractNotConfigured: No address is known for the contract, or
                the configured value is not a 20-byte hex address.
        """
        if name not in CONTRACT_NAMES:
            raise UnknownContract(name)

        entry = self._deployments.get(name)
        abi = BUNDLED_ABIS[name]
        address = None
        if isinstance(entry, str):
            address = entry
        elif isinstance(entry, dict):
            address = entry.get("address")
            if isinstance(entry.get("abi"), list):
                abi = entry["abi"]

        address = self._overrides.get(name) or address
        if not address:
            raise ContractNotConfigured(name)
        if not isinstance(address, str) or not is_hex_address(address):
            raise ContractNotConfigured(
                name, f"Configured address for contract {name} is not a hex address: {address!r}"
            )
        return ContractDeployment(name=name, address=address, abi=abi)
