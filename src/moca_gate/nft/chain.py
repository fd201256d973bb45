"""
Read-only client for the staking contract.

Only the ``hasEligibleNFT(address)`` view is used: it answers whether the
wallet has at least one NFT staked continuously for the contract's minimum
duration (7 days by default). There is no fallback source of truth, so every
RPC or contract failure surfaces as :class:`DependencyError`.
"""

from __future__ import annotations

from typing import Any

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from moca_gate.config import get_settings
from moca_gate.errors import DependencyError

logger = structlog.get_logger()

STAKING_ABI: list[dict[str, Any]] = [
    {
        "name": "hasEligibleNFT",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


class StakingContractClient:
    """Thin wrapper around the staking contract's eligibility view."""

    def __init__(self, rpc_url: str, contract_address: str) -> None:
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self._w3: AsyncWeb3 | None = None
        self._contract: Any = None

    def _get_contract(self) -> Any:  # noqa: ANN401
        if self._contract is None:
            if not self.contract_address:
                msg = "Staking contract address is not configured"
                raise ValueError(msg)
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))
            self._contract = self._w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(self.contract_address),
                abi=STAKING_ABI,
            )
        return self._contract

    async def has_eligible_nft(self, wallet: str) -> bool:
        """Ask the contract whether ``wallet`` holds an eligible staked NFT.

        Raises:
            DependencyError: On any RPC, configuration or contract failure.
        """
        try:
            contract = self._get_contract()
            eligible = await contract.functions.hasEligibleNFT(AsyncWeb3.to_checksum_address(wallet)).call()
        except Exception as e:
            logger.error("nft_eligibility_check_failed", wallet=wallet, error=str(e))
            msg = "Failed to verify NFT eligibility"
            raise DependencyError(msg) from e
        return bool(eligible)


# Module-level singleton
_staking_client: StakingContractClient | None = None


def get_staking_client() -> StakingContractClient:
    """Get or create the staking client singleton (FastAPI dependency)."""
    global _staking_client  # noqa: PLW0603
    if _staking_client is None:
        settings = get_settings()
        _staking_client = StakingContractClient(settings.rpc_url, settings.staking_contract_address)
    return _staking_client


def reset_staking_client() -> None:
    """Reset the staking client singleton (for testing)."""
    global _staking_client  # noqa: PLW0603
    _staking_client = None
