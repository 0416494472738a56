"""InsureChain: policy and claim lifecycle orchestration over DIDs, VCs, IPFS and EVM contracts."""

__version__ = "0.1.0"
