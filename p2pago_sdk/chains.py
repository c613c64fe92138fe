"""
Supported chains and token metadata.

This registry is the canonical source of RPC endpoints for receipt
verification and of stablecoin addresses for direct transfers. Applications
can pass their own mapping wherever a chain registry is accepted.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Zero address stands in for the native coin
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"

# keccak256("Transfer(address,address,uint256)")
ERC20_TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


@dataclass(frozen=True)
class TokenConfig:
    """Token metadata for a chain"""
    address: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ChainConfig:
    """Chain metadata"""
    name: str
    chain_id: int
    rpc_url: Optional[str] = None
    tokens: List[TokenConfig] = field(default_factory=list)

    def token(self, symbol: str) -> Optional[TokenConfig]:
        """Look up a token by symbol (case-insensitive)."""
        for token in self.tokens:
            if token.symbol.lower() == symbol.lower():
                return token
        return None


_USDC = {
    1: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    8453: "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    137: "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
    42161: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
    10: "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
}

_USDT = {
    1: "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    8453: "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
    137: "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    42161: "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
    10: "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
}

_CHAIN_ENTRIES = [
    (1, "Ethereum", "https://ethereum.publicnode.com"),
    (8453, "Base", "https://mainnet.base.org"),
    (137, "Polygon", "https://polygon-rpc.com"),
    (42161, "Arbitrum One", "https://arb1.arbitrum.io/rpc"),
    (10, "OP Mainnet", "https://mainnet.optimism.io"),
]


def _build_chains() -> Dict[int, ChainConfig]:
    chains: Dict[int, ChainConfig] = {}
    for chain_id, name, rpc_url in _CHAIN_ENTRIES:
        chains[chain_id] = ChainConfig(
            name=name,
            chain_id=chain_id,
            rpc_url=rpc_url,
            tokens=[
                TokenConfig(address=NATIVE_TOKEN_ADDRESS, symbol="ETH", decimals=18),
                TokenConfig(address=_USDC[chain_id], symbol="USDC", decimals=6),
                TokenConfig(address=_USDT[chain_id], symbol="USDT", decimals=6),
            ],
        )
    return chains


SUPPORTED_CHAINS: Dict[int, ChainConfig] = _build_chains()


def get_supported_chains() -> Dict[int, ChainConfig]:
    """Return the supported chain registry."""
    return SUPPORTED_CHAINS
