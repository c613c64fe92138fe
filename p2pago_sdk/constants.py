"""
Protocol constants. Base mainnet values; override through config when needed.
"""

# ZKP2P escrow contract on Base
ESCROW_ADDRESS = "0xCA38607D85E8F6294Dc10728669605E6664C2D70"

BASE_CHAIN_ID = 8453

# USDC on Base
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

ZKP2P_API_BASE_URL = "https://api.zkp2p.xyz/v1"

# Used for ENS resolution when no provider is passed
DEFAULT_MAINNET_RPC_URL = "https://ethereum.publicnode.com"

ZKP2P_EXTENSION_INSTALL_URL = (
    "https://chromewebstore.google.com/detail/zkp2p-extension/ijpgccednehjpeclfcllnjjcmiohdjih"
)

# Notification emitted by the signing agent once it has been injected
AGENT_INITIALIZED_EVENT = "zktls#initialized"

DEFAULT_PAYMENT_PLATFORMS = ["venmo", "cashapp"]

DEFAULT_FIAT_CURRENCY = "USD"

# Amount used by the payment-required flow when the body carries no formatted amount
DEFAULT_CHALLENGE_AMOUNT_USD = 5

# Payment verifier contracts on Base, by platform
VERIFIERS = {
    "venmo": "0x9a733B55a875D0DB4915c6B36350b24F8AB99dF5",
    "revolut": "0xAA5A1B62B01781E789C900d616300717CD9A41aB",
    "cashapp": "0x76D33A33068D86016B806dF02376dDBb23Dd3703",
    "wise": "0xFF0149799631D7A5bdE2e7eA9b306c42b3d9a9ca",
    "mercadopago": "0xf2AC5be14F32Cbe6A613CFF8931d95460D6c33A3",
    "zelle": "0x431a078A5029146aAB239c768A615CD484519aF7",
}
