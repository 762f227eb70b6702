"""Protocol constants for the flipper router.

Program identifiers, derived-address seeds, basis-point bounds and account
sizes used for storage deposits. Addresses are 32-byte identifiers written
as 0x-prefixed lowercase hex.
"""

# Programs
FLIPPER_PROGRAM_ID = "0x1c22f26ac4d48e559798c29665ef2eeea067b849eabc4e6c609de04294c5e348"
SYSTEM_PROGRAM_ID = "0x" + "00" * 32
TOKEN_PROGRAM_ID = "0x06ddf6e1d765a193d9cbe14627c0f7f9f695010a433c8d5cc13f256bf07a3a14"
TOKEN_2022_PROGRAM_ID = "0x06ddf6e1ee758fde18425dbce46ccddab61afc4d83b90d27febdf928d8a18bfc"
TOKEN_PROGRAMS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

# Derived-address seeds
VAULT_AUTHORITY_SEED = b"vault_authority"
VAULT_SEED = b"vault"
PLATFORM_FEE_SEED = b"platform_fee"
POOL_INFO_SEED = b"pool_info"
LIMIT_ORDER_SEED = b"limit_order"
ORDER_VAULT_SEED = b"order_vault"
ADAPTER_REGISTRY_SEED = b"adapter_registry"
GLOBAL_MANAGER_SEED = b"global_manager"

# Basis points
BPS_DENOMINATOR = 10_000
MAX_SLIPPAGE_BPS = 10_000
MAX_PLATFORM_FEE_BPS = 10_000
MAX_TRIGGER_PRICE_BPS = 100_000
FULL_PERCENT = 100

# Registry capacity
MAX_OPERATORS = 10
MAX_ADAPTERS = 10

# Account sizes in bytes (8-byte discriminator included)
VAULT_AUTHORITY_SPACE = 8 + 32 + 1 + 32 + 1
GLOBAL_MANAGER_SPACE = 8 + 32 + 1
ADAPTER_REGISTRY_SPACE = 8 + 32 + 4 + MAX_ADAPTERS * (4 + 32 + 32 + 2) + 4 + MAX_OPERATORS * 32 + 1
POOL_INFO_SPACE = 8 + 1 + 32 + 1 + 1
LIMIT_ORDER_SPACE = 8 + 193
MINT_SPACE = 82
TOKEN_ACCOUNT_SPACE = 165
# Extensible token accounts carry one account-type byte before any extensions
EXTENSIBLE_ACCOUNT_TYPE_SPACE = 1

# Storage deposit: (overhead + space) * lamports_per_byte
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE = 6_960

# Compute budget
DEFAULT_COMPUTE_UNITS = 1_400_000
INVOKE_COMPUTE_COST = 1_000
TRANSFER_COMPUTE_COST = 4_500
MAX_CPI_DEPTH = 4
