"""Project-wide constants (storage network geometry, defaults, share codes)."""

CHUNK_SIZE: int = 256  # bytes per storage entry
MAX_CHUNKS_PER_SEGMENT: int = 1024
SEGMENT_SIZE: int = CHUNK_SIZE * MAX_CHUNKS_PER_SEGMENT  # 256 KiB
MAX_FILE_SIZE: int = 256 * 1024 * 1024

DEFAULT_RPC_URL = "https://evmrpc-testnet.0g.ai/"
DEFAULT_INDEXER_RPC = "https://indexer-storage-testnet-turbo.0g.ai"
EXPECTED_CHAIN_ID = 16602
DEFAULT_EXPECTED_REPLICA = 1

DEFAULT_FETCH_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_CONCURRENT_FETCHES: int = 4
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_BACKOFF: float = 2.0

SHARE_CODE_SCHEME = "privshare"
SHARE_CODE_NAMESPACE = "0g"
SHARE_CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
SHARE_CODE_GROUPS = 4
SHARE_CODE_GROUP_LENGTH = 4
MAX_MINT_ATTEMPTS = 8

POINTER_RECORD_VERSION = "2.0"
STORAGE_PROVIDER = "0g-storage"

PBKDF2_ITERATIONS = 200000
AES_KEY_BYTES = 32
GCM_NONCE_BYTES = 12
