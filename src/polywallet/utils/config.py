# src/polywallet/utils/config.py
class Config:
    # Key material
    PRIVATE_KEY_PATTERN = r'^0x[a-fA-F0-9]{64}$'
    ADDRESS_PATTERN = r'^0x[a-fA-F0-9]{40}$'

    # Secure storage
    KEYCHAIN_KEY = 'wallet_private_key'
    DEFAULT_KEYCHAIN_SERVICE = 'wallet-keychain'
    STORAGE_PATH = 'wallet_data'

    # Authentication prompts
    PROMPT_ACCESS_WALLET = 'Authenticate to access your wallet'
    PROMPT_SAVE_WALLET = 'Authenticate to save your wallet'
    PROMPT_EXPORT_KEY = 'Authenticate to export your private key'
    FALLBACK_LABEL = 'Use Passcode'

    # Gateway
    POLLING_INTERVAL = 10  # seconds, tuned for mobile-class clients
    REQUEST_TIMEOUT = 30  # seconds
    RECEIPT_TIMEOUT = 120  # seconds
    HISTORY_PAGE_SIZE = 20
    HISTORY_METHOD = 'ankr_getTransactionsByAddress'

    # Send flow
    GAS_ESTIMATE_DEBOUNCE = 0.5  # seconds

    # RPC endpoint templates, formatted with the Ankr API key
    RPC_ENDPOINTS = {
        'POLYGON_MAINNET': 'https://rpc.ankr.com/polygon/{api_key}',
        'ANKR_MULTICHAIN': 'https://rpc.ankr.com/multichain/{api_key}',
    }

    # Supported networks; rpc_endpoint names a key of RPC_ENDPOINTS
    NETWORKS = {
        'polygon': {
            'name': 'Polygon',
            'chain_id': 137,
            'rpc_endpoint': 'POLYGON_MAINNET',
            'symbol': 'POL',
            'explorer': 'https://polygonscan.com',
            'history_blockchain': 'polygon',
        },
    }
    DEFAULT_NETWORK = 'polygon'
