from dotenv import load_dotenv
from pathlib import Path
import os

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# On-chain module
PACKAGE_ID = os.environ['PACKAGE_ID']
REGISTRY_ID = os.environ['REGISTRY_ID']
MODULE_NAME = 'suitter'
SUI_CLOCK_OBJECT_ID = '0x6'

# Sui network
SUI_NETWORK = os.environ.get('SUI_NETWORK', 'testnet')
SUI_RPC_URL = os.environ.get('SUI_RPC_URL', '')
RPC_TIMEOUT = float(os.environ.get('RPC_TIMEOUT', '30'))

# Sponsor wallet (pays gas for backend transactions)
SPONSOR_PRIVATE_KEY = os.environ.get('SPONSOR_PRIVATE_KEY', '')
GAS_BUDGET = int(os.environ.get('GAS_BUDGET', '50000000'))
AIRDROP_AMOUNT_MIST = int(os.environ.get('AIRDROP_AMOUNT_MIST', '100000000'))

# Auth
JWT_SECRET = os.environ.get('JWT_SECRET', '')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRATION_DAYS = int(os.environ.get('JWT_EXPIRATION_DAYS', '7'))

# Walrus
WALRUS_PUBLISHER_URL = os.environ.get(
    'WALRUS_PUBLISHER_URL', 'https://publisher.walrus-testnet.walrus.space'
)
WALRUS_AGGREGATOR_URL = os.environ.get(
    'WALRUS_AGGREGATOR_URL', 'https://aggregator.walrus-testnet.walrus.space'
)
WALRUS_EPOCHS = int(os.environ.get('WALRUS_EPOCHS', '5'))

# zkLogin
ENOKI_API_URL = os.environ.get('ENOKI_API_URL', 'https://api.enoki.mystenlabs.com/v1')
ENOKI_API_KEY = os.environ.get('ENOKI_API_KEY', '')
GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID', '')
GOOGLE_AUTH_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
REDIRECT_URI = os.environ.get('REDIRECT_URI', 'http://localhost:5173')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


def validate_zklogin_config():
    errors = []
    if not GOOGLE_CLIENT_ID:
        errors.append('Missing GOOGLE_CLIENT_ID in environment variables')
    if not ENOKI_API_KEY:
        errors.append('Missing ENOKI_API_KEY in environment variables')
    return errors
