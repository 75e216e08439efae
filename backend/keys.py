"""Ed25519 keypairs in Sui's address and signature formats."""
import base64
import hashlib

import bech32
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

ED25519_FLAG = 0x00
# IntentScope::TransactionData, IntentVersion::V0, AppId::Sui
TRANSACTION_INTENT = bytes([0, 0, 0])
SUI_PRIVATE_KEY_PREFIX = 'suiprivkey'


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def _decode_bech32(secret: str) -> bytes:
    hrp, data = bech32.bech32_decode(secret)
    if hrp != SUI_PRIVATE_KEY_PREFIX or data is None:
        raise ValueError("Invalid suiprivkey string")
    raw = bech32.convertbits(data, 5, 8, False)
    if raw is None:
        raise ValueError("Invalid suiprivkey payload")
    raw = bytes(raw)
    if raw[:1] != bytes([ED25519_FLAG]):
        raise ValueError("Only Ed25519 suiprivkey strings are supported")
    return raw


def _decode_secret(secret: str) -> bytes:
    if secret.lower().startswith(SUI_PRIVATE_KEY_PREFIX + '1'):
        raw = _decode_bech32(secret)
    elif secret.startswith('0x'):
        raw = bytes.fromhex(secret[2:])
    else:
        raw = base64.b64decode(secret)
    if len(raw) == 33 and raw[0] == ED25519_FLAG:
        raw = raw[1:]
    if len(raw) != 32:
        raise ValueError(f"Expected a 32-byte Ed25519 seed, got {len(raw)} bytes")
    return raw


class Ed25519Keypair:
    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key

    @classmethod
    def generate(cls):
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret_key(cls, secret: str):
        """Accepts a suiprivkey bech32 string, base64 (seed or flag||seed) or 0x-prefixed hex."""
        return cls(Ed25519PrivateKey.from_private_bytes(_decode_secret(secret)))

    def secret_key_bytes(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def export_secret_key(self) -> str:
        """Bech32 `suiprivkey1...`, the format the Sui CLI and wallets export."""
        data = bech32.convertbits(bytes([ED25519_FLAG]) + self.secret_key_bytes(), 8, 5)
        return bech32.bech32_encode(SUI_PRIVATE_KEY_PREFIX, data)

    def public_key_bytes(self) -> bytes:
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def sui_public_key(self) -> str:
        return base64.b64encode(bytes([ED25519_FLAG]) + self.public_key_bytes()).decode('ascii')

    def sui_address(self) -> str:
        return '0x' + blake2b_256(bytes([ED25519_FLAG]) + self.public_key_bytes()).hex()

    def sign_transaction(self, tx_bytes_b64: str) -> str:
        """Sign base64 transaction bytes; returns a serialized Sui signature."""
        tx_bytes = base64.b64decode(tx_bytes_b64)
        digest = blake2b_256(TRANSACTION_INTENT + tx_bytes)
        signature = self._private_key.sign(digest)
        serialized = bytes([ED25519_FLAG]) + signature + self.public_key_bytes()
        return base64.b64encode(serialized).decode('ascii')


def main():
    keypair = Ed25519Keypair.generate()
    print('\nNew Sponsor Wallet Generated:')
    print('Address:', keypair.sui_address())
    print('\nIMPORTANT: Fund this address with SUI before using it!')
    print('Add this to your .env file:')
    print(f'SPONSOR_PRIVATE_KEY={keypair.export_secret_key()}\n')


if __name__ == '__main__':
    main()
