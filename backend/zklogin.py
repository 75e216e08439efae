"""zkLogin orchestration.

The OAuth provider issues the JWT, Enoki derives nonces, salts and proofs,
and the fullnode verifies the result. This module only moves values between
them, keeps the per-login session state and assembles the final signature.
"""
import base64
import logging
import struct
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import jwt
import requests
from pydantic import BaseModel

import config
from keys import Ed25519Keypair
from sponsor import check_effects
from sui_rpc import SuiRpcClient
from tx_builder import MoveCall

logger = logging.getLogger(__name__)

ZKLOGIN_FLAG = 0x05


class ZkLoginError(Exception):
    pass


class EnokiError(ZkLoginError):
    """Enoki could not be reached or refused the request."""


# Models
class ProofPoints(BaseModel):
    a: List[str]
    b: List[List[str]]
    c: List[str]


class IssBase64Details(BaseModel):
    value: str
    indexMod4: int


class ZkProof(BaseModel):
    proofPoints: ProofPoints
    issBase64Details: IssBase64Details
    headerBase64: str


class ZkLoginSession(BaseModel):
    ephemeral_key_pair: str
    randomness: str
    nonce: str
    max_epoch: int
    user_address: Optional[str] = None
    jwt: Optional[str] = None
    salt: Optional[str] = None
    sub: Optional[str] = None
    aud: Optional[str] = None
    zk_proof: Optional[ZkProof] = None
    address_seed: Optional[str] = None


# BCS
def _uleb128(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _bcs_bytes(data: bytes) -> bytes:
    return _uleb128(len(data)) + data


def _bcs_str(value: str) -> bytes:
    return _bcs_bytes(value.encode('utf-8'))


def _bcs_str_vec(values: List[str]) -> bytes:
    return _uleb128(len(values)) + b''.join(_bcs_str(v) for v in values)


def assemble_zklogin_signature(proof: ZkProof, max_epoch: int, address_seed: str, user_signature: str) -> str:
    """Wrap an ephemeral-key signature into a serialized zkLogin signature."""
    points = proof.proofPoints
    inputs = (
        _bcs_str_vec(points.a)
        + _uleb128(len(points.b)) + b''.join(_bcs_str_vec(row) for row in points.b)
        + _bcs_str_vec(points.c)
        + _bcs_str(proof.issBase64Details.value)
        + struct.pack('<B', proof.issBase64Details.indexMod4)
        + _bcs_str(proof.headerBase64)
        + _bcs_str(address_seed)
    )
    body = inputs + struct.pack('<Q', max_epoch) + _bcs_bytes(base64.b64decode(user_signature))
    return base64.b64encode(bytes([ZKLOGIN_FLAG]) + body).decode('ascii')


def decode_jwt(token: str) -> Dict[str, Any]:
    """Read claims without verification; the prover checks the signature."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise ZkLoginError(f"Malformed JWT: {e}")


class EnokiClient:
    def __init__(self, api_key: str = config.ENOKI_API_KEY, api_url: str = config.ENOKI_API_URL,
                 network: str = config.SUI_NETWORK, timeout: float = 60,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.api_url = api_url.rstrip('/')
        self.network = network
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, token: Optional[str] = None, body: Optional[dict] = None) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if token:
            headers["zklogin-jwt"] = token
        try:
            response = self.session.request(
                method, f"{self.api_url}{path}", headers=headers, json=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise EnokiError(f"Enoki request {path} failed: {e}")
        if response.status_code != 200:
            raise EnokiError(f"Enoki {path} returned {response.status_code}: {response.text}")
        try:
            return response.json()["data"]
        except (ValueError, KeyError):
            raise EnokiError(f"Enoki {path} returned an unexpected body")

    def create_nonce(self, ephemeral_public_key: str, additional_epochs: int = 2) -> dict:
        return self._request("POST", "/zklogin/nonce", body={
            "network": self.network,
            "ephemeralPublicKey": ephemeral_public_key,
            "additionalEpochs": additional_epochs,
        })

    def get_address(self, token: str) -> dict:
        return self._request("GET", "/zklogin", token=token)

    def create_proof(self, token: str, ephemeral_public_key: str, max_epoch: int, randomness: str) -> dict:
        return self._request("POST", "/zklogin/zkp", token=token, body={
            "network": self.network,
            "ephemeralPublicKey": ephemeral_public_key,
            "maxEpoch": max_epoch,
            "randomness": randomness,
        })


def _ephemeral_keypair(session: ZkLoginSession) -> Ed25519Keypair:
    try:
        return Ed25519Keypair.from_secret_key(session.ephemeral_key_pair)
    except ValueError as e:
        raise ZkLoginError(f"Invalid ephemeral key in session: {e}")


def begin_login(enoki: EnokiClient) -> ZkLoginSession:
    keypair = Ed25519Keypair.generate()
    nonce = enoki.create_nonce(keypair.sui_public_key())
    return ZkLoginSession(
        ephemeral_key_pair=keypair.export_secret_key(),
        randomness=nonce["randomness"],
        nonce=nonce["nonce"],
        max_epoch=int(nonce["maxEpoch"]),
    )


def authorization_url(session: ZkLoginSession, client_id: str = config.GOOGLE_CLIENT_ID,
                      redirect_uri: str = config.REDIRECT_URI) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "id_token",
        "scope": "openid email profile",
        "nonce": session.nonce,
    }
    return f"{config.GOOGLE_AUTH_URL}?{urlencode(params)}"


def complete_login(enoki: EnokiClient, session: ZkLoginSession, token: str) -> ZkLoginSession:
    """Attach the OAuth JWT, address, salt and ZK proof to a pending session."""
    claims = decode_jwt(token)
    if claims.get("nonce") != session.nonce:
        raise ZkLoginError("JWT nonce does not match the login session")

    keypair = _ephemeral_keypair(session)
    account = enoki.get_address(token)
    proof = enoki.create_proof(token, keypair.sui_public_key(), session.max_epoch, session.randomness)

    aud = claims.get("aud")
    return session.model_copy(update={
        "jwt": token,
        "sub": claims.get("sub"),
        "aud": aud[0] if isinstance(aud, list) else aud,
        "salt": account["salt"],
        "user_address": account["address"],
        "zk_proof": ZkProof(**proof),
        "address_seed": proof["addressSeed"],
    })


class ZkLoginTransactionService:
    """Executes transactions signed by the user's ephemeral key; the user pays gas."""

    def __init__(self, rpc: SuiRpcClient):
        self.rpc = rpc

    def execute_transaction(self, move_call: MoveCall, session: Optional[ZkLoginSession]) -> Dict[str, Any]:
        if not session or not session.ephemeral_key_pair or not session.user_address:
            raise ZkLoginError("No zkLogin session found. Please login first.")
        if not session.zk_proof:
            raise ZkLoginError("zkLogin session incomplete: missing ZK proof. Log in again.")
        if not session.address_seed:
            raise ZkLoginError("zkLogin session incomplete: missing address seed. Log in again.")

        keypair = _ephemeral_keypair(session)
        tx_bytes = move_call.build(self.rpc, session.user_address)
        user_signature = keypair.sign_transaction(tx_bytes)
        signature = assemble_zklogin_signature(
            session.zk_proof, session.max_epoch, session.address_seed, user_signature
        )
        logger.info("Executing %s as %s", move_call.target, session.user_address)
        return check_effects(self.rpc.execute_transaction_block(tx_bytes, [signature]))
