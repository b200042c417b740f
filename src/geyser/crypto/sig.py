# src/geyser/crypto/sig.py
from __future__ import annotations

import base64
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

Json = Dict[str, Any]


def _decode_bytes(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    # hex
    try:
        return bytes.fromhex(s)
    except Exception:
        pass
    # base64 / base64url
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except Exception as e:
        raise ValueError("not hex or base64") from e


def normalize_pubkey(pubkey: Any) -> str:
    """Return the lowercase hex form of a 32-byte ed25519 public key.

    Raises ValueError for anything that does not decode to a valid key.
    """
    if not isinstance(pubkey, str):
        raise ValueError("pubkey must be a string")
    pk_b = _decode_bytes(pubkey)
    if len(pk_b) != 32:
        raise ValueError("ed25519 pubkey must be 32 bytes")
    Ed25519PublicKey.from_public_bytes(pk_b)
    return pk_b.hex()


def canonical_tx_message(
    *,
    instance_id: str,
    tx_type: str,
    signer: str,
    nonce: int,
    payload: Json,
) -> bytes:
    """Bytes a signer commits to. instance_id keeps a signature from being
    replayed against another geyser."""
    obj: Json = {
        "instance_id": str(instance_id),
        "tx_type": str(tx_type),
        "signer": str(signer),
        "nonce": int(nonce),
        "payload": payload if isinstance(payload, dict) else {},
    }
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        sig_b = _decode_bytes(sig)
        pk_b = _decode_bytes(pubkey)
        key = Ed25519PublicKey.from_public_bytes(pk_b)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def _private_key(privkey: str) -> Ed25519PrivateKey:
    pk_b = _decode_bytes(privkey)
    # 64-byte expanded keys carry the seed in their first half
    if len(pk_b) == 64:
        pk_b = pk_b[:32]
    if len(pk_b) != 32:
        raise ValueError("ed25519 privkey must be 32-byte seed (or 64-byte expanded key)")
    return Ed25519PrivateKey.from_private_bytes(pk_b)


def public_key_hex(privkey: str) -> str:
    pub = _private_key(privkey).public_key()
    return pub.public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def sign_ed25519(*, message: bytes, privkey: str, encoding: str = "hex") -> str:
    """Sign a message with an Ed25519 private key.

    privkey: hex or base64/base64url string of a 32-byte seed or 64-byte private key.
    encoding: "hex" (default) or "b64".
    """
    sig_b = _private_key(privkey).sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")


def sign_tx_envelope_dict(*, tx: Json, privkey: str, instance_id: str, encoding: str = "hex") -> Json:
    """Return a copy of tx with its 'sig' field populated.

    Expected shape (extra keys allowed):
      {"tx_type": str, "signer": str, "nonce": int, "payload": dict}
    """
    tx_type = str(tx.get("tx_type") or "").strip().upper()
    signer = str(tx.get("signer") or "").strip()
    nonce = int(tx.get("nonce") or 0)
    payload = tx.get("payload") if isinstance(tx.get("payload"), dict) else {}

    msg = canonical_tx_message(instance_id=instance_id, tx_type=tx_type, signer=signer, nonce=nonce, payload=payload)

    out = dict(tx)
    out["tx_type"] = tx_type
    out["signer"] = signer
    out["nonce"] = nonce
    out["payload"] = payload
    out["sig"] = sign_ed25519(message=msg, privkey=privkey, encoding=encoding)
    return out


__all__ = [
    "canonical_tx_message",
    "normalize_pubkey",
    "public_key_hex",
    "sign_ed25519",
    "sign_tx_envelope_dict",
    "verify_ed25519_signature",
]
