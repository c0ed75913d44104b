"""
Secret Encryption
GitHub only accepts secrets sealed (libsodium sealed box) with the repository
public key. Input key and output ciphertext are both base64.
"""
from base64 import b64encode

from nacl import encoding, public


def seal_secret(public_key: str, value: str) -> str:
    """Encrypt a UTF-8 `value` for the holder of the base64 `public_key`."""
    key = public.PublicKey(public_key.encode("utf-8"), encoding.Base64Encoder())
    sealed = public.SealedBox(key).encrypt(value.encode("utf-8"))
    return b64encode(sealed).decode("utf-8")
