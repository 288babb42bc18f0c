"""
Cryptographic hashing utilities.

Solidity metadata declares source hashes as Ethereum keccak256 digests
(the pre-standard Keccak padding, not FIPS-202 SHA3-256), so hashlib
cannot be used here.
"""

from typing import Union

from Crypto.Hash import keccak


def keccak256(data: Union[str, bytes, bytearray]) -> str:
    """
    Compute the keccak256 digest of ``data``.

    Text is hashed over its UTF-8 encoding.

    Returns:
        Lowercase hex digest with a ``0x`` prefix, the form used by
        compiler metadata. Example: ``0xc5d24601...``
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    elif not isinstance(data, (bytes, bytearray)):
        raise TypeError(
            "keccak256 expects str or bytes, "
            f"got {type(data).__name__}"
        )

    digest = keccak.new(digest_bits=256, data=bytes(data)).hexdigest()
    return f"0x{digest}"
