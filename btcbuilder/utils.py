# Copyright (C) 2018-2025 The btc-tx-builder developers
#
# This file is part of btc-tx-builder
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of btc-tx-builder, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from btcbuilder.keys import PublicKey
    from btcbuilder.script import Script
    from decimal import Decimal
    from typing import Any, Tuple

import hashlib
import struct

from coincurve import PrivateKey as CoinCurvePrivateKey  # type: ignore
from coincurve import PublicKey as CoinCurvePublicKey  # type: ignore
from Crypto.Hash import RIPEMD160  # type: ignore
from ecdsa import ellipticcurve  # type: ignore

from btcbuilder.constants import (
    SATOSHIS_PER_BITCOIN,
    LEAF_VERSION_TAPSCRIPT,
    MESSAGE_MAGIC_PREFIX,
)
from btcbuilder.exceptions import ValidationError


class Secp256k1Params:
    # ECDSA curve using secp256k1 is defined by: y**2 = x**3 + 7
    # This is done modulo p which (secp256k1) is:
    # p is the finite field prime number and is equal to:
    # 2^256 - 2^32 - 2^9 - 2^8 - 2^7 - 2^6 - 2^4 - 1
    _p = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    # Curve's a and b are (y**2 = x**3 + a*x + b)
    _a = 0x0000000000000000000000000000000000000000000000000000000000000000
    _b = 0x0000000000000000000000000000000000000000000000000000000000000007
    # Curve's generator point is:
    _Gx = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
    _Gy = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8
    # prime number of points in the group (the order)
    _order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

    _curve = ellipticcurve.CurveFp(_p, _a, _b)
    _G = ellipticcurve.Point(_curve, _Gx, _Gy, _order)

    @classmethod
    def is_on_curve(cls, x: int, y: int) -> bool:
        """Checks that (x, y) is a point of the secp256k1 curve"""
        if not (0 <= x < cls._p and 0 <= y < cls._p):
            return False
        return cls._curve.contains_point(x, y)


#
# Hash functions
#
def hash_sha256(b: bytes) -> bytes:
    """Computes SHA-256 hash of the given bytes."""
    return hashlib.sha256(b).digest()


def double_sha256(b: bytes) -> bytes:
    """Applies SHA-256 twice to input data."""
    return hashlib.sha256(hashlib.sha256(b).digest()).digest()


def hash160(b: bytes) -> bytes:
    """RIPEMD160( SHA256( data ) )"""
    return RIPEMD160.new(hashlib.sha256(b).digest()).digest()


def tagged_hash(data: bytes, tag: str) -> bytes:
    """
    Tagged hashes ensure that hashes used in one context can not be used in another.
    It is used extensively in Taproot

    A tagged hash is: SHA256( SHA256("TapTweak") ||
                              SHA256("TapTweak") ||
                              data
                            )
    """

    tag_digest = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_digest + tag_digest + data).digest()


def to_satoshis(num: int | float | Decimal):
    """
    Converts from any number type (int/float/Decimal) to satoshis (int)
    """
    # we need to round because of how floats are stored internally:
    # e.g. 0.29 * 100000000 = 28999999.999999996
    return int(round(num * SATOSHIS_PER_BITCOIN))


#
# Compact size (varint) helpers
#
def encode_varint(i: int) -> bytes:
    """
    Encode a potentially very large integer into varint bytes. The length should be
    specified in little-endian.

    https://bitcoin.org/en/developer-reference#compactsize-unsigned-integers
    """
    if i < 0:
        raise ValueError("Integer cannot be negative: %d" % i)
    if i < 253:
        return bytes([i])
    elif i < 0x10000:
        return b"\xfd" + i.to_bytes(2, "little")
    elif i < 0x100000000:
        return b"\xfe" + i.to_bytes(4, "little")
    elif i < 0x10000000000000000:
        return b"\xff" + i.to_bytes(8, "little")
    else:
        raise ValueError("Integer is too large: %d" % i)


def prepend_compact_size(data: bytes) -> bytes:
    """
    Counts bytes and returns them with their varint (or compact size) prepended.
    """
    return encode_varint(len(data)) + data


def parse_compact_size(data: bytes) -> Tuple[int, int]:
    """
    Parse variable integer. Returns (count, size)
    """
    if not data:
        raise ValidationError("Missing compact size")
    first_byte = data[0]
    if first_byte < 0xFD:
        return (first_byte, 1)

    fmt, size = {0xFD: ("<H", 3), 0xFE: ("<I", 5), 0xFF: ("<Q", 9)}[first_byte]
    if len(data) < size:
        raise ValidationError("Truncated compact size")
    return (struct.unpack(fmt, data[1:size])[0], size)


def add_magic_prefix(message: str) -> bytes:
    """
    Required prefix when signing a message
    """
    # need to use varint for big messages
    message_encoded = message.encode("utf-8")
    return MESSAGE_MAGIC_PREFIX + encode_varint(len(message_encoded)) + message_encoded


#
# Taproot script trees
#
class TapLeaf:
    """A leaf of a taproot script tree

    Attributes
    ----------
    script : Script
        the tapscript committed by this leaf
    leaf_version : int
        the tapleaf version (LEAF_VERSION_TAPSCRIPT by default)
    """

    def __init__(self, script: Script, leaf_version: int = LEAF_VERSION_TAPSCRIPT):
        self.script = script
        self.leaf_version = leaf_version

    def tagged_hash(self) -> bytes:
        """Calculates the tagged hash for a tapleaf"""
        script_part = bytes([self.leaf_version]) + prepend_compact_size(
            self.script.to_bytes()
        )
        return tagged_hash(script_part, "TapLeaf")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TapLeaf):
            return False
        return self.script == other.script and self.leaf_version == other.leaf_version

    def __repr__(self) -> str:
        return f"TapLeaf({self.script})"


class TapBranch:
    """A branch of a taproot script tree. A branch has exactly two children,
    each either a TapLeaf or another TapBranch."""

    def __init__(self, left: TapLeaf | TapBranch, right: TapLeaf | TapBranch):
        for child in (left, right):
            if not isinstance(child, (TapLeaf, TapBranch)):
                raise ValidationError(
                    "Taproot branch children must be TapLeaf or TapBranch objects"
                )
        self.left = left
        self.right = right

    def tagged_hash(self) -> bytes:
        return tapbranch_tagged_hash(self.left.tagged_hash(), self.right.tagged_hash())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TapBranch):
            return False
        return self.left == other.left and self.right == other.right

    def __repr__(self) -> str:
        return f"TapBranch({self.left!r}, {self.right!r})"


def taptree_from_list(scripts: Any) -> TapLeaf | TapBranch | None:
    """Converts the nested list notation of a script tree to tree nodes.

    Scripts is a list of list of Scripts describing the merkle tree of scripts
    to commit. Example of scripts' list:  [ [A, B], C ]

    Raises
    ------
    ValidationError
        if any level of the tree has more than two branches
    """
    if scripts is None:
        return None
    if isinstance(scripts, (TapLeaf, TapBranch)):
        return scripts
    if isinstance(scripts, list):
        if len(scripts) == 0:
            return None
        if len(scripts) == 1:
            return taptree_from_list(scripts[0])
        if len(scripts) == 2:
            left = taptree_from_list(scripts[0])
            right = taptree_from_list(scripts[1])
            if left is None or right is None:
                raise ValidationError("Invalid Merkle branch: empty child.")
            return TapBranch(left, right)
        raise ValidationError(
            "Invalid Merkle branch: List cannot have more than 2 branches."
        )
    return TapLeaf(scripts)


def get_tag_hashed_merkle_root(scripts: Any) -> bytes:
    """Tag hashed merkle root of all scripts - tag hashes tapleafs and branches
    as needed. Returns empty bytes when there are no scripts."""
    tree = taptree_from_list(scripts)
    if tree is None:
        return b""
    return tree.tagged_hash()


def tapbranch_tagged_hash(thashed_a: bytes, thashed_b: bytes) -> bytes:
    """Calculates the tagged hash for a tapbranch"""
    # order - smaller left side
    if thashed_a < thashed_b:
        return tagged_hash(thashed_a + thashed_b, "TapBranch")
    else:
        return tagged_hash(thashed_b + thashed_a, "TapBranch")


def calculate_tweak(pubkey: PublicKey, scripts: Any = None) -> int:
    """
    Calculates the tweak to apply to the public and private key when required.

    scripts can be a script tree (nested list, TapLeaf/TapBranch) or an
    already computed merkle root (bytes).
    """

    # only the x coordinate is tagged_hash'ed
    key_x = pubkey.to_bytes(prefix=None)[:32]

    if isinstance(scripts, bytes):
        merkle_root = scripts
    else:
        merkle_root = get_tag_hashed_merkle_root(scripts)

    tweak = tagged_hash(key_x + merkle_root, "TapTweak")

    # we convert to int for later elliptic curve arithmetics
    return b_to_i(tweak)


def tweak_taproot_pubkey(internal_pubkey: bytes, tweak: int) -> Tuple[bytes, bool]:
    """
    Tweaks the public key with the specified tweak. Required to create the
    taproot public key from the internal key.

    Returns the x-only tweaked key and whether its y coordinate is odd.
    """

    # the internal key is used with an even y (BIP-340 lift_x)
    even_key = CoinCurvePublicKey(b"\x02" + internal_pubkey[:32])

    # Q = P + t*G
    try:
        tweaked = even_key.add(i_to_b32(tweak))
    except ValueError as e:
        raise ValidationError(f"Invalid taproot tweak: {e}") from e

    q = tweaked.format(compressed=False)[1:]
    is_odd = q[63] % 2 != 0
    return q[:32], is_odd


def tweak_taproot_privkey(privkey: bytes, tweak: int) -> bytes:
    """
    Tweaks the private key before signing with it. Check if public key's y
    is even and negate the private key before tweaking if it is not.
    """

    secret = b_to_i(privkey)
    internal_pubkey = CoinCurvePrivateKey(privkey).public_key.format(compressed=True)

    # negate private key if necessary
    if internal_pubkey[0] == 0x03:
        secret = Secp256k1Params._order - secret

    # The tweaked private key can be computed by d + hash(P || S)
    tweaked_privkey_int = (secret + tweak) % Secp256k1Params._order
    if tweaked_privkey_int == 0:
        raise ValidationError("Invalid taproot tweak for private key")

    return i_to_b32(tweaked_privkey_int)


#
# Basic conversions between bytes (b), hexadecimal (h) and integer (i)
#
def b_to_h(b: bytes) -> str:
    """Converts bytes to hexadecimal string"""
    return b.hex()


def h_to_b(h: str) -> bytes:
    """Converts hexadecimal string to bytes"""
    return bytes.fromhex(h)


# to convert hashes to ints we need byteorder BIG...
def b_to_i(b: bytes) -> int:
    """Converts a bytes to a number"""
    return int.from_bytes(b, byteorder="big")


def i_to_b32(i: int) -> bytes:
    """Converts a integer to 32 bytes"""
    return i.to_bytes(32, byteorder="big")
