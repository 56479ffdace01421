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
    from btcbuilder.transactions import Transaction

import hashlib
import struct
from base64 import b64encode, b64decode
from typing import Any, Optional, Tuple, Union

import base58  # type: ignore
from coincurve import PrivateKey as CoinCurvePrivateKey  # type: ignore
from ecdsa import (  # type: ignore
    SigningKey,
    VerifyingKey,
    SECP256k1,
    BadSignatureError,
    MalformedPointError,
    numbertheory,
    ellipticcurve,
)
from ecdsa.util import sigencode_string, sigdecode_string, sigencode_der  # type: ignore
from sympy.ntheory import sqrt_mod  # type: ignore

from btcbuilder.address import (
    AddressType,
    P2pkAddress,
    P2pkhAddress,
    P2shAddress,
    P2wpkhAddress,
    P2wshAddress,
    P2trAddress,
)
from btcbuilder.constants import (
    NETWORK_WIF_PREFIXES,
    SIGHASH_ALL,
    TAPROOT_SIGHASH_ALL,
)
from btcbuilder.exceptions import ValidationError
from btcbuilder.script import Script
from btcbuilder.setup import resolve_network
from btcbuilder.utils import (
    Secp256k1Params,
    add_magic_prefix,
    calculate_tweak,
    double_sha256,
    hash160,
    h_to_b,
    b_to_h,
    b_to_i,
    i_to_b32,
    tweak_taproot_pubkey,
    tweak_taproot_privkey,
)


def message_digest(message: str) -> bytes:
    """SHA-256( SHA-256( magic prefix + varint(len) + message ) )"""
    return double_sha256(add_magic_prefix(message))


class PrivateKey:
    """Represents an ECDSA private key.

    Attributes
    ----------
    key : SigningKey
        the ecdsa signing key (raw key of 32 bytes)

    Methods
    -------
    from_wif(wif, network=None)
        creates an object from a WIF of WIFC format (string)
    from_bytes()
        creates an object from raw 32 bytes
    to_wif(compressed=True, network=None)
        returns as WIFC (compressed) or WIF format (string)
    to_bytes()
        returns the key's raw bytes
    sign_message(message, compressed=True)
        signs the message's digest and returns the signature
    sign_digest(digest, sighash=SIGHASH_ALL)
        signs a legacy or segwit v0 transaction digest (DER + sighash byte)
    sign_taproot_digest(digest, sighash=TAPROOT_SIGHASH_ALL, scripts=None, tweak=True)
        signs a taproot transaction digest (BIP-340 schnorr)
    sign_input(tx, txin_index, script, sighash=SIGHASH_ALL)
        creates the transaction's digest and signs it for a particular index
    sign_segwit_input(tx, txin_index, script, amount, sighash=SIGHASH_ALL)
        same as above for segwit v0 inputs
    sign_taproot_input(tx, txin_index, utxo_scripts, amounts, ...)
        same as above for taproot inputs; keys are tweaked by default
    get_public_key()
        returns the corresponding PublicKey object
    """

    def __init__(
        self,
        wif: Optional[str] = None,
        secret_exponent: Optional[int] = None,
        b: Optional[bytes] = None,
        network: Optional[str] = None,
    ) -> None:
        """With no parameters a random key is created

        Parameters
        ----------
        wif : str, optional
            the key in WIF of WIFC format (default None)
        secret_exponent : int, optional
            used to create a specific key deterministically (default None)
        b : bytes, optional
            used to create a key from raw bytes
        network : str, optional
            the network the WIF belongs to (default is the configured one)
        """

        if not secret_exponent and not wif and not b:
            self.key = SigningKey.generate(curve=SECP256k1)
        else:
            if wif:
                self._from_wif(wif, network)
            elif b:
                self._from_bytes(b)
            elif secret_exponent:
                self.key = SigningKey.from_secret_exponent(
                    secret_exponent, curve=SECP256k1
                )

    def to_bytes(self) -> bytes:
        """Returns key's bytes"""

        return self.key.to_string()

    @classmethod
    def from_wif(cls, wif: str, network: Optional[str] = None) -> "PrivateKey":
        """Creates key from WIFC or WIF format key"""

        return cls(wif=wif, network=network)

    @classmethod
    def from_bytes(cls, b: bytes) -> "PrivateKey":
        """Creates a key directly from 32 raw bytes"""

        return cls(b=b)

    def _from_bytes(self, b: bytes) -> None:
        if len(b) != 32:
            raise ValueError("Invalid key length: must be exactly 32 bytes.")
        self.key = SigningKey.from_string(b, curve=SECP256k1)

    def _from_wif(self, wif: str, network: Optional[str] = None) -> None:
        """Creates key from WIFC or WIF format key

        Check to_wif for the detailed process. From WIF is the reverse.

        Raises
        ------
        ValueError
            if the checksum is wrong or if the WIF/WIFC is not from the
            configured network.
        """

        try:
            key_bytes = base58.b58decode_check(wif)
        except ValueError:
            raise ValueError("Checksum is wrong. Possible mistype?") from None

        # get network prefix and check with current setup
        network_prefix = key_bytes[:1]
        if NETWORK_WIF_PREFIXES[resolve_network(network)] != network_prefix:
            raise ValueError("Using the wrong network!")

        # remove network prefix
        key_bytes = key_bytes[1:]

        # check length of bytes and if > 32 then compressed
        if len(key_bytes) > 32:
            self.key = SigningKey.from_string(key_bytes[:-1], curve=SECP256k1)
        else:
            self.key = SigningKey.from_string(key_bytes, curve=SECP256k1)

    def to_wif(self, compressed: bool = True, network: Optional[str] = None) -> str:
        """Returns key in WIFC or WIF string

        |  Pseudocode:
        |      network_prefix = (1 byte version number)
        |      data = network_prefix + (32 bytes number/key) [ + 0x01 if compressed ]
        |      data_hash = SHA-256( SHA-256( data ) )
        |      checksum = (first 4 bytes of data_hash)
        |      wif = Base58CheckEncode( data + checksum )
        """

        data = NETWORK_WIF_PREFIXES[resolve_network(network)] + self.to_bytes()

        if compressed is True:
            data += b"\x01"

        return base58.b58encode_check(data).decode("utf-8")

    def sign_message(self, message: str, compressed: bool = True) -> Optional[str]:
        """Signs the message with the private key (deterministically)

        Bitcoin uses a compact format for message signatures (for tx sigs it
        uses normal DER format). The format has the normal r and s parameters
        that ECDSA signatures have but also includes a prefix which encodes
        extra information. Using the prefix the public key can be
        reconstructed when verifying the signature.

        |  Prefix values:
        |      27 - 0x1B = first key with even y
        |      28 - 0x1C = first key with odd y
        |      29 - 0x1D = second key with even y
        |      30 - 0x1E = second key with odd y

        If key is compressed add 4 (31 - 0x1F, 32 - 0x20, 33 - 0x21, 34 - 0x22
        respectively)

        Returns a Bitcoin compact signature in Base64
        """

        digest = message_digest(message)
        signature = self.key.sign_digest_deterministic(
            digest, sigencode=sigencode_string, hashfunc=hashlib.sha256
        )

        prefix = 31 if compressed else 27
        public_key = self.get_public_key()
        for recid in range(4):
            sig = bytes([prefix + recid]) + signature
            recovered = PublicKey.get_signature_public(message, sig)
            if recovered is not None and recovered == public_key:
                return b64encode(sig).decode("utf-8")

        return None

    def sign_input(
        self, tx: Transaction, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> str:
        tx_digest = tx.get_transaction_digest(txin_index, script, sighash)
        return self.sign_digest(tx_digest, sighash)

    def sign_segwit_input(
        self,
        tx: Transaction,
        txin_index: int,
        script: Script,
        amount: int,
        sighash: int = SIGHASH_ALL,
    ) -> str:
        tx_digest = tx.get_transaction_segwit_digest(txin_index, script, amount, sighash)
        return self.sign_digest(tx_digest, sighash)

    def sign_taproot_input(
        self,
        tx: Transaction,
        txin_index: int,
        utxo_scripts: list[Script],
        amounts: list[int],
        script_path: bool = False,
        tapleaf_script: Optional[Script] = None,
        tapleaf_scripts: Any = None,
        sighash: int = TAPROOT_SIGHASH_ALL,
        tweak: bool = True,
    ) -> str:
        # note that when signing a tapleaf we typically won't use tweaked
        # keys - so tweak should be set to False
        if script_path:
            tx_digest = tx.get_transaction_taproot_digest(
                txin_index,
                utxo_scripts,
                amounts,
                1,
                script=tapleaf_script,
                sighash=sighash,
            )
        else:
            tx_digest = tx.get_transaction_taproot_digest(
                txin_index, utxo_scripts, amounts, 0, sighash=sighash
            )
        return self.sign_taproot_digest(tx_digest, sighash, tapleaf_scripts, tweak)

    def sign_digest(self, tx_digest: bytes, sighash: int = SIGHASH_ALL) -> str:
        """Signs a transaction digest with the private key

        Bitcoin uses the normal DER format for transactions. The returned
        signature is the DER signature plus the sighash byte, ready to be
        placed in the scriptSig or witness.
        """

        # From Bitcoin core v0.17 a Low R value is required. This way
        # signatures are always 71 bytes. Because R is not mutable in the same
        # way that S is, a low R value can only be found by trying different
        # nonces (RFC6979 - deterministic nonce generation).
        signature = self.key.sign_digest_deterministic(
            tx_digest, sigencode=sigencode_der, hashfunc=hashlib.sha256
        )

        # if high R then its size will be 33 bytes to include the sign
        attempt = 1
        length_r = signature[3]
        while length_r == 33:
            signature = self.key.sign_digest_deterministic(
                tx_digest,
                extra_entropy=i_to_b32(attempt),
                sigencode=sigencode_der,
                hashfunc=hashlib.sha256,
            )
            attempt += 1
            length_r = signature[3]

        # get DER values individually -- DER structure is:
        #   1-byte   -- 0x30 to specify a DER compound object (R,S)
        #   1-byte   -- length of the compound object
        #   1-byte   -- 0x02 to specify integer type for R
        #   1-byte   -- length of signature's R value
        #   variable -- R value
        #   1-byte   -- 0x02 to specify integer type for S
        #   1-byte   -- length of signature's S value
        #   variable -- S value
        der_prefix = signature[0]
        length_total = signature[1]
        der_type_int = signature[2]
        length_r = signature[3]
        R = signature[4 : 4 + length_r]
        length_s = signature[5 + length_r]
        S = signature[5 + length_r + 1 :]
        S_as_bigint = b_to_i(S)

        # Low S standardness rule of BIP62: S must be less than half the order
        if S_as_bigint > Secp256k1Params._order // 2:
            new_S_as_bigint = Secp256k1Params._order - S_as_bigint
            new_S = new_S_as_bigint.to_bytes((new_S_as_bigint.bit_length() + 7) // 8, "big")
            # a leading 0x80 bit needs a sign byte
            if new_S[0] & 0x80:
                new_S = b"\x00" + new_S
            length_total += len(new_S) - length_s
            length_s = len(new_S)
        else:
            new_S = S

        signature = (
            struct.pack("BBBB", der_prefix, length_total, der_type_int, length_r)
            + R
            + struct.pack("BB", der_type_int, length_s)
            + new_S
        )

        # add sighash in the signature -- as one byte!
        signature += struct.pack("B", sighash)

        return b_to_h(signature)

    def sign_taproot_digest(
        self,
        tx_digest: bytes,
        sighash: int = TAPROOT_SIGHASH_ALL,
        scripts: Any = None,
        tweak: bool = True,
    ) -> str:
        """Signs a taproot transaction digest with the private key

        Taproot uses Schnorr signatures. The format is just R and S so only
        64 bytes. If TAPROOT_SIGHASH_ALL then nothing is included (i.e.
        default). If another sighash then it is included in the end (65
        bytes).

        Note that when signing for script path (tapleafs) we typically won't
        use tweaking so tweak should be set to False
        """

        if tweak:
            tweak_int = calculate_tweak(self.get_public_key(), scripts)
            byte_key = tweak_taproot_privkey(self.key.to_string(), tweak_int)
        else:
            byte_key = self.key.to_string()

        # bitcoin core passes 32 zero bytes as aux randomness
        rand_aux = bytes(32)

        sig = CoinCurvePrivateKey(byte_key).sign_schnorr(tx_digest, rand_aux)

        if sighash != TAPROOT_SIGHASH_ALL:
            sig += sighash.to_bytes(1, "big")

        return b_to_h(sig)

    def get_public_key(self) -> "PublicKey":
        """Returns the corresponding PublicKey"""

        verifying_key = b_to_h(self.key.get_verifying_key().to_string())
        return PublicKey("04" + verifying_key)


class PublicKey:
    """Represents an ECDSA public key.

    Attributes
    ----------
    key : VerifyingKey
        the ecdsa key; its raw form is 64 bytes (x, y coordinates of the curve)

    Methods
    -------
    from_hex(hex_str)
        creates an object from a hex string in SEC format (classmethod)
    get_signature_public(message, signature)
        recovers the public key of a message signature (classmethod)
    verify(message, signature)
        returns true if the message was signed with this public key's
        corresponding private key.
    to_hex(compressed=True)
        returns the key as hex string (in SEC format - compressed by default)
    to_bytes(prefix=None)
        returns the key's raw bytes, optionally with a prefix byte
    to_compressed_bytes()
        returns the compressed SEC encoding
    to_x_only_hex()
        returns the x coordinate only as hex string before tweaking
    to_taproot_hex(scripts)
        returns the x coordinate only as hex string after tweaking
    calculate_tweak(scripts)
        returns the taproot tweak as integer
    is_y_even()
        returns true if y coordinate is even
    to_hash160(compressed=True)
        returns the hash160 hex string of the public key
    to_redeem_script()
        returns the P2PK script of the key
    to_p2wsh_redeem_script()
        returns the 1-of-1 multisig script used for P2WSH
    get_address(), get_segwit_address(), get_taproot_address(scripts), ...
        return the address objects of the key for every address type
    """

    def __init__(self, hex_str: str) -> None:
        """
        Parameters
        ----------
        hex_str : str
            the public key in hex string (SEC format or 32 bytes x-only)

        Raises
        ------
        ValidationError
            If the encoding is invalid or the point is not on the curve
        """
        hex_str = hex_str.strip()
        if hex_str.lower().startswith("0x"):
            hex_str = hex_str[2:]

        try:
            hex_bytes = h_to_b(hex_str)
        except ValueError:
            raise ValidationError("Bad point") from None

        if len(hex_bytes) == 65 and hex_bytes[0] == 0x04:
            x_coord = b_to_i(hex_bytes[1:33])
            y_coord = b_to_i(hex_bytes[33:])
            if not Secp256k1Params.is_on_curve(x_coord, y_coord):
                raise ValidationError("Bad point")
        elif (len(hex_bytes) == 33 and hex_bytes[0] in (0x02, 0x03)) or len(
            hex_bytes
        ) == 32:
            # taproot x-only keys are exactly 32 bytes and imply an even y
            x_only = len(hex_bytes) == 32
            x_coord = b_to_i(hex_bytes if x_only else hex_bytes[1:])
            if x_coord >= Secp256k1Params._p:
                raise ValidationError("Bad point")

            # y = modulo_square_root( (x**3 + 7) mod p ) -- there will be 2 y values
            y_values = sqrt_mod(
                (x_coord**3 + 7) % Secp256k1Params._p, Secp256k1Params._p, True
            )
            if not y_values:
                raise ValidationError("Bad point")

            want_odd = not x_only and hex_bytes[0] == 0x03
            y_coord = next(y for y in y_values if (y % 2 == 1) == want_odd)
        else:
            raise ValidationError("Bad point")

        try:
            self.key = VerifyingKey.from_string(
                i_to_b32(x_coord) + i_to_b32(y_coord), curve=SECP256k1
            )
        except MalformedPointError:
            raise ValidationError("Bad point") from None

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        """Creates a public key from a hex string (SEC format)"""

        return cls(hex_str)

    def to_bytes(self, prefix: Optional[int] = None) -> bytes:
        """Returns key's raw 64 bytes, prefixed with `prefix` if given (e.g.
        0x04 for the uncompressed SEC format)"""

        raw = self.key.to_string()
        if prefix is not None:
            return bytes([prefix]) + raw
        return raw

    def to_compressed_bytes(self) -> bytes:
        """Returns the compressed SEC encoding of the key"""

        return h_to_b(self.to_hex(compressed=True))

    def to_hex(self, compressed: bool = True) -> str:
        """Returns public key as a hex string (SEC format - compressed by
        default)"""

        key_hex = b_to_h(self.key.to_string())

        if compressed:
            # check if y is even or odd (02 even, 03 odd)
            if self.is_y_even():
                return "02" + key_hex[:64]
            return "03" + key_hex[:64]

        # uncompressed starts with 04
        return "04" + key_hex

    def to_x_only_hex(self) -> str:
        """Returns the x coordinate of the public key as hex string."""

        return self.key.to_string().hex()[:64]

    def calculate_tweak(self, scripts: Any = None) -> int:
        """Returns the taproot tweak for this key and the script tree"""

        return calculate_tweak(self, scripts)

    def to_taproot_hex(self, scripts: Any = None) -> Tuple[str, bool]:
        """Returns the tweaked x coordinate of the public key as a hex string
        and whether the tweaked y coordinate is odd.

        Parameters
        ==========
        scripts : list[ list[Script] ] or TapLeaf/TapBranch
            the merkle tree of scripts to commit; at most two branches per
            level
        """

        tweak_int = calculate_tweak(self, scripts)
        pubkey, is_odd = tweak_taproot_pubkey(self.key.to_string(), tweak_int)
        return pubkey.hex(), is_odd

    def is_y_even(self) -> bool:
        """Returns True if the y coordinate of the public key is even and
        False otherwise."""

        return self.key.to_string()[-1] % 2 == 0

    @classmethod
    def get_signature_public(
        cls, message: str, signature: Union[str, bytes]
    ) -> Optional["PublicKey"]:
        """Recovers the public key from a Bitcoin message signature

        The signature is 65 bytes (or its Base64 form): a header byte that
        encodes the recovery id followed by the 64 bytes compact r, s.
        Returns None when no key can be recovered.
        """

        sig = _decode_message_signature(signature)
        if sig is None:
            return None

        prefix = sig[0]
        recid = prefix - 27 if prefix < 31 else prefix - 31
        if not 0 <= recid <= 3:
            return None

        order = Secp256k1Params._order
        p = Secp256k1Params._p
        r, s = sigdecode_string(sig[1:], order)
        if not (0 < r < order and 0 < s < order):
            return None

        # get R's x coordinate
        x = r + (recid // 2) * order
        if x >= p:
            return None

        # get R's y coordinate (y**2 = x**3 + 7)
        y_values = sqrt_mod((x**3 + 7) % p, p, True)
        if not y_values:
            return None
        y = next(v for v in y_values if (v - recid) % 2 == 0)

        R = ellipticcurve.Point(Secp256k1Params._curve, x, y, order)
        e = b_to_i(message_digest(message))

        # compute public key Q = r^-1 (sR - eG)
        minus_e = -e % order
        inv_r = numbertheory.inverse_mod(r, order)
        Q = inv_r * (s * R + minus_e * Secp256k1Params._G)
        if Q == ellipticcurve.INFINITY:
            return None

        return cls("04" + b_to_h(i_to_b32(Q.x()) + i_to_b32(Q.y())))

    def verify(self, message: str, signature: Union[str, bytes]) -> bool:
        """Verifies that the message was signed with this public key's
        corresponding private key."""

        sig = _decode_message_signature(signature)
        if sig is None:
            return False

        # ignore first byte of compact signature
        try:
            return self.key.verify_digest(
                sig[1:], message_digest(message), sigdecode=sigdecode_string
            )
        except BadSignatureError:
            return False

    def to_hash160(self, compressed: bool = True) -> str:
        """Returns the RIPEMD( SHA256( ) ) of the public key in hex"""

        return b_to_h(hash160(h_to_b(self.to_hex(compressed))))

    def to_redeem_script(self, compressed: bool = True) -> Script:
        """<pubkey> OP_CHECKSIG"""

        return Script([self.to_hex(compressed), "OP_CHECKSIG"])

    def to_p2wsh_redeem_script(self) -> Script:
        """OP_1 <pubkey> OP_1 OP_CHECKMULTISIG"""

        return Script(["OP_1", self.to_hex(), "OP_1", "OP_CHECKMULTISIG"])

    def get_p2pk_address(self, compressed: bool = True) -> P2pkAddress:
        return P2pkAddress(self.to_hex(compressed))

    def get_address(self, compressed: bool = True) -> P2pkhAddress:
        """Returns the corresponding P2PKH Address (default compressed)"""

        return P2pkhAddress(self.to_hash160(compressed))

    def get_segwit_address(self) -> P2wpkhAddress:
        """Returns the corresponding P2WPKH address

        Only compressed is allowed. It is otherwise identical to normal P2PKH
        address.
        """
        return P2wpkhAddress(self.to_hash160(True))

    def get_p2wsh_address(self) -> P2wshAddress:
        return P2wshAddress.from_script(self.to_p2wsh_redeem_script())

    def get_taproot_address(self, scripts: Any = None) -> P2trAddress:
        """Returns the corresponding P2TR address

        Taproot uses x-only public key with even y (02 compressed keys).
        scripts contains the list of lists of Scripts describing the merkle
        tree
        """

        pubkey, is_odd = self.to_taproot_hex(scripts)
        return P2trAddress(pubkey, is_odd=is_odd)

    def get_p2pkh_in_p2sh(self) -> P2shAddress:
        return P2shAddress.from_script(
            self.get_address().to_script_pub_key(), AddressType.P2PKH_IN_P2SH
        )

    def get_p2pk_in_p2sh(self) -> P2shAddress:
        return P2shAddress.from_script(self.to_redeem_script(), AddressType.P2PK_IN_P2SH)

    def get_p2wpkh_in_p2sh(self) -> P2shAddress:
        return P2shAddress.from_script(
            self.get_segwit_address().to_script_pub_key(), AddressType.P2WPKH_IN_P2SH
        )

    def get_p2wsh_in_p2sh(self) -> P2shAddress:
        return P2shAddress.from_script(
            self.get_p2wsh_address().to_script_pub_key(), AddressType.P2WSH_IN_P2SH
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()})"


def _decode_message_signature(signature: Union[str, bytes]) -> Optional[bytes]:
    """Returns the 65 raw bytes of a message signature (Base64 or bytes)"""

    if isinstance(signature, str):
        try:
            signature = b64decode(signature.encode("utf-8"), validate=True)
        except ValueError:
            return None
    if len(signature) != 65:
        return None
    return signature
