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

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import base58  # type: ignore

from btcbuilder.constants import (
    NETWORK_ADDRESS_TYPES,
    NETWORK_P2PKH_PREFIXES,
    NETWORK_P2SH_PREFIXES,
    HASH160_DIGEST_LENGTH,
    SCRIPT_HASH_LENGTH,
    P2PK_ADDRESS,
    P2PKH_ADDRESS,
    P2PKHWT_ADDRESS,
    P2WPKH_ADDRESS,
    P2WSH_ADDRESS,
    P2TR_ADDRESS,
    MWEB_ADDRESS,
    P2WSH_IN_P2SH_ADDRESS,
    P2WPKH_IN_P2SH_ADDRESS,
    P2PKH_IN_P2SH_ADDRESS,
    P2PK_IN_P2SH_ADDRESS,
    P2PKH_IN_P2SH32_ADDRESS,
    P2PK_IN_P2SH32_ADDRESS,
    P2PKH_IN_P2SH32WT_ADDRESS,
    P2PK_IN_P2SH32WT_ADDRESS,
    P2PKH_IN_P2SHWT_ADDRESS,
    P2PK_IN_P2SHWT_ADDRESS,
)
from btcbuilder.exceptions import AddressMismatch, UnknownAddressType, ValidationError
from btcbuilder.script import Script
from btcbuilder.setup import resolve_network
from btcbuilder.utils import b_to_h, h_to_b, hash160, hash_sha256, double_sha256


class AddressType(Enum):
    """The closed set of address types the builder knows how to spend.

    The value of each member is its tag (e.g. "P2SH/P2WPKH"). All the
    capability flags are constant lookups.
    """

    P2PK = P2PK_ADDRESS
    P2PKH = P2PKH_ADDRESS
    P2PKHWT = P2PKHWT_ADDRESS
    P2WPKH = P2WPKH_ADDRESS
    P2WSH = P2WSH_ADDRESS
    P2TR = P2TR_ADDRESS
    MWEB = MWEB_ADDRESS
    P2WSH_IN_P2SH = P2WSH_IN_P2SH_ADDRESS
    P2WPKH_IN_P2SH = P2WPKH_IN_P2SH_ADDRESS
    P2PKH_IN_P2SH = P2PKH_IN_P2SH_ADDRESS
    P2PK_IN_P2SH = P2PK_IN_P2SH_ADDRESS
    P2PKH_IN_P2SH32 = P2PKH_IN_P2SH32_ADDRESS
    P2PK_IN_P2SH32 = P2PK_IN_P2SH32_ADDRESS
    P2PKH_IN_P2SH32WT = P2PKH_IN_P2SH32WT_ADDRESS
    P2PK_IN_P2SH32WT = P2PK_IN_P2SH32WT_ADDRESS
    P2PKH_IN_P2SHWT = P2PKH_IN_P2SHWT_ADDRESS
    P2PK_IN_P2SHWT = P2PK_IN_P2SHWT_ADDRESS

    @classmethod
    def from_value(cls, value: str) -> "AddressType":
        """Returns the address type with the given tag

        Raises
        ------
        UnknownAddressType
            if no address type has this tag
        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownAddressType(value) from None

    @property
    def is_p2sh(self) -> bool:
        return self in _P2SH_TYPES

    @property
    def is_segwit(self) -> bool:
        return self in _SEGWIT_TYPES

    @property
    def is_p2sh_segwit(self) -> bool:
        """P2SH addresses that wrap a segwit program"""
        return self in (AddressType.P2WSH_IN_P2SH, AddressType.P2WPKH_IN_P2SH)

    @property
    def hash_length(self) -> int:
        return _HASH_LENGTHS.get(self, HASH160_DIGEST_LENGTH)

    @property
    def with_token(self) -> bool:
        return self in _TOKEN_TYPES

    @property
    def encoding(self) -> str:
        """The human readable codec an address of this type requires"""
        if self is AddressType.P2PK:
            return "hex"
        if self is AddressType.MWEB:
            return "mweb"
        if self is AddressType.P2TR:
            return "bech32m"
        if self.is_segwit:
            return "bech32"
        return "base58"

    def __str__(self) -> str:
        return self.value


_P2SH_TYPES = frozenset(
    {
        AddressType.P2WSH_IN_P2SH,
        AddressType.P2WPKH_IN_P2SH,
        AddressType.P2PKH_IN_P2SH,
        AddressType.P2PK_IN_P2SH,
        AddressType.P2PKH_IN_P2SH32,
        AddressType.P2PK_IN_P2SH32,
        AddressType.P2PKH_IN_P2SH32WT,
        AddressType.P2PK_IN_P2SH32WT,
        AddressType.P2PKH_IN_P2SHWT,
        AddressType.P2PK_IN_P2SHWT,
    }
)

_SEGWIT_TYPES = frozenset(
    {AddressType.P2WPKH, AddressType.P2WSH, AddressType.P2TR, AddressType.MWEB}
)

_TOKEN_TYPES = frozenset(
    {
        AddressType.P2PKH_IN_P2SH32WT,
        AddressType.P2PK_IN_P2SH32WT,
        AddressType.P2PKH_IN_P2SHWT,
        AddressType.P2PK_IN_P2SHWT,
    }
)

# everything else uses 20 bytes hashes
_HASH_LENGTHS = {
    AddressType.P2WSH: SCRIPT_HASH_LENGTH,
    AddressType.P2TR: SCRIPT_HASH_LENGTH,
    AddressType.MWEB: SCRIPT_HASH_LENGTH,
    AddressType.P2PKH_IN_P2SH32: SCRIPT_HASH_LENGTH,
    AddressType.P2PK_IN_P2SH32: SCRIPT_HASH_LENGTH,
    AddressType.P2PKH_IN_P2SH32WT: SCRIPT_HASH_LENGTH,
    AddressType.P2PK_IN_P2SH32WT: SCRIPT_HASH_LENGTH,
}


def _check_hex_length(program: str, length: int, name: str) -> str:
    try:
        program_bytes = h_to_b(program)
    except (ValueError, TypeError):
        raise ValidationError(f"Invalid {name}: not a hex string") from None
    if len(program_bytes) != length:
        raise ValidationError(
            f"Invalid {name}: expected {length} bytes, got {len(program_bytes)}"
        )
    return program.lower()


class Address(ABC):
    """Represents an address by its binary program only

    The human readable encoding of an address (Base58Check, Bech32/Bech32m)
    is not needed for building transactions; an address is its type plus
    the hash (or key) that goes into the scriptPubKey.

    Methods
    -------
    get_type()
        returns the AddressType of the address
    to_program()
        returns the hash/program as hex string
    to_script_pub_key()
        returns the scriptPubKey (locking script) of the address
    validate_network(network)
        checks that the network supports this address type
    """

    address_type: AddressType

    def __init__(self, program: str) -> None:
        self.program = program

    def get_type(self) -> AddressType:
        """Returns the type of address"""
        return self.address_type

    def to_program(self) -> str:
        """Returns the hash or witness program as hex string"""
        return self.program

    @abstractmethod
    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (locking script) of the address"""

    def validate_network(self, network: Optional[str] = None) -> None:
        """Raises AddressMismatch if the network does not support this type"""
        network = resolve_network(network)
        if self.address_type.value not in NETWORK_ADDRESS_TYPES[network]:
            raise AddressMismatch(
                f"Address type {self.address_type.value} is not supported "
                f"by network {network}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return False
        return (
            self.address_type == other.address_type and self.program == other.program
        )

    def __hash__(self) -> int:
        return hash((self.address_type, self.program))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.address_type.value}, {self.program})"


class Base58Address(Address):
    """Addresses encoded with Base58Check: version byte plus 20/32 bytes hash

    |  Pseudocode:
    |      data = network_prefix + hash_bytes
    |      checksum = (first 4 bytes of SHA-256( SHA-256( data ) ))
    |      address = Base58Encode( data + checksum )
    """

    @classmethod
    @abstractmethod
    def _network_prefix(cls, network: str) -> bytes:
        pass

    def to_string(self, network: Optional[str] = None) -> str:
        """Returns the Base58Check address string"""
        network = resolve_network(network)
        self.validate_network(network)
        data = self._network_prefix(network) + h_to_b(self.program)
        return base58.b58encode_check(data).decode("utf-8")

    @classmethod
    def _decode(cls, address: str, network: Optional[str] = None) -> str:
        """Returns the hash of a Base58Check address string as hex

        Raises
        ------
        ValidationError
            if the checksum is wrong
        AddressMismatch
            if the version byte does not belong to the network
        """
        network = resolve_network(network)
        try:
            data = base58.b58decode_check(address)
        except ValueError as e:
            raise ValidationError(f"Invalid Base58Check address: {e}") from e

        if data[:1] != cls._network_prefix(network):
            raise AddressMismatch(f"Address {address} does not belong to {network}")
        return b_to_h(data[1:])


class P2pkAddress(Address):
    """Pay to public key; the program is the SEC encoded public key"""

    address_type = AddressType.P2PK

    def __init__(self, public_key: str) -> None:
        key_bytes = h_to_b(public_key)
        if len(key_bytes) not in (33, 65):
            raise ValidationError("Invalid public key length for P2PK")
        super().__init__(public_key.lower())

    def to_script_pub_key(self) -> Script:
        """<pubkey> OP_CHECKSIG"""
        return Script([self.program, "OP_CHECKSIG"])


class P2pkhAddress(Base58Address):
    """Encapsulates a P2PKH address (hash160 of the public key)"""

    def __init__(
        self, hash160: str, address_type: AddressType = AddressType.P2PKH
    ) -> None:
        if address_type not in (AddressType.P2PKH, AddressType.P2PKHWT):
            raise ValidationError(f"Invalid P2PKH address type: {address_type.value}")
        self.address_type = address_type
        super().__init__(_check_hex_length(hash160, HASH160_DIGEST_LENGTH, "hash160"))

    @classmethod
    def _network_prefix(cls, network: str) -> bytes:
        return NETWORK_P2PKH_PREFIXES[network]

    @classmethod
    def from_address(cls, address: str, network: Optional[str] = None) -> "P2pkhAddress":
        """Creates an address object from an address string"""
        return cls(cls._decode(address, network))

    def to_hash160(self) -> str:
        return self.program

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2PKH) that corresponds to this address"""
        return Script(
            ["OP_DUP", "OP_HASH160", self.program, "OP_EQUALVERIFY", "OP_CHECKSIG"]
        )


class P2shAddress(Base58Address):
    """Encapsulates a P2SH address.

    The address type tells what the redeem script is (P2SH/P2WPKH,
    P2SH/P2PK etc.). Types with a 32 bytes hash length use the
    OP_HASH256 form of the locking script.
    """

    def __init__(
        self, script_hash: str, address_type: AddressType = AddressType.P2PKH_IN_P2SH
    ) -> None:
        if not address_type.is_p2sh:
            raise ValidationError(f"Not a P2SH address type: {address_type.value}")
        self.address_type = address_type
        super().__init__(
            _check_hex_length(script_hash, address_type.hash_length, "script hash")
        )

    @classmethod
    def from_script(
        cls, script: Script, address_type: AddressType = AddressType.P2PKH_IN_P2SH
    ) -> "P2shAddress":
        """Creates an address object from a redeem script"""
        if address_type.hash_length == SCRIPT_HASH_LENGTH:
            script_hash = double_sha256(script.to_bytes())
        else:
            script_hash = hash160(script.to_bytes())
        return cls(b_to_h(script_hash), address_type)

    @classmethod
    def _network_prefix(cls, network: str) -> bytes:
        return NETWORK_P2SH_PREFIXES[network]

    @classmethod
    def from_address(
        cls,
        address: str,
        network: Optional[str] = None,
        address_type: AddressType = AddressType.P2PKH_IN_P2SH,
    ) -> "P2shAddress":
        """Creates an address object from an address string

        The nested type cannot be recovered from the string so it has to be
        provided.
        """
        return cls(cls._decode(address, network), address_type)

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2SH) that corresponds to this address"""
        if self.address_type.hash_length == SCRIPT_HASH_LENGTH:
            return Script(["OP_HASH256", self.program, "OP_EQUAL"])
        return Script(["OP_HASH160", self.program, "OP_EQUAL"])


class SegwitAddress(Address):
    """Represents a segwit address by its witness version and program

    for segwit v0 the program is a public key hash (P2WPKH) or the hash of
    the witness script (P2WSH); for segwit v1 (taproot) it is the tweaked
    x-only public key
    """

    segwit_version = 0

    def __init__(self, witness_program: str) -> None:
        super().__init__(
            _check_hex_length(
                witness_program, self.address_type.hash_length, "witness program"
            )
        )

    def to_witness_program(self) -> str:
        """Returns witness program as hex string"""
        return self.program

    def to_script_pub_key(self) -> Script:
        return Script([f"OP_{self.segwit_version}", self.program])


class P2wpkhAddress(SegwitAddress):
    """Encapsulates a P2WPKH address"""

    address_type = AddressType.P2WPKH


class P2wshAddress(SegwitAddress):
    """Encapsulates a P2WSH address"""

    address_type = AddressType.P2WSH

    @classmethod
    def from_script(cls, script: Script) -> "P2wshAddress":
        """Creates an address object from a witness script"""
        return cls(b_to_h(hash_sha256(script.to_bytes())))


class P2trAddress(SegwitAddress):
    """Encapsulates a P2TR (Taproot) address"""

    address_type = AddressType.P2TR
    segwit_version = 1

    def __init__(self, witness_program: str, is_odd: bool = False) -> None:
        self.odd = is_odd
        super().__init__(witness_program)

    def is_odd(self) -> bool:
        """Returns True if the y coordinate of the tweaked key is odd"""
        return self.odd


class MwebAddress(Address):
    """Litecoin MWEB address; outputs are not locked by a script"""

    address_type = AddressType.MWEB

    def __init__(self, program: str) -> None:
        h_to_b(program)
        super().__init__(program.lower())

    def to_script_pub_key(self) -> Script:
        return Script([])
