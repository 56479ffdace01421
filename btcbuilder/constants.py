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

NETWORKS = {
    "mainnet",
    "testnet",
    "signet",
    "regtest",
    "litecoin",
    "litecoin-testnet",
    "dogecoin",
    "bitcoincash",
    "bitcoinsv",
}

NETWORK_WIF_PREFIXES = {
    "mainnet": b"\x80",
    "signet": b"\xef",
    "testnet": b"\xef",
    "regtest": b"\xef",
    "litecoin": b"\xb0",
    "litecoin-testnet": b"\xef",
    "dogecoin": b"\x9e",
    "bitcoincash": b"\x80",
    "bitcoinsv": b"\x80",
}

NETWORK_P2PKH_PREFIXES = {
    "mainnet": b"\x00",
    "signet": b"\x6f",
    "testnet": b"\x6f",
    "regtest": b"\x6f",
    "litecoin": b"\x30",
    "litecoin-testnet": b"\x6f",
    "dogecoin": b"\x1e",
    "bitcoincash": b"\x00",
    "bitcoinsv": b"\x00",
}

NETWORK_P2SH_PREFIXES = {
    "mainnet": b"\x05",
    "signet": b"\xc4",
    "testnet": b"\xc4",
    "regtest": b"\xc4",
    "litecoin": b"\x32",
    "litecoin-testnet": b"\x3a",
    "dogecoin": b"\x16",
    "bitcoincash": b"\x05",
    "bitcoinsv": b"\x05",
}

# networks that need a dedicated (forked) builder, e.g. for cash tokens
FORKED_NETWORKS = {"bitcoincash", "bitcoinsv"}


# Address type tags, see btcbuilder.address.AddressType
P2PK_ADDRESS = "P2PK"
P2PKH_ADDRESS = "P2PKH"
P2PKHWT_ADDRESS = "P2PKHWT"
P2WPKH_ADDRESS = "P2WPKH"
P2WSH_ADDRESS = "P2WSH"
P2TR_ADDRESS = "P2TR"
MWEB_ADDRESS = "MWEB"
P2WSH_IN_P2SH_ADDRESS = "P2SH/P2WSH"
P2WPKH_IN_P2SH_ADDRESS = "P2SH/P2WPKH"
P2PKH_IN_P2SH_ADDRESS = "P2SH/P2PKH"
P2PK_IN_P2SH_ADDRESS = "P2SH/P2PK"
P2PKH_IN_P2SH32_ADDRESS = "P2SH32/P2PKH"
P2PK_IN_P2SH32_ADDRESS = "P2SH32/P2PK"
P2PKH_IN_P2SH32WT_ADDRESS = "P2SH32WT/P2PKH"
P2PK_IN_P2SH32WT_ADDRESS = "P2SH32WT/P2PK"
P2PKH_IN_P2SHWT_ADDRESS = "P2SHWT/P2PKH"
P2PK_IN_P2SHWT_ADDRESS = "P2SHWT/P2PK"

HASH160_DIGEST_LENGTH = 20
SCRIPT_HASH_LENGTH = 32

_LEGACY_TYPES = {
    P2PK_ADDRESS,
    P2PKH_ADDRESS,
    P2PKH_IN_P2SH_ADDRESS,
    P2PK_IN_P2SH_ADDRESS,
}
_SEGWIT_TYPES = {
    P2WPKH_ADDRESS,
    P2WSH_ADDRESS,
    P2WSH_IN_P2SH_ADDRESS,
    P2WPKH_IN_P2SH_ADDRESS,
}
_CASH_TYPES = {
    P2PKHWT_ADDRESS,
    P2PKH_IN_P2SH32_ADDRESS,
    P2PK_IN_P2SH32_ADDRESS,
    P2PKH_IN_P2SH32WT_ADDRESS,
    P2PK_IN_P2SH32WT_ADDRESS,
    P2PKH_IN_P2SHWT_ADDRESS,
    P2PK_IN_P2SHWT_ADDRESS,
}

NETWORK_ADDRESS_TYPES = {
    "mainnet": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS},
    "testnet": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS},
    "signet": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS},
    "regtest": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS},
    "litecoin": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS, MWEB_ADDRESS},
    "litecoin-testnet": _LEGACY_TYPES | _SEGWIT_TYPES | {P2TR_ADDRESS, MWEB_ADDRESS},
    "dogecoin": set(_LEGACY_TYPES),
    "bitcoincash": _LEGACY_TYPES | _CASH_TYPES,
    "bitcoinsv": set(_LEGACY_TYPES),
}


# Constants related to transaction signature types
TAPROOT_SIGHASH_ALL = 0x00
SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_ANYONECANPAY = 0x80


# Constants for time lock and RBF
TYPE_ABSOLUTE_TIMELOCK = 0x101
TYPE_RELATIVE_TIMELOCK = 0x201
TYPE_REPLACE_BY_FEE = 0x301

DEFAULT_TX_LOCKTIME = b"\x00\x00\x00\x00"

EMPTY_TX_SEQUENCE = b"\x00\x00\x00\x00"
DEFAULT_TX_SEQUENCE = b"\xff\xff\xff\xff"
ABSOLUTE_TIMELOCK_SEQUENCE = b"\xfe\xff\xff\xff"

REPLACE_BY_FEE_SEQUENCE = b"\x01\x00\x00\x00"


# Constants related to transaction versions and scripts
LEAF_VERSION_TAPSCRIPT = 0xC0

# TX version 2 was introduced in BIP-68 with relative locktime -- tx v1
# does not support relative locktime
DEFAULT_TX_VERSION = b"\x02\x00\x00\x00"

# maximum number of public keys (or signer weight) in a bare multisig script
MAX_MULTISIG_KEYS = 16


# Monetary constants
SATOSHIS_PER_BITCOIN = 100000000
NEGATIVE_SATOSHI = -1
MAX_SATOSHIS = 0xFFFFFFFFFFFFFFFF


# Placeholder signatures used when estimating the size of a transaction
# 64 bytes schnorr signature
FAKE_SCHNORR_SIGNATURE = "01" * 64
# 71 bytes (64 bytes signature plus 6-7 bytes DER encoding and sighash)
FAKE_ECDSA_SIGNATURE = "01" * 71

# Message signing
MESSAGE_MAGIC_PREFIX = b"\x18Bitcoin Signed Message:\n"
