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

__version__ = "0.1.0"

from btcbuilder.setup import setup, get_network

from btcbuilder.keys import PrivateKey, PublicKey

from btcbuilder.address import (
    AddressType,
    Address,
    P2pkAddress,
    P2pkhAddress,
    P2shAddress,
    SegwitAddress,
    P2wpkhAddress,
    P2wshAddress,
    P2trAddress,
    MwebAddress,
)

from btcbuilder.script import Script

from btcbuilder.transactions import (
    Transaction,
    TxInput,
    TxOutput,
    TxWitnessInput,
    Sequence,
)

from btcbuilder.utxo import (
    BitcoinUtxo,
    MultiSignatureSigner,
    MultiSignatureAddress,
    UtxoOwnerDetails,
    UtxoWithAddress,
)

from btcbuilder.outputs import (
    BitcoinOutput,
    BitcoinScriptOutput,
    BitcoinTokenOutput,
    BitcoinBurnableOutput,
)

from btcbuilder.builder import BitcoinOrdering, BitcoinTransactionBuilder

__all__ = [
    'setup',
    'get_network',
    'PrivateKey',
    'PublicKey',
    'AddressType',
    'Address',
    'P2pkAddress',
    'P2pkhAddress',
    'P2shAddress',
    'SegwitAddress',
    'P2wpkhAddress',
    'P2wshAddress',
    'P2trAddress',
    'MwebAddress',
    'Script',
    'Transaction',
    'TxInput',
    'TxOutput',
    'TxWitnessInput',
    'Sequence',
    'BitcoinUtxo',
    'MultiSignatureSigner',
    'MultiSignatureAddress',
    'UtxoOwnerDetails',
    'UtxoWithAddress',
    'BitcoinOutput',
    'BitcoinScriptOutput',
    'BitcoinTokenOutput',
    'BitcoinBurnableOutput',
    'BitcoinOrdering',
    'BitcoinTransactionBuilder',
]
