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


from btcbuilder.setup import setup
from btcbuilder.keys import PrivateKey
from btcbuilder.address import AddressType
from btcbuilder.utxo import BitcoinUtxo, UtxoOwnerDetails, UtxoWithAddress
from btcbuilder.outputs import BitcoinOutput
from btcbuilder.builder import BitcoinTransactionBuilder


def main():
    # always remember to setup the network
    setup("testnet")

    pub = PrivateKey("cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL").get_public_key()

    # the value is irrelevant for the estimation
    utxos = [
        UtxoWithAddress(
            BitcoinUtxo(
                "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
                1,
                50000,
                AddressType.P2TR,
            ),
            UtxoOwnerDetails(pub.get_taproot_address(), public_key=pub.to_hex()),
        ),
        UtxoWithAddress(
            BitcoinUtxo(
                "99fb66cbc26a2d1a5a03c3d00118fd370a37a29fb368817dde3b8b50920cd4dc",
                1,
                13120,
                AddressType.P2PKH,
            ),
            UtxoOwnerDetails(pub.get_address(), public_key=pub.to_hex()),
        ),
    ]
    outputs = [BitcoinOutput(pub.get_taproot_address(), 60000)]

    size = BitcoinTransactionBuilder.estimate_transaction_size(utxos, outputs)

    # with a fee rate of 10 sat/vbyte
    print("Estimated virtual size:", size)
    print("Fee:", size * 10)


if __name__ == "__main__":
    main()
