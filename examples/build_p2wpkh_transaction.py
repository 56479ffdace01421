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


import logging

from btcbuilder.setup import setup
from btcbuilder.utils import to_satoshis
from btcbuilder.keys import PrivateKey
from btcbuilder.address import AddressType, P2pkhAddress
from btcbuilder.utxo import BitcoinUtxo, UtxoOwnerDetails, UtxoWithAddress
from btcbuilder.outputs import BitcoinOutput
from btcbuilder.builder import BitcoinTransactionBuilder


def main():
    logging.basicConfig(level=logging.DEBUG)

    # always remember to setup the network
    setup("testnet")

    # the key that corresponds to the P2WPKH address
    priv = PrivateKey("cVdte9ei2xsVjmZSPtyucG43YZgNkmKTqhwiUA8M4Fc3LdPJxPmZ")
    pub = priv.get_public_key()

    fromAddress = pub.get_segwit_address()
    print("Witness program:", fromAddress.to_witness_program())

    # UTXO of fromAddress; the amount is committed to by the segwit signature
    utxo = UtxoWithAddress(
        BitcoinUtxo(
            "13d2d30eca974e8fa5da11b9608fa36905a22215e8df895e767fc903889367ff",
            0,
            to_satoshis(0.01),
            AddressType.P2WPKH,
        ),
        UtxoOwnerDetails(fromAddress, public_key=pub.to_hex()),
    )

    toAddress = P2pkhAddress.from_address("mrrKUpJnAjvQntPgz2Z4kkyr1gbtHmQv28")

    # the change goes back to the segwit address
    outputs = [
        BitcoinOutput(toAddress, to_satoshis(0.006)),
        BitcoinOutput(fromAddress, to_satoshis(0.0039)),
    ]

    # the signer only sees digests; keys stay with the caller
    def sign(digest, utxo, public_key, sighash):
        return priv.sign_digest(digest, sighash)

    builder = BitcoinTransactionBuilder(
        outputs, to_satoshis(0.0001), [utxo], memo="btc-tx-builder", enable_rbf=True
    )
    tx = builder.build_transaction(sign)

    # print raw signed transaction ready to be broadcasted
    print("\nRaw signed transaction:\n" + tx.serialize())
    print("\nTxId:", tx.get_txid())
    print("Virtual size:", tx.get_vsize())


if __name__ == "__main__":
    main()
