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
from btcbuilder.utils import to_satoshis
from btcbuilder.keys import PrivateKey
from btcbuilder.address import AddressType
from btcbuilder.utxo import (
    BitcoinUtxo,
    MultiSignatureAddress,
    MultiSignatureSigner,
    UtxoOwnerDetails,
    UtxoWithAddress,
)
from btcbuilder.outputs import BitcoinOutput
from btcbuilder.builder import BitcoinTransactionBuilder


def main():
    # always remember to setup the network
    setup("testnet")

    priv1 = PrivateKey("cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL")
    priv2 = PrivateKey("cSfna7riKJdNU7skpRUx17WYANNsyHTA2FmuzLpFzpp37xpytgob")
    priv3 = PrivateKey("cNxX8M7XU8VNa5ofd8yk1eiZxaxNrQQyb7xNpwAmsrzEhcVwtCjs")

    # 3-of-4 where the first signer counts twice
    multisig = MultiSignatureAddress(
        3,
        [
            MultiSignatureSigner(priv1.get_public_key().to_hex(), weight=2),
            MultiSignatureSigner(priv2.get_public_key().to_hex()),
            MultiSignatureSigner(priv3.get_public_key().to_hex()),
        ],
    )
    print("Witness script:", multisig.multisig_script.to_hex())

    fromAddress = multisig.to_p2wsh_in_p2sh_address()
    print("P2SH(P2WSH) address:", fromAddress.to_string())

    utxo = UtxoWithAddress(
        BitcoinUtxo(
            "2a28f8bd8ba0518a86a390da310073a30b7df863d04b42a9c487edf3a8b113af",
            1,
            to_satoshis(0.002),
            AddressType.P2WSH_IN_P2SH,
        ),
        UtxoOwnerDetails(fromAddress, multisig_address=multisig),
    )

    toAddress = priv2.get_public_key().get_segwit_address()

    # only the first and third key are available here; the second signer
    # declines by returning an empty signature
    keys = {
        priv1.get_public_key().to_hex(): priv1,
        priv3.get_public_key().to_hex(): priv3,
    }

    def sign(digest, utxo, public_key, sighash):
        key = keys.get(public_key)
        if key is None:
            return ""
        return key.sign_digest(digest, sighash)

    builder = BitcoinTransactionBuilder(
        [BitcoinOutput(toAddress, to_satoshis(0.0019))], to_satoshis(0.0001), [utxo]
    )
    tx = builder.build_transaction(sign)

    print("\nRaw signed transaction:\n" + tx.serialize())
    print("\nTxId:", tx.get_txid())


if __name__ == "__main__":
    main()
