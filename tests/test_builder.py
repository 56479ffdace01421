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


import unittest

from coincurve import PublicKeyXOnly
from ecdsa.util import sigdecode_der

from btcbuilder.setup import setup
from btcbuilder.keys import PrivateKey
from btcbuilder.address import AddressType, MwebAddress, P2pkhAddress
from btcbuilder.constants import (
    DEFAULT_TX_SEQUENCE,
    REPLACE_BY_FEE_SEQUENCE,
    SIGHASH_ALL,
    TAPROOT_SIGHASH_ALL,
)
from btcbuilder.builder import BitcoinOrdering, BitcoinTransactionBuilder
from btcbuilder.outputs import (
    BitcoinBurnableOutput,
    BitcoinOutput,
    BitcoinScriptOutput,
    BitcoinTokenOutput,
)
from btcbuilder.script import Script
from btcbuilder.transactions import Transaction, TxWitnessInput
from btcbuilder.utils import to_satoshis
from btcbuilder.utxo import (
    BitcoinUtxo,
    MultiSignatureAddress,
    MultiSignatureSigner,
    UtxoOwnerDetails,
    UtxoWithAddress,
)
from btcbuilder.exceptions import (
    AddressMismatch,
    DispatchError,
    InsufficientSignatures,
    UnsupportedOperation,
    ValueMismatch,
)


def make_signer(*keys):
    """Returns a signer callback that signs with the given private keys and
    declines for every other public key"""

    by_public_key = {key.get_public_key().to_hex(): key for key in keys}

    def sign(digest, utxo, public_key, sighash):
        key = by_public_key.get(public_key)
        if key is None:
            return ""
        if utxo.utxo.is_p2tr():
            return key.sign_taproot_digest(digest, sighash)
        return key.sign_digest(digest, sighash)

    return sign


def owned_by(key, txid, vout, value, address_type):
    """A single key utxo of `key` with the address of `address_type`"""

    pub = key.get_public_key()
    address = {
        AddressType.P2PK: pub.get_p2pk_address,
        AddressType.P2PKH: pub.get_address,
        AddressType.P2WPKH: pub.get_segwit_address,
        AddressType.P2WSH: pub.get_p2wsh_address,
        AddressType.P2TR: pub.get_taproot_address,
        AddressType.P2PKH_IN_P2SH: pub.get_p2pkh_in_p2sh,
        AddressType.P2PK_IN_P2SH: pub.get_p2pk_in_p2sh,
        AddressType.P2WPKH_IN_P2SH: pub.get_p2wpkh_in_p2sh,
        AddressType.P2WSH_IN_P2SH: pub.get_p2wsh_in_p2sh,
    }[address_type]()
    return UtxoWithAddress(
        BitcoinUtxo(txid, vout, value, address_type),
        UtxoOwnerDetails(address, public_key=pub.to_hex()),
    )


def verify_ecdsa(key, digest, signature):
    """Verifies a DER signature (with its sighash byte) over digest"""

    der = bytes.fromhex(signature)[:-1]
    return key.get_public_key().key.verify_digest(der, digest, sigdecode=sigdecode_der)


class TestBuildKnownTransactions(unittest.TestCase):
    maxDiff = None

    def setUp(self):
        setup("testnet")
        self.sk = PrivateKey.from_wif(
            "cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo"
        )
        self.pub = self.sk.get_public_key()
        self.p2pkh_addr = self.pub.get_address()
        self.p2wpkh_addr = self.pub.get_segwit_address()

        self.send_to_p2wpkh_result = (
            "020000000178105e8743e15494e119a39702704ae9eeb45dd0f1c9cdabb7b7d666aa3a7b5a"
            "000000006a4730440220415155963673e5582aadfdb8d53874c9764cfd56c28be8d5f2838f"
            "dab6365f9902207bf28f875e15ff53e81f3245feb07c6120df4a653feabba3b7bf274790ea"
            "1fd1012102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeeadbcff8a546"
            "ffffffff01301b0f0000000000160014fd337ad3bf81e086d96a68e1f8d6a0a510f8c24a00"
            "000000"
        )
        self.spend_p2wpkh_result = (
            "02000000000101d33a48a6073b8a504107e47671e9464e10457451a576531e0d3878c74c1c"
            "cab30000000000ffffffff0120f40e00000000001976a914fd337ad3bf81e086d96a68e1f8"
            "d6a0a510f8c24a88ac0247304402201c7ec9b049daa99c78675810b5e36b0b61add3f84180"
            "eaeaa613f8525904bdc302204854830d463a4699b6d69e37c08b8d3c6158185d46499170cf"
            "cc24d4a9e9a37f012102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeea"
            "dbcff8a54600000000"
        )
        self.p2pkh_and_p2wpkh_to_p2pkh_result = (
            "02000000000102cc32915a633295794e8b2a9574cd02ff3eaa042b1c0bffb21fd668c87952"
            "2a1e000000006a47304402200fe842622e656a6780093f60b0597a36a57481611543a2e957"
            "6f9e8f1b34edb8022008ba063961c600834760037be20f45bbe077541c533b3fd257eae8e0"
            "8d0de3b3012102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeeadbcff8"
            "a546ffffffffda607a90ee1ccae095add81952d2e47a26e4dd75bce0d0bd04bf0f314790f3"
            "ff0000000000ffffffff01209a1d00000000001976a914fd337ad3bf81e086d96a68e1f8d6"
            "a0a510f8c24a88ac00024730440220274bb5445294033a36c360c48cc5e441ba8cc2bc1554"
            "dcb7d367088ec40a0d0302202a36f6e03f969e1b0c582f006257eec8fa2ada8cd34fe41ae2"
            "aa90d6728999d1012102d82c9860e36f15d7b72aa59e29347f951277c21cd4d34822acdeea"
            "dbcff8a54600000000"
        )

        self.priv02 = PrivateKey("cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL")
        self.taproot_result = (
            "02000000000101566e10098ddba743bedbe1e4b356377abb3ef106c6831e733863d5eea012"
            "647b0100000000ffffffff01a00f0000000000001976a9148e48a6c5108efac226d33018b5"
            "347bb24adec37a88ac01403065c743ec6261ce82abe9ea13f718702f9fb23f6d95ffe0eb59"
            "266d38416ad29b664370c8f6719a8e1354f38c58c7c6e965cec71b9b5b0f8c100d207a448b"
            "d100000000"
        )

    def test_spend_p2pkh(self):
        # the legacy digest does not commit to the amount, any fee works
        utxo = owned_by(
            self.sk,
            "5a7b3aaa66d6b7b7abcdc9f1d05db4eee94a700297a319e19454e143875e1078",
            0,
            to_satoshis(0.01),
            AddressType.P2PKH,
        )
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.p2wpkh_addr, to_satoshis(0.0099))],
            to_satoshis(0.0001),
            [utxo],
        )
        tx = builder.build_transaction(make_signer(self.sk))
        self.assertFalse(tx.has_segwit)
        self.assertEqual(tx.serialize(), self.send_to_p2wpkh_result)

    def test_spend_p2wpkh(self):
        utxo = owned_by(
            self.sk,
            "b3ca1c4cc778380d1e5376a5517445104e46e97176e40741508a3b07a6483ad3",
            0,
            to_satoshis(0.0099),
            AddressType.P2WPKH,
        )
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.p2pkh_addr, to_satoshis(0.0098))],
            to_satoshis(0.0001),
            [utxo],
        )
        tx = builder.build_transaction(make_signer(self.sk))
        self.assertEqual(tx.serialize(), self.spend_p2wpkh_result)
        self.assertEqual(tx.witnesses[0].stack[1], self.pub.to_hex())

    def test_spend_p2pkh_and_p2wpkh(self):
        # BIP69 puts 1e2a5279... before fff39047...
        utxos = [
            owned_by(
                self.sk,
                "fff39047310fbf04bdd0e0bc75dde4267ae4d25219d8ad95e0ca1cee907a60da",
                0,
                to_satoshis(0.0095),
                AddressType.P2WPKH,
            ),
            owned_by(
                self.sk,
                "1e2a5279c868d61fb2ff0b1c2b04aa3eff02cd74952a8b4e799532635a9132cc",
                0,
                to_satoshis(0.01),
                AddressType.P2PKH,
            ),
        ]
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.p2pkh_addr, to_satoshis(0.0194))],
            to_satoshis(0.0001),
            utxos,
        )
        tx = builder.build_transaction(make_signer(self.sk))
        self.assertEqual(tx.serialize(), self.p2pkh_and_p2wpkh_to_p2pkh_result)
        self.assertEqual(tx.witnesses[0], TxWitnessInput([]))

    def test_spend_p2tr_key_path(self):
        utxo = owned_by(
            self.priv02,
            "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
            1,
            to_satoshis(0.00005),
            AddressType.P2TR,
        )
        to_address = P2pkhAddress.from_address("mtVHHCqCECGwiMbMoZe8ayhJHuTdDbYWdJ")
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(to_address, to_satoshis(0.00004))],
            to_satoshis(0.00001),
            [utxo],
        )
        tx = builder.build_transaction(make_signer(self.priv02))
        self.assertEqual(tx.serialize(), self.taproot_result)
        self.assertEqual(len(tx.witnesses[0].stack), 1)
        self.assertEqual(len(bytes.fromhex(tx.witnesses[0].stack[0])), 64)


class TestBuilderSigning(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.sk = PrivateKey.from_wif(
            "cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo"
        )
        self.pub = self.sk.get_public_key()
        self.others = [PrivateKey(secret_exponent=e) for e in (11, 12)]
        self.txid = "5a7b3aaa66d6b7b7abcdc9f1d05db4eee94a700297a319e19454e143875e1078"

    def build(self, utxos, outputs, fee, **kwargs):
        builder = BitcoinTransactionBuilder(outputs, fee, utxos, **kwargs)
        return builder.build_transaction(make_signer(self.sk, *self.others))

    def test_p2wpkh_with_change(self):
        utxo = owned_by(self.sk, self.txid, 0, 100000, AddressType.P2WPKH)
        outputs = [
            BitcoinOutput(self.others[0].get_public_key().get_address(), 50000),
            BitcoinOutput(self.pub.get_segwit_address(), 49000),
        ]
        tx = self.build([utxo], outputs, 1000)

        self.assertTrue(tx.has_segwit)
        self.assertEqual([o.amount for o in tx.outputs], [49000, 50000])
        self.assertEqual(tx.inputs[0].script_sig, Script([]))
        stack = tx.witnesses[0].stack
        self.assertEqual(len(stack), 2)
        self.assertEqual(stack[1], self.pub.to_hex())

        digest = tx.get_transaction_segwit_digest(
            0, self.pub.get_address().to_script_pub_key(), 100000
        )
        self.assertTrue(verify_ecdsa(self.sk, digest, stack[0]))
        self.assertEqual(bytes.fromhex(stack[0])[-1], SIGHASH_ALL)

    def test_p2tr_signature_verifies(self):
        utxos = [
            owned_by(self.sk, self.txid, 0, 30000, AddressType.P2TR),
            owned_by(self.sk, "11" * 32, 1, 20000, AddressType.P2WPKH),
        ]
        outputs = [BitcoinOutput(self.pub.get_taproot_address(), 49000)]
        tx = self.build(utxos, outputs, 1000)

        # BIP69 moves the 1111... utxo first
        self.assertEqual(tx.inputs[1].txid, self.txid)
        spent_scripts = [
            self.pub.get_segwit_address().to_script_pub_key(),
            self.pub.get_taproot_address().to_script_pub_key(),
        ]
        digest = tx.get_transaction_taproot_digest(
            1, spent_scripts, [20000, 30000], sighash=TAPROOT_SIGHASH_ALL
        )
        signature = bytes.fromhex(tx.witnesses[1].stack[0])
        self.assertEqual(len(signature), 64)
        tweaked = bytes.fromhex(self.pub.get_taproot_address().to_witness_program())
        self.assertTrue(PublicKeyXOnly(tweaked).verify(signature, digest))

    def test_nested_p2wpkh(self):
        utxo = owned_by(self.sk, self.txid, 0, 10000, AddressType.P2WPKH_IN_P2SH)
        tx = self.build([utxo], [BitcoinOutput(self.pub.get_address(), 9000)], 1000)
        self.assertEqual(
            tx.inputs[0].script_sig,
            Script([self.pub.get_segwit_address().to_script_pub_key().to_hex()]),
        )
        self.assertEqual(tx.witnesses[0].stack[1], self.pub.to_hex())
        digest = tx.get_transaction_segwit_digest(
            0, self.pub.get_address().to_script_pub_key(), 10000
        )
        self.assertTrue(verify_ecdsa(self.sk, digest, tx.witnesses[0].stack[0]))

    def test_single_key_p2wsh(self):
        utxo = owned_by(self.sk, self.txid, 0, 10000, AddressType.P2WSH_IN_P2SH)
        tx = self.build([utxo], [BitcoinOutput(self.pub.get_address(), 9000)], 1000)
        witness_script = self.pub.to_p2wsh_redeem_script()
        stack = tx.witnesses[0].stack
        self.assertEqual(stack[0], "")
        self.assertEqual(stack[2], witness_script.to_hex())
        self.assertEqual(
            tx.inputs[0].script_sig,
            Script([self.pub.get_p2wsh_address().to_script_pub_key().to_hex()]),
        )
        digest = tx.get_transaction_segwit_digest(0, witness_script, 10000)
        self.assertTrue(verify_ecdsa(self.sk, digest, stack[1]))

    def test_legacy_p2sh_types(self):
        utxos = [
            owned_by(self.sk, "11" * 32, 0, 10000, AddressType.P2PKH_IN_P2SH),
            owned_by(self.sk, "22" * 32, 0, 10000, AddressType.P2PK_IN_P2SH),
            owned_by(self.sk, "33" * 32, 0, 10000, AddressType.P2PK),
        ]
        tx = self.build(utxos, [BitcoinOutput(self.pub.get_address(), 29000)], 1000)
        self.assertFalse(tx.has_segwit)

        p2pkh_in_p2sh = tx.inputs[0].script_sig.script
        self.assertEqual(p2pkh_in_p2sh[1], self.pub.to_hex())
        self.assertEqual(
            p2pkh_in_p2sh[2], self.pub.get_address().to_script_pub_key().to_hex()
        )
        digest = tx.get_transaction_digest(0, self.pub.get_address().to_script_pub_key())
        self.assertTrue(verify_ecdsa(self.sk, digest, p2pkh_in_p2sh[0]))

        p2pk_in_p2sh = tx.inputs[1].script_sig.script
        self.assertEqual(p2pk_in_p2sh[1], self.pub.to_redeem_script().to_hex())
        digest = tx.get_transaction_digest(1, self.pub.to_redeem_script())
        self.assertTrue(verify_ecdsa(self.sk, digest, p2pk_in_p2sh[0]))

        self.assertEqual(len(tx.inputs[2].script_sig.script), 1)

    def test_multisig_p2wsh(self):
        keys = [self.sk] + self.others
        ms = MultiSignatureAddress(
            2, [MultiSignatureSigner(k.get_public_key().to_hex()) for k in keys]
        )
        utxo = UtxoWithAddress(
            BitcoinUtxo(self.txid, 0, 10000, AddressType.P2WSH),
            UtxoOwnerDetails(ms.to_p2wsh_address(), multisig_address=ms),
        )
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.pub.get_address(), 9000)], 1000, [utxo]
        )
        # the first signer declines
        tx = builder.build_transaction(make_signer(*self.others))

        stack = tx.witnesses[0].stack
        self.assertEqual(len(stack), 4)
        self.assertEqual(stack[0], "")
        self.assertEqual(stack[3], ms.multisig_script.to_hex())
        digest = tx.get_transaction_segwit_digest(0, ms.multisig_script, 10000)
        self.assertTrue(verify_ecdsa(self.others[0], digest, stack[1]))
        self.assertTrue(verify_ecdsa(self.others[1], digest, stack[2]))

    def test_multisig_nested_and_legacy(self):
        keys = [self.sk] + self.others
        ms = MultiSignatureAddress(
            2, [MultiSignatureSigner(k.get_public_key().to_hex()) for k in keys]
        )
        utxos = [
            UtxoWithAddress(
                BitcoinUtxo("11" * 32, 0, 10000, AddressType.P2WSH_IN_P2SH),
                UtxoOwnerDetails(ms.to_p2wsh_in_p2sh_address(), multisig_address=ms),
            ),
            UtxoWithAddress(
                BitcoinUtxo("22" * 32, 0, 10000, AddressType.P2PKH_IN_P2SH),
                UtxoOwnerDetails(ms.to_p2sh_address(), multisig_address=ms),
            ),
        ]
        tx = self.build(utxos, [BitcoinOutput(self.pub.get_address(), 19000)], 1000)

        self.assertEqual(
            tx.inputs[0].script_sig,
            Script([ms.to_p2wsh_address().to_script_pub_key().to_hex()]),
        )
        self.assertEqual(len(tx.witnesses[0].stack), 4)

        legacy = tx.inputs[1].script_sig.script
        self.assertEqual(legacy[0], "")
        self.assertEqual(legacy[-1], ms.multisig_script.to_hex())
        self.assertEqual(tx.witnesses[1], TxWitnessInput([]))

    def test_multisig_without_enough_signers(self):
        ms = MultiSignatureAddress(
            2,
            [
                MultiSignatureSigner(self.pub.to_hex()),
                MultiSignatureSigner(PrivateKey(secret_exponent=99).get_public_key().to_hex()),
            ],
        )
        utxo = UtxoWithAddress(
            BitcoinUtxo(self.txid, 0, 10000, AddressType.P2WSH),
            UtxoOwnerDetails(ms.to_p2wsh_address(), multisig_address=ms),
        )
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.pub.get_address(), 9000)], 1000, [utxo]
        )
        self.assertRaises(
            InsufficientSignatures, builder.build_transaction, make_signer(self.sk)
        )

    def test_unspendable_multisig_type(self):
        ms = MultiSignatureAddress(1, [MultiSignatureSigner(self.pub.to_hex())])
        p2tr_address = self.pub.get_taproot_address()
        utxo = UtxoWithAddress(
            BitcoinUtxo(self.txid, 0, 10000, AddressType.P2TR),
            UtxoOwnerDetails(p2tr_address, multisig_address=ms),
        )
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.pub.get_address(), 9000)], 1000, [utxo]
        )
        self.assertRaises(
            DispatchError, builder.build_transaction, make_signer(self.sk)
        )


class TestBuilderOrderingAndChecks(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.sk = PrivateKey.from_wif(
            "cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo"
        )
        self.pub = self.sk.get_public_key()
        self.signer = make_signer(self.sk)
        self.utxos = [
            owned_by(self.sk, "ff" * 32, 0, 10000, AddressType.P2WPKH),
            owned_by(self.sk, "00" * 32, 1, 10000, AddressType.P2WPKH),
            owned_by(self.sk, "00" * 32, 0, 10000, AddressType.P2WPKH),
        ]
        self.outputs = [
            BitcoinOutput(self.pub.get_segwit_address(), 15000),
            BitcoinOutput(self.pub.get_address(), 5000),
            BitcoinOutput(self.pub.get_taproot_address(), 5000),
        ]

    def test_bip69_ordering(self):
        builder = BitcoinTransactionBuilder(self.outputs, 5000, self.utxos)
        tx = builder.build_transaction(self.signer)
        self.assertEqual(
            [(i.txid, i.txout_index) for i in tx.inputs],
            [("00" * 32, 0), ("00" * 32, 1), ("ff" * 32, 0)],
        )
        self.assertEqual([o.amount for o in tx.outputs], [5000, 5000, 15000])
        # equal amounts are ordered by their locking script bytes
        self.assertEqual(
            tx.outputs[0].script_pubkey, self.pub.get_taproot_address().to_script_pub_key()
        )

    def test_insertion_ordering(self):
        builder = BitcoinTransactionBuilder(
            self.outputs,
            5000,
            self.utxos,
            input_ordering=BitcoinOrdering.INSERTION,
            output_ordering=BitcoinOrdering.INSERTION,
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(
            [(i.txid, i.txout_index) for i in tx.inputs],
            [("ff" * 32, 0), ("00" * 32, 1), ("00" * 32, 0)],
        )
        self.assertEqual([o.amount for o in tx.outputs], [15000, 5000, 5000])

    def test_shuffle_keeps_elements(self):
        builder = BitcoinTransactionBuilder(
            self.outputs,
            5000,
            self.utxos,
            input_ordering=BitcoinOrdering.SHUFFLE,
            output_ordering=BitcoinOrdering.SHUFFLE,
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(
            sorted((i.txid, i.txout_index) for i in tx.inputs),
            [("00" * 32, 0), ("00" * 32, 1), ("ff" * 32, 0)],
        )
        self.assertEqual(sorted(o.amount for o in tx.outputs), [5000, 5000, 15000])

    def test_rbf_on_first_ordered_input(self):
        builder = BitcoinTransactionBuilder(
            self.outputs, 5000, self.utxos, enable_rbf=True
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(tx.inputs[0].txid, "00" * 32)
        self.assertEqual(tx.inputs[0].sequence, REPLACE_BY_FEE_SEQUENCE)
        self.assertEqual(tx.inputs[1].sequence, DEFAULT_TX_SEQUENCE)
        self.assertEqual(tx.inputs[2].sequence, DEFAULT_TX_SEQUENCE)

    def test_no_rbf_by_default(self):
        builder = BitcoinTransactionBuilder(self.outputs, 5000, self.utxos)
        tx = builder.build_transaction(self.signer)
        self.assertTrue(all(i.sequence == DEFAULT_TX_SEQUENCE for i in tx.inputs))

    def test_memo(self):
        builder = BitcoinTransactionBuilder(
            self.outputs, 5000, self.utxos, memo="hello"
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(len(tx.outputs), 4)
        self.assertEqual(tx.outputs[0].amount, 0)
        self.assertEqual(
            tx.outputs[0].script_pubkey, Script(["OP_RETURN", b"hello".hex()])
        )

    def test_memo_appended_last_with_insertion(self):
        builder = BitcoinTransactionBuilder(
            self.outputs,
            5000,
            self.utxos,
            memo="hello",
            output_ordering=BitcoinOrdering.INSERTION,
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(tx.outputs[-1].script_pubkey.script[0], "OP_RETURN")

    def test_script_output(self):
        outputs = [
            BitcoinScriptOutput(Script(["OP_RETURN", "beef"]), 0),
            BitcoinOutput(self.pub.get_address(), 25000),
        ]
        tx = BitcoinTransactionBuilder(outputs, 5000, self.utxos).build_transaction(
            self.signer
        )
        self.assertEqual(tx.outputs[0].script_pubkey, Script(["OP_RETURN", "beef"]))

    def test_value_mismatch(self):
        builder = BitcoinTransactionBuilder(self.outputs, 4000, self.utxos)
        with self.assertRaises(ValueMismatch) as cm:
            builder.build_transaction(self.signer)
        self.assertEqual(cm.exception.expected, 30000)
        self.assertEqual(cm.exception.actual, 29000)

    def test_fake_transaction_skips_amounts(self):
        builder = BitcoinTransactionBuilder(
            self.outputs, 0, self.utxos, is_fake_transaction=True
        )
        tx = builder.build_transaction(self.signer)
        self.assertEqual(len(tx.inputs), 3)

    def test_negative_fee(self):
        self.assertRaises(
            ValueError, BitcoinTransactionBuilder, self.outputs, -1, self.utxos
        )

    def test_forked_network(self):
        self.assertRaises(
            UnsupportedOperation,
            BitcoinTransactionBuilder,
            self.outputs,
            5000,
            self.utxos,
            network="bitcoincash",
        )

    def test_address_not_in_network(self):
        # dogecoin has no segwit
        self.assertRaises(
            AddressMismatch,
            BitcoinTransactionBuilder,
            self.outputs,
            5000,
            self.utxos,
            network="dogecoin",
        )
        legacy_utxo = owned_by(self.sk, "00" * 32, 0, 10000, AddressType.P2PKH)
        self.assertRaises(
            AddressMismatch,
            BitcoinTransactionBuilder,
            [BitcoinOutput(self.pub.get_taproot_address(), 9000)],
            1000,
            [legacy_utxo],
            network="dogecoin",
        )

    def test_dogecoin_legacy(self):
        legacy_utxo = owned_by(self.sk, "00" * 32, 0, 10000, AddressType.P2PKH)
        builder = BitcoinTransactionBuilder(
            [BitcoinOutput(self.pub.get_address(), 9000)],
            1000,
            [legacy_utxo],
            network="dogecoin",
        )
        self.assertFalse(builder.build_transaction(self.signer).has_segwit)

    def test_tokens_rejected(self):
        token_utxo = UtxoWithAddress(
            BitcoinUtxo("00" * 32, 0, 10000, AddressType.P2PKH, token={"amount": 1}),
            UtxoOwnerDetails(self.pub.get_address(), public_key=self.pub.to_hex()),
        )
        self.assertRaises(
            UnsupportedOperation,
            BitcoinTransactionBuilder,
            [BitcoinOutput(self.pub.get_address(), 9000)],
            1000,
            [token_utxo],
        )
        self.assertRaises(
            UnsupportedOperation,
            BitcoinTransactionBuilder,
            [BitcoinTokenOutput(self.pub.get_address(), 9000, {"amount": 1})],
            1000,
            self.utxos[:1],
        )
        self.assertRaises(
            UnsupportedOperation,
            BitcoinTransactionBuilder,
            [BitcoinBurnableOutput("ab" * 32)],
            1000,
            self.utxos[:1],
        )


class TestBuildMwebInputs(unittest.TestCase):
    def setUp(self):
        setup("litecoin")
        self.sk = PrivateKey(secret_exponent=1)
        self.pub = self.sk.get_public_key()
        self.mweb_utxo = UtxoWithAddress(
            BitcoinUtxo("11" * 32, 0, 40000, AddressType.MWEB),
            UtxoOwnerDetails(MwebAddress("ab" * 66), public_key=self.pub.to_hex()),
        )
        self.p2wpkh_utxo = owned_by(
            self.sk, "22" * 32, 1, 60000, AddressType.P2WPKH
        )
        self.outputs = [BitcoinOutput(self.pub.get_segwit_address(), 99000)]

    def test_mweb_input_is_not_signed(self):
        signed_keys = []
        signer = make_signer(self.sk)

        def sign(digest, utxo, public_key, sighash):
            signed_keys.append(utxo.utxo.script_type)
            return signer(digest, utxo, public_key, sighash)

        tx = BitcoinTransactionBuilder(
            self.outputs,
            1000,
            [self.mweb_utxo, self.p2wpkh_utxo],
            network="litecoin",
            input_ordering=BitcoinOrdering.INSERTION,
        ).build_transaction(sign)

        self.assertEqual(signed_keys, [AddressType.P2WPKH])
        self.assertTrue(tx.has_segwit)
        self.assertEqual(tx.inputs[0].script_sig, Script([]))
        self.assertEqual(tx.witnesses[0], TxWitnessInput([]))
        self.assertEqual(len(tx.witnesses[1].stack), 2)
        self.assertEqual(Transaction.from_raw(tx.serialize()), tx)

    def test_mweb_only_transaction(self):
        tx = BitcoinTransactionBuilder(
            [BitcoinOutput(self.pub.get_segwit_address(), 39000)],
            1000,
            [self.mweb_utxo],
            network="litecoin",
        ).build_transaction(make_signer(self.sk))
        self.assertEqual(tx.witnesses, [TxWitnessInput([])])
        self.assertEqual(Transaction.from_raw(tx.serialize()), tx)


class TestEstimateSize(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.sk = PrivateKey.from_wif(
            "cTALNpTpRbbxTCJ2A5Vq88UxT44w1PE2cYqiB3n4hRvzyCev1Wwo"
        )
        self.pub = self.sk.get_public_key()
        self.txid = "b3ca1c4cc778380d1e5376a5517445104e46e97176e40741508a3b07a6483ad3"

    def assert_estimate_close(self, utxos, outputs, fee):
        estimate = BitcoinTransactionBuilder.estimate_transaction_size(utxos, outputs)
        tx = BitcoinTransactionBuilder(outputs, fee, utxos).build_transaction(
            make_signer(self.sk)
        )
        actual = tx.get_vsize() if tx.has_segwit else tx.get_size()
        self.assertLessEqual(actual, estimate)
        self.assertLessEqual(estimate - actual, 2)
        return estimate

    def test_p2wpkh_is_exact(self):
        utxo = owned_by(self.sk, self.txid, 0, 100000, AddressType.P2WPKH)
        outputs = [
            BitcoinOutput(self.pub.get_address(), 50000),
            BitcoinOutput(self.pub.get_segwit_address(), 49000),
        ]
        estimate = self.assert_estimate_close([utxo], outputs, 1000)
        tx = BitcoinTransactionBuilder(outputs, 1000, [utxo]).build_transaction(
            make_signer(self.sk)
        )
        self.assertEqual(estimate, tx.get_vsize())

    def test_p2tr_is_exact(self):
        utxo = owned_by(self.sk, self.txid, 0, 100000, AddressType.P2TR)
        outputs = [BitcoinOutput(self.pub.get_taproot_address(), 99000)]
        estimate = self.assert_estimate_close([utxo], outputs, 1000)
        tx = BitcoinTransactionBuilder(outputs, 1000, [utxo]).build_transaction(
            make_signer(self.sk)
        )
        self.assertEqual(estimate, tx.get_vsize())

    def test_legacy(self):
        utxo = owned_by(self.sk, self.txid, 0, 100000, AddressType.P2PKH)
        outputs = [BitcoinOutput(self.pub.get_address(), 99000)]
        self.assert_estimate_close([utxo], outputs, 1000)

    def test_memo_adds_output(self):
        utxo = owned_by(self.sk, self.txid, 0, 100000, AddressType.P2WPKH)
        outputs = [BitcoinOutput(self.pub.get_address(), 99000)]
        plain = BitcoinTransactionBuilder.estimate_transaction_size([utxo], outputs)
        with_memo = BitcoinTransactionBuilder.estimate_transaction_size(
            [utxo], outputs, memo="hello"
        )
        # 8 bytes amount, 1 byte script length, OP_RETURN and a 5 bytes push
        self.assertEqual(with_memo - plain, 8 + 1 + 1 + 6)

    def test_does_not_check_amounts(self):
        utxo = owned_by(self.sk, self.txid, 0, 100, AddressType.P2WPKH)
        outputs = [BitcoinOutput(self.pub.get_address(), 99000)]
        self.assertGreater(
            BitcoinTransactionBuilder.estimate_transaction_size([utxo], outputs), 0
        )


if __name__ == "__main__":
    unittest.main()
