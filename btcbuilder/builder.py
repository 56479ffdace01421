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

"""Builds and signs transactions that spend any supported address type.

The builder orders the inputs and outputs, resolves the script every input
commits to, computes the digest of every input, asks a signer callback for
the signatures and assembles the unlocking scripts and witnesses.

    builder = BitcoinTransactionBuilder(outputs, fee, utxos, network="testnet")
    tx = builder.build_transaction(sign)

`sign(digest, utxo, public_key_hex, sighash)` returns the signature as hex
(DER plus sighash byte, or 64 bytes schnorr for taproot) or an empty string
when a multisig signer does not sign.
"""

import logging
import random
from enum import Enum
from typing import Callable, Optional

from btcbuilder.address import AddressType
from btcbuilder.constants import (
    SIGHASH_ALL,
    TAPROOT_SIGHASH_ALL,
    TYPE_REPLACE_BY_FEE,
    FAKE_ECDSA_SIGNATURE,
    FAKE_SCHNORR_SIGNATURE,
)
from btcbuilder.exceptions import (
    DispatchError,
    UnsupportedOperation,
    ValueMismatch,
)
from btcbuilder.outputs import (
    BitcoinBaseOutput,
    BitcoinBurnableOutput,
    BitcoinOutput,
    BitcoinScriptOutput,
    BitcoinTokenOutput,
)
from btcbuilder.script import Script
from btcbuilder.setup import is_forked_network, resolve_network
from btcbuilder.transactions import (
    Sequence,
    Transaction,
    TxInput,
    TxOutput,
    TxWitnessInput,
)
from btcbuilder.utxo import UtxoWithAddress, collect_multisig_signatures
from btcbuilder.utils import h_to_b


BitcoinSigner = Callable[[bytes, UtxoWithAddress, str, int], str]


class BitcoinOrdering(Enum):
    """How the builder orders inputs or outputs"""

    INSERTION = "insertion"
    SHUFFLE = "shuffle"
    BIP69 = "bip69"


class BitcoinTransactionBuilder:
    """Builds a signed transaction from utxos, outputs and a fee

    Attributes
    ----------
    outputs : list (BitcoinBaseOutput)
        the requested outputs
    fee : int
        the fee in satoshis; outputs plus fee must equal the utxo values
    utxos : list (UtxoWithAddress)
        the utxos to spend with their owners
    network : str
        the target network (default is the configured one)
    memo : str, optional
        added as a zero value OP_RETURN output
    enable_rbf : bool
        signal replace-by-fee on the first (ordered) input
    is_fake_transaction : bool
        skip the amounts check; used for size estimation
    input_ordering, output_ordering : BitcoinOrdering
        BIP69 by default

    Methods
    -------
    build_transaction(sign)
        builds and signs the transaction
    estimate_transaction_size(utxos, outputs, network, memo, enable_rbf)
        returns the size of the transaction with placeholder signatures
        (staticmethod)

    Raises
    ------
    UnsupportedOperation
        for forked networks (Bitcoin Cash, Bitcoin SV) and token inputs or
        outputs
    AddressMismatch
        if an owner or output address does not belong to the network
    """

    def __init__(
        self,
        outputs: list[BitcoinBaseOutput],
        fee: int,
        utxos: list[UtxoWithAddress],
        network: Optional[str] = None,
        memo: Optional[str] = None,
        enable_rbf: bool = False,
        is_fake_transaction: bool = False,
        input_ordering: BitcoinOrdering = BitcoinOrdering.BIP69,
        output_ordering: BitcoinOrdering = BitcoinOrdering.BIP69,
    ) -> None:
        self.logger = logging.getLogger(__name__)

        if not isinstance(fee, int) or fee < 0:
            raise ValueError(f"Fee must be a non negative integer: {fee}")

        self.outputs = list(outputs)
        self.fee = fee
        self.utxos = list(utxos)
        self.network = resolve_network(network)
        self.memo = memo
        self.enable_rbf = enable_rbf
        self.is_fake_transaction = is_fake_transaction
        self.input_ordering = input_ordering
        self.output_ordering = output_ordering

        self._validate()

    def _validate(self) -> None:
        """Checks the network and that all addresses belong to it"""

        if is_forked_network(self.network):
            raise UnsupportedOperation(
                f"Network {self.network} requires a forked transaction builder"
            )

        if any(u.utxo.token is not None for u in self.utxos) or any(
            isinstance(o, (BitcoinTokenOutput, BitcoinBurnableOutput))
            for o in self.outputs
        ):
            raise UnsupportedOperation("Cash tokens only work on Bitcoin Cash networks")

        for u in self.utxos:
            u.owner_details.address.validate_network(self.network)
        for o in self.outputs:
            if isinstance(o, BitcoinOutput):
                o.address.validate_network(self.network)

    @staticmethod
    def estimate_transaction_size(
        utxos: list[UtxoWithAddress],
        outputs: list[BitcoinBaseOutput],
        network: Optional[str] = None,
        memo: Optional[str] = None,
        enable_rbf: bool = True,
    ) -> int:
        """Returns the size of the transaction before the real fee is known

        A throwaway transaction is built with a zero fee and placeholder
        signatures of the right length. Returns the virtual size for segwit
        transactions and the size otherwise.
        """

        builder = BitcoinTransactionBuilder(
            outputs=outputs,
            fee=0,
            utxos=utxos,
            network=network,
            memo=memo,
            enable_rbf=enable_rbf,
            is_fake_transaction=True,
        )

        def fake_sign(
            digest: bytes, utxo: UtxoWithAddress, public_key: str, sighash: int
        ) -> str:
            if utxo.utxo.is_p2tr():
                return FAKE_SCHNORR_SIGNATURE
            return FAKE_ECDSA_SIGNATURE

        tx = builder.build_transaction(fake_sign)
        return tx.get_vsize() if tx.has_segwit else tx.get_size()

    #
    # Ordering
    #
    def _order_utxos(self) -> list[UtxoWithAddress]:
        utxos = list(self.utxos)
        if self.input_ordering is BitcoinOrdering.SHUFFLE:
            random.shuffle(utxos)
        elif self.input_ordering is BitcoinOrdering.BIP69:
            utxos.sort(key=lambda u: (h_to_b(u.utxo.txid), u.utxo.vout))
        return utxos

    def _build_inputs(self, utxos: list[UtxoWithAddress]) -> list[TxInput]:
        inputs = [u.utxo.to_input() for u in utxos]
        # the sequence goes to whichever input was ordered first
        if self.enable_rbf and inputs:
            rbf = Sequence(TYPE_REPLACE_BY_FEE).for_input_sequence()
            inputs[0] = utxos[0].utxo.to_input(sequence=rbf)
        return inputs

    def _build_outputs(self) -> list[TxOutput]:
        outputs = [o.to_output() for o in self.outputs]
        if self.memo is not None:
            outputs.append(BitcoinScriptOutput.op_return(self.memo).to_output())

        if self.output_ordering is BitcoinOrdering.SHUFFLE:
            random.shuffle(outputs)
        elif self.output_ordering is BitcoinOrdering.BIP69:
            outputs.sort(key=lambda o: (o.amount, o.script_pubkey.to_bytes()))
        return outputs

    #
    # Scripts
    #
    def _find_locking_script(self, utxo: UtxoWithAddress, for_taproot: bool) -> Script:
        """Returns the script an input commits to

        When for_taproot is set this is the scriptPubKey of the spent output,
        as committed to by the taproot digest; otherwise it is the script
        code used by the legacy and segwit v0 digests.
        """

        script_type = utxo.utxo.script_type

        if utxo.is_multisig():
            multisig = utxo.multisig_address
            if script_type in (
                AddressType.P2WSH_IN_P2SH,
                AddressType.P2WSH,
                AddressType.P2PKH_IN_P2SH,
            ):
                if for_taproot:
                    return multisig.to_address(script_type).to_script_pub_key()
                return multisig.multisig_script
            raise DispatchError(f"Unsupported multisig type {script_type.value}")

        public_key = utxo.public()

        if script_type is AddressType.P2PK:
            return public_key.to_redeem_script()
        if script_type is AddressType.P2PKH:
            return public_key.get_address().to_script_pub_key()
        if script_type is AddressType.P2TR:
            return public_key.get_taproot_address().to_script_pub_key()
        if script_type is AddressType.MWEB:
            return Script([])

        if for_taproot:
            spk_address = {
                AddressType.P2WSH: public_key.get_p2wsh_address,
                AddressType.P2WPKH: public_key.get_segwit_address,
                AddressType.P2PKH_IN_P2SH: public_key.get_p2pkh_in_p2sh,
                AddressType.P2WPKH_IN_P2SH: public_key.get_p2wpkh_in_p2sh,
                AddressType.P2WSH_IN_P2SH: public_key.get_p2wsh_in_p2sh,
                AddressType.P2PK_IN_P2SH: public_key.get_p2pk_in_p2sh,
            }.get(script_type)
            if spk_address is not None:
                return spk_address().to_script_pub_key()
        else:
            if script_type in (AddressType.P2WSH, AddressType.P2WSH_IN_P2SH):
                return public_key.to_p2wsh_redeem_script()
            if script_type in (
                AddressType.P2WPKH,
                AddressType.P2PKH_IN_P2SH,
                AddressType.P2WPKH_IN_P2SH,
            ):
                return public_key.get_address().to_script_pub_key()
            if script_type is AddressType.P2PK_IN_P2SH:
                return public_key.to_redeem_script()

        raise DispatchError(f"Invalid bitcoin address type {script_type.value}")

    def _build_unlocking_script(
        self, signature: str, utxo: UtxoWithAddress
    ) -> list[str]:
        """The scriptSig (legacy) or witness stack (segwit) items of a
        single key input"""

        script_type = utxo.utxo.script_type
        public_key = utxo.public()

        if utxo.utxo.is_segwit():
            if utxo.utxo.is_p2tr():
                return [signature]
            if script_type in (AddressType.P2WSH, AddressType.P2WSH_IN_P2SH):
                return ["", signature, public_key.to_p2wsh_redeem_script().to_hex()]
            if script_type in (AddressType.P2WPKH, AddressType.P2WPKH_IN_P2SH):
                return [signature, public_key.to_hex()]
            raise DispatchError(f"Invalid segwit address type {script_type.value}")

        if script_type is AddressType.P2PK:
            return [signature]
        if script_type is AddressType.P2PKH:
            return [signature, public_key.to_hex()]
        if script_type is AddressType.P2PKH_IN_P2SH:
            script = public_key.get_address().to_script_pub_key()
            return [signature, public_key.to_hex(), script.to_hex()]
        if script_type is AddressType.P2PK_IN_P2SH:
            return [signature, public_key.to_redeem_script().to_hex()]
        raise DispatchError(f"Invalid address type {script_type.value}")

    def _build_multisig_unlocking_script(
        self, signatures: list[str], utxo: UtxoWithAddress
    ) -> list[str]:
        # the leading empty item is consumed by the OP_CHECKMULTISIG bug
        return ["", *signatures, utxo.multisig_address.multisig_script.to_hex()]

    def _build_nested_segwit_script_sig(self, utxo: UtxoWithAddress) -> Script:
        """The scriptSig of a P2SH wrapped segwit input: the witness program
        that the P2SH hash commits to"""

        script_type = utxo.utxo.script_type

        if utxo.is_multisig():
            if script_type is AddressType.P2WSH_IN_P2SH:
                program = utxo.multisig_address.to_p2wsh_address().to_script_pub_key()
                return Script([program.to_hex()])
            raise DispatchError(f"Invalid p2sh nested segwit type {script_type.value}")

        public_key = utxo.public()
        if script_type is AddressType.P2WSH_IN_P2SH:
            return Script([public_key.get_p2wsh_address().to_script_pub_key().to_hex()])
        if script_type is AddressType.P2WPKH_IN_P2SH:
            return Script(
                [public_key.get_segwit_address().to_script_pub_key().to_hex()]
            )
        raise DispatchError(f"Invalid p2sh nested segwit type {script_type.value}")

    #
    # Digests
    #
    def _transaction_digest(
        self,
        tx: Transaction,
        txin_index: int,
        utxo: UtxoWithAddress,
        script: Script,
        taproot_scripts: list[Script],
        taproot_amounts: list[int],
    ) -> bytes:
        if utxo.utxo.is_segwit():
            if utxo.utxo.is_p2tr():
                return tx.get_transaction_taproot_digest(
                    txin_index, taproot_scripts, taproot_amounts
                )
            return tx.get_transaction_segwit_digest(txin_index, script, utxo.utxo.value)
        return tx.get_transaction_digest(txin_index, script)

    def _check_amounts(self, utxos: list[UtxoWithAddress], outputs: list[TxOutput]) -> None:
        utxos_value = sum(u.utxo.value for u in utxos)
        spent = sum(o.amount for o in outputs) + self.fee
        if spent != utxos_value:
            raise ValueMismatch(utxos_value, spent)

    def build_transaction(self, sign: BitcoinSigner) -> Transaction:
        """Builds the signed transaction

        Raises
        ------
        ValueMismatch
            if outputs plus fee do not equal the utxo values (real builds only)
        InsufficientSignatures
            if the signers of a multisig input do not reach its threshold
        DispatchError
            if an address type cannot be spent the requested way
        """

        utxos = self._order_utxos()
        inputs = self._build_inputs(utxos)
        outputs = self._build_outputs()
        self.logger.debug(
            f"Ordered {len(inputs)} inputs ({self.input_ordering.value}) and "
            f"{len(outputs)} outputs ({self.output_ordering.value})"
        )

        has_segwit = any(u.utxo.is_segwit() for u in utxos)
        has_taproot = any(u.utxo.is_p2tr() for u in utxos)

        if not self.is_fake_transaction:
            self._check_amounts(utxos, outputs)

        # the taproot digest commits to the amounts and scripts of all inputs
        taproot_amounts: list[int] = []
        taproot_scripts: list[Script] = []
        if has_taproot:
            taproot_amounts = [u.utxo.value for u in utxos]
            taproot_scripts = [self._find_locking_script(u, True) for u in utxos]

        # digests do not depend on the unlocking scripts so they are all
        # computed on the unsigned transaction
        unsigned_tx = Transaction(inputs, outputs, has_segwit=has_segwit)

        signed_inputs: list[TxInput] = []
        witnesses: list[TxWitnessInput] = []
        for index, utxo in enumerate(utxos):
            if utxo.utxo.script_type is AddressType.MWEB:
                # mweb inputs are not signed here and carry an empty witness
                self.logger.debug(f"Skipping signature of mweb input {index}")
                witnesses.append(TxWitnessInput([]))
                signed_inputs.append(inputs[index])
                continue

            script = self._find_locking_script(utxo, False)
            digest = self._transaction_digest(
                unsigned_tx, index, utxo, script, taproot_scripts, taproot_amounts
            )
            sighash = TAPROOT_SIGHASH_ALL if utxo.utxo.is_p2tr() else SIGHASH_ALL
            self.logger.debug(
                f"Signing input {index} ({utxo.utxo.txid}:{utxo.utxo.vout}, "
                f"{utxo.utxo.script_type.value})"
            )

            if utxo.is_multisig():
                signatures = collect_multisig_signatures(
                    utxo.multisig_address,
                    lambda public_key: sign(digest, utxo, public_key, sighash),
                )
                unlocking = self._build_multisig_unlocking_script(signatures, utxo)
            else:
                signature = sign(digest, utxo, utxo.public().to_hex(), sighash)
                unlocking = self._build_unlocking_script(signature, utxo)

            txin = inputs[index]
            if utxo.utxo.is_segwit():
                witnesses.append(TxWitnessInput(unlocking))
                script_sig = Script([])
                if utxo.utxo.is_p2sh_segwit():
                    script_sig = self._build_nested_segwit_script_sig(utxo)
            else:
                script_sig = Script(unlocking)
                if has_segwit:
                    witnesses.append(TxWitnessInput([]))

            signed_inputs.append(
                TxInput(txin.txid, txin.txout_index, script_sig, txin.sequence)
            )

        tx = unsigned_tx.copy_with(
            inputs=signed_inputs, witnesses=witnesses if has_segwit else None
        )
        self.logger.info(
            f"Built transaction {tx.get_txid()} (size {tx.get_size()}, "
            f"segwit {tx.has_segwit})"
        )
        return tx
