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

import hashlib
import struct
from typing import Optional, Union

from btcbuilder.constants import (
    DEFAULT_TX_SEQUENCE,
    DEFAULT_TX_LOCKTIME,
    DEFAULT_TX_VERSION,
    NEGATIVE_SATOSHI,
    MAX_SATOSHIS,
    LEAF_VERSION_TAPSCRIPT,
    EMPTY_TX_SEQUENCE,
    SIGHASH_ALL,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
    SIGHASH_ANYONECANPAY,
    TAPROOT_SIGHASH_ALL,
    ABSOLUTE_TIMELOCK_SEQUENCE,
    REPLACE_BY_FEE_SEQUENCE,
    TYPE_ABSOLUTE_TIMELOCK,
    TYPE_RELATIVE_TIMELOCK,
    TYPE_REPLACE_BY_FEE,
)
from btcbuilder.exceptions import ValidationError
from btcbuilder.script import Script
from btcbuilder.utils import (
    double_sha256,
    encode_varint,
    tagged_hash,
    prepend_compact_size,
    h_to_b,
    parse_compact_size,
)


def _read(raw: bytes, cursor: int, size: int) -> bytes:
    """Reads size bytes at cursor or fails if the data is truncated"""
    if cursor + size > len(raw):
        raise ValidationError("Truncated transaction data")
    return raw[cursor : cursor + size]


def _read_compact_size(raw: bytes, cursor: int) -> tuple[int, int]:
    """Returns the compact size value at cursor and the new cursor"""
    value, size = parse_compact_size(raw[cursor:])
    _read(raw, cursor, size)
    return value, cursor + size


class TxInput:
    """Represents a transaction input.

    A transaction input requires a transaction id of a UTXO and the index of
    that UTXO.

    Attributes
    ----------
    txid : str
        the transaction id as a hex string (little-endian as displayed by
        tools)
    txout_index : int
        the index of the UTXO that we want to spend
    script_sig : Script
        the script that satisfies the locking conditions (aka unlocking script)
    sequence : bytes
        the input sequence (for timelocks, RBF, etc.)

    Methods
    -------
    to_bytes()
        serializes TxInput to bytes
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        instantiates object from raw input bytes (classmethod)
    """

    def __init__(
        self,
        txid: str,
        txout_index: int,
        script_sig: Optional[Script] = None,
        sequence: Union[str, bytes] = DEFAULT_TX_SEQUENCE,
    ) -> None:
        """See TxInput description"""

        if len(h_to_b(txid)) != 32:
            raise ValueError("Transaction id must be 32 bytes")

        # expected in the format used for displaying Bitcoin hashes
        self.txid = txid
        self.txout_index = txout_index
        self.script_sig = script_sig if script_sig is not None else Script([])

        # if user provided a sequence it would be as string
        if isinstance(sequence, str):
            self.sequence = h_to_b(sequence)
        else:
            self.sequence = sequence

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""

        # Hashes are displayed in little-endian order thus we reverse the
        # byte order of the txid
        txid_bytes = h_to_b(self.txid)[::-1]
        txout_bytes = struct.pack("<L", self.txout_index)
        script_sig_bytes = self.script_sig.to_bytes()

        data = (
            txid_bytes
            + txout_bytes
            + prepend_compact_size(script_sig_bytes)
            + self.sequence
        )
        return data

    def outpoint(self) -> bytes:
        """Serialized (txid, index) as used by the digest algorithms"""
        return h_to_b(self.txid)[::-1] + struct.pack("<I", self.txout_index)

    def __str__(self) -> str:
        return str(
            {
                "txid": self.txid,
                "txout_index": self.txout_index,
                "script_sig": self.script_sig,
                "sequence": self.sequence.hex(),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TxInput):
            return False
        return self.to_bytes() == other.to_bytes()

    @classmethod
    def from_raw(cls, txinputraw: bytes, cursor: int = 0) -> tuple["TxInput", int]:
        """
        Imports a TxInput from a Transaction's raw data

        Returns the input and the cursor right after it.
        """

        txid = _read(txinputraw, cursor, 32)[::-1]
        (vout,) = struct.unpack("<I", _read(txinputraw, cursor + 32, 4))
        cursor += 36

        unlocking_script_size, cursor = _read_compact_size(txinputraw, cursor)
        unlocking_script = _read(txinputraw, cursor, unlocking_script_size)
        cursor += unlocking_script_size

        sequence = _read(txinputraw, cursor, 4)
        cursor += 4

        tx_input = cls(
            txid=txid.hex(),
            txout_index=vout,
            script_sig=Script.from_raw(unlocking_script),
            sequence=sequence,
        )
        return tx_input, cursor

    @classmethod
    def copy(cls, txin: "TxInput") -> "TxInput":
        """Copy of TxInput"""

        return cls(txin.txid, txin.txout_index, txin.script_sig, txin.sequence)


class TxWitnessInput:
    """A list of the witness items required to satisfy the locking conditions
       of a segwit input (aka witness stack).

    Attributes
    ----------
    stack : list
        the witness items (hex str) list

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the witness items list
    copy()
        creates a copy of the object (classmethod)
    """

    def __init__(self, stack: Optional[list[str]] = None) -> None:
        """See description"""

        self.stack = stack if stack is not None else []

    def to_bytes(self) -> bytes:
        """Converts to bytes; item count followed by the length prefixed items"""

        stack_bytes = encode_varint(len(self.stack))
        for item in self.stack:
            # witness items can only be data items (hex str)
            stack_bytes += prepend_compact_size(h_to_b(item))
        return stack_bytes

    @classmethod
    def copy(cls, txwin: "TxWitnessInput") -> "TxWitnessInput":
        """Copy of TxWitnessInput"""

        return cls(list(txwin.stack))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TxWitnessInput):
            return False
        return [i.lower() for i in self.stack] == [i.lower() for i in other.stack]

    def __str__(self) -> str:
        return str({"witness_items": self.stack})

    def __repr__(self) -> str:
        return self.__str__()


class TxOutput:
    """Represents a transaction output

    Attributes
    ----------
    amount : int
        the value we want to send to this output in satoshis
    script_pubkey : Script
        the script that will lock this amount

    Methods
    -------
    to_bytes()
        serializes TxOutput to bytes
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        instantiates object from raw output bytes (classmethod)
    """

    def __init__(self, amount: int, script_pubkey: Script) -> None:
        """See TxOutput description"""

        if not isinstance(amount, int):
            raise TypeError("Amount needs to be in satoshis as an integer")
        # NEGATIVE_SATOSHI is only used for blanked outputs of legacy digests
        if amount < NEGATIVE_SATOSHI or amount > MAX_SATOSHIS:
            raise ValueError(f"Amount out of range: {amount}")

        self.amount = amount
        self.script_pubkey = script_pubkey

    def _amount_bytes(self) -> bytes:
        # internally all little-endian except hashes
        return self.amount.to_bytes(8, "little", signed=self.amount < 0)

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""

        script_bytes = self.script_pubkey.to_bytes()
        return self._amount_bytes() + prepend_compact_size(script_bytes)

    @classmethod
    def from_raw(cls, txoutputraw: bytes, cursor: int = 0) -> tuple["TxOutput", int]:
        """
        Imports a TxOutput from a Transaction's raw data

        Returns the output and the cursor right after it.
        """

        (amount,) = struct.unpack("<Q", _read(txoutputraw, cursor, 8))
        cursor += 8

        lock_script_size, cursor = _read_compact_size(txoutputraw, cursor)
        lock_script = _read(txoutputraw, cursor, lock_script_size)
        cursor += lock_script_size

        return cls(amount, Script.from_raw(lock_script)), cursor

    def __str__(self) -> str:
        return str({"amount": self.amount, "script_pubkey": self.script_pubkey})

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TxOutput):
            return False
        return self.to_bytes() == other.to_bytes()

    @classmethod
    def copy(cls, txout: "TxOutput") -> "TxOutput":
        """Copy of TxOutput"""

        return cls(txout.amount, txout.script_pubkey)


class Sequence:
    """Helps setting up appropriate sequence. Used to provide the sequence to
    transaction inputs and to scripts.

    Attributes
    ----------
    value : int
        The value of the block height or the 512 seconds increments
    seq_type : int
        Specifies the type of sequence (TYPE_RELATIVE_TIMELOCK |
        TYPE_ABSOLUTE_TIMELOCK | TYPE_REPLACE_BY_FEE
    is_type_block : bool
        If type is TYPE_RELATIVE_TIMELOCK then this specifies its type
        (block height or 512 secs increments)

    Methods
    -------
    for_input_sequence()
        Serializes the relative sequence as required in a transaction
    for_script()
        Returns the appropriate integer for a script; e.g. for relative timelocks

    Raises
    ------
    ValueError
        if the value is not within range of 2 bytes.
    """

    def __init__(self, seq_type: int, value: int = 0, is_type_block: bool = True) -> None:
        self.seq_type = seq_type
        self.value = value

        if self.seq_type == TYPE_RELATIVE_TIMELOCK and (
            self.value < 1 or self.value > 0xFFFF
        ):
            raise ValueError("Sequence should be between 1 and 65535")
        self.is_type_block = is_type_block

    def for_input_sequence(self) -> Optional[bytes]:
        """Creates a sequence value as expected from TxInput sequence attribute"""
        if self.seq_type == TYPE_ABSOLUTE_TIMELOCK:
            return ABSOLUTE_TIMELOCK_SEQUENCE

        elif self.seq_type == TYPE_REPLACE_BY_FEE:
            return REPLACE_BY_FEE_SEQUENCE

        elif self.seq_type == TYPE_RELATIVE_TIMELOCK:
            # most significant bit is already 0 so relative timelocks are enabled
            seq = 0
            # if not block height type set 23 bit
            if not self.is_type_block:
                seq |= 1 << 22
            seq |= self.value
            return seq.to_bytes(4, byteorder="little")

        return None

    def for_script(self) -> int:
        """Creates a relative/absolute timelock sequence value as expected in scripts"""
        if self.seq_type == TYPE_REPLACE_BY_FEE:
            raise ValueError("RBF is not to be included in a script.")

        script_integer = self.value

        # if not block-height type then set 23 bit
        if self.seq_type == TYPE_RELATIVE_TIMELOCK and not self.is_type_block:
            script_integer |= 1 << 22

        return script_integer


class Transaction:
    """Represents a Bitcoin transaction

    Attributes
    ----------
    inputs : list (TxInput)
        A list of all the transaction inputs
    outputs : list (TxOutput)
        A list of all the transaction outputs
    locktime : bytes
        The transaction's locktime parameter
    version : bytes
        The transaction version
    has_segwit : bool
        Specifies a tx that includes segwit inputs
    witnesses : list (TxWitnessInput)
        The witness structure that corresponds to the inputs

    Methods
    -------
    to_bytes(include_witness=True)
        Serializes Transaction to bytes
    to_hex()
        converts result of to_bytes to hexadecimal string
    serialize()
        converts result of to_bytes to hexadecimal string
    from_raw()
        Instantiates a Transaction from serialized raw data (classmethod)
    get_txid()
        Calculates txid and returns it
    get_wtxid()
        Calculates tx hash (wtxid) and returns it
    get_size()
        Calculates the tx size
    get_weight()
        Calculates the tx weight units
    get_vsize()
        Calculates the tx segwit size
    copy()
        creates a copy of the object (classmethod)
    copy_with(witnesses)
        returns a copy that carries the given witnesses
    get_transaction_digest(txin_index, script, sighash)
        returns the transaction input's digest that is to be signed according
    get_transaction_segwit_digest(txin_index, script, amount, sighash)
        returns the transaction input's segwit digest that is to be signed
        according to sighash
    get_transaction_taproot_digest(txin_index, script_pubkeys, amounts, ext_flag,
            script, leaf_ver, sighash)
        returns the transaction input's taproot digest that is to be signed
        according to sighash
    """

    def __init__(
        self,
        inputs: Optional[list[TxInput]] = None,
        outputs: Optional[list[TxOutput]] = None,
        locktime: Union[str, bytes] = DEFAULT_TX_LOCKTIME,
        version: bytes = DEFAULT_TX_VERSION,
        has_segwit: bool = False,
        witnesses: Optional[list[TxWitnessInput]] = None,
    ) -> None:
        """See Transaction description"""

        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.has_segwit = has_segwit
        self.witnesses = witnesses if witnesses is not None else []

        if self.witnesses and len(self.witnesses) != len(self.inputs):
            raise ValueError("Witnesses must be empty or one per input")

        # if user provided a locktime it would be as string
        if isinstance(locktime, str):
            self.locktime = h_to_b(locktime)
        else:
            self.locktime = locktime

        self.version = version

    def to_bytes(self, include_witness: bool = True) -> bytes:
        """Serializes transaction to bytes following the Bitcoin protocol
        serialization. Witness data (and marker/flag) are only included for
        segwit transactions when include_witness is set."""

        inputs_ser = b"".join(txin.to_bytes() for txin in self.inputs)
        outputs_ser = b"".join(txout.to_bytes() for txout in self.outputs)

        # non-segwit format
        if not include_witness or not self.has_segwit:
            return (
                self.version
                + encode_varint(len(self.inputs))
                + inputs_ser
                + encode_varint(len(self.outputs))
                + outputs_ser
                + self.locktime
            )

        # segwit format, empty witness for inputs without one
        if self.witnesses:
            witness_ser = b"".join(witness.to_bytes() for witness in self.witnesses)
        else:
            witness_ser = b"\x00" * len(self.inputs)

        # add marker and flag to indicate segwit tx
        return (
            self.version
            + b"\x00\x01"
            + encode_varint(len(self.inputs))
            + inputs_ser
            + encode_varint(len(self.outputs))
            + outputs_ser
            + witness_ser
            + self.locktime
        )

    def to_hex(self) -> str:
        """Serializes transaction to hex string"""
        return self.to_bytes().hex()

    def serialize(self) -> str:
        """Alias for to_hex() - serializes transaction to hex string"""
        return self.to_hex()

    def get_txid(self) -> str:
        """Calculates the transaction id (txid) and returns it"""
        # note that tx serialization for txid does not include segwit data
        tx_ser = self.to_bytes(include_witness=False)
        return double_sha256(tx_ser)[::-1].hex()

    def get_wtxid(self) -> str:
        """Calculates the witness transaction id (wtxid) and returns it"""
        tx_ser = self.to_bytes(include_witness=True)
        return double_sha256(tx_ser)[::-1].hex()

    def get_size(self) -> int:
        """Calculates the transaction size in bytes (including witness data if present)"""
        return len(self.to_bytes())

    def get_weight(self) -> int:
        """weight = 3 * non_witness_size + full_size"""
        non_witness_size = len(self.to_bytes(include_witness=False))
        return 3 * non_witness_size + self.get_size()

    def get_vsize(self) -> int:
        """Calculates the virtual transaction size (for fee calculations in segwit)

        For non-segwit transactions, vsize is the same as size.
        For segwit transactions it is the weight divided by 4, rounded up.
        """
        if not self.has_segwit:
            return self.get_size()
        return (self.get_weight() + 3) // 4

    @classmethod
    def from_raw(cls, rawtx: Union[str, bytes]) -> "Transaction":
        """
        Imports a Transaction from hexadecimal data or raw bytes.

        Raises
        ------
        ValidationError
            if the data is truncated or has trailing bytes
        """
        if isinstance(rawtx, str):
            rawtx = h_to_b(rawtx)

        version = _read(rawtx, 0, 4)
        cursor = 4

        # detect segwit marker and flag
        has_segwit = False
        if rawtx[cursor : cursor + 2] == b"\x00\x01":
            has_segwit = True
            cursor += 2

        n_inputs, cursor = _read_compact_size(rawtx, cursor)
        inputs = []
        for _ in range(n_inputs):
            txin, cursor = TxInput.from_raw(rawtx, cursor)
            inputs.append(txin)

        n_outputs, cursor = _read_compact_size(rawtx, cursor)
        outputs = []
        for _ in range(n_outputs):
            txout, cursor = TxOutput.from_raw(rawtx, cursor)
            outputs.append(txout)

        witnesses = []
        if has_segwit:
            for _ in range(n_inputs):
                n_items, cursor = _read_compact_size(rawtx, cursor)
                stack = []
                for _ in range(n_items):
                    item_size, cursor = _read_compact_size(rawtx, cursor)
                    stack.append(_read(rawtx, cursor, item_size).hex())
                    cursor += item_size
                witnesses.append(TxWitnessInput(stack))

        locktime = _read(rawtx, cursor, 4)
        cursor += 4
        if cursor != len(rawtx):
            raise ValidationError("Unexpected trailing transaction data")

        return cls(
            inputs=inputs,
            outputs=outputs,
            version=version,
            locktime=locktime,
            has_segwit=has_segwit,
            witnesses=witnesses,
        )

    def __str__(self) -> str:
        return str(
            {
                "inputs": self.inputs,
                "outputs": self.outputs,
                "has_segwit": self.has_segwit,
                "witnesses": self.witnesses,
                "locktime": self.locktime.hex(),
                "version": self.version.hex(),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return False
        return self.has_segwit == other.has_segwit and self.to_bytes() == other.to_bytes()

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        """Copy of Transaction"""

        ins = [TxInput.copy(txin) for txin in tx.inputs]
        outs = [TxOutput.copy(txout) for txout in tx.outputs]
        wits = [TxWitnessInput.copy(witness) for witness in tx.witnesses]
        return cls(ins, outs, tx.locktime, tx.version, tx.has_segwit, wits)

    def copy_with(
        self,
        inputs: Optional[list[TxInput]] = None,
        witnesses: Optional[list[TxWitnessInput]] = None,
    ) -> "Transaction":
        """Returns a copy of the transaction with the given inputs and/or
        witnesses replaced. Carrying witnesses makes it a segwit transaction."""

        tx = Transaction.copy(self)
        if inputs is not None:
            tx.inputs = [TxInput.copy(txin) for txin in inputs]
        if witnesses is not None:
            if witnesses and len(witnesses) != len(tx.inputs):
                raise ValueError("Witnesses must be empty or one per input")
            tx.witnesses = [TxWitnessInput.copy(w) for w in witnesses]
            tx.has_segwit = tx.has_segwit or bool(witnesses)
        return tx

    def get_transaction_digest(
        self, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> bytes:
        """Returns the transaction's digest for signing.
        https://en.bitcoin.it/wiki/OP_CHECKSIG

        |  SIGHASH types (see constants.py):
        |      SIGHASH_ALL - signs all inputs and outputs (default)
        |      SIGHASH_NONE - signs all of the inputs
        |      SIGHASH_SINGLE - signs all inputs but only txin_index output
        |      SIGHASH_ANYONECANPAY (only combined with one of the above)
        |      - with ALL - signs all outputs but only txin_index input
        |      - with NONE - signs only the txin_index input
        |      - with SINGLE - signs txin_index input and output

        Attributes
        ----------
        txin_index : int
            The index of the input that we wish to sign
        script : Script
            The scriptPubKey (or redeem script) of the UTXO that we want to spend
        sighash : int
            The type of the signature hash to be created
        """

        # clone transaction to modify without messing up the real transaction
        tmp_tx = Transaction.copy(self)

        # make sure all input scriptSigs are empty
        for txin in tmp_tx.inputs:
            txin.script_sig = Script([])

        # the scriptSig of the input we sign is the script of the UTXO
        tmp_tx.inputs[txin_index].script_sig = script

        # whether 0x0n or 0x8n, bitwise AND'ing will result to n
        if (sighash & 0x1F) == SIGHASH_NONE:
            # do not include outputs in digest (i.e. do not sign outputs)
            tmp_tx.outputs = []

            # do not include sequence of other inputs (zero them for digest)
            for i in range(len(tmp_tx.inputs)):
                if i != txin_index:
                    tmp_tx.inputs[i].sequence = EMPTY_TX_SEQUENCE

        elif (sighash & 0x1F) == SIGHASH_SINGLE:
            # only sign the output that corresponds to txin_index
            if txin_index >= len(tmp_tx.outputs):
                raise ValueError(
                    "Transaction index is greater than the available outputs"
                )

            # keep only output that corresponds to txin_index -- blank all
            # outputs before txin_index and delete the ones after it
            txout = tmp_tx.outputs[txin_index]
            tmp_tx.outputs = [
                TxOutput(NEGATIVE_SATOSHI, Script([])) for _ in range(txin_index)
            ]
            tmp_tx.outputs.append(txout)

            for i in range(len(tmp_tx.inputs)):
                if i != txin_index:
                    tmp_tx.inputs[i].sequence = EMPTY_TX_SEQUENCE

        if sighash & SIGHASH_ANYONECANPAY:
            # ignore all other inputs from the signature
            tmp_tx.inputs = [tmp_tx.inputs[txin_index]]

        tx_for_signing = tmp_tx.to_bytes(include_witness=False)

        # although sighash is one byte it is hashed as a 4 byte value
        tx_for_signing += struct.pack("<i", sighash)

        # create transaction digest -- note double hashing
        return double_sha256(tx_for_signing)

    def get_transaction_segwit_digest(
        self, txin_index: int, script: Script, amount: int, sighash: int = SIGHASH_ALL
    ) -> bytes:
        """Returns the segwit v0 transaction's digest for signing.
        https://github.com/bitcoin/bips/blob/master/bip-0143.mediawiki

        Attributes
        ----------
        txin_index : int
            The index of the input that we wish to sign
        script : Script
            The scriptCode (template) that corresponds to the segwit
            transaction output type that we want to spend
        amount : int
            The amount of the UTXO to spend is included in the
            signature for segwit (in satoshis)
        sighash : int
            The type of the signature hash to be created
        """

        # defaults for BIP143
        hash_prevouts = b"\x00" * 32
        hash_sequence = b"\x00" * 32
        hash_outputs = b"\x00" * 32

        basic_sig_hash_type = sighash & 0x1F
        anyone_can_pay = sighash & 0xF0 == SIGHASH_ANYONECANPAY
        sign_all = basic_sig_hash_type not in (SIGHASH_SINGLE, SIGHASH_NONE)

        if not anyone_can_pay:
            hash_prevouts = double_sha256(
                b"".join(txin.outpoint() for txin in self.inputs)
            )

        if not anyone_can_pay and sign_all:
            hash_sequence = double_sha256(b"".join(txin.sequence for txin in self.inputs))

        if sign_all:
            hash_outputs = double_sha256(
                b"".join(txout.to_bytes() for txout in self.outputs)
            )
        elif basic_sig_hash_type == SIGHASH_SINGLE and txin_index < len(self.outputs):
            hash_outputs = double_sha256(self.outputs[txin_index].to_bytes())

        txin = self.inputs[txin_index]
        tx_for_signing = (
            self.version
            + hash_prevouts
            + hash_sequence
            + txin.outpoint()
            + prepend_compact_size(script.to_bytes())
            + struct.pack("<q", amount)
            + txin.sequence
            + hash_outputs
            + self.locktime
            + struct.pack("<i", sighash)
        )

        return double_sha256(tx_for_signing)

    def get_transaction_taproot_digest(
        self,
        txin_index: int,
        script_pubkeys: list[Script],
        amounts: list[int],
        ext_flag: int = 0,
        script: Optional[Script] = None,
        leaf_ver: int = LEAF_VERSION_TAPSCRIPT,
        sighash: int = TAPROOT_SIGHASH_ALL,
    ) -> bytes:
        """Returns the segwit v1 (taproot) transaction's digest for signing.
        https://github.com/bitcoin/bips/blob/master/bip-0341.mediawiki

        Attributes
        ----------
        txin_index : int
            The index of the input that we wish to sign
        script_pubkeys : list(Script)
            The scriptPubkeys that correspond to all the inputs/UTXOs
        amounts : list(int)
            The amounts that correspond to all the inputs/UTXOs
        ext_flag : int
            Extension mechanism, default is 0; 1 is for script spending (BIP342)
        script : Script object
            The script that we are spending (ext_flag=1)
        leaf_ver : int
            The script version, LEAF_VERSION_TAPSCRIPT for the default tapscript
        sighash : int
            The type of the signature hash to be created
        """

        if len(script_pubkeys) != len(self.inputs) or len(amounts) != len(self.inputs):
            raise ValueError("A scriptPubKey and an amount is required for every input")

        sighash_none = sighash & 0x03 == SIGHASH_NONE
        sighash_single = sighash & 0x03 == SIGHASH_SINGLE
        anyone_can_pay = sighash & 0x80 == SIGHASH_ANYONECANPAY

        # epoch, sighash type, version and locktime
        tx_for_signing = bytes([0]) + bytes([sighash]) + self.version + self.locktime

        # Data about the transaction
        if not anyone_can_pay:
            # the SHA256 of the serialization of all input outpoints
            tx_for_signing += hashlib.sha256(
                b"".join(txin.outpoint() for txin in self.inputs)
            ).digest()

            # the SHA256 of the serialization of all input amounts
            tx_for_signing += hashlib.sha256(
                b"".join(a.to_bytes(8, "little") for a in amounts)
            ).digest()

            # the SHA256 of all spent outputs' scriptPubKeys
            tx_for_signing += hashlib.sha256(
                b"".join(prepend_compact_size(s.to_bytes()) for s in script_pubkeys)
            ).digest()

            # the SHA256 of the serialization of all input nSequence
            tx_for_signing += hashlib.sha256(
                b"".join(txin.sequence for txin in self.inputs)
            ).digest()

        if not (sighash_none or sighash_single):
            tx_for_signing += hashlib.sha256(
                b"".join(txout.to_bytes() for txout in self.outputs)
            ).digest()

        # Data about this input
        # spend type, no annex is supported
        tx_for_signing += bytes([ext_flag * 2])

        if anyone_can_pay:
            txin = self.inputs[txin_index]
            tx_for_signing += txin.outpoint()
            tx_for_signing += amounts[txin_index].to_bytes(8, "little")
            tx_for_signing += prepend_compact_size(script_pubkeys[txin_index].to_bytes())
            tx_for_signing += txin.sequence
        else:
            tx_for_signing += txin_index.to_bytes(4, "little")

        # Data about this output
        if sighash_single:
            if txin_index >= len(self.outputs):
                raise ValueError(
                    "Transaction index is greater than the available outputs"
                )
            tx_for_signing += hashlib.sha256(self.outputs[txin_index].to_bytes()).digest()

        # script spending path (Signature Message Extension BIP-342)
        if ext_flag == 1:
            if script is None:
                raise ValueError("A tapleaf script is required for script path spending")
            tx_for_signing += tagged_hash(
                bytes([leaf_ver]) + prepend_compact_size(script.to_bytes()), "TapLeaf"
            )

            # key version - type of public key used for this signature, currently only 0
            tx_for_signing += bytes([0])

            # code separator position; OP_CODESEPARATOR is not supported
            tx_for_signing += b"\xff\xff\xff\xff"

        return tagged_hash(tx_for_signing, "TapSighash")
