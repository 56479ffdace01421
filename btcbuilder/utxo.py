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

"""Spendable outputs, their owners and weighted multisig signer sets."""

from typing import Any, Callable, Optional, Union

from btcbuilder.address import (
    Address,
    AddressType,
    P2shAddress,
    P2wshAddress,
)
from btcbuilder.constants import DEFAULT_TX_SEQUENCE, MAX_MULTISIG_KEYS
from btcbuilder.exceptions import DispatchError, InsufficientSignatures, ValidationError
from btcbuilder.keys import PublicKey
from btcbuilder.script import Script
from btcbuilder.transactions import TxInput
from btcbuilder.utils import h_to_b


class BitcoinUtxo:
    """An unspent transaction output

    Attributes
    ----------
    txid : str
        the transaction id (display order hex)
    vout : int
        the output index
    value : int
        the amount in satoshis
    script_type : AddressType
        the type of the locking script of the output
    token : Any, optional
        token data attached to the output (only on token networks)
    """

    def __init__(
        self,
        txid: str,
        vout: int,
        value: int,
        script_type: Union[AddressType, str],
        token: Optional[Any] = None,
    ) -> None:
        try:
            txid_bytes = h_to_b(txid)
        except (ValueError, TypeError):
            raise ValidationError("Invalid transaction id: not a hex string") from None
        if len(txid_bytes) != 32:
            raise ValidationError("Transaction id must be 32 bytes")
        if not isinstance(vout, int) or vout < 0:
            raise ValidationError(f"Invalid output index: {vout}")
        if not isinstance(value, int) or value < 0:
            raise ValidationError(f"Invalid utxo value: {value}")

        self.txid = txid.lower()
        self.vout = vout
        self.value = value
        if isinstance(script_type, str):
            script_type = AddressType.from_value(script_type)
        self.script_type = script_type
        self.token = token

    def is_p2tr(self) -> bool:
        return self.script_type is AddressType.P2TR

    def is_p2sh_segwit(self) -> bool:
        return self.script_type.is_p2sh_segwit

    def is_segwit(self) -> bool:
        """Native segwit outputs and segwit programs nested in P2SH"""
        return self.script_type.is_segwit or self.script_type.is_p2sh_segwit

    def to_input(self, sequence: bytes = DEFAULT_TX_SEQUENCE) -> TxInput:
        """Returns an (unsigned) input that spends this output"""
        return TxInput(self.txid, self.vout, sequence=sequence)

    def __repr__(self) -> str:
        return (
            f"BitcoinUtxo({self.txid}:{self.vout}, value={self.value}, "
            f"type={self.script_type.value})"
        )


class MultiSignatureSigner:
    """A multisig participant; a weight > 1 places its key that many times
    in the multisig script."""

    def __init__(self, public_key: str, weight: int = 1) -> None:
        if not isinstance(weight, int) or not 1 <= weight <= MAX_MULTISIG_KEYS:
            raise ValidationError(
                f"Signer weight must be between 1 and {MAX_MULTISIG_KEYS}"
            )
        self.public_key = PublicKey.from_hex(public_key).to_hex()
        self.weight = weight

    def __repr__(self) -> str:
        return f"MultiSignatureSigner({self.public_key}, weight={self.weight})"


class MultiSignatureAddress:
    """A weighted M-of-N signer set and its multisig script

    Attributes
    ----------
    signers : list (MultiSignatureSigner)
        the signers in script order
    threshold : int
        the required weight (M)
    multisig_script : Script
        OP_M <keys, each repeated by weight> OP_N OP_CHECKMULTISIG
    """

    def __init__(self, threshold: int, signers: list[MultiSignatureSigner]) -> None:
        total_weight = sum(signer.weight for signer in signers)
        if not 1 <= threshold <= total_weight <= MAX_MULTISIG_KEYS:
            raise ValidationError(
                f"Invalid multisig: threshold {threshold}, total weight "
                f"{total_weight} (at most {MAX_MULTISIG_KEYS})"
            )

        self.threshold = threshold
        self.signers = list(signers)

        public_keys = []
        for signer in self.signers:
            public_keys.extend([signer.public_key] * signer.weight)
        self.multisig_script = Script.multisig(threshold, public_keys)

    def to_p2wsh_address(self) -> P2wshAddress:
        return P2wshAddress.from_script(self.multisig_script)

    def to_p2wsh_in_p2sh_address(self) -> P2shAddress:
        return P2shAddress.from_script(
            self.to_p2wsh_address().to_script_pub_key(), AddressType.P2WSH_IN_P2SH
        )

    def to_p2sh_address(self) -> P2shAddress:
        return P2shAddress.from_script(self.multisig_script, AddressType.P2PKH_IN_P2SH)

    def to_address(self, address_type: AddressType) -> Address:
        """Returns the address that locks funds to this signer set"""
        if address_type is AddressType.P2WSH:
            return self.to_p2wsh_address()
        if address_type is AddressType.P2WSH_IN_P2SH:
            return self.to_p2wsh_in_p2sh_address()
        if address_type is AddressType.P2PKH_IN_P2SH:
            return self.to_p2sh_address()
        raise DispatchError(f"Unsupported multisig address type {address_type.value}")


class UtxoOwnerDetails:
    """The owner of a utxo: its address and either the public key (single
    signature) or the multisig signer set."""

    def __init__(
        self,
        address: Address,
        public_key: Optional[str] = None,
        multisig_address: Optional[MultiSignatureAddress] = None,
    ) -> None:
        if (public_key is None) == (multisig_address is None):
            raise ValidationError(
                "Exactly one of public key or multisig address is required"
            )
        self.address = address
        self.public_key = public_key
        self.multisig_address = multisig_address


class UtxoWithAddress:
    """A utxo together with the details needed to spend it"""

    def __init__(self, utxo: BitcoinUtxo, owner_details: UtxoOwnerDetails) -> None:
        if owner_details.address.get_type() != utxo.script_type:
            raise ValidationError(
                f"Owner address type {owner_details.address.get_type().value} does "
                f"not match utxo type {utxo.script_type.value}"
            )
        self.utxo = utxo
        self.owner_details = owner_details

    def is_multisig(self) -> bool:
        return self.owner_details.multisig_address is not None

    @property
    def multisig_address(self) -> MultiSignatureAddress:
        if self.owner_details.multisig_address is None:
            raise DispatchError("Utxo is not owned by a multisig address")
        return self.owner_details.multisig_address

    def public(self) -> PublicKey:
        """Returns the public key of a single signature owner"""
        if self.owner_details.public_key is None:
            raise DispatchError("Multisig utxos have no single public key")
        return PublicKey.from_hex(self.owner_details.public_key)


def collect_multisig_signatures(
    multisig_address: MultiSignatureAddress, sign: Callable[[str], str]
) -> list[str]:
    """Asks the signers in order for a signature until the threshold is met

    `sign` receives the signer's public key hex and returns a signature hex,
    or an empty string if the signer does not sign. A signer fills as many
    signature slots as its weight but never more than the slots still
    missing to reach the threshold.

    Raises
    ------
    InsufficientSignatures
        if the signers that signed do not reach the threshold
    """

    threshold = multisig_address.threshold
    signatures: list[str] = []
    for signer in multisig_address.signers:
        signature = sign(signer.public_key)
        if not signature:
            continue

        slots = min(signer.weight, threshold - len(signatures))
        signatures.extend([signature] * slots)
        if len(signatures) >= threshold:
            break

    if len(signatures) != threshold:
        raise InsufficientSignatures(threshold, len(signatures))
    return signatures
