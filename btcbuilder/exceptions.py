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

"""Exceptions raised while building and signing transactions."""

from typing import Optional


class BitcoinBuilderError(Exception):
    """Base exception for all btcbuilder errors."""

    pass


class ValidationError(BitcoinBuilderError):
    """Raised for malformed keys, scripts or taproot trees."""

    pass


class UnknownAddressType(ValidationError):
    """Raised when an address type tag does not match any known variant."""

    def __init__(self, value: str, message: Optional[str] = None):
        self.value = value
        if message is None:
            message = f"Invalid BitcoinAddressType: {value}"
        super().__init__(message)


class AddressMismatch(BitcoinBuilderError):
    """Raised when an address does not belong to the target network."""

    pass


class UnsupportedOperation(BitcoinBuilderError):
    """Raised when an operation is not supported for the given network."""

    pass


class ValueMismatch(BitcoinBuilderError):
    """Raised when outputs plus fee do not add up to the spent UTXO values."""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        if message is None:
            message = (
                f"Sum value of utxos ({expected}) does not match "
                f"outputs plus fee ({actual})"
            )
        super().__init__(message)


class InsufficientSignatures(BitcoinBuilderError):
    """Raised when the signers of a multisig input do not reach its threshold."""

    def __init__(self, threshold: int, weight: int, message: Optional[str] = None):
        self.threshold = threshold
        self.weight = weight
        if message is None:
            message = (
                f"Multisig threshold not met: collected weight {weight} "
                f"of required {threshold}"
            )
        super().__init__(message)


class DispatchError(BitcoinBuilderError):
    """Raised when an address type has no rule for the requested operation."""

    pass
