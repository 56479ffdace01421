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

from abc import ABC, abstractmethod
from typing import Any, Optional

from btcbuilder.address import Address
from btcbuilder.exceptions import UnsupportedOperation, ValidationError
from btcbuilder.script import Script
from btcbuilder.transactions import TxOutput


class BitcoinBaseOutput(ABC):
    """An output requested by the caller of the transaction builder"""

    def __init__(self, value: int) -> None:
        if not isinstance(value, int) or value < 0:
            raise ValidationError(f"Invalid output value: {value}")
        self.value = value

    @abstractmethod
    def to_output(self) -> TxOutput:
        """Returns the transaction output"""


class BitcoinOutput(BitcoinBaseOutput):
    """Pays value to an address"""

    def __init__(self, address: Address, value: int) -> None:
        super().__init__(value)
        self.address = address

    def to_output(self) -> TxOutput:
        return TxOutput(self.value, self.address.to_script_pub_key())


class BitcoinScriptOutput(BitcoinBaseOutput):
    """Pays value to an arbitrary locking script"""

    def __init__(self, script: Script, value: int) -> None:
        super().__init__(value)
        self.script = script

    def to_output(self) -> TxOutput:
        return TxOutput(self.value, self.script)

    @classmethod
    def op_return(cls, message: str) -> "BitcoinScriptOutput":
        """A zero value OP_RETURN output carrying the utf-8 message"""
        return cls(Script(["OP_RETURN", message.encode("utf-8").hex()]), 0)


class BitcoinTokenOutput(BitcoinBaseOutput):
    """An output that carries cash tokens; only token networks accept it"""

    def __init__(self, address: Address, value: int, token: Any) -> None:
        super().__init__(value)
        self.address = address
        self.token = token

    def to_output(self) -> TxOutput:
        raise UnsupportedOperation("Cash token outputs need a token network builder")


class BitcoinBurnableOutput(BitcoinBaseOutput):
    """An OP_RETURN output that burns cash tokens"""

    def __init__(
        self, category_id: str, value: int = 0, commitment: Optional[str] = None
    ) -> None:
        super().__init__(value)
        self.category_id = category_id
        self.commitment = commitment

    def to_output(self) -> TxOutput:
        raise UnsupportedOperation("Token burns need a token network builder")
