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


import copy
import struct
from typing import Any, Optional, Union

from btcbuilder.exceptions import ValidationError
from btcbuilder.utils import b_to_h, h_to_b, hash160, hash_sha256, double_sha256


# Bitcoin's op codes. Complete list at: https://en.bitcoin.it/wiki/Script
OP_CODES = {
    # constants
    "OP_0": b"\x00",
    "OP_FALSE": b"\x00",
    "OP_PUSHDATA1": b"\x4c",
    "OP_PUSHDATA2": b"\x4d",
    "OP_PUSHDATA4": b"\x4e",
    "OP_1NEGATE": b"\x4f",
    "OP_1": b"\x51",
    "OP_TRUE": b"\x51",
    "OP_2": b"\x52",
    "OP_3": b"\x53",
    "OP_4": b"\x54",
    "OP_5": b"\x55",
    "OP_6": b"\x56",
    "OP_7": b"\x57",
    "OP_8": b"\x58",
    "OP_9": b"\x59",
    "OP_10": b"\x5a",
    "OP_11": b"\x5b",
    "OP_12": b"\x5c",
    "OP_13": b"\x5d",
    "OP_14": b"\x5e",
    "OP_15": b"\x5f",
    "OP_16": b"\x60",
    # flow control
    "OP_NOP": b"\x61",
    "OP_IF": b"\x63",
    "OP_NOTIF": b"\x64",
    "OP_ELSE": b"\x67",
    "OP_ENDIF": b"\x68",
    "OP_VERIFY": b"\x69",
    "OP_RETURN": b"\x6a",
    # stack
    "OP_TOALTSTACK": b"\x6b",
    "OP_FROMALTSTACK": b"\x6c",
    "OP_IFDUP": b"\x73",
    "OP_DEPTH": b"\x74",
    "OP_DROP": b"\x75",
    "OP_DUP": b"\x76",
    "OP_NIP": b"\x77",
    "OP_OVER": b"\x78",
    "OP_PICK": b"\x79",
    "OP_ROLL": b"\x7a",
    "OP_ROT": b"\x7b",
    "OP_SWAP": b"\x7c",
    "OP_TUCK": b"\x7d",
    "OP_2DROP": b"\x6d",
    "OP_2DUP": b"\x6e",
    "OP_3DUP": b"\x6f",
    "OP_2OVER": b"\x70",
    "OP_2ROT": b"\x71",
    "OP_2SWAP": b"\x72",
    # splice
    "OP_SIZE": b"\x82",
    # bitwise logic
    "OP_EQUAL": b"\x87",
    "OP_EQUALVERIFY": b"\x88",
    # arithmetic
    "OP_1ADD": b"\x8b",
    "OP_1SUB": b"\x8c",
    "OP_NEGATE": b"\x8f",
    "OP_ABS": b"\x90",
    "OP_NOT": b"\x91",
    "OP_0NOTEQUAL": b"\x92",
    "OP_ADD": b"\x93",
    "OP_SUB": b"\x94",
    "OP_BOOLAND": b"\x9a",
    "OP_BOOLOR": b"\x9b",
    "OP_NUMEQUAL": b"\x9c",
    "OP_NUMEQUALVERIFY": b"\x9d",
    "OP_NUMNOTEQUAL": b"\x9e",
    "OP_LESSTHAN": b"\x9f",
    "OP_GREATERTHAN": b"\xa0",
    "OP_LESSTHANOREQUAL": b"\xa1",
    "OP_GREATERTHANOREQUAL": b"\xa2",
    "OP_MIN": b"\xa3",
    "OP_MAX": b"\xa4",
    "OP_WITHIN": b"\xa5",
    # crypto
    "OP_RIPEMD160": b"\xa6",
    "OP_SHA1": b"\xa7",
    "OP_SHA256": b"\xa8",
    "OP_HASH160": b"\xa9",
    "OP_HASH256": b"\xaa",
    "OP_CODESEPARATOR": b"\xab",
    "OP_CHECKSIG": b"\xac",
    "OP_CHECKSIGVERIFY": b"\xad",
    "OP_CHECKMULTISIG": b"\xae",
    "OP_CHECKMULTISIGVERIFY": b"\xaf",
    "OP_CHECKSIGADD": b"\xba",
    # locktime
    "OP_NOP2": b"\xb1",
    "OP_CHECKLOCKTIMEVERIFY": b"\xb1",
    "OP_NOP3": b"\xb2",
    "OP_CHECKSEQUENCEVERIFY": b"\xb2",
}

# aliases are never produced when parsing raw scripts
_OP_ALIASES = {"OP_FALSE", "OP_TRUE", "OP_NOP2", "OP_NOP3"}

CODE_OPS = {
    code: name for name, code in OP_CODES.items() if name not in _OP_ALIASES
}

_PUSHDATA_OPS = {b"\x4c": 1, b"\x4d": 2, b"\x4e": 4}


class Script:
    """Represents any script in Bitcoin

    A Script contains just a list of OP_CODES and also knows how to serialize
    into bytes

    Attributes
    ----------
    script : list
        the list with all the script OP_CODES and data

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the script
    to_hex()
        returns a serialized version of the script in hex
    get_script()
        returns the list of strings that makes up this script
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        parses a serialized script (classmethod)
    multisig(threshold, public_keys)
        creates an M-of-N multisig script (classmethod)
    to_p2sh_script_pub_key()
        converts script to p2sh scriptPubKey (locking script)
    to_p2sh32_script_pub_key()
        converts script to p2sh32 scriptPubKey (locking script)
    to_p2wsh_script_pub_key()
        converts script to p2wsh scriptPubKey (locking script)
    get_script_type()
        determines the type of script

    Raises
    ------
    ValueError
        If string data is too large or integer is negative
    """

    def __init__(self, script: list[Any]):
        """See Script description"""
        self.script: list[Any] = script

    @classmethod
    def copy(cls, script: "Script") -> "Script":
        """Deep copy of Script"""
        scripts = copy.deepcopy(script.script)
        return cls(scripts)

    @classmethod
    def multisig(cls, threshold: int, public_keys: list[str]) -> "Script":
        """OP_M <pubkey1> ... <pubkeyN> OP_N OP_CHECKMULTISIG"""
        if not 1 <= threshold <= len(public_keys) <= 16:
            raise ValidationError(
                f"Invalid multisig: threshold {threshold}, keys {len(public_keys)}"
            )
        return cls(
            [f"OP_{threshold}", *public_keys, f"OP_{len(public_keys)}", "OP_CHECKMULTISIG"]
        )

    def _op_push_data(self, data: str) -> bytes:
        """Converts data to appropriate OP_PUSHDATA OP code including length"""
        data_bytes = h_to_b(data)

        if len(data_bytes) < 0x4C:
            return bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFF:
            return b"\x4c" + bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFFFF:
            return b"\x4d" + struct.pack("<H", len(data_bytes)) + data_bytes
        elif len(data_bytes) <= 0xFFFFFFFF:
            return b"\x4e" + struct.pack("<I", len(data_bytes)) + data_bytes
        else:
            raise ValueError("Data too large. Cannot push into script")

    def _push_integer(self, integer: int) -> bytes:
        """Converts integer to bytes; as signed little-endian integer"""
        if integer < 0:
            raise ValueError("Integer is currently required to be positive.")

        number_of_bytes = (integer.bit_length() + 7) // 8
        integer_bytes = integer.to_bytes(number_of_bytes, byteorder="little")

        if integer & (1 << number_of_bytes * 8 - 1):
            integer_bytes += b"\x00"

        return self._op_push_data(b_to_h(integer_bytes))

    def to_bytes(self) -> bytes:
        """Converts the script to bytes"""
        script_bytes = b""
        for token in self.script:
            if isinstance(token, int):
                if 0 <= token <= 16:
                    script_bytes += OP_CODES["OP_" + str(token)]
                else:
                    script_bytes += self._push_integer(token)
            elif token in OP_CODES:
                script_bytes += OP_CODES[token]
            else:
                script_bytes += self._op_push_data(token)
        return script_bytes

    def to_hex(self) -> str:
        """Converts the script to hexadecimal"""
        return b_to_h(self.to_bytes())

    @classmethod
    def from_raw(cls, scriptrawhex: Union[str, bytes]) -> "Script":
        """
        Imports a Script commands list from raw hexadecimal data

        Raises
        ------
        ValidationError
            if push data is truncated or an unknown opcode is found
        """
        if isinstance(scriptrawhex, str):
            scriptraw = h_to_b(scriptrawhex)
        elif isinstance(scriptrawhex, bytes):
            scriptraw = scriptrawhex
        else:
            raise TypeError("Input must be a hexadecimal string or bytes")

        commands: list[Any] = []
        index = 0

        while index < len(scriptraw):
            opcode = scriptraw[index : index + 1]
            index += 1

            # direct push of 1-75 bytes
            if 0x01 <= opcode[0] <= 0x4B:
                bytes_to_read = opcode[0]
            elif opcode in _PUSHDATA_OPS:
                size = _PUSHDATA_OPS[opcode]
                if index + size > len(scriptraw):
                    raise ValidationError("Truncated push data length")
                bytes_to_read = int.from_bytes(scriptraw[index : index + size], "little")
                index += size
            elif opcode in CODE_OPS:
                commands.append(CODE_OPS[opcode])
                continue
            else:
                raise ValidationError(f"Unknown opcode: {opcode.hex()}")

            if index + bytes_to_read > len(scriptraw):
                raise ValidationError("Truncated push data")
            commands.append(scriptraw[index : index + bytes_to_read].hex())
            index += bytes_to_read

        return cls(commands)

    def get_script(self) -> list[Any]:
        """Returns script as array of strings"""
        return self.script

    def to_p2sh_script_pub_key(self) -> "Script":
        """Converts script to p2sh scriptPubKey (locking script)"""
        return Script(["OP_HASH160", b_to_h(hash160(self.to_bytes())), "OP_EQUAL"])

    def to_p2sh32_script_pub_key(self) -> "Script":
        """Converts script to p2sh32 scriptPubKey (locking script)"""
        return Script(["OP_HASH256", b_to_h(double_sha256(self.to_bytes())), "OP_EQUAL"])

    def to_p2wsh_script_pub_key(self) -> "Script":
        """Converts script to p2wsh scriptPubKey (locking script)"""
        return Script(["OP_0", b_to_h(hash_sha256(self.to_bytes()))])

    def _is_push_of(self, token: Any, length: int) -> bool:
        return (
            isinstance(token, str)
            and token not in OP_CODES
            and len(token) == 2 * length
        )

    def is_p2wpkh(self) -> bool:
        """P2WPKH format: OP_0 <20-byte-key-hash>"""
        ops = self.script
        return len(ops) == 2 and ops[0] in (0, "OP_0") and self._is_push_of(ops[1], 20)

    def is_p2tr(self) -> bool:
        """P2TR format: OP_1 <32-byte-key>"""
        ops = self.script
        return len(ops) == 2 and ops[0] in (1, "OP_1") and self._is_push_of(ops[1], 32)

    def is_p2wsh(self) -> bool:
        """P2WSH format: OP_0 <32-byte-script-hash>"""
        ops = self.script
        return len(ops) == 2 and ops[0] in (0, "OP_0") and self._is_push_of(ops[1], 32)

    def is_p2sh(self) -> bool:
        """P2SH format: OP_HASH160 <20-byte-script-hash> OP_EQUAL"""
        ops = self.script
        return (
            len(ops) == 3
            and ops[0] == "OP_HASH160"
            and self._is_push_of(ops[1], 20)
            and ops[2] == "OP_EQUAL"
        )

    def is_p2pkh(self) -> bool:
        """P2PKH format: OP_DUP OP_HASH160 <20-byte-key-hash> OP_EQUALVERIFY OP_CHECKSIG"""
        ops = self.script
        return (
            len(ops) == 5
            and ops[0] == "OP_DUP"
            and ops[1] == "OP_HASH160"
            and self._is_push_of(ops[2], 20)
            and ops[3] == "OP_EQUALVERIFY"
            and ops[4] == "OP_CHECKSIG"
        )

    def is_multisig(self) -> tuple[bool, Optional[tuple[int, int]]]:
        """
        Check if script is a multisig script.

        Multisig format: OP_M <pubkey1> ... <pubkeyN> OP_N OP_CHECKMULTISIG

        Returns:
            tuple: (bool, (M, N) if multisig, None otherwise)
        """
        ops = self.script
        if len(ops) < 4 or ops[-1] != "OP_CHECKMULTISIG":
            return False, None

        m = _small_int(ops[0])
        n = _small_int(ops[-2])
        if m is None or n is None or len(ops) != n + 3 or not 1 <= m <= n:
            return False, None
        return True, (m, n)

    def get_script_type(self) -> str:
        """
        Determine the type of script.

        Returns:
            str: Script type ('p2pkh', 'p2sh', 'p2wpkh', 'p2wsh', 'p2tr', 'multisig', 'unknown')
        """
        if self.is_p2pkh():
            return "p2pkh"
        elif self.is_p2sh():
            return "p2sh"
        elif self.is_p2wpkh():
            return "p2wpkh"
        elif self.is_p2wsh():
            return "p2wsh"
        elif self.is_p2tr():
            return "p2tr"
        elif self.is_multisig()[0]:
            return "multisig"
        else:
            return "unknown"

    def __str__(self) -> str:
        return str(self.script)

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Script):
            return False
        return self.script == _other.script


def _small_int(token: Any) -> Optional[int]:
    """Returns the value of an OP_1..OP_16 token (or plain int)"""
    if isinstance(token, int):
        return token if 1 <= token <= 16 else None
    if isinstance(token, str) and token.startswith("OP_") and token[3:].isdigit():
        value = int(token[3:])
        return value if 1 <= value <= 16 else None
    return None
