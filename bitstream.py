"""
Упакованный битовый буфер: биты пишутся старшим битом вперёд,
по восемь в каждый байт.
"""

from typing import Dict, Iterator, Tuple


def code_value(code: str) -> Tuple[int, int]:
    if code.strip('01'):
        raise ValueError(f"Invalid code {code!r}: only '0' and '1' allowed")
    return (int(code, 2) if code else 0), len(code)


class BitStream:
    def __init__(self):
        self.buffer = bytearray()
        self.bit_length = 0
        # bits not yet flushed into buffer, always fewer than 8
        self._pending = 0
        self._pending_bits = 0

    def write(self, value: int, length: int):
        self._pending = (self._pending << length) | value
        self._pending_bits += length
        self.bit_length += length

        while self._pending_bits >= 8:
            self._pending_bits -= 8
            self.buffer.append(self._pending >> self._pending_bits)
            self._pending &= (1 << self._pending_bits) - 1

    def write_bit(self, bit: int):
        self.write(1 if bit else 0, 1)

    def write_code(self, code: str):
        self.write(*code_value(code))

    def pad(self) -> int:
        padding = (8 - self.bit_length % 8) % 8
        if padding:
            self.write(0, padding)
        return padding

    def _packed(self) -> bytes:
        if not self._pending_bits:
            return bytes(self.buffer)
        return bytes(self.buffer) + bytes([self._pending << (8 - self._pending_bits)])

    def bits(self) -> Iterator[int]:
        packed = self._packed()
        for index in range(self.bit_length):
            yield (packed[index // 8] >> (7 - index % 8)) & 1

    def to_bytes(self) -> bytes:
        if self.bit_length % 8:
            raise ValueError(f"Bit stream is not byte aligned ({self.bit_length} bits), call pad() first")
        return bytes(self.buffer)

    @staticmethod
    def from_bytes(data: bytes, padding: int = 0) -> 'BitStream':
        if not 0 <= padding <= 7:
            raise ValueError(f"Padding must be in 0..7, got {padding}")

        stream = BitStream()
        stream.buffer = bytearray(data)
        stream.bit_length = max(len(data) * 8 - padding, 0)
        return stream

    def __len__(self):
        return self.bit_length


def encode_bits(data: bytes, codes: Dict[int, str]) -> Tuple[BitStream, int]:
    packed_codes = {symbol: code_value(code) for symbol, code in codes.items()}

    stream = BitStream()
    for byte in data:
        stream.write(*packed_codes[byte])

    padding = stream.pad()
    return stream, padding
