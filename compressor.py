"""
Huffman Compression Module

Конвейер сжатия: таблица частот -> дерево -> коды -> биты -> артефакт.
Каждый шаг получает результат предыдущего и возвращает новое значение,
файловая система здесь не используется.
"""

from typing import Dict

from artifact import CompressedArtifact, parse_tree, serialize_tree
from bitstream import BitStream, encode_bits
from errors import EmptyInputError
from huffman import (build_tree, code_table, count_symbols,
                     decode_bits, mappings, weighted_length)


class HuffmanCompressor:
    def compress(self, data: bytes, name: str) -> CompressedArtifact:
        frequencies = count_symbols(data)
        if not frequencies:
            raise EmptyInputError(name)

        tree = build_tree(frequencies)
        codes = code_table(tree)
        stream, padding = encode_bits(data, codes)

        return CompressedArtifact(
            name=name,
            tree=serialize_tree(tree),
            padding=padding,
            data=stream.to_bytes()
        )

    @staticmethod
    def decode(artifact: CompressedArtifact) -> bytes:
        tree = parse_tree(artifact.tree)
        stream = BitStream.from_bytes(artifact.data, artifact.padding)
        return decode_bits(tree, stream.bits(), len(stream))

    @staticmethod
    def verify(artifact: CompressedArtifact, original: bytes) -> bool:
        return HuffmanCompressor.decode(artifact) == original

    @staticmethod
    def code_mappings(artifact: CompressedArtifact) -> str:
        return mappings(parse_tree(artifact.tree))


def compress(data: bytes, name: str) -> CompressedArtifact:
    return HuffmanCompressor().compress(data, name)


class CompressionStats:
    def __init__(self, data: bytes, artifact: CompressedArtifact):
        self.original_size = len(data)
        self.frequencies: Dict[int, int] = count_symbols(data)
        self.distinct_symbols = len(self.frequencies)

        codes = code_table(parse_tree(artifact.tree))
        self.encoded_bits = weighted_length(self.frequencies, codes)
        self.padding = artifact.padding
        self.packed_size = len(artifact.data)
        self.artifact_size = len(artifact.header()) + self.packed_size

        self.bits_per_symbol = (
            self.encoded_bits / self.original_size
            if self.original_size > 0 else 0
        )

        self.compression_ratio = (
            self.artifact_size / self.original_size * 100
            if self.original_size > 0 else 0
        )

    def print_stats(self):
        print(f"Huffman Compression Statistics:")
        print(f"  Original size:       {self.original_size} bytes")
        print(f"  Distinct symbols:    {self.distinct_symbols}")
        print(f"  Encoded bits:        {self.encoded_bits}")
        print(f"  Padding bits:        {self.padding}")
        print(f"  Bits per symbol:     {self.bits_per_symbol:.3f}")
        print(f"  Packed size:         {self.packed_size} bytes")
        print(f"  Artifact size:       {self.artifact_size} bytes")
        print(f"  Compression ratio:   {self.compression_ratio:.1f}%")
