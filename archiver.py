"""
Главный класс для сжатия файлов в формат MZIP.
Читает файлы с диска и записывает готовые артефакты.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from artifact import ARTIFACT_EXTENSION, ArtifactFormat, CompressedArtifact
from compressor import CompressionStats, HuffmanCompressor
from errors import CompressionError


logger = logging.getLogger(__name__)


def output_name(name: str) -> str:
    stem, dot, _ = name.rpartition('.')
    if not dot or not stem:
        return f"{name}.{ARTIFACT_EXTENSION}"
    return f"{stem}.{ARTIFACT_EXTENSION}"


class Archiver:
    def __init__(self, verify: bool = False, show_codes: bool = False):
        self.verify = verify
        self.show_codes = show_codes
        self.compressor = HuffmanCompressor()

    def compress_file(self, file_path: str) -> CompressedArtifact:
        with open(file_path, 'rb') as f:
            data = f.read()

        filename = Path(file_path).name
        artifact = self.compressor.compress(data, filename)

        if self.verify and not self.compressor.verify(artifact, data):
            raise CompressionError(f"Verification failed for {filename}")

        stats = CompressionStats(data, artifact)
        logger.debug("%s: %d -> %d bytes (%.1f%%), padding %d",
                     filename, stats.original_size, stats.artifact_size,
                     stats.compression_ratio, artifact.padding)

        if self.show_codes:
            print(self.compressor.code_mappings(artifact))

        return artifact

    def write_artifact(self, artifact: CompressedArtifact, output_dir: str = '.') -> str:
        output_path = os.path.join(output_dir, output_name(artifact.name))

        os.makedirs(output_dir, exist_ok=True)

        with open(output_path, 'wb') as f:
            f.write(ArtifactFormat.create_artifact(artifact))

        logger.debug("Wrote %s (%d bytes of code)", output_path, len(artifact.data))
        return output_path

    def compress_path(self, file_path: str, output_dir: Optional[str] = None) -> str:
        if output_dir is None:
            output_dir = os.path.dirname(file_path) or '.'

        artifact = self.compress_file(file_path)

        target = os.path.join(output_dir, output_name(artifact.name))
        if os.path.abspath(target) == os.path.abspath(file_path):
            raise CompressionError(f"Refusing to overwrite input file {file_path}")

        return self.write_artifact(artifact, output_dir)

    def compress_files(self, file_paths: List[str],
                       output_dir: Optional[str] = None) -> Tuple[List[str], List[str]]:
        written = []
        failed = []

        for file_path in file_paths:
            try:
                output_path = self.compress_path(file_path, output_dir)
            except (CompressionError, OSError) as e:
                logger.error("Could not compress %s: %s", file_path, e)
                failed.append(file_path)
                continue

            print(f"Successfully compressed to: {output_path}")
            written.append(output_path)

        return written, failed
