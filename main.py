"""
Командная строка для компрессора MZIP.
"""

import argparse
import logging
import sys
from typing import Callable, Optional

from archiver import Archiver


logger = logging.getLogger(__name__)


def print_ops():
    print("COMMANDS:\n1. COMPRESS\n2. QUIT")


def run_shell(archiver: Archiver, read_line: Callable[[str], str] = input) -> int:
    failures = 0

    while True:
        print_ops()
        try:
            line = read_line("CMD: ").strip().upper()
        except EOFError:
            break

        if line in ('QUIT', 'Q', '2'):
            break

        if line in ('COMPRESS', '1'):
            try:
                file_path = read_line("FILE TO BE COMPRESSED: ").strip()
            except EOFError:
                break
            _, failed = archiver.compress_files([file_path])
            failures += len(failed)

    return 1 if failures else 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description='MZIP Huffman compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress notes.txt
  python main.py compress -d ./out --verify file1.txt file2.bin
  python main.py shell
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress files')
    compress_parser.add_argument('files', nargs='+', help='Files to compress')
    compress_parser.add_argument('-d', '--dir', default=None,
                                 help='Output directory (default: next to each input)')
    compress_parser.add_argument('--verify', action='store_true',
                                 help='Decode each artifact in memory and compare with the input')
    compress_parser.add_argument('--show-codes', action='store_true',
                                 help='Print the symbol to codeword table')

    subparsers.add_parser('shell', help='Interactive COMPRESS/QUIT loop')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s: %(message)s'
    )

    if not args.command:
        parser.print_help()
        return 0

    archiver = Archiver(verify=getattr(args, 'verify', False),
                        show_codes=getattr(args, 'show_codes', False))

    try:
        if args.command == 'compress':
            _, failed = archiver.compress_files(args.files, args.dir)
            return 1 if failed else 0

        elif args.command == 'shell':
            return run_shell(archiver)

    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130

    return 0


if __name__ == '__main__':
    sys.exit(main())
