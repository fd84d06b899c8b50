import unittest
import tempfile
import os
import sys
import io
import heapq
import random
from contextlib import redirect_stdout

from merge_queue import MergeQueue
from huffman import (HuffmanNode, build_tree, code_table, count_symbols, decode_bits,
                     mappings, seed_order, walk_codes, weighted_length)
from bitstream import BitStream, encode_bits
from artifact import (ArtifactFormat, CompressedArtifact, leaf_token, parse_tree,
                      serialize_tree)
from compressor import CompressionStats, HuffmanCompressor, compress
from archiver import Archiver, output_name
from errors import CompressionError, EmptyInputError, InvalidNameError, MalformedArtifactError
import main


SAMPLES = [
    b"A",
    b"AB",
    b"aaabbc",
    b"\x00\xff\x00\x80\x7f",
    b"The quick brown fox jumps over the lazy dog",
    b"Lorem ipsum dolor sit amet " * 200,
    bytes(range(256)) * 3,
]


def is_prefix_free(codes):
    words = sorted(codes.values())
    return all(not b.startswith(a) for a, b in zip(words, words[1:]))


def optimal_cost(frequencies):
    weights = sorted(frequencies.values())
    heapq.heapify(weights)
    cost = 0
    while len(weights) > 1:
        merged = heapq.heappop(weights) + heapq.heappop(weights)
        cost += merged
        heapq.heappush(weights, merged)
    return cost


def internal_nodes(root):
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_leaf():
            continue
        yield node
        stack.extend(child for child in (node.left, node.right) if child is not None)


class TestMergeQueue(unittest.TestCase):
    def setUp(self):
        self.queue = MergeQueue()

    def test_extracts_lowest_weight_first(self):
        for fragment, weight in [('c', 5), ('a', 1), ('d', 9), ('b', 3)]:
            self.queue.insert(fragment, weight)

        order = [self.queue.extract_min() for _ in range(4)]
        self.assertEqual(order, [('a', 1), ('b', 3), ('c', 5), ('d', 9)])

    def test_ties_are_fifo(self):
        for fragment in ['first', 'second', 'third']:
            self.queue.insert(fragment, 2)
        self.queue.insert('light', 1)

        self.assertEqual(self.queue.extract_min(), ('light', 1))
        self.assertEqual(self.queue.extract_min(), ('first', 2))
        self.assertEqual(self.queue.extract_min(), ('second', 2))
        self.assertEqual(self.queue.extract_min(), ('third', 2))

    def test_uncomparable_fragments(self):
        self.queue.insert(HuffmanNode(symbol=1), 4)
        self.queue.insert(HuffmanNode(symbol=2), 4)

        fragment, _ = self.queue.extract_min()
        self.assertEqual(fragment.symbol, 1)

    def test_size_and_empty(self):
        self.assertTrue(self.queue.is_empty())
        self.assertEqual(self.queue.size(), 0)

        self.queue.insert('x', 0)
        self.assertFalse(self.queue.is_empty())
        self.assertEqual(self.queue.size(), 1)
        self.assertEqual(len(self.queue), 1)

    def test_extract_from_empty(self):
        with self.assertRaises(IndexError):
            self.queue.extract_min()

    def test_negative_weight(self):
        with self.assertRaises(ValueError):
            self.queue.insert('x', -1)

    def test_repr_lists_extraction_order(self):
        self.queue.insert('b', 2)
        self.queue.insert('a', 1)
        self.queue.insert('c', 2)

        self.assertEqual(repr(self.queue), "MergeQueue({'a', 1}<-{'b', 2}<-{'c', 2})")


class TestTreeBuilder(unittest.TestCase):
    def test_count_symbols(self):
        self.assertEqual(count_symbols(b"ABAB"), {65: 2, 66: 2})
        self.assertEqual(count_symbols(b""), {})

    def test_seed_order_is_signed(self):
        self.assertEqual(seed_order({0x01: 1, 0xff: 1, 0x80: 1, 0x7f: 1}),
                         [0x80, 0xff, 0x01, 0x7f])

    def test_abab_codes(self):
        root = build_tree(count_symbols(b"ABAB"))

        self.assertEqual(root.right.symbol, 65)
        self.assertEqual(root.left.symbol, 66)
        self.assertEqual(code_table(root), {65: '1', 66: '0'})

    def test_first_extracted_goes_right(self):
        root = build_tree(count_symbols(b"ABC"))

        self.assertEqual(root.right.symbol, 67)
        self.assertEqual(code_table(root), {65: '01', 66: '00', 67: '1'})

    def test_negative_symbols_seeded_first(self):
        root = build_tree(count_symbols(b"\x01\x80"))
        self.assertEqual(code_table(root), {0x80: '1', 0x01: '0'})

    def test_single_symbol(self):
        root = build_tree({65: 100})

        self.assertTrue(root.is_leaf())
        self.assertEqual(root.symbol, 65)
        self.assertEqual(root.code, '0')
        self.assertEqual(root.depth, 0)
        self.assertEqual(code_table(root), {65: '0'})

    def test_empty_frequencies(self):
        with self.assertRaises(EmptyInputError):
            build_tree({})
        with self.assertRaises(EmptyInputError):
            build_tree({65: 0})

    def test_internal_nodes_are_full(self):
        for data in SAMPLES:
            root = build_tree(count_symbols(data))
            for node in internal_nodes(root):
                self.assertEqual(node.children, 2)
                self.assertIsNone(node.symbol)


class TestCodeAssigner(unittest.TestCase):
    def test_prefix_free(self):
        rng = random.Random(7)
        inputs = SAMPLES + [bytes(rng.getrandbits(8) for _ in range(500))]

        for data in inputs:
            codes = code_table(build_tree(count_symbols(data)))
            self.assertTrue(is_prefix_free(codes), data[:20])
            self.assertEqual(set(codes), set(data))

    def test_depth_first_walk_matches(self):
        for data in SAMPLES:
            root = build_tree(count_symbols(data))
            self.assertEqual(walk_codes(root), code_table(root))

    def test_depth_matches_code_length(self):
        root = build_tree(count_symbols(b"aaaabbbccd"))
        for leaf in root.leaves():
            self.assertEqual(leaf.depth, len(leaf.code))

    def test_optimal_weighted_length(self):
        rng = random.Random(11)
        inputs = SAMPLES[1:] + [bytes(rng.choice(b"aabbbbcdeeeeeeeef") for _ in range(300))]

        for data in inputs:
            frequencies = count_symbols(data)
            codes = code_table(build_tree(frequencies))
            self.assertEqual(weighted_length(frequencies, codes), optimal_cost(frequencies))

    def test_mappings(self):
        root = build_tree(count_symbols(b"ABAB"))
        self.assertEqual(mappings(root), "66: 0\n65: 1")

    def test_mappings_signed_values(self):
        root = build_tree(count_symbols(b"\xff\xff\x01"))
        self.assertEqual(mappings(root), "-1: 0\n1: 1")


class TestBitStream(unittest.TestCase):
    def test_msb_first_packing(self):
        stream = BitStream()
        stream.write_code('101')

        self.assertEqual(stream.pad(), 5)
        self.assertEqual(stream.to_bytes(), b'\xa0')

    def test_aligned_needs_no_padding(self):
        stream = BitStream()
        stream.write_code('11110000')

        self.assertEqual(stream.pad(), 0)
        self.assertEqual(stream.to_bytes(), b'\xf0')

    def test_padding_range(self):
        for length in range(1, 40):
            stream = BitStream()
            stream.write_code('1' * length)
            padding = stream.pad()

            self.assertTrue(0 <= padding <= 7)
            self.assertEqual((length + padding) % 8, 0)
            self.assertEqual(len(stream.to_bytes()), (length + padding) // 8)

    def test_unaligned_to_bytes(self):
        stream = BitStream()
        stream.write_code('1')
        with self.assertRaises(ValueError):
            stream.to_bytes()

    def test_invalid_code(self):
        with self.assertRaises(ValueError):
            BitStream().write_code('102')

    def test_write_whole_codes(self):
        stream = BitStream()
        stream.write(0b101, 3)
        stream.write(0b11111, 5)
        stream.write(0b1, 1)

        self.assertEqual(len(stream), 9)
        self.assertEqual(list(stream.bits()), [1, 0, 1, 1, 1, 1, 1, 1, 1])
        self.assertEqual(stream.pad(), 7)
        self.assertEqual(stream.to_bytes(), b'\xbf\x80')

    def test_long_code_spans_bytes(self):
        stream = BitStream()
        stream.write_code('0' * 12 + '1' * 4)
        self.assertEqual(stream.to_bytes(), b'\x00\x0f')

    def test_bits_from_bytes(self):
        stream = BitStream.from_bytes(b'\xa0', padding=4)
        self.assertEqual(list(stream.bits()), [1, 0, 1, 0])
        self.assertEqual(len(stream), 4)

    def test_encode_bits(self):
        stream, padding = encode_bits(b"ABAB", {65: '1', 66: '0'})

        self.assertEqual(padding, 4)
        self.assertEqual(stream.to_bytes(), b'\xa0')

    def test_encode_unknown_symbol(self):
        with self.assertRaises(KeyError):
            encode_bits(b"C", {65: '1', 66: '0'})

    def test_encode_invalid_codeword(self):
        with self.assertRaises(ValueError):
            encode_bits(b"A", {65: '12'})

    def test_encode_large_input(self):
        data = bytes(range(256)) * 400
        root = build_tree(count_symbols(data))
        stream, padding = encode_bits(data, code_table(root))

        self.assertEqual(padding, 0)
        self.assertEqual(len(stream.to_bytes()), len(data))
        self.assertEqual(decode_bits(root, stream.bits(), len(stream)), data)


class TestArtifactFormat(unittest.TestCase):
    def test_serialize_abab(self):
        root = build_tree(count_symbols(b"ABAB"))
        self.assertEqual(serialize_tree(root), "(66 65)")

    def test_serialize_nested(self):
        root = build_tree(count_symbols(b"ABC"))
        self.assertEqual(serialize_tree(root), "((66 65) 67)")

    def test_serialize_single_symbol(self):
        self.assertEqual(serialize_tree(build_tree({65: 100})), "(65)")

    def test_serialize_one_child_node(self):
        node = HuffmanNode(right=HuffmanNode(left=HuffmanNode(symbol=3), right=HuffmanNode(symbol=4)))
        self.assertEqual(serialize_tree(node), "((3 4))")

    def test_leaf_token_unsigned(self):
        self.assertEqual(leaf_token(-1), '255')
        self.assertEqual(leaf_token(-128), '128')
        self.assertEqual(leaf_token(127), '127')

    def test_parse_by_brackets_only(self):
        root = parse_tree("(0 (1 255))")

        self.assertTrue(root.left.is_leaf())
        self.assertEqual(root.left.symbol, 0)
        self.assertFalse(root.right.is_leaf())
        self.assertEqual(code_table(root), {0: '0', 1: '10', 255: '11'})

    def test_parse_single_child(self):
        root = parse_tree("(65)")

        self.assertEqual(root.children, 1)
        self.assertEqual(code_table(root), {65: '0'})

    def test_parse_serialize_identity(self):
        for data in SAMPLES:
            text = serialize_tree(build_tree(count_symbols(data)))
            self.assertEqual(serialize_tree(parse_tree(text)), text)

    def test_parse_malformed(self):
        for text in ["", "(1 2", "(1  2)", "(256 1)", "(1 2)x", "(-1 2)", "()", "( 1)", "1 2",
                     "(007 1)", "(00 1)", "(1000 1)"]:
            with self.assertRaises(MalformedArtifactError, msg=text):
                parse_tree(text)

    def test_parse_rejects_deep_nesting(self):
        with self.assertRaises(MalformedArtifactError):
            parse_tree("(" * 5000)
        with self.assertRaises(MalformedArtifactError):
            parse_tree("(" * 300 + "1" + ")" * 300)

    def test_parse_deepest_valid_tree(self):
        text = "255"
        for symbol in range(254, -1, -1):
            text = f"({symbol} {text})"

        codes = code_table(parse_tree(text))
        self.assertEqual(len(codes), 256)
        self.assertEqual(codes[255], '1' * 255)
        self.assertEqual(codes[0], '0')

    def test_parse_rejects_long_leaf(self):
        with self.assertRaises(MalformedArtifactError):
            parse_tree("(" + "1" * 5000 + " 2)")

    def test_parse_zero_leaf(self):
        self.assertEqual(code_table(parse_tree("(0 10)")), {0: '0', 10: '1'})

    def test_artifact_layout(self):
        artifact = compress(b"ABAB", "ab.txt")
        self.assertEqual(artifact.to_bytes(), b"ab.txt\r\n(66 65)\r\n4\r\n\xa0")

    def test_read_artifact(self):
        artifact = compress(b"Hello, world!\n" * 10, "hello.txt")
        restored = ArtifactFormat.read_artifact(ArtifactFormat.create_artifact(artifact))
        self.assertEqual(restored, artifact)

    def test_body_may_contain_separator(self):
        artifact = CompressedArtifact(name="x", tree="(1 2)", padding=0, data=b"\r\n\r\n")
        restored = ArtifactFormat.read_artifact(artifact.to_bytes())
        self.assertEqual(restored.data, b"\r\n\r\n")

    def test_read_malformed(self):
        blobs = [
            b"",
            b"name\r\n(1 2)",
            b"name\r\n(1 2)\r\n9\r\n\x00",
            b"name\r\n(1 2)\r\n12\r\n\x00",
            b"name\r\n(1 2\r\n0\r\n\x00",
            b"name\r\n(1 2)\r\n3\r\n",
            b"\xff\xfe\r\n(1 2)\r\n0\r\n\x00",
        ]
        for blob in blobs:
            with self.assertRaises(MalformedArtifactError, msg=blob):
                ArtifactFormat.read_artifact(blob)

    def test_malformed_is_value_error(self):
        with self.assertRaises(ValueError):
            ArtifactFormat.read_artifact(b"garbage")

    def test_padding_validation(self):
        with self.assertRaises(ValueError):
            CompressedArtifact(name="x", tree="(1)", padding=8, data=b"\x00")

    def test_multiline_name(self):
        for name in ["a\r\nb", "a\nb", "a\rb"]:
            with self.assertRaises(InvalidNameError, msg=name):
                CompressedArtifact(name=name, tree="(1)", padding=0, data=b"\x00")

    def test_read_name_with_bare_newline(self):
        with self.assertRaises(MalformedArtifactError):
            ArtifactFormat.read_artifact(b"a\nb\r\n(1 2)\r\n0\r\n\x00")


class TestHuffmanCompressor(unittest.TestCase):
    def setUp(self):
        self.compressor = HuffmanCompressor()

    def test_single_byte_repeated(self):
        artifact = self.compressor.compress(b"A" * 100, "a.txt")

        self.assertEqual(artifact.tree, "(65)")
        self.assertEqual(artifact.padding, 4)
        self.assertEqual(len(artifact.data), 13)
        self.assertEqual(artifact.data, b"\x00" * 13)
        self.assertEqual(artifact.bit_length, 100)

    def test_abab(self):
        artifact = self.compressor.compress(b"ABAB", "ab.txt")

        self.assertEqual(artifact.name, "ab.txt")
        self.assertEqual(artifact.padding, 4)
        self.assertEqual(artifact.data, b"\xa0")

    def test_empty_input(self):
        with self.assertRaises(EmptyInputError) as ctx:
            self.compressor.compress(b"", "empty.txt")
        self.assertEqual(ctx.exception.name, "empty.txt")
        self.assertIsInstance(ctx.exception, CompressionError)

    def test_multiline_name_fails_before_artifact(self):
        with self.assertRaises(InvalidNameError) as ctx:
            self.compressor.compress(b"AB", "x\ny")
        self.assertIsInstance(ctx.exception, CompressionError)

    def test_round_trip(self):
        rng = random.Random(42)
        inputs = SAMPLES + [bytes(rng.getrandbits(8) for _ in range(2000))]

        for data in inputs:
            artifact = self.compressor.compress(data, "sample.bin")
            self.assertEqual(HuffmanCompressor.decode(artifact), data)
            self.assertTrue(HuffmanCompressor.verify(artifact, data))
            self.assertEqual((artifact.bit_length + artifact.padding) % 8, 0)

    def test_round_trip_after_read(self):
        data = b"abracadabra" * 50
        blob = compress(data, "abra.txt").to_bytes()
        self.assertEqual(HuffmanCompressor.decode(ArtifactFormat.read_artifact(blob)), data)

    def test_verify_detects_mismatch(self):
        artifact = compress(b"ABAB", "ab.txt")
        self.assertFalse(HuffmanCompressor.verify(artifact, b"ABBA"))

    def test_decode_single_leaf_tree(self):
        self.assertEqual(decode_bits(build_tree({65: 3}), iter([0, 0, 0]), 3), b"AAA")

    def test_decode_truncated_codeword(self):
        root = parse_tree("((1 2) 3)")
        with self.assertRaises(MalformedArtifactError):
            decode_bits(root, iter([0]), 1)

    def test_compresses_repetitive_text(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        artifact = compress(data, "lorem.txt")
        self.assertLess(len(artifact.to_bytes()), len(data))

    def test_stats(self):
        data = b"ABAB"
        stats = CompressionStats(data, compress(data, "ab.txt"))

        self.assertEqual(stats.original_size, 4)
        self.assertEqual(stats.distinct_symbols, 2)
        self.assertEqual(stats.encoded_bits, 4)
        self.assertEqual(stats.padding, 4)
        self.assertEqual(stats.packed_size, 1)
        self.assertAlmostEqual(stats.bits_per_symbol, 1.0)

    def test_code_mappings(self):
        artifact = compress(b"ABAB", "ab.txt")
        self.assertEqual(HuffmanCompressor.code_mappings(artifact), "66: 0\n65: 1")


class TestArchiver(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archiver = Archiver(verify=True)

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name, content):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(content)
        return path

    def test_output_name(self):
        self.assertEqual(output_name("notes.txt"), "notes.MZIP")
        self.assertEqual(output_name("archive.tar.gz"), "archive.tar.MZIP")
        self.assertEqual(output_name("README"), "README.MZIP")
        self.assertEqual(output_name(".bashrc"), ".bashrc.MZIP")

    def test_compress_file(self):
        path = self._write("test.txt", b"Hello World! " * 100)

        artifact = self.archiver.compress_file(path)
        self.assertEqual(artifact.name, "test.txt")
        self.assertLess(len(artifact.to_bytes()), 1300)

    def test_compress_path_writes_artifact(self):
        data = b"Content of file 1\n" * 50
        path = self._write("file1.txt", data)

        output_path = self.archiver.compress_path(path)

        self.assertEqual(output_path, os.path.join(self.temp_dir, "file1.MZIP"))
        with open(output_path, 'rb') as f:
            artifact = ArtifactFormat.read_artifact(f.read())
        self.assertEqual(artifact.name, "file1.txt")
        self.assertEqual(HuffmanCompressor.decode(artifact), data)

    def test_output_dir(self):
        path = self._write("file2.txt", b"xyz" * 10)
        out_dir = os.path.join(self.temp_dir, "out")

        output_path = self.archiver.compress_path(path, out_dir)
        self.assertEqual(output_path, os.path.join(out_dir, "file2.MZIP"))
        self.assertTrue(os.path.isfile(output_path))

    def test_refuses_to_overwrite_input(self):
        path = self._write("data.MZIP", b"payload")
        with self.assertRaises(CompressionError):
            self.archiver.compress_path(path)

    def test_missing_file_propagates(self):
        with self.assertRaises(OSError):
            self.archiver.compress_file(os.path.join(self.temp_dir, "missing.txt"))

    def test_compress_files_reports_failures(self):
        good = self._write("good.txt", b"good data")
        empty = self._write("empty.txt", b"")
        missing = os.path.join(self.temp_dir, "missing.txt")

        out = io.StringIO()
        with redirect_stdout(out), self.assertLogs('archiver', level='ERROR') as logs:
            written, failed = self.archiver.compress_files([good, empty, missing])

        self.assertEqual(written, [os.path.join(self.temp_dir, "good.MZIP")])
        self.assertEqual(failed, [empty, missing])
        self.assertEqual(len(logs.records), 2)
        self.assertIn("Successfully compressed to:", out.getvalue())
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "empty.MZIP")))

    @unittest.skipIf(os.name == 'nt', "file names cannot contain newlines")
    def test_multiline_name_does_not_stop_batch(self):
        bad = self._write("a\nb.txt", b"payload")
        good = self._write("good.txt", b"good data")

        with redirect_stdout(io.StringIO()), self.assertLogs('archiver', level='ERROR') as logs:
            written, failed = self.archiver.compress_files([bad, good])

        self.assertEqual(failed, [bad])
        self.assertEqual(written, [os.path.join(self.temp_dir, "good.MZIP")])
        self.assertTrue(os.path.isfile(written[0]))
        self.assertIn("single line", logs.output[0])
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "a\nb.MZIP")))


class TestMain(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name, content):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(content)
        return path

    def test_compress_command(self):
        path = self._write("notes.txt", b"some notes\n" * 20)

        with redirect_stdout(io.StringIO()):
            code = main.main(['compress', '--verify', path])

        self.assertEqual(code, 0)
        self.assertTrue(os.path.isfile(os.path.join(self.temp_dir, "notes.MZIP")))

    def test_compress_command_failure(self):
        path = self._write("empty.txt", b"")

        with redirect_stdout(io.StringIO()), self.assertLogs('archiver', level='ERROR'):
            code = main.main(['compress', path])

        self.assertEqual(code, 1)

    @unittest.skipIf(os.name == 'nt', "file names cannot contain newlines")
    def test_compress_command_multiline_name(self):
        bad = self._write("x\ny.txt", b"payload")

        with redirect_stdout(io.StringIO()), self.assertLogs('archiver', level='ERROR'):
            code = main.main(['compress', bad])

        self.assertEqual(code, 1)

    def test_show_codes(self):
        path = self._write("ab.txt", b"ABAB")
        out = io.StringIO()

        with redirect_stdout(out):
            main.main(['compress', '--show-codes', path])

        self.assertIn("66: 0\n65: 1", out.getvalue())

    def test_no_command(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(main.main([]), 0)

    def test_shell(self):
        path = self._write("shell.txt", b"shell input")
        answers = iter(['compress', path, 'q'])
        out = io.StringIO()

        with redirect_stdout(out):
            code = main.run_shell(Archiver(), lambda prompt: next(answers))

        self.assertEqual(code, 0)
        self.assertIn("COMMANDS:", out.getvalue())
        self.assertIn("Successfully compressed to:", out.getvalue())
        self.assertTrue(os.path.isfile(os.path.join(self.temp_dir, "shell.MZIP")))

    def test_shell_ends_on_eof(self):
        def read_line(prompt):
            raise EOFError

        with redirect_stdout(io.StringIO()):
            self.assertEqual(main.run_shell(Archiver(), read_line), 0)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestMergeQueue))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeBuilder))
    suite.addTests(loader.loadTestsFromTestCase(TestCodeAssigner))
    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestArtifactFormat))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanCompressor))
    suite.addTests(loader.loadTestsFromTestCase(TestArchiver))
    suite.addTests(loader.loadTestsFromTestCase(TestMain))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
