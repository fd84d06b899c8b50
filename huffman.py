"""
Реализует построение дерева Хаффмана и назначение кодов.
Частые байты получают более короткие коды.
"""

from collections import Counter, deque
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from errors import EmptyInputError, MalformedArtifactError
from merge_queue import MergeQueue


SINGLE_SYMBOL_CODE = '0'


class HuffmanNode:
    def __init__(self, symbol: Optional[int] = None,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.symbol = symbol
        self.left = left
        self.right = right
        self.depth = 0
        self.code = ''

    @property
    def children(self) -> int:
        return (self.left is not None) + (self.right is not None)

    def is_leaf(self) -> bool:
        return self.children == 0

    def leaves(self) -> List['HuffmanNode']:
        found = []
        queue = deque([self])

        while queue:
            node = queue.popleft()
            if node.is_leaf():
                found.append(node)
                continue
            if node.left is not None:
                queue.append(node.left)
            if node.right is not None:
                queue.append(node.right)

        return found

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode({self.symbol})"
        return f"HuffmanNode(left={self.left!r}, right={self.right!r})"


def signed(symbol: int) -> int:
    return symbol - 256 if symbol > 127 else symbol


def count_symbols(data: bytes) -> Dict[int, int]:
    return dict(Counter(data))


def seed_order(frequencies: Dict[int, int]) -> List[int]:
    # signed byte order: 0x80..0xFF, then 0x00..0x7F
    return sorted((s for s, f in frequencies.items() if f > 0), key=signed)


def build_tree(frequencies: Dict[int, int]) -> HuffmanNode:
    symbols = seed_order(frequencies)
    if not symbols:
        raise EmptyInputError()

    queue: MergeQueue[HuffmanNode] = MergeQueue()
    for symbol in symbols:
        queue.insert(HuffmanNode(symbol=symbol), frequencies[symbol])

    if len(queue) == 1:
        leaf, _ = queue.extract_min()
        return assign_codes(leaf)

    while len(queue) > 1:
        first, first_weight = queue.extract_min()
        second, second_weight = queue.extract_min()

        # first extracted takes the '1' branch
        parent = HuffmanNode(left=second, right=first)
        queue.insert(parent, first_weight + second_weight)

    root, _ = queue.extract_min()
    return assign_codes(root)


def assign_codes(root: HuffmanNode) -> HuffmanNode:
    if root.is_leaf():
        root.depth = 0
        root.code = SINGLE_SYMBOL_CODE
        return root

    root.depth = 0
    root.code = ''
    queue = deque([root])

    while queue:
        node = queue.popleft()

        if node.right is not None:
            node.right.code = node.code + '1'
            node.right.depth = node.depth + 1
            queue.append(node.right)

        if node.left is not None:
            node.left.code = node.code + '0'
            node.left.depth = node.depth + 1
            queue.append(node.left)

    return root


def code_table(root: HuffmanNode) -> Dict[int, str]:
    return {leaf.symbol: leaf.code for leaf in root.leaves()}


def walk_codes(root: HuffmanNode) -> Dict[int, str]:
    """
    Строит таблицу кодов обходом в глубину, не трогая узлы дерева.
    Результат совпадает с code_table после assign_codes.
    """
    if root.is_leaf():
        return {root.symbol: SINGLE_SYMBOL_CODE}

    codes: Dict[int, str] = {}
    stack: List[Tuple[HuffmanNode, str]] = [(root, '')]

    while stack:
        node, code = stack.pop()
        if node.is_leaf():
            codes[node.symbol] = code
            continue
        if node.left is not None:
            stack.append((node.left, code + '0'))
        if node.right is not None:
            stack.append((node.right, code + '1'))

    return codes


def mappings(root: HuffmanNode) -> str:
    return '\n'.join(f"{signed(leaf.symbol)}: {leaf.code}" for leaf in root.leaves())


def weighted_length(frequencies: Dict[int, int], codes: Dict[int, str]) -> int:
    return sum(freq * len(codes[symbol]) for symbol, freq in frequencies.items() if freq > 0)


def decode_bits(root: HuffmanNode, bits: Iterable[int], bit_length: int) -> bytes:
    output = bytearray()

    if root.is_leaf():
        for bit in _take(bits, bit_length):
            if bit != 0:
                raise MalformedArtifactError("Unexpected '1' bit for a single-symbol tree")
            output.append(root.symbol)
        return bytes(output)

    node = root
    consumed = 0
    for bit in _take(bits, bit_length):
        node = node.right if bit else node.left
        consumed += 1
        if node is None:
            raise MalformedArtifactError(f"Bit {consumed - 1} leads outside the code tree")
        if node.is_leaf():
            output.append(node.symbol)
            node = root

    if node is not root:
        raise MalformedArtifactError("Bit stream ends inside a codeword")

    return bytes(output)


def _take(bits: Iterable[int], count: int) -> Iterator[int]:
    for _, bit in zip(range(count), bits):
        yield bit
