"""
Определяет структуру файла MZIP и методы чтения/записи.

Заголовок текстовый: имя исходного файла, скобочная запись дерева
Хаффмана и число битов выравнивания, каждое в своей строке (CRLF).
Сразу за заголовком идут упакованные байты кода.
"""

from dataclasses import dataclass
from typing import List, Optional

from errors import InvalidNameError, MalformedArtifactError
from huffman import HuffmanNode, assign_codes


ARTIFACT_EXTENSION = 'MZIP'
HEADER_SEPARATOR = b'\r\n'
HEADER_ENCODING = 'utf-8'
DIGITS = '0123456789'
# a tree over 256 leaves is at most 255 levels deep
MAX_TREE_DEPTH = 256
MAX_LEAF_DIGITS = 3


@dataclass(frozen=True)
class CompressedArtifact:
    name: str
    tree: str
    padding: int
    data: bytes

    def __post_init__(self):
        if '\r' in self.name or '\n' in self.name:
            raise InvalidNameError(self.name)
        if not 0 <= self.padding <= 7:
            raise ValueError(f"Padding must be in 0..7, got {self.padding}")

    @property
    def bit_length(self) -> int:
        return len(self.data) * 8 - self.padding

    def header(self) -> bytes:
        return ArtifactFormat.create_header(self.name, self.tree, self.padding)

    def to_bytes(self) -> bytes:
        return self.header() + self.data


def leaf_token(symbol: int) -> str:
    return str(symbol + 256 if symbol < 0 else symbol)


def serialize_tree(node: HuffmanNode) -> str:
    if node.is_leaf():
        # single-symbol tree: wrap so the root is always bracketed
        return f"({leaf_token(node.symbol)})"
    return _render(node)


def _render(node: HuffmanNode) -> str:
    if node.is_leaf():
        return leaf_token(node.symbol)

    if node.children == 2:
        return f"({_render(node.left)} {_render(node.right)})"

    child = node.left if node.left is not None else node.right
    return f"({_render(child)})"


class TreeParser:
    """
    Рекурсивный спуск по грамматике:

        tree ::= leaf | "(" tree " " tree ")" | "(" tree ")"

    Лист и внутренний узел различаются только скобками, значения
    листьев никогда не сравниваются с заглушкой внутреннего узла.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.depth = 0

    def parse(self) -> HuffmanNode:
        if not self.text:
            raise MalformedArtifactError("Empty tree text")

        root = self._tree()
        if self.pos != len(self.text):
            raise self._error("trailing characters after tree")
        return root

    def _tree(self) -> HuffmanNode:
        if self._peek() == '(':
            return self._node()
        return self._leaf()

    def _node(self) -> HuffmanNode:
        self._expect('(')
        self.depth += 1
        if self.depth > MAX_TREE_DEPTH:
            raise self._error(f"tree nested deeper than {MAX_TREE_DEPTH} levels")

        first = self._tree()

        if self._peek() == ')':
            self.pos += 1
            self.depth -= 1
            return HuffmanNode(left=first)

        self._expect(' ')
        second = self._tree()
        self._expect(')')
        self.depth -= 1
        return HuffmanNode(left=first, right=second)

    def _leaf(self) -> HuffmanNode:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in DIGITS:
            if self.pos - start == MAX_LEAF_DIGITS:
                raise self._error(f"leaf value longer than {MAX_LEAF_DIGITS} digits")
            self.pos += 1

        token = self.text[start:self.pos]
        if not token:
            raise self._error("expected a leaf value")
        if len(token) > 1 and token[0] == '0':
            raise self._error(f"leaf value {token} has a leading zero")

        value = int(token)
        if value > 255:
            raise self._error(f"leaf value {value} is outside 0..255")
        return HuffmanNode(symbol=value)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return None

    def _expect(self, char: str):
        if self._peek() != char:
            raise self._error(f"expected {char!r}")
        self.pos += 1

    def _error(self, message: str) -> MalformedArtifactError:
        found = self._peek()
        where = repr(found) if found is not None else 'end of input'
        return MalformedArtifactError(f"Invalid tree at position {self.pos}: {message}, found {where}")


def parse_tree(text: str) -> HuffmanNode:
    return assign_codes(TreeParser(text).parse())


class ArtifactFormat:
    @staticmethod
    def create_header(name: str, tree: str, padding: int) -> bytes:
        if '\r' in name or '\n' in name:
            raise InvalidNameError(name)
        lines = [name, tree, str(padding)]
        separator = HEADER_SEPARATOR.decode(HEADER_ENCODING)
        return ''.join(line + separator for line in lines).encode(HEADER_ENCODING)

    @staticmethod
    def create_artifact(artifact: CompressedArtifact) -> bytes:
        return artifact.to_bytes()

    @staticmethod
    def read_artifact(data: bytes) -> CompressedArtifact:
        pos = 0
        lines: List[str] = []

        for field in ('name', 'tree', 'padding'):
            end = data.find(HEADER_SEPARATOR, pos)
            if end < 0:
                raise MalformedArtifactError(f"Corrupted header: cannot read {field}")

            try:
                lines.append(data[pos:end].decode(HEADER_ENCODING))
            except UnicodeDecodeError as e:
                raise MalformedArtifactError(f"Corrupted header: {field} is not {HEADER_ENCODING}") from e
            pos = end + len(HEADER_SEPARATOR)

        name, tree, padding_text = lines

        if '\r' in name or '\n' in name:
            raise MalformedArtifactError(f"Corrupted header: name {name!r} spans several lines")

        if len(padding_text) != 1 or padding_text not in DIGITS or not 0 <= int(padding_text) <= 7:
            raise MalformedArtifactError(f"Invalid padding: {padding_text!r}")
        padding = int(padding_text)

        parse_tree(tree)

        body = data[pos:]
        if padding and not body:
            raise MalformedArtifactError("Padding given for an empty bit stream")

        return CompressedArtifact(name=name, tree=tree, padding=padding, data=body)
