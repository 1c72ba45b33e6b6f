import heapq
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterator, Union

EOF_SYMBOL = 256 # pseudo-eof, one past the last byte value
HEADER_END = 257 # written after a bit header, never a tree node
SYMBOL_BITS = 9
MAX_SYMBOL = (1 << SYMBOL_BITS) - 1


class HuffmanError(Exception):
    """Base class for tree and bit stream errors."""

class MalformedHeaderError(HuffmanError, ValueError):
    """A text or bit header does not describe a valid tree."""

class TruncatedStreamError(HuffmanError, EOFError):
    """The bit source ran out before the end-of-stream leaf was reached."""


@dataclass(frozen=True)
class Leaf: # Leaf of the Huffman tree
    symbol: int # byte value, or EOF_SYMBOL

    def is_leaf(self) -> bool:
        return True

@dataclass(frozen=True)
class Branch: # Internal node, owns both children
    left: "HuffmanNode"
    right: "HuffmanNode"

    def is_leaf(self) -> bool:
        return False

HuffmanNode = Union[Leaf, Branch]


def frequency_table(data: bytes) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft

def _positive_counts(frequencies):
    items = frequencies.items() if isinstance(frequencies, Mapping) else enumerate(frequencies)
    for symbol, count in sorted(items):
        if count > 0:
            yield symbol, count

def build_huffman_tree(frequencies, eof: int = EOF_SYMBOL) -> HuffmanNode:
    """
    Build the tree for a frequency table

    frequencies is either a dict of symbol -> count or a list where
    frequencies[i] is the count of symbol i. Symbols with a zero count get no
    leaf. One leaf for eof (weight 1) is always added, so an empty table
    gives a tree that is just the eof leaf.

    Heap entries are (weight, order, node). order is the insertion counter, so
    equal weights pop in insertion order: leaves by ascending symbol, then eof,
    then merged branches as they are created.
    """
    if not 0 <= eof <= MAX_SYMBOL:
        raise ValueError(f"end-of-stream symbol {eof} does not fit in {SYMBOL_BITS} bits")
    priority_queue = []
    order = 0
    for symbol, count in _positive_counts(frequencies):
        if not 0 <= symbol <= MAX_SYMBOL:
            raise ValueError(f"symbol {symbol} does not fit in {SYMBOL_BITS} bits")
        if symbol == eof:
            raise ValueError(f"symbol {symbol} is reserved for end of stream")
        priority_queue.append((count, order, Leaf(symbol)))
        order += 1
    priority_queue.append((1, order, Leaf(eof)))
    order += 1
    heapq.heapify(priority_queue)

    # Merge the two lightest nodes until only the root is left
    while len(priority_queue) > 1:
        left_weight, _, left = heapq.heappop(priority_queue)
        right_weight, _, right = heapq.heappop(priority_queue)
        heapq.heappush(priority_queue, (left_weight + right_weight, order, Branch(left, right)))
        order += 1

    return priority_queue[0][2] # root of the tree

def generate_huffman_codes(root: HuffmanNode) -> Dict[int, str]: # root: root of the Huffman tree
    codes = {}
    def generate_codes_helper(node, current_code): # left adds '0', right adds '1'
        if node.is_leaf():
            codes[node.symbol] = current_code
            return

        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return codes # a lone root leaf gets the empty code

def huffman_encode(data, code_map: Dict[int, str], eof: int = EOF_SYMBOL) -> str: # data: symbols to encode, followed by the eof code
    try:
        return ''.join(code_map[symbol] for symbol in data) + code_map[eof]
    except KeyError as exc:
        raise ValueError(f"symbol {exc.args[0]} has no code in this tree") from None


def _read_bit(source) -> int:
    try:
        bit = source.read_bit()
    except EOFError as exc:
        raise TruncatedStreamError("bit stream ended before the end-of-stream symbol") from exc
    if bit not in (0, 1): # e.g. -1 from readers that signal end of input
        raise TruncatedStreamError("bit stream ended before the end-of-stream symbol")
    return bit

def iter_decode(source, root: HuffmanNode, eof: int = EOF_SYMBOL) -> Iterator[int]:
    """
    Walk the tree one bit at a time and yield each symbol reached

    source only needs read_bit(). Stops, without yielding it, at the eof leaf.
    """
    if eof not in generate_huffman_codes(root):
        raise MalformedHeaderError(f"tree has no leaf for end-of-stream symbol {eof}")

    node = root
    while not (node.is_leaf() and node.symbol == eof):
        if node.is_leaf(): # reached a leaf
            yield node.symbol
            node = root # reset to the root for the next symbol
        elif _read_bit(source) == 0:
            node = node.left
        else:
            node = node.right

def huffman_decode(source, root: HuffmanNode, eof: int = EOF_SYMBOL) -> bytes:
    decoded_bytes = bytearray()
    for symbol in iter_decode(source, root, eof):
        if symbol > 0xFF:
            raise MalformedHeaderError(f"decoded symbol {symbol} is not a byte value")
        decoded_bytes.append(symbol)
    return bytes(decoded_bytes)
