from typing import Set

from huffman import (HEADER_END, MAX_SYMBOL, SYMBOL_BITS, Branch, HuffmanNode, Leaf,
                     MalformedHeaderError)


# pre : 0 <= n <= MAX_SYMBOL
# post: writes n as SYMBOL_BITS bits, least significant bit first
def write9(sink, n: int) -> None:
    if not 0 <= n <= MAX_SYMBOL:
        raise ValueError(f"{n} does not fit in {SYMBOL_BITS} bits")
    for _ in range(SYMBOL_BITS):
        sink.write_bit(n % 2)
        n //= 2

def _header_bit(source) -> int:
    try:
        bit = source.read_bit()
    except EOFError as exc:
        raise MalformedHeaderError("bit stream ended inside the tree header") from exc
    if bit not in (0, 1):
        raise MalformedHeaderError("bit stream ended inside the tree header")
    return bit

def read9(source) -> int:
    n = 0
    for i in range(SYMBOL_BITS):
        n |= _header_bit(source) << i
    return n


def write_tree_header(root: HuffmanNode, sink) -> None:
    """
    Write the tree as a preorder bit sequence

    A branch is a single 0 bit. A leaf is a 1 bit followed by its symbol id
    (see write9). HEADER_END follows the last node so a payload can share the
    same bit stream.
    """
    def write_subtree(node):
        if node.is_leaf():
            sink.write_bit(1)
            write9(sink, node.symbol)
        else:
            sink.write_bit(0)
            write_subtree(node.left)
            write_subtree(node.right)

    write_subtree(root)
    write9(sink, HEADER_END)

def read_tree_header(source) -> HuffmanNode:
    seen: Set[int] = set()

    def read_subtree(depth):
        if _header_bit(source) == 1:
            symbol = read9(source)
            if symbol in seen:
                raise MalformedHeaderError(f"symbol {symbol} appears twice in the header")
            seen.add(symbol)
            return Leaf(symbol)
        # no tree of distinct 9-bit symbols is deeper than this
        if depth >= MAX_SYMBOL:
            raise MalformedHeaderError("tree header nests too deeply")
        left = read_subtree(depth + 1)
        right = read_subtree(depth + 1)
        return Branch(left, right)

    root = read_subtree(0)
    end = read9(source)
    if end != HEADER_END:
        raise MalformedHeaderError(f"expected end-of-header marker {HEADER_END}, got {end}")
    return root
