"""
Line-oriented tree format

Each leaf is written as two lines, its symbol id in decimal and then its path
from the root ('0' for left, '1' for right):

    97
    0
    256
    10
    98
    11

Branches are not written at all, the reader rebuilds them from the paths.
"""

from typing import Dict, Iterable, List, Set, Tuple, Union

from huffman import MAX_SYMBOL, Branch, HuffmanNode, Leaf, MalformedHeaderError


def write_tree_text(root: HuffmanNode, out) -> None: # out: anything with write(str)
    if root.is_leaf():
        raise ValueError("a single-leaf tree has no path to write")

    def write_subtree(node, code):
        if node.is_leaf():
            out.write(f"{node.symbol}\n{code}\n")
        else:
            write_subtree(node.left, code + '0')
            write_subtree(node.right, code + '1')

    write_subtree(root, '')


def _pairs(source: Union[str, Iterable[str]]) -> List[Tuple[int, str]]:
    if isinstance(source, str):
        source = source.splitlines()
    lines = [line.rstrip('\r\n') for line in source]

    # Trailing blank lines are ignored, anything else has to pair up
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        raise MalformedHeaderError("tree text is empty")
    if len(lines) % 2:
        raise MalformedHeaderError(f"symbol {lines[-1]!r} has no path line")

    pairs = []
    for lineno in range(0, len(lines), 2):
        symbol_text, path = lines[lineno].strip(), lines[lineno + 1].strip()
        if not (symbol_text.isascii() and symbol_text.isdigit()):
            raise MalformedHeaderError(f"line {lineno + 1}: {symbol_text!r} is not a symbol id")
        symbol = int(symbol_text)
        if symbol > MAX_SYMBOL:
            raise MalformedHeaderError(f"line {lineno + 1}: symbol {symbol} is out of range")
        if not path or set(path) - {'0', '1'}:
            raise MalformedHeaderError(f"line {lineno + 2}: {path!r} is not a bit path")
        # no tree of distinct 9-bit symbols has a longer path
        if len(path) > MAX_SYMBOL:
            raise MalformedHeaderError(f"line {lineno + 2}: path of {len(path)} bits is too long")
        pairs.append((symbol, path))
    return pairs


def read_tree_text(source: Union[str, Iterable[str]]) -> HuffmanNode:
    """
    Rebuild a tree from its text form

    source is a whole string or any iterable of lines, such as an open text
    file. Every path is walked from the root, branches along the way are
    created as needed and the last step becomes the leaf. The leaf gets its
    symbol straight away, including the one-step paths of a two-symbol tree.
    Raises MalformedHeaderError if the pairs do not spell out exactly one
    complete tree.
    """
    leaves: Dict[str, int] = {}
    branches: Set[str] = {''}
    seen: Set[int] = set()

    for symbol, path in _pairs(source):
        if symbol in seen:
            raise MalformedHeaderError(f"symbol {symbol} appears twice")
        seen.add(symbol)
        for depth in range(len(path)):
            if path[:depth] in leaves:
                raise MalformedHeaderError(f"path {path} runs through the leaf at {path[:depth]}")
            branches.add(path[:depth])
        if path in leaves or path in branches:
            raise MalformedHeaderError(f"path {path} is already taken")
        leaves[path] = symbol

    def build(path):
        if path in leaves:
            return Leaf(leaves[path])
        if path in branches:
            return Branch(build(path + '0'), build(path + '1'))
        raise MalformedHeaderError(f"branch at {path[:-1] or 'root'} is missing a child")

    return build('')
