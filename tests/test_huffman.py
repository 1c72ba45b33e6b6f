import random

import pytest

from huffman import (EOF_SYMBOL, Branch, HuffmanError, Leaf, MalformedHeaderError, TruncatedStreamError,
                     build_huffman_tree, frequency_table, generate_huffman_codes, huffman_decode,
                     huffman_encode, iter_decode)


def _random_tables():
    rng = random.Random(456)
    tables = []
    for alphabet in (2, 3, 17, 256):
        tables.append({s: rng.randrange(1, 1000) for s in rng.sample(range(256), alphabet)})
    tables.append({s: 1 for s in range(256)})
    tables.append({s: 2 ** s for s in range(20)})
    return tables


def test_frequency_table_counts_bytes():
    assert frequency_table(b"abracadabra") == {97: 5, 98: 2, 114: 2, 99: 1, 100: 1}
    assert frequency_table(b"") == {}


def test_build_abcd_tree_shape(abcd_table):
    # equal weights pop in insertion order: by symbol, then eof, then merges
    root = build_huffman_tree(abcd_table)
    assert root == Branch(
        Leaf(ord('a')),
        Branch(Branch(Leaf(ord('c')), Leaf(ord('d'))), Branch(Leaf(EOF_SYMBOL), Leaf(ord('b')))),
    )


def test_build_is_deterministic(abcd_table):
    assert build_huffman_tree(abcd_table) == build_huffman_tree(dict(reversed(list(abcd_table.items()))))


def test_build_accepts_count_list(abcd_table):
    counts = [0] * 256
    for symbol, count in abcd_table.items():
        counts[symbol] = count
    assert build_huffman_tree(counts) == build_huffman_tree(abcd_table)


def test_build_skips_zero_counts():
    assert build_huffman_tree({65: 4, 66: 0}) == build_huffman_tree({65: 4})


def test_empty_table_is_a_single_eof_leaf():
    root = build_huffman_tree({})
    assert root == Leaf(EOF_SYMBOL)
    assert generate_huffman_codes(root) == {EOF_SYMBOL: ''}


def test_single_symbol_table_still_branches():
    root = build_huffman_tree({ord('a'): 7})
    assert root == Branch(Leaf(EOF_SYMBOL), Leaf(ord('a')))
    assert generate_huffman_codes(root) == {EOF_SYMBOL: '0', ord('a'): '1'}


def test_custom_eof_symbol():
    root = build_huffman_tree({1: 3}, eof=0)
    assert generate_huffman_codes(root) == {0: '0', 1: '1'}


@pytest.mark.parametrize("table", [{512: 1}, {-1: 1}, {EOF_SYMBOL: 3}])
def test_build_rejects_unusable_symbols(table):
    with pytest.raises(ValueError):
        build_huffman_tree(table)


@pytest.mark.parametrize("eof", [-1, 512, 600])
def test_build_rejects_unusable_eof(eof):
    with pytest.raises(ValueError):
        build_huffman_tree({1: 2}, eof=eof)


def test_build_accepts_eof_at_the_top_of_the_range():
    assert generate_huffman_codes(build_huffman_tree({1: 2}, eof=511)) == {511: '0', 1: '1'}


def test_errors_share_a_base_class():
    assert issubclass(MalformedHeaderError, HuffmanError)
    assert issubclass(TruncatedStreamError, HuffmanError)


def test_weights_are_not_kept_on_nodes():
    root = build_huffman_tree({1: 10, 2: 20})
    assert not hasattr(root, "frequency")
    assert not hasattr(root.left, "frequency")


def test_nodes_are_immutable():
    leaf = Leaf(3)
    with pytest.raises(AttributeError):
        leaf.symbol = 4


def test_abcd_codes(abcd_table):
    codes = generate_huffman_codes(build_huffman_tree(abcd_table))
    assert codes == {
        ord('a'): '0',
        ord('c'): '100',
        ord('d'): '101',
        EOF_SYMBOL: '110',
        ord('b'): '111',
    }


@pytest.mark.parametrize("table", _random_tables())
def test_codes_are_prefix_free(table):
    codes = list(generate_huffman_codes(build_huffman_tree(table)).values())
    assert len(codes) == len(table) + 1
    for i, a in enumerate(codes):
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)


def test_more_frequent_symbols_get_shorter_codes():
    codes = generate_huffman_codes(build_huffman_tree({s: 2 ** s for s in range(10)}))
    lengths = [len(codes[s]) for s in range(10)]
    assert lengths == sorted(lengths, reverse=True)


def test_weighted_path_length_matches_known_optimum():
    # merges: 1+5, 6+9, 12+13, 15+16, 25+31, 45+56
    table = {0: 45, 1: 13, 2: 12, 3: 16, 4: 9, 5: 5}
    codes = generate_huffman_codes(build_huffman_tree(table))
    cost = sum(len(codes[s]) * w for s, w in table.items()) + len(codes[EOF_SYMBOL])
    assert cost == 6 + 15 + 25 + 31 + 56 + 101


def test_encode_appends_eof_code(abcd_table):
    codes = generate_huffman_codes(build_huffman_tree(abcd_table))
    assert huffman_encode(b"aab", codes) == "0" + "0" + "111" + "110"


def test_encode_unknown_symbol(abcd_table):
    codes = generate_huffman_codes(build_huffman_tree(abcd_table))
    with pytest.raises(ValueError):
        huffman_encode(b"z", codes)


def test_decode_aab(abcd_table, bit_source):
    root = build_huffman_tree(abcd_table)
    source = bit_source("00111110")
    assert huffman_decode(source, root) == b"aab"
    assert source.remaining == 0


def test_decode_stops_at_eof_and_leaves_the_rest(abcd_table, bit_source):
    root = build_huffman_tree(abcd_table)
    source = bit_source("0110" + "1111")
    assert huffman_decode(source, root) == b"a"
    assert source.remaining == 4


def test_decode_single_symbol_table(bit_source):
    root = build_huffman_tree({ord('a'): 7})
    assert huffman_decode(bit_source("1111110"), root) == b"a" * 6


def test_decode_empty_tree_reads_nothing(bit_source):
    source = bit_source("")
    assert huffman_decode(source, build_huffman_tree({})) == b""


@pytest.mark.parametrize("table", _random_tables())
def test_encode_then_decode(table, bit_source):
    rng = random.Random(len(table))
    symbols = list(table)
    data = bytes(rng.choices(symbols, weights=[table[s] for s in symbols], k=500))
    root = build_huffman_tree(table)
    bits = huffman_encode(data, generate_huffman_codes(root))
    assert huffman_decode(bit_source(bits), root) == data


def test_decode_real_text(bit_source):
    data = b"she sells sea shells by the sea shore"
    root = build_huffman_tree(frequency_table(data))
    bits = huffman_encode(data, generate_huffman_codes(root))
    assert huffman_decode(bit_source(bits), root) == data


def test_truncated_stream(abcd_table, bit_source):
    root = build_huffman_tree(abcd_table)
    with pytest.raises(TruncatedStreamError) as excinfo:
        huffman_decode(bit_source("001"), root)
    assert isinstance(excinfo.value.__cause__, EOFError)


def test_truncated_stream_with_end_marker(abcd_table, bit_source):
    root = build_huffman_tree(abcd_table)
    with pytest.raises(TruncatedStreamError):
        huffman_decode(bit_source("00", end=-1), root)


def test_truncated_stream_is_an_eof_error(abcd_table, bit_source):
    with pytest.raises(EOFError):
        huffman_decode(bit_source(""), build_huffman_tree(abcd_table))


def test_iter_decode_yields_symbols_before_truncation(abcd_table, bit_source):
    decoded = iter_decode(bit_source("00"), build_huffman_tree(abcd_table))
    assert next(decoded) == ord('a')
    assert next(decoded) == ord('a')
    with pytest.raises(TruncatedStreamError):
        next(decoded)


def test_iter_decode_allows_wide_symbols(bit_source):
    root = Branch(Leaf(300), Leaf(EOF_SYMBOL))
    assert list(iter_decode(bit_source("001"), root)) == [300, 300]


def test_decode_rejects_non_byte_symbols(bit_source):
    root = Branch(Leaf(300), Leaf(EOF_SYMBOL))
    with pytest.raises(MalformedHeaderError):
        huffman_decode(bit_source("01"), root)


@pytest.mark.parametrize("root", [Leaf(65), Branch(Leaf(1), Leaf(2))])
def test_decode_requires_eof_leaf(root, bit_source):
    with pytest.raises(MalformedHeaderError):
        huffman_decode(bit_source("0101"), root)
