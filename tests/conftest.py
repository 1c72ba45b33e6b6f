import matplotlib
matplotlib.use("Agg")

import pytest


class ListBitSource:
    # read_bit over a fixed list of bits; past the end either raise EOFError or return `end`

    def __init__(self, bits, end=None):
        self.bits = [int(b) for b in bits]
        self.pos = 0
        self.end = end

    def read_bit(self):
        if self.pos >= len(self.bits):
            if self.end is not None:
                return self.end
            raise EOFError("bit source exhausted")
        bit = self.bits[self.pos]
        self.pos += 1
        return bit

    @property
    def remaining(self):
        return len(self.bits) - self.pos


class ListBitSink:

    def __init__(self):
        self.bits = []

    def write_bit(self, bit):
        self.bits.append(bit)

    def as_string(self):
        return ''.join(str(b) for b in self.bits)


@pytest.fixture
def bit_source():
    return ListBitSource


@pytest.fixture
def bit_sink():
    return ListBitSink()


@pytest.fixture
def abcd_table():
    return {ord('a'): 5, ord('b'): 2, ord('c'): 1, ord('d'): 1}
