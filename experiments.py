"""
Experiment: text header vs bit header

Runs repeated round trips of the Huffman tree pipeline to compare the two
ways of shipping the tree in front of the compressed payload

Outputs (in --outdir):
  - metrics.csv     (raw row per run per header format)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 64 --exp2_max_kb 256
  python experiments.py --outdir results --exp1_generators uniform256,english_like --no_exp2
"""

from __future__ import annotations

import argparse
import csv
import io
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import matplotlib.pyplot as plt

import huffman as huff
from tree_header import read_tree_header, write_tree_header
from tree_text import read_tree_text, write_tree_text

HEADER_FORMATS = ("text", "binary")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


class MemoryBitWriter:
    # Collects bits MSB first into whole bytes, the last byte is zero padded

    def __init__(self):
        self.out = bytearray()
        self.acc = 0
        self.acc_bits = 0
        self.bit_count = 0

    def write_bit(self, bit: int) -> None:
        self.acc = (self.acc << 1) | (bit & 1)
        self.acc_bits += 1
        self.bit_count += 1
        if self.acc_bits == 8:
            self.out.append(self.acc)
            self.acc = 0
            self.acc_bits = 0

    def write_code(self, code: str) -> None:
        for ch in code:
            self.write_bit(1 if ch == '1' else 0)

    def getvalue(self) -> bytes:
        if self.acc_bits == 0:
            return bytes(self.out)
        return bytes(self.out) + bytes([(self.acc << (8 - self.acc_bits)) & 0xFF])


class MemoryBitReader:
    # Reads back what MemoryBitWriter wrote, EOFError after bit_count bits

    def __init__(self, packed: bytes, bit_count: int | None = None):
        self.packed = packed
        self.total_bits = len(packed) * 8 if bit_count is None else bit_count
        self.bit_index = 0

    def read_bit(self) -> int:
        if self.bit_index >= self.total_bits:
            raise EOFError("no more bits")
        byte = self.packed[self.bit_index // 8]
        bit = (byte >> (7 - self.bit_index % 8)) & 1
        self.bit_index += 1
        return bit


# Synthetic dataset generators

def _sample(rng: random.Random, symbols: List[int], weights: List[float], size: int) -> bytes:
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    weights = [dom_frac] + [(1.0 - dom_frac) / len(others)] * len(others)
    return _sample(rng, [dominant] + others, weights, size)

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return _sample(rng, list(range(alphabet)), weights, size)

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample(rng, [ord(ch) for ch in chars], weights, size)

def gen_single_symbol(size: int, seed: int = 0) -> bytes:
    return bytes([random.Random(seed).randrange(0, 256)]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform16": lambda size, seed: gen_uniform(size, alphabet=16, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not sink
    the whole run
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    header_format: str  # "text" or "binary"
    unique_symbols: int

    build_ms: float
    header_write_ms: float
    header_read_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    header_bytes: int
    payload_bytes: int
    compression_ratio: float
    correctness_ok: int  # 1 or 0


def _ship_header(root: huff.HuffmanNode, header_format: str) -> Tuple[int, float, huff.HuffmanNode, float]:
    # Serialize the tree, parse it back, return (size, write ms, parsed tree, read ms)
    if header_format == "text":
        t0 = now_ns()
        buf = io.StringIO()
        write_tree_text(root, buf)
        text = buf.getvalue()
        t1 = now_ns()
        parsed = read_tree_text(text)
        t2 = now_ns()
        size = len(text.encode("ascii"))
    elif header_format == "binary":
        t0 = now_ns()
        writer = MemoryBitWriter()
        write_tree_header(root, writer)
        packed = writer.getvalue()
        t1 = now_ns()
        parsed = read_tree_header(MemoryBitReader(packed, writer.bit_count))
        t2 = now_ns()
        size = len(packed)
    else:
        raise ValueError("header_format must be 'text' or 'binary'")
    return size, ns_to_ms(t1 - t0), parsed, ns_to_ms(t2 - t1)


def run_one(data: bytes, header_format: str) -> MetricRow:
    if header_format not in HEADER_FORMATS:
        raise ValueError("header_format must be 'text' or 'binary'")
    ft = huff.frequency_table(data)

    t0 = now_ns()
    root = huff.build_huffman_tree(ft)
    code_map = huff.generate_huffman_codes(root)
    t1 = now_ns()
    build_ms = ns_to_ms(t1 - t0)

    header_bytes, header_write_ms, parsed, header_read_ms = _ship_header(root, header_format)

    # encode
    t2 = now_ns()
    writer = MemoryBitWriter()
    writer.write_code(huff.huffman_encode(data, code_map))
    packed = writer.getvalue()
    t3 = now_ns()
    encode_ms = ns_to_ms(t3 - t2)

    # decode with the tree that came back out of the header
    t4 = now_ns()
    decoded = huff.huffman_decode(MemoryBitReader(packed), parsed)
    t5 = now_ns()
    decode_ms = ns_to_ms(t5 - t4)

    total_bytes = header_bytes + len(packed)
    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        header_format=header_format,
        unique_symbols=len(ft),
        build_ms=build_ms,
        header_write_ms=header_write_ms,
        header_read_ms=header_read_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + header_write_ms + header_read_ms + encode_ms + decode_ms,
        header_bytes=header_bytes,
        payload_bytes=len(packed),
        compression_ratio=total_bytes / max(1, len(data)),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = ("compression_ratio", "header_bytes", "header_write_ms", "header_read_ms",
                   "encode_ms", "decode_ms", "total_ms")

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, header_format and
    compute mean/stdev of every metric in SUMMARY_METRICS
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.header_format)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "header_format", "n_runs"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, header_format = key
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "header_format": header_format,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(out)


# Plotting

def _line_chart(x, series: Dict[str, List[float]], title: str, ylabel: str, path: Path,
                xticks: List[str] | None = None, xlabel: str | None = None) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticks is not None:
        plt.xticks(x, xticks, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, header_format: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.header_format == header_format]
        return statistics.mean(vals) if vals else float("nan")

    for field, ylabel, title, name in (
        ("header_bytes", "Header Size (bytes)", "Experiment 1: Header Size by Distribution", "exp1_header_bytes.png"),
        ("compression_ratio", "(Header + Payload) / Original Bytes", "Experiment 1: Compression Ratio by Distribution", "exp1_compression_ratio.png"),
        ("header_read_ms", "Header Parse Time (ms)", "Experiment 1: Header Parse Time by Distribution", "exp1_header_read_time.png"),
    ):
        series = {p: [mean_for(d, p, field) for d in datasets] for p in HEADER_FORMATS}
        _line_chart(x, series, title, ylabel, outdir / name, xticks=datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, header_format: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.header_format == header_format]
            return statistics.mean(vals) if vals else float("nan")

        for field, ylabel, title, name in (
            ("compression_ratio", "(Header + Payload) / Original Bytes", f"Experiment 2: Compression Ratio vs Size ({dist})", f"exp2_compression_ratio_{dist}.png"),
            ("decode_ms", "Decode Time (ms)", f"Experiment 2: Decode Time vs Size ({dist})", f"exp2_decode_time_{dist}.png"),
        ):
            series = {p: [mean_size(s, p, field) for s in sizes] for p in HEADER_FORMATS}
            _line_chart(sizes, series, title, ylabel, outdir / name, xlabel="File Size (bytes)")


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Compare text and bit tree headers")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--no_plots", action="store_true", help="Only write the CSV files")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=64, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=1, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_kb", type=int, default=256, help="Experiment 2 max size in KB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,english_like",
                    help="Comma-separated dataset generator names for experiment 2")

    args = ap.parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    def run_all(exp_name: str, gen_name: str, size_b: int, seed_base: int) -> None:
        for run_id in range(1, args.runs + 1):
            dataset_name, data = generate_dataset(gen_name, size_b, seed_base + run_id)
            for header_format in HEADER_FORMATS:
                row = run_one(data, header_format)
                row.exp_name = exp_name
                row.dataset_name = dataset_name
                row.run_id = run_id
                rows.append(row)

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            run_all("exp1_distribution", gen_name, fixed_size, args.seed)

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        sizes: List[int] = []
        s = max(1, args.exp2_min_kb) * 1024
        while s <= max(1, args.exp2_max_kb) * 1024:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                run_all("exp2_size_scaling", gen_name, size_b, args.seed + 10_000 + size_b)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
