"""
Reporting: per-address trace output, end-of-run statistics and the
FIFO vs LRU comparison (table and chart).
"""

import dataclasses
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
from matplotlib.figure import Figure

from .addresses import read_addresses
from .backing_store import BackingStore
from .config import MemoryConfig, Policy
from .virtualsim import Statistics, TranslationPipeline, TranslationResult


def format_rate(rate: Optional[float]) -> str:
    return "N/A" if rate is None else f"{rate:.3f}"


class TranslationSink:
    """Receives translation results as the pipeline produces them"""

    def record(self, result: TranslationResult):
        pass

    def skip(self, token, error: Exception):
        pass

    def finish(self, stats: Statistics):
        pass


class ConsoleSink(TranslationSink):
    """Prints the classic virtmem trace and summary"""

    def __init__(self, out=None, err=None):
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def record(self, result: TranslationResult):
        print(f"Virtual address: {result.virtual_address} "
              f"Physical address: {result.physical_address} "
              f"Value: {result.value}", file=self.out)

    def skip(self, token, error: Exception):
        print(f"Skipping {token!r}: {error}", file=self.err)

    def finish(self, stats: Statistics):
        print(f"Number of Translated Addresses = {stats.total_addresses}", file=self.out)
        print(f"Page Faults = {stats.page_faults}", file=self.out)
        print(f"Page Fault Rate = {format_rate(stats.page_fault_rate)}", file=self.out)
        print(f"TLB Hits = {stats.tlb_hits}", file=self.out)
        print(f"TLB Hit Rate = {format_rate(stats.tlb_hit_rate)}", file=self.out)


class CollectingSink(TranslationSink):
    """Keeps everything in memory"""

    def __init__(self):
        self.results: List[TranslationResult] = []
        self.skipped: List[Tuple[object, Exception]] = []
        self.stats: Optional[Statistics] = None

    def record(self, result: TranslationResult):
        self.results.append(result)

    def skip(self, token, error: Exception):
        self.skipped.append((token, error))

    def finish(self, stats: Statistics):
        self.stats = stats


def compare_policies(config: MemoryConfig, backing_store: BackingStore,
                     addresses_path) -> Dict[str, Statistics]:
    """Run every replacement policy over the same address file"""
    results = {}
    for policy in Policy:
        pipeline = TranslationPipeline(dataclasses.replace(config, policy=policy), backing_store)
        sink = CollectingSink()
        # Address sources are single-pass, so each policy re-reads the file
        results[policy.name] = pipeline.run(read_addresses(addresses_path), sink)
    return results


def format_comparison(results: Dict[str, Statistics]) -> str:
    lines = [
        f"{'Algorithm':<10} {'Page Faults':<12} {'Fault Rate':<12} {'TLB Hits':<10} {'TLB Hit Rate':<12}",
        "-" * 60,
    ]
    for name, stats in results.items():
        lines.append(f"{name:<10} {stats.page_faults:<12} "
                     f"{format_rate(stats.page_fault_rate):<12} "
                     f"{stats.tlb_hits:<10} {format_rate(stats.tlb_hit_rate):<12}")
    return "\n".join(lines)


def plot_comparison(results: Dict[str, Statistics], path):
    """Save a grouped bar chart of fault and TLB hit rates per policy"""
    names = list(results)
    fault_rates = [results[n].page_fault_rate or 0.0 for n in names]
    hit_rates = [results[n].tlb_hit_rate or 0.0 for n in names]

    x = np.arange(len(names))
    width = 0.35

    # A bare Figure renders through Agg without touching the pyplot backend
    fig = Figure(figsize=(6, 4))
    ax = fig.add_subplot()
    ax.bar(x - width / 2, fault_rates, width, label="Page fault rate")
    ax.bar(x + width / 2, hit_rates, width, label="TLB hit rate")
    ax.set_xticks(x)
    ax.set_xticklabels(names)
    ax.set_ylim(0, 1)
    ax.set_ylabel("Rate")
    ax.set_title("Replacement policy comparison")
    ax.legend()
    fig.tight_layout()
    fig.savefig(path)
