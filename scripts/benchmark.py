#!/usr/bin/env python3
"""
Benchmark script for the structural similarity detector.

Checks score quality on four reference pairs, then times bulk
fingerprinting and pairwise scoring on synthetic samples.
"""

import asyncio
import sys
import time
import tracemalloc
from typing import List

import click

from structsim.config import DetectorConfig
from structsim.pipeline import StructuralPipeline
from structsim.similarity.engine import compute_similarity, pair_count


IDENTICAL_A = '''
def calculate_total(items):
    total = 0
    for item in items:
        if item.price > 0:
            total += item.price
    return total
'''

RENAMED_B = '''
def get_sum(elements):
    s = 0
    for e in elements:
        if e.cost > 0:
            s += e.cost
    return s
'''

STRUCTURAL_VARIATION_B = '''
def total_price(products):
    result = 0
    valid = [p for p in products if p.price > 0]
    for p in valid:
        result += p.price
    return result
'''

DIFFERENT_ALGO = '''
def binary_search(arr, target):
    left, right = 0, len(arr) - 1
    while left <= right:
        mid = (left + right) // 2
        if arr[mid] == target:
            return mid
        elif arr[mid] < target:
            left = mid + 1
        else:
            right = mid - 1
    return -1
'''

# (label, code_b, expected_min, expected_max), each compared against IDENTICAL_A
QUALITY_CASES = [
    ("Identical code", IDENTICAL_A, 0.99, 1.0),
    ("Variable renamed", RENAMED_B, 0.90, 1.0),
    ("Structural variation", STRUCTURAL_VARIATION_B, 0.55, 0.95),
    ("Completely different", DIFFERENT_ALGO, 0.0, 0.80),
]


def make_synthetic_code(i: int) -> str:
    """Same skeleton for every ``i``; only names and literals vary."""
    return f'''
def function_{i}(x, y):
    total = {i}
    for j in range(x):
        if j % 2 == 0:
            total += j * y
        else:
            total -= j
    return total
'''


def run_quality_tests(pipeline: StructuralPipeline) -> bool:
    click.echo("\n📐 Similarity quality")
    click.echo("=" * 50)

    passed = 0
    for label, code_b, expected_min, expected_max in QUALITY_CASES:
        result = pipeline.compare(IDENTICAL_A, code_b)
        ok = expected_min <= result.score <= expected_max
        passed += ok
        status = "✅" if ok else "❌"
        click.echo(f"\n  {status} {label}")
        click.echo(f"     score:      {result.score:.4f}")
        click.echo(f"     confidence: {result.confidence}")
        click.echo(f"     flagged:    {result.flagged}")
        click.echo(f"     expected:   {expected_min:.2f} - {expected_max:.2f}")

    click.echo(f"\n  Result: {passed}/{len(QUALITY_CASES)} cases passed")
    return passed == len(QUALITY_CASES)


def run_performance_tests(pipeline: StructuralPipeline, sizes: List[int], limit_ms: float) -> None:
    click.echo("\n⏱  Bulk performance")
    click.echo("=" * 50)

    for count in sizes:
        codes = [make_synthetic_code(i) for i in range(count)]
        tracemalloc.start()

        start = time.perf_counter()
        fingerprints = [pipeline.fingerprint(code) for code in codes]
        vec_ms = (time.perf_counter() - start) * 1000

        start = time.perf_counter()
        for i in range(count):
            for j in range(i + 1, count):
                compute_similarity(fingerprints[i], fingerprints[j])
        sim_ms = (time.perf_counter() - start) * 1000

        start = time.perf_counter()
        report = asyncio.run(pipeline.bulk_analyze(codes))
        bulk_ms = (time.perf_counter() - start) * 1000

        _, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()

        total_ms = vec_ms + sim_ms
        click.echo(f"\n  samples: {count}  |  pairs: {pair_count(count)}")
        click.echo(f"     fingerprint:  {vec_ms:.1f}ms")
        click.echo(f"     similarity:   {sim_ms:.1f}ms")
        click.echo(f"     bulk (async): {bulk_ms:.1f}ms, {len(report.suspicious_pairs)} flagged")
        click.echo(f"     peak memory:  {peak / 1_048_576:.1f}MB")
        if total_ms > limit_ms:
            click.echo(f"  ⚠  {total_ms:.0f}ms exceeds {limit_ms:.0f}ms for {count} samples")
        else:
            click.echo("  ✅ within acceptable limits")


@click.command()
@click.option('--sizes', default='10,25,50', help='Comma separated sample counts')
@click.option('--limit-ms', default=5000.0, help='Warn when a size takes longer than this')
@click.option('--skip-quality', is_flag=True, help='Only run the performance section')
def benchmark(sizes, limit_ms, skip_quality):
    """Run quality checks and bulk timing."""
    click.echo("🏃 Structural Similarity Detector Benchmark")

    counts = [int(s) for s in sizes.split(',') if s.strip()]
    config = DetectorConfig(max_bulk_pairs=max(pair_count(n) for n in counts))
    pipeline = StructuralPipeline(config)

    quality_ok = True
    if not skip_quality:
        quality_ok = run_quality_tests(pipeline)

    run_performance_tests(pipeline, counts, limit_ms)

    if not quality_ok:
        click.echo("\n⚠  Quality check failed; review the language profile drop rules.")
        sys.exit(1)


if __name__ == '__main__':
    benchmark()
