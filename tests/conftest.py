"""
Shared fixtures for structsim tests.

Raw trees are built from ``RawTreeNode`` so the normalizer can be tested
without a grammar; pipeline and CLI tests use the real tree-sitter parser.
"""

import os
from dataclasses import dataclass, field
from typing import List

import pytest


@dataclass
class RawTreeNode:
    """Minimal stand-in for a parser node: a type label and children."""
    type: str
    children: List["RawTreeNode"] = field(default_factory=list)


def node(node_type: str, *children: "RawTreeNode") -> RawTreeNode:
    return RawTreeNode(node_type, list(children))


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from user config files and STRUCTSIM_* variables."""
    for key in list(os.environ):
        if key.startswith("STRUCTSIM_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    (tmp_path / "home").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


ORIGINAL_SOURCE = '''
import math

# running total
def calculate_total(items, tax=0.2):
    """Sum the prices."""
    total = 0
    for item in items:
        if item.price > 0:
            total += item.price * (1 + tax)
    return math.floor(total)


class Cart:
    def __init__(self):
        self.items = []
'''

# Same structure: different names, literals and comments.
RENAMED_SOURCE = '''
import os

def get_sum(elements, rate=1.5):
    """Add up the costs, including rate."""
    s = 100
    for e in elements:
        # skip free entries
        if e.cost > 7:
            s += e.cost * (3 + rate)
    return os.floor(s)


class Basket:
    def __init__(self):
        self.things = []
'''

DIFFERENT_SOURCE = '''
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


@pytest.fixture
def sources():
    return {
        "original": ORIGINAL_SOURCE,
        "renamed": RENAMED_SOURCE,
        "different": DIFFERENT_SOURCE,
    }
