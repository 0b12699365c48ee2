#!/usr/bin/env python
# -*- coding: utf-8 -*-
import pytest
import numpy as np
from treedigest import Centroid, CentroidTree
from treedigest.centroid_tree import _Node


@pytest.fixture
def rng():
    return np.random.Generator(np.random.PCG64(12345))


def build(means, weights=None):
    tree = CentroidTree()
    weights = weights if weights is not None else [1] * len(means)
    for i, (mean, weight) in enumerate(zip(means, weights)):
        tree.insert(Centroid(float(mean), int(weight), i + 1))
    return tree


def test_empty_tree():
    tree = CentroidTree()
    assert len(tree) == 0
    assert tree.total_weight() == 0
    assert tree.first() is None and tree.last() is None
    assert list(tree) == []
    assert tree.find_nearest_by_mean(1.) == (None, None)
    assert tree.find_by_cumulative_weight(0) == (None, 0)
    tree.validate()


def test_insert_keeps_mean_order_and_balance(rng):
    means = rng.normal(size=2_000)
    weights = rng.integers(low=1, high=10, size=2_000)
    tree = build(means, weights)
    tree.validate()
    assert len(tree) == 2_000
    assert tree.total_weight() == weights.sum()
    assert [c.mean for c in tree] == sorted(means.tolist())
    # restartable
    assert [c.id for c in tree] == [c.id for c in tree]
    assert _depth(tree.root, 0) <= 2 * np.log2(2_000 + 1)


def _depth(node, level):
    if node is None:
        return level
    return max(_depth(node.left, level + 1), _depth(node.right, level + 1))


def test_sorted_insertion_stays_balanced():
    tree = build(range(1_000))
    tree.validate()
    assert _depth(tree.root, 0) <= 2 * np.log2(1_000 + 1)


def test_equal_means_are_ordered_by_id():
    tree = build([1., 1., 1., 0., 2.])
    tree.validate()
    assert [(c.mean, c.id) for c in tree] == [(0., 4), (1., 1), (1., 2), (1., 3), (2., 5)]


def test_delete(rng):
    means = rng.uniform(size=500)
    tree = build(means)
    remaining = sorted(means.tolist())
    for _ in range(400):
        nodes = list(tree.nodes())
        victim = nodes[rng.integers(len(nodes))]
        remaining.remove(victim.mean)
        tree.delete(victim)
        tree.validate()
        assert [c.mean for c in tree] == remaining
        assert tree.total_weight() == len(remaining)
    while len(tree):
        tree.delete(tree.first())
        tree.validate()
    assert tree.root is None


def test_interleaved_insert_and_delete(rng):
    tree = CentroidTree()
    next_id = 1
    for step in range(3_000):
        if len(tree) and rng.uniform() < 0.4:
            nodes = list(tree.nodes())
            tree.delete(nodes[rng.integers(len(nodes))])
        else:
            tree.insert(Centroid(float(rng.integers(0, 50)), int(rng.integers(1, 5)), next_id))
            next_id += 1
        if step % 100 == 0:
            tree.validate()
    tree.validate()


def test_find_nearest_by_mean():
    tree = build([1., 3., 5.])
    lower, upper = tree.find_nearest_by_mean(3.)
    assert lower is upper and lower.mean == 3.
    lower, upper = tree.find_nearest_by_mean(4.)
    assert (lower.mean, upper.mean) == (3., 5.)
    lower, upper = tree.find_nearest_by_mean(0.)
    assert lower is None and upper.mean == 1.
    lower, upper = tree.find_nearest_by_mean(6.)
    assert lower.mean == 5. and upper is None


def test_cumulative_weight_lookups(rng):
    means = rng.normal(size=300)
    weights = rng.integers(low=1, high=7, size=300)
    tree = build(means, weights)
    order = np.argsort(means)
    before = np.concatenate([[0], np.cumsum(weights[order])[:-1]])
    for node, expected in zip(tree.nodes(), before):
        assert tree.cumulative_weight(node) == expected
    for rank in rng.uniform(0, weights.sum(), size=500):
        node, found_before = tree.find_by_cumulative_weight(rank)
        i = np.searchsorted(np.cumsum(weights[order]), rank, side='right')
        assert node.mean == means[order][i]
        assert found_before == before[i]
        assert found_before <= rank < found_before + node.weight
    assert tree.find_by_cumulative_weight(weights.sum()) == (None, weights.sum())


def test_add_weight_updates_subtree_weights():
    tree = build([1., 2., 3., 4., 5.])
    node, _ = tree.find_nearest_by_mean(4.)
    tree.add_weight(node, 5)
    tree.validate()
    assert node.weight == 6
    assert tree.total_weight() == 10
    assert tree.cumulative_weight(tree.last()) == 9


def test_neighbours():
    tree = build([3., 1., 2.])
    first = tree.first()
    second = tree.successor(first)
    third = tree.successor(second)
    assert [first.mean, second.mean, third.mean] == [1., 2., 3.]
    assert tree.successor(third) is None
    assert tree.predecessor(first) is None
    assert tree.predecessor(third) is second
    assert tree.last() is third


def test_validate_rejects_broken_trees():
    tree = build([1., 2., 3.])
    tree.root.left.red = tree.root.right.red = True
    tree.root.left.left = tree.root.left.__class__(Centroid(0., 1, 9))
    tree.root.left.left.parent = tree.root.left
    with pytest.raises(ValueError):
        tree.validate()

    tree = build([1., 2., 3.])
    tree.root.left.centroid.mean = 5.
    with pytest.raises(ValueError, match='out of order'):
        tree.validate()

    tree = build([1., 2., 3.])
    tree.root.total += 1
    with pytest.raises(ValueError, match='Stale'):
        tree.validate()


def test_validate_handles_degenerate_chains():
    root = None
    for i in range(5_000, 0, -1):
        node = _Node(Centroid(float(i), 1, i), red=False)
        node.right = root
        root = node
    with pytest.raises(ValueError, match='Unequal black heights'):
        CentroidTree.from_root(root)
