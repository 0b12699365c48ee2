#!/usr/bin/env python
# -*- coding: utf-8 -*-

# Apache License, Version 2.0,
# http://www.apache.org/licenses/LICENSE-2.0
#
# Copyright (c) 2015 Ted Dunning, All rights reserved.
#      https://github.com/tdunning/t-digest

from __future__ import annotations
import logging
import math
import numpy as np
import pandas as pd
from numbers import Integral, Real
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Union
from enum import Enum

from .centroid_tree import Centroid, CentroidTree, _Node


logger = logging.getLogger(__name__)

# every pushed value counts once, weighted pushes are multiples of it
UNIT_WEIGHT = 1
# weights are stored as int64 in batches
_MAX_WEIGHT = float(np.iinfo('int64').max)

Values = Union[Real, Sequence[Real], np.ndarray, pd.Series]


class HandlingInvalid(str, Enum):
    Drop = 'drop'
    Raise = 'raise'


class DeserializationError(ValueError):
    """Raised when a serialized digest is structurally inconsistent."""


class TDigest:
    """TDigest estimates the cumulative distribution of a stream in bounded memory. Each observation is either
    absorbed by the nearest centroid or starts a new one; how much weight a centroid may absorb depends on its rank,
    so that the tails stay finely resolved while the centre is summarized coarsely. The digest answers rank
    (`p_rank`, i.e. CDF) and percentile (inverse CDF) queries by interpolating between centroids.

    The precision is controlled by `delta`; `k` bounds the number of centroids (`k / delta`) kept before an automatic
    compression and `cx` spaces the automatic compressions geometrically in ingested weight.
    """

    def __init__(self,
                 delta: float = 0.01,
                 k: float = 25,
                 cx: float = 1.1,
                 discrete: bool = False,
                 shuffle: Optional[Callable[[int], Iterable[int]]] = None) -> None:
        """Initializes an empty TDigest.

        Args:
            delta: Compression factor, smaller values lead to more centroids and more precise results.
            k: Centroid budget factor. Once the digest holds more than `k / delta` centroids it is compressed
                automatically; 0 disables automatic compression.
            cx: Growth factor between automatic compressions. The next automatic compression needs the ingested
                weight to exceed `cx` times the weight threshold of the previous one.
            discrete: Keep every distinct value as its own centroid and report the exact step CDF. Suitable for
                categorical data with few distinct values.
            shuffle: Callable returning a permutation of `range(n)`, used to reorder centroids during compression.
                Defaults to `numpy.random.default_rng().permutation`; pass a seeded one for reproducible results.

        Raises:
            ValueError: If `delta`, `k` or `cx` is negative or not a finite number.
        """
        for name, value in (('delta', delta), ('k', k), ('cx', cx)):
            if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value) or value < 0:
                raise ValueError(f'{name} has to be a finite non-negative number, got {value!r}.')
        self.delta = delta
        self.k = k
        self.cx = cx
        self.discrete = bool(discrete)
        self._shuffle = shuffle if shuffle is not None else np.random.default_rng().permutation
        self._tree = CentroidTree()
        self._next_id = 1
        self.size = 0
        self.nreset = 0

    def push(self,
             x: Values,
             n: Union[int, Sequence[int], np.ndarray, pd.Series] = UNIT_WEIGHT,
             handling_invalid: HandlingInvalid = HandlingInvalid.Raise):
        """Add new data to TDigest.

        Args:
            x: A single value or a batch of values (list, tuple, np.ndarray or pd.Series), ingested in order.
            n: Positive integer weight of each value. For a batch it can also be a sequence of weights of the same
                length as x.
            handling_invalid: How to handle nan and infinite values ['drop', 'raise'], default value 'raise'.
                Provided either as enum or its string representation.

        Raises:
            TypeError: If x or n are not of permitted types, or n is not a positive integer.
            ValueError: If handling_invalid is 'raise' and x contains nan or infinity.
        """
        handling_invalid = HandlingInvalid(handling_invalid)
        x = TDigest._unwrap_if_possible(x)
        n = TDigest._unwrap_if_possible(n)
        if _is_number(x):
            if not _is_number(n):
                raise TypeError('If x is a single number, n has to be too.')
            weight = _check_weight(n)
            if math.isfinite(x):
                self._push_one(float(x), weight)
            elif handling_invalid == HandlingInvalid.Raise:
                raise ValueError('x is invalid.')
            return
        values = _as_float_array(x, 'Values')
        if _is_number(n):
            weights = np.full(values.size, _check_weight(n), dtype='int64')
        else:
            weights = _as_weight_array(n)
            if weights.size != values.size:
                raise TypeError('n has to be of the same size as values.')
        invalid = ~np.isfinite(values)
        if np.any(invalid):
            if handling_invalid == HandlingInvalid.Raise:
                raise ValueError('x contains invalid values (nan or infinity).')
            values = values[~invalid]
            weights = weights[~invalid]
        self._push_many(values, weights)

    def push_centroid(self, centroids):
        """Add pre-weighted centroids to TDigest.

        Args:
            centroids: A single centroid or a list of them. A centroid is a mapping with 'mean' and 'n' keys or a
                `(mean, n)` pair; a two-column np.ndarray of means and weights is accepted too.

        Raises:
            TypeError: If the centroids are malformed or a weight is not a positive integer.
            ValueError: If a mean is nan or infinite.
        """
        if isinstance(centroids, np.ndarray):
            if centroids.ndim != 2 or centroids.shape[1] != 2:
                raise TypeError('Centroids have to be 2-dimensional np.array with 2 columns (means and weights)')
            pairs = [(mean, weight) for mean, weight in centroids.tolist()]
        elif isinstance(centroids, dict) or (isinstance(centroids, tuple) and len(centroids) == 2
                                             and _is_number(centroids[0])):
            pairs = [_centroid_pair(centroids)]
        else:
            pairs = [_centroid_pair(c) for c in centroids]
        checked = []
        for mean, weight in pairs:
            if not _is_number(mean):
                raise TypeError(f'Centroid mean {mean!r} is not a number.')
            if not math.isfinite(mean):
                raise ValueError(f'Centroid mean {mean!r} is invalid.')
            checked.append((float(mean), _check_weight(weight)))
        for mean, weight in checked:
            self._push_one(mean, weight)

    def compress(self):
        """Reinsert all centroids in random order, merging them under the size bound again.

        The minimum and maximum stay exact centroids.
        """
        self._compress(automatic=False)

    @staticmethod
    def compute(x: Values,
                n: Union[int, Sequence[int], np.ndarray, pd.Series] = UNIT_WEIGHT,
                handling_invalid: HandlingInvalid = HandlingInvalid.Raise,
                delta: float = 0.01,
                k: float = 25,
                cx: float = 1.1,
                shuffle: Optional[Callable[[int], Iterable[int]]] = None) -> TDigest:
        """Estimate TDigest directly from data.

        Args:
            x: Values to calculate the distribution of.
            n: Optional integer weights, see `push`.
            handling_invalid: How to handle invalid values in calculation ['drop', 'raise'].
            delta, k, cx, shuffle: Passed to the constructor.

        Returns:
            New compressed TDigest object estimated based on (possibly weighted) data.
        """
        td = TDigest(delta=delta, k=k, cx=cx, shuffle=shuffle)
        td.push(x, n, handling_invalid=handling_invalid)
        td.compress()
        return td

    def p_rank(self, x: Values) -> Union[Optional[float], List[Optional[float]], np.ndarray]:
        """Estimate the fraction of the distribution at or below given values (the CDF).

        Args:
            x: A single value, a list/tuple of values or an np.ndarray/pd.Series of them.

        Returns:
            Same shape as the input: a float, a list or an np.ndarray. An empty digest has no ranks, that is
            reported as None (nan in arrays).

        Raises:
            TypeError: If `x` is of invalid type.
            ValueError: If `x` contains nan.
        """
        return self._query(x, self._p_rank)

    def percentile(self, p: Values) -> Union[Optional[float], List[Optional[float]], np.ndarray]:
        """Estimate the values at given ranks (the inverse CDF).

        Args:
            p: A single rank in [0, 1], a list/tuple of ranks or an np.ndarray/pd.Series of them. Ranks outside of
                [0, 1] map to the minimum or maximum.

        Returns:
            Same shape as the input: a float, a list or an np.ndarray. An empty digest is reported as None (nan in
            arrays).

        Raises:
            TypeError: If `p` is of invalid type.
            ValueError: If `p` contains nan.
        """
        return self._query(p, self._percentile)

    def centroid_count(self) -> int:
        """Number of centroids currently held."""
        return len(self._tree)

    def total_count(self) -> int:
        """Total weight ingested so far."""
        return self.size

    def __len__(self) -> int:
        return len(self._tree)

    def to_array(self, everything: bool = False) -> List[dict]:
        """Centroids in increasing mean order as a list of `{'mean': ..., 'n': ...}` dicts.

        With `everything`, the dicts also carry the centroid id, the cumulative weight up to and including the
        centroid ('cumn') and the cumulative weight at its mean ('mean_cumn').
        """
        if not everything:
            return [{'mean': c.mean, 'n': c.weight} for c in self._tree]
        result = []
        cumn = 0
        for c in self._tree:
            result.append({'mean': c.mean, 'n': c.weight, 'id': c.id,
                           'cumn': cumn + c.weight, 'mean_cumn': cumn + c.weight / 2})
            cumn += c.weight
        return result

    def get_centroids(self) -> np.ndarray:
        """Get all centroids as a two-dimensional array of means and weights in mean order. Pushing the rows back in
        this order into an empty digest reconstructs the same centroids.
        """
        centroids = np.empty(2 * len(self._tree), dtype='float')
        for i, c in enumerate(self._tree):
            centroids[2 * i] = c.mean
            centroids[2 * i + 1] = c.weight
        return centroids.reshape([-1, 2])

    @staticmethod
    def of_centroids(centroids: np.ndarray,
                     delta: float = 0.01,
                     k: float = 25,
                     cx: float = 1.1,
                     shuffle: Optional[Callable[[int], Iterable[int]]] = None) -> TDigest:
        """Reconstruct TDigest of the centroids (as produced by `get_centroids`) and a given configuration."""
        if not isinstance(centroids, np.ndarray) or centroids.ndim != 2 or centroids.shape[1] != 2:
            raise TypeError('Centroids have to be 2-dimensional np.array with 2 columns (means and weights)')
        if k and delta and centroids.shape[0] > k / delta:
            logger.warning('%d centroids exceed the budget of %d for delta=%g, k=%g.',
                           centroids.shape[0], int(k / delta), delta, k)
        td = TDigest(delta=delta, k=k, cx=cx, shuffle=shuffle)
        td.push_centroid(centroids[np.argsort(centroids[:, 0], kind='stable')])
        return td

    @staticmethod
    def combine(first: Union[TDigest, Iterable[TDigest]], second: Optional[TDigest] = None) -> TDigest:
        """Combine multiple TDigests together.
        """
        if second is None:
            if isinstance(first, pd.Series):
                first = first.values
            result = None
            for other in first:
                if result is None:
                    result = other.__copy__()
                else:
                    result += other
            return result
        else:
            if not (isinstance(first, TDigest) and isinstance(second, TDigest)):
                raise TypeError(f'Both first and second arguments have to be instances of TDigest.')
            return first + second

    def __iadd__(self, other):
        if not isinstance(other, TDigest):
            raise TypeError('Only TDigest can be added to TDigest.')
        pairs = [(c.mean, c.weight) for c in other._tree]
        self.push_centroid([pairs[i] for i in self._shuffle(len(pairs))])
        self.compress()
        return self

    def __add__(self, other):
        result = self.__copy__()
        result += other
        return result

    def __copy__(self):
        other = type(self).__new__(type(self))
        other.__dict__.update(self.__dict__)
        other._tree = CentroidTree()
        other.deserialize(self.serialize())
        return other

    def __deepcopy__(self, memodict={}):
        return self.__copy__()

    def __str__(self) -> str:
        kind = 'discrete' if self.discrete else 'continuous'
        return f'TDigest(mean={self.mean:.3g}, weight={self.weight}, ' \
               f'centroids={len(self._tree)}, {kind}, delta={self.delta})'

    def __repr__(self) -> str:
        return self.__str__()

    def summary(self) -> str:
        """Human readable summary: sample count, centroid count and the quartiles."""
        approx = 'exact' if self.discrete else 'approximating'
        lines = [f'{approx} {self.size} samples using {len(self._tree)} centroids']
        for label, p in (('min', 0.), ('Q1 ', 0.25), ('Q2 ', 0.5), ('Q3 ', 0.75), ('max', 1.)):
            lines.append(f'{label} = {self._percentile(p)}')
        return '\n'.join(lines)

    @property
    def weight(self):
        """Total weight of the data."""
        return self._tree.total_weight()

    @property
    def mean(self):
        """Mean of the data, exact up to rounding."""
        if self.weight == 0:
            return np.nan
        return sum(c.mean * c.weight for c in self._tree) / self.weight

    def serialize(self) -> list:
        """Flatten the digest to nested lists of plain Python scalars (JSON safe).

        The layout is `[discrete, delta, k, cx, unit_weight, size, nreset, [centroid_count, tree]]` where `tree` is
        `[[mean, weight, id, mean_cumn], left, right, red]` for every node and 0 for a missing subtree.
        """
        return [self.discrete, self.delta, self.k, self.cx, UNIT_WEIGHT, self.size, self.nreset,
                [len(self._tree), _encode_node(self._tree.root, 0)]]

    def deserialize(self, blob: list):
        """Replace the state of this digest by a serialized one, reproducing the exact tree shape.

        Raises:
            DeserializationError: If the blob is malformed or inconsistent. The digest is left untouched then.
        """
        try:
            discrete, delta, k, cx, unit, size, nreset, (count, structure) = blob
        except (TypeError, ValueError) as err:
            raise DeserializationError(f'Unrecognized digest layout: {err}') from err
        if not isinstance(discrete, bool):
            raise DeserializationError(f'Discrete flag has to be a bool, got {discrete!r}.')
        for name, value in (('delta', delta), ('k', k), ('cx', cx)):
            if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value) or value < 0:
                raise DeserializationError(f'{name} has to be a finite non-negative number, got {value!r}.')
        if unit != UNIT_WEIGHT:
            raise DeserializationError(f'Unsupported unit weight {unit!r}.')
        for name, value in (('size', size), ('nreset', nreset), ('centroid count', count)):
            if not _is_integer(value) or value < 0:
                raise DeserializationError(f'{name} has to be a non-negative integer, got {value!r}.')
        midpoints = {}
        root = _decode_tree(structure, count, midpoints)
        try:
            tree = CentroidTree.from_root(root)
        except ValueError as err:
            raise DeserializationError(str(err)) from err
        if len(tree) != count:
            raise DeserializationError(f'Blob announces {count} centroids but holds {len(tree)}.')
        if tree.total_weight() != size:
            raise DeserializationError(f'Centroid weights sum to {tree.total_weight()} instead of size {size}.')
        ids = set()
        cumn = 0
        for node in tree.nodes():
            if node.centroid.id in ids:
                raise DeserializationError(f'Duplicate centroid id {node.centroid.id}.')
            ids.add(node.centroid.id)
            if not math.isclose(midpoints[node], cumn + node.weight / 2):
                raise DeserializationError(f'Cumulative weight of {node.centroid} does not match the weights.')
            cumn += node.weight
        self.discrete = discrete
        self.delta = delta
        self.k = k
        self.cx = cx
        self.size = int(size)
        self.nreset = int(nreset)
        self._tree = tree
        self._next_id = max(ids, default=0) + 1

    @classmethod
    def of_serialized(cls, blob: list, shuffle: Optional[Callable[[int], Iterable[int]]] = None) -> TDigest:
        """Build a new digest from the output of `serialize`."""
        td = cls(shuffle=shuffle)
        td.deserialize(blob)
        return td

    def _push_one(self, x: float, n: int):
        self._digest(x, n)
        self.size += n
        if self._should_compress():
            self.nreset += 1
            self._compress(automatic=True)

    def _push_many(self, values: np.ndarray, weights: np.ndarray):
        for x, n in zip(values.tolist(), weights.tolist()):
            self._push_one(x, n)

    def _digest(self, x: float, n: int):
        tree = self._tree
        lower, upper = tree.find_nearest_by_mean(x)
        if lower is None and upper is None:
            self._new_centroid(x, n)
            return
        if lower is upper:
            self._add_weight(lower, x, n)
            return
        if self.discrete:
            self._new_centroid(x, n)
            return
        if lower is None or upper is None:
            # beyond the current extremes
            self._new_centroid(x, n)
            return
        nearest = lower if x - lower.mean < upper.mean - x else upper
        if (nearest is lower and tree.predecessor(lower) is None) or \
                (nearest is upper and tree.successor(upper) is None):
            # the extremes never absorb a different value
            self._new_centroid(x, n)
            return
        total = tree.total_weight()
        q = (tree.cumulative_weight(nearest) + nearest.weight / 2) / total
        bound = math.floor(4 * total * self.delta * q * (1 - q))
        if bound - nearest.weight >= n:
            self._add_weight(nearest, x, n)
        else:
            self._new_centroid(x, n)

    def _new_centroid(self, x: float, n: int) -> _Node:
        node = self._tree.insert(Centroid(x, n, self._next_id))
        self._next_id += 1
        return node

    def _add_weight(self, node: _Node, x: float, n: int):
        centroid = node.centroid
        if x != centroid.mean:
            centroid.mean += n * (x - centroid.mean) / (centroid.weight + n)
        self._tree.add_weight(node, n)

    def _should_compress(self) -> bool:
        if self.discrete or not self.k or not self.delta:
            return False
        budget = self.k / self.delta
        return len(self._tree) > budget and self.size > budget * self.cx ** self.nreset

    def _compress(self, automatic: bool):
        points = [(c.mean, c.weight) for c in self._tree]
        tree = self._tree
        self._tree = CentroidTree()
        try:
            for i in self._shuffle(len(points)):
                self._digest(*points[i])
        except BaseException:
            self._tree = tree
            raise
        logger.debug('%s compression: %d -> %d centroids (size=%d, nreset=%d)',
                     'automatic' if automatic else 'manual', len(points), len(self._tree), self.size, self.nreset)

    def _query(self, x, scalar: Callable[[float], Optional[float]]):
        x = TDigest._unwrap_if_possible(x)
        if _is_number(x):
            if math.isnan(x):
                raise ValueError('Query value is nan.')
            return scalar(float(x))
        as_array = isinstance(x, np.ndarray)
        if not as_array and not isinstance(x, (list, tuple)):
            raise TypeError('Query is unrecognized type.')
        values = _as_float_array(x, 'Query')
        if np.any(np.isnan(values)):
            raise ValueError('Query contains nan.')
        results = _map_scalar(scalar, values)
        if as_array:
            return np.array([np.nan if r is None else r for r in results], dtype='float')
        return list(results)

    def _p_rank(self, x: float) -> Optional[float]:
        tree = self._tree
        if not tree:
            return None
        total = tree.total_weight()
        first, last = tree.first(), tree.last()
        if self.discrete:
            if x < first.mean:
                return 0.0
            lower, _ = tree.find_nearest_by_mean(x)
            return (tree.cumulative_weight(lower) + lower.weight) / total
        if len(tree) == 1:
            return 0.0 if x < first.mean else 1.0 if x > first.mean else 0.5
        lower, upper = tree.find_nearest_by_mean(x)
        if lower is upper:
            return _midpoint(tree, lower) / total
        if lower is None:
            # the support extends half a gap below the smallest mean
            second = tree.successor(first)
            edge = first.mean - (second.mean - first.mean) / 2
            if x <= edge:
                return 0.0
            left, right = (edge, 0.), (first.mean, first.weight / 2)
        elif upper is None:
            second = tree.predecessor(last)
            edge = last.mean + (last.mean - second.mean) / 2
            if x >= edge:
                return 1.0
            left, right = (last.mean, total - last.weight / 2), (edge, total)
        else:
            left, right = (lower.mean, _midpoint(tree, lower)), (upper.mean, _midpoint(tree, upper))
        cumn = left[1] + (x - left[0]) * (right[1] - left[1]) / (right[0] - left[0])
        return min(max(cumn / total, 0.0), 1.0)

    def _percentile(self, p: float) -> Optional[float]:
        tree = self._tree
        if not tree:
            return None
        if p <= 0:
            return tree.first().mean
        if p >= 1:
            return tree.last().mean
        h = p * tree.total_weight()
        node, before = tree.find_by_cumulative_weight(h)
        if node is None:
            # p * weight rounded up to the total weight
            return tree.last().mean
        if self.discrete:
            previous = tree.predecessor(node)
            if h == before and previous is not None:
                return previous.mean
            return node.mean
        mid = before + node.weight / 2
        if h == mid:
            return node.mean
        if h > mid:
            lower, upper = node, tree.successor(node)
            lower_mid, upper_mid = mid, (before + node.weight + upper.weight / 2) if upper is not None else None
        else:
            lower, upper = tree.predecessor(node), node
            lower_mid, upper_mid = (before - lower.weight / 2) if lower is not None else None, mid
        # the extremes are exact centroids, so the half-gap extrapolation past the outermost midpoints is always
        # clamped to them
        if lower is None:
            return upper.mean
        if upper is None:
            return lower.mean
        return lower.mean + (h - lower_mid) * (upper.mean - lower.mean) / (upper_mid - lower_mid)

    @staticmethod
    def _unwrap_if_possible(x):
        if isinstance(x, pd.Series):
            x = x.values
        return x


def _map_scalar(scalar: Callable[[float], Optional[float]], values: np.ndarray) -> Iterator[Optional[float]]:
    return map(scalar, values.tolist())


def _midpoint(tree: CentroidTree, node: _Node) -> float:
    return tree.cumulative_weight(node) + node.weight / 2


def _is_number(x) -> bool:
    return isinstance(x, Real) and not isinstance(x, (bool, np.bool_))


def _is_integer(x) -> bool:
    if isinstance(x, (bool, np.bool_)):
        return False
    return isinstance(x, Integral) or (isinstance(x, Real) and float(x).is_integer())


def _check_weight(n) -> int:
    if not _is_integer(n) or n < 1 or n >= _MAX_WEIGHT:
        raise TypeError(f'Weight has to be a positive integer, got {n!r}.')
    return int(n)


def _as_float_array(x, what: str) -> np.ndarray:
    if isinstance(x, np.ndarray):
        if x.ndim != 1:
            raise TypeError(f'{what} cannot be a multidimensional array.')
        if x.dtype.kind not in 'iuf':
            raise TypeError(f'{what} have to be numeric, got dtype {x.dtype}.')
        return x.astype('float')
    if isinstance(x, (str, bytes, dict)):
        raise TypeError(f'{what} are unrecognized type.')
    try:
        items = list(x)
    except TypeError as err:
        raise TypeError(f'{what} are unrecognized type.') from err
    for item in items:
        if not _is_number(item):
            raise TypeError(f'{what} contain a non-numeric item {item!r}.')
    return np.array(items, dtype='float')


def _as_weight_array(n) -> np.ndarray:
    weights = _as_float_array(n, 'Weights')
    if not np.all(np.isfinite(weights)) or np.any(weights >= _MAX_WEIGHT):
        raise TypeError('Weights have to be finite and fit into int64.')
    if np.any(weights < 1) or np.any(weights != np.floor(weights)):
        raise TypeError('Weights have to be positive integers.')
    return weights.astype('int64')


def _centroid_pair(c):
    if isinstance(c, dict):
        try:
            return c['mean'], c['n']
        except KeyError as err:
            raise TypeError(f'Centroid {c!r} misses key {err}.') from err
    try:
        mean, weight = c
    except (TypeError, ValueError) as err:
        raise TypeError(f'Centroid {c!r} is not a (mean, n) pair.') from err
    return mean, weight


def _encode_node(node: Optional[_Node], before: int):
    if node is None:
        return 0
    c = node.centroid
    left = node.left_weight
    return [[c.mean, c.weight, c.id, before + left + c.weight / 2],
            _encode_node(node.left, before),
            _encode_node(node.right, before + left + c.weight),
            int(node.red)]


def _decode_tree(structure, count: int, midpoints: dict) -> Optional[_Node]:
    # a red-black tree of n nodes is at most 2·log2(n + 1) levels deep
    max_depth = 2 * math.log2(count + 1) + 1
    decoded = _decode_node(structure, midpoints)
    if decoded is None:
        return None
    root = decoded[0]
    stack = [(decoded, 1)]
    while stack:
        (node, left, right), depth = stack.pop()
        if depth > max_depth:
            raise DeserializationError(f'Tree is deeper than a balanced tree of {count} centroids can be.')
        for side, subtree in (('left', left), ('right', right)):
            child = _decode_node(subtree, midpoints)
            if child is not None:
                setattr(node, side, child[0])
                stack.append((child, depth + 1))
    return root


def _decode_node(structure, midpoints: dict):
    if isinstance(structure, (bool, np.bool_)):
        raise DeserializationError(f'Unrecognized subtree {structure!r}.')
    if structure == 0 and not isinstance(structure, (list, tuple)):
        return None
    try:
        (mean, weight, id, mean_cumn), left, right, red = structure
    except (TypeError, ValueError) as err:
        raise DeserializationError(f'Unrecognized node layout {structure!r}.') from err
    if not _is_number(mean) or not math.isfinite(mean):
        raise DeserializationError(f'Invalid centroid mean {mean!r}.')
    if not _is_integer(weight) or weight < 1:
        raise DeserializationError(f'Invalid centroid weight {weight!r}.')
    if not _is_integer(id) or id < 1:
        raise DeserializationError(f'Invalid centroid id {id!r}.')
    if not _is_number(mean_cumn):
        raise DeserializationError(f'Invalid cumulative weight {mean_cumn!r}.')
    if red not in (0, 1):
        raise DeserializationError(f'Invalid color tag {red!r}.')
    node = _Node(Centroid(float(mean), int(weight), int(id)), red=bool(red))
    midpoints[node] = mean_cumn
    return node, left, right
