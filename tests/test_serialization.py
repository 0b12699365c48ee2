#!/usr/bin/env python
# -*- coding: utf-8 -*-
import json
import pytest
import numpy as np
from copy import copy, deepcopy
from treedigest import TDigest, DeserializationError

HEADER = [False, 0.01, 25, 1.1, 1]


def seeded(n):
    return np.random.default_rng(n).permutation(n)


def test_serialize_empty():
    assert TDigest().serialize() == HEADER + [0, 0, [0, 0]]


def test_serialize_single_point():
    td = TDigest()
    td.push(0)
    assert td.serialize() == HEADER + [1, 0, [1, [[0, 1, 1, 0.5], 0, 0, 0]]]


def test_serialize_two_points():
    td = TDigest()
    td.push([0, 1])
    assert td.serialize() == HEADER + [2, 0, [2, [
        [0, 1, 1, 0.5], 0, [
            [1, 1, 2, 1.5], 0, 0, 1
        ], 0
    ]]]


def test_serialize_three_points():
    td = TDigest()
    td.push([0, 0.5, 1])
    assert td.serialize() == HEADER + [3, 0, [3, [
        [0.5, 1, 2, 1.5],
        [[0, 1, 1, 0.5], 0, 0, 1],
        [[1, 1, 3, 2.5], 0, 0, 1],
        0
    ]]]


def test_serialize_four_points():
    td = TDigest()
    td.push([10, 11, 12, 13])
    assert td.serialize() == HEADER + [4, 0, [4, [
        [11, 1, 2, 1.5],
        [[10, 1, 1, 0.5], 0, 0, 0],
        [[12, 1, 3, 2.5], 0, [
            [13, 1, 4, 3.5], 0, 0, 1
        ], 0],
        0
    ]]]


def test_serialize_weighted_midpoints():
    td = TDigest()
    td.push([1., 2., 3.], n=[2, 4, 6])
    (_, _, _, mean_cumn), left, right, _ = td.serialize()[-1][1]
    assert mean_cumn == 4
    assert left[0][3] == 1
    assert right[0][3] == 9


@pytest.mark.parametrize('values', [[], [0], [0, 1], [0, 0.5, 1], [10, 11, 12, 13], [5, 5, 5, 1]])
def test_deserialize_small(values):
    td = TDigest()
    td.push(values)
    td2 = TDigest()
    td2.deserialize(td.serialize())
    assert td2.serialize() == td.serialize()
    assert td2.to_array() == td.to_array()
    assert td2.size == td.size
    assert td2.nreset == td.nreset


@pytest.fixture(scope='module')
def large():
    rng = np.random.Generator(np.random.PCG64(12345))
    td = TDigest(shuffle=seeded)
    td.push(rng.uniform(size=100_000))
    return td


def test_deserialize_large(large):
    blob = large.serialize()
    td2 = TDigest.of_serialized(blob, shuffle=seeded)
    assert td2.serialize() == blob
    assert td2.size == 100_000
    assert td2.nreset == large.nreset
    qs = [0., 0.01, 0.25, 0.5, 0.75, 0.99, 1.]
    assert td2.percentile(qs) == large.percentile(qs)
    assert td2.p_rank(qs) == large.p_rank(qs)


def test_deserialized_digest_evolves_identically(large):
    td1 = copy(large)
    td2 = TDigest.of_serialized(large.serialize(), shuffle=seeded)
    rng = np.random.Generator(np.random.PCG64(54321))
    more = rng.normal(loc=0.5, scale=0.1, size=20_000)
    for td in (td1, td2):
        td.push(more)
        td.compress()
    assert td1.serialize() == td2.serialize()


def test_json_round_trip():
    rng = np.random.Generator(np.random.PCG64(12345))
    td = TDigest(shuffle=seeded)
    td.push(rng.exponential(size=2_000), n=rng.integers(1, 4, size=2_000))
    blob = json.loads(json.dumps(td.serialize()))
    assert TDigest.of_serialized(blob).serialize() == td.serialize()


def test_discrete_round_trip():
    td = TDigest(delta=0.05, k=10, cx=2, discrete=True)
    td.push([3, 1, 2, 2])
    td2 = TDigest.of_serialized(td.serialize())
    assert td2.discrete
    assert (td2.delta, td2.k, td2.cx) == (0.05, 10, 2)
    assert td2.p_rank(2) == td.p_rank(2) == 0.75


def test_copies_are_independent():
    td = TDigest()
    td.push([1., 2., 3.])
    td2 = deepcopy(td)
    td2.push(4.)
    assert td.size == 3
    assert td2.size == 4
    assert td.centroid_count() == 3


def _chain(depth):
    structure = 0
    for i in range(depth, 0, -1):
        structure = [[float(i), 1, i, i - 0.5], 0, structure, 0]
    return [False, 0.01, 25, 1.1, 1, depth, 0, [depth, structure]]


def _blob():
    td = TDigest()
    td.push([10, 11, 12, 13])
    return td.serialize()


def _corrupt(change):
    blob = _blob()
    change(blob)
    return blob


def _set_root(blob, **fields):
    payload = blob[7][1][0]
    for index, value in fields.items():
        payload[int(index[1:])] = value


@pytest.mark.parametrize('blob', [
    None,
    [],
    _blob()[:7],
    _corrupt(lambda b: b.__setitem__(0, 'no')),
    _corrupt(lambda b: b.__setitem__(1, -0.5)),
    _corrupt(lambda b: b.__setitem__(4, 2)),
    _corrupt(lambda b: b.__setitem__(5, 5)),
    _corrupt(lambda b: b.__setitem__(6, -1)),
    _corrupt(lambda b: b[7].__setitem__(0, 3)),
    _corrupt(lambda b: _set_root(b, i0=20.)),
    _corrupt(lambda b: _set_root(b, i1=0)),
    _corrupt(lambda b: _set_root(b, i2=1)),
    _corrupt(lambda b: _set_root(b, i3=2.5)),
    _corrupt(lambda b: b[7][1].__setitem__(3, 1)),
    _corrupt(lambda b: b[7][1][2].__setitem__(3, 1)),
    _corrupt(lambda b: b[7][1].__setitem__(1, 'x')),
    _corrupt(lambda b: b[7][1].__setitem__(1, 0)),
    _chain(3_000),
])
def test_deserialize_rejects_corrupt_blobs(blob):
    td = TDigest()
    td.push([1., 2.])
    before = td.serialize()
    with pytest.raises(DeserializationError):
        td.deserialize(blob)
    assert td.serialize() == before


def test_deserialize_rejects_deep_trees_early():
    td = TDigest()
    with pytest.raises(DeserializationError, match='deeper'):
        td.deserialize(_chain(50))
    with pytest.raises(DeserializationError, match='deeper'):
        td.deserialize(_chain(100_000))
    assert td.size == 0
