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
from enum import Enum
from numbers import Real
from typing import Callable, Iterable, Optional

from .centroid_tree import _Node
from .treedigest import TDigest


logger = logging.getLogger(__name__)


class DigestMode(str, Enum):
    Auto = 'auto'
    Discrete = 'disc'
    Continuous = 'cont'


class Digest(TDigest):
    """TDigest that picks between exact and approximate mode on its own.

    In 'auto' mode the digest starts discrete, keeping every distinct value as its own centroid. Once it holds at
    least `thresh` centroids and more than a `ratio` share of them are singletons, the data looks continuous: the
    digest switches to continuous mode and compresses. 'disc' and 'cont' fix the mode from the start.
    """

    def __init__(self,
                 mode: DigestMode = DigestMode.Auto,
                 delta: float = 0.01,
                 k: float = 25,
                 cx: float = 1.1,
                 ratio: float = 0.9,
                 thresh: int = 1000,
                 shuffle: Optional[Callable[[int], Iterable[int]]] = None) -> None:
        try:
            mode = DigestMode(mode)
        except ValueError as err:
            raise ValueError(f'Unknown digest mode {mode!r}, use one of "auto", "disc", "cont".') from err
        if isinstance(ratio, bool) or not isinstance(ratio, Real) or not 0 <= ratio <= 1:
            raise ValueError(f'ratio has to be a number between 0 and 1, got {ratio!r}.')
        if isinstance(thresh, bool) or not isinstance(thresh, Real) or not math.isfinite(thresh) or thresh < 0:
            raise ValueError(f'thresh has to be a finite non-negative number, got {thresh!r}.')
        super().__init__(delta=delta, k=k, cx=cx, discrete=mode != DigestMode.Continuous, shuffle=shuffle)
        self.mode = mode
        self.ratio = ratio
        self.thresh = thresh
        # number of centroids of weight one
        self.n_unique = 0

    def push(self, x, n=1, handling_invalid='raise'):
        super().push(x, n, handling_invalid=handling_invalid)
        self.check_continuous()

    def push_centroid(self, centroids):
        super().push_centroid(centroids)
        self.check_continuous()

    def check_continuous(self) -> bool:
        """Switch from discrete to continuous mode if the data looks continuous.

        Returns:
            True if the digest has just switched.
        """
        if self.mode != DigestMode.Auto or not len(self) or len(self) < self.thresh:
            return False
        if self.n_unique / len(self) > self.ratio:
            logger.info('%d of %d centroids are singletons, switching to continuous mode.',
                        self.n_unique, len(self))
            self.mode = DigestMode.Continuous
            self.discrete = False
            self.compress()
            return True
        return False

    def deserialize(self, blob: list):
        super().deserialize(blob)
        if not self.discrete:
            self.mode = DigestMode.Continuous
        elif self.mode == DigestMode.Continuous:
            self.mode = DigestMode.Discrete
        self._count_unique()

    def _new_centroid(self, x: float, n: int) -> _Node:
        if n == 1:
            self.n_unique += 1
        return super()._new_centroid(x, n)

    def _add_weight(self, node: _Node, x: float, n: int):
        if node.weight == 1:
            self.n_unique -= 1
        super()._add_weight(node, x, n)

    def _compress(self, automatic: bool):
        try:
            super()._compress(automatic)
        finally:
            self._count_unique()

    def _count_unique(self):
        self.n_unique = sum(1 for c in self._tree if c.weight == 1)
