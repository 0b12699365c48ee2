#!/usr/bin/env python
# -*- coding: utf-8 -*-

# Apache License, Version 2.0,
# http://www.apache.org/licenses/LICENSE-2.0
#
# Copyright (c) 2015 Ted Dunning, All rights reserved.
#      https://github.com/tdunning/t-digest

from __future__ import annotations
from typing import Iterator, Optional, Tuple


class Centroid:
    """A weighted point summarizing one or more merged observations by their mean.

    The `id` is assigned once by the owning digest and never reused. It only breaks ties between centroids with
    equal means, so that the tree order is total.
    """
    __slots__ = ('mean', 'weight', 'id')

    def __init__(self, mean: float, weight: int, id: int):
        self.mean = mean
        self.weight = weight
        self.id = id

    def __repr__(self) -> str:
        return f'Centroid(mean={self.mean!r}, weight={self.weight!r}, id={self.id!r})'


class _Node:
    __slots__ = ('centroid', 'left', 'right', 'parent', 'red', 'total')

    def __init__(self, centroid: Centroid, red: bool = True):
        self.centroid = centroid
        self.left: Optional[_Node] = None
        self.right: Optional[_Node] = None
        self.parent: Optional[_Node] = None
        self.red = red
        # weight of the whole subtree rooted here
        self.total = centroid.weight

    @property
    def mean(self) -> float:
        return self.centroid.mean

    @property
    def weight(self) -> int:
        return self.centroid.weight

    @property
    def left_weight(self) -> int:
        return self.left.total if self.left is not None else 0

    def _key(self) -> Tuple[float, int]:
        return self.centroid.mean, self.centroid.id


def _total(node: Optional[_Node]) -> int:
    return node.total if node is not None else 0


def _is_red(node: Optional[_Node]) -> bool:
    return node is not None and node.red


class CentroidTree:
    """Red-black tree of centroids ordered by mean (ties broken by id).

    Every node caches the total weight of its subtree, so the cumulative weight in front of any centroid and the
    centroid covering a given cumulative weight are both found in O(log N). Because the in-order sequence by mean is
    also the order by cumulative weight, a weight change never re-keys a node: it is fixed up in place along the
    path to the root.

    Node handles returned by the lookup methods are only valid until the next `delete`.
    """

    def __init__(self):
        self.root: Optional[_Node] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Centroid]:
        for node in self.nodes():
            yield node.centroid

    def nodes(self) -> Iterator[_Node]:
        """Iterate over the nodes in increasing mean order."""
        stack = []
        node = self.root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node
            node = node.right

    def total_weight(self) -> int:
        return _total(self.root)

    def first(self) -> Optional[_Node]:
        node = self.root
        if node is None:
            return None
        while node.left is not None:
            node = node.left
        return node

    def last(self) -> Optional[_Node]:
        node = self.root
        if node is None:
            return None
        while node.right is not None:
            node = node.right
        return node

    @staticmethod
    def successor(node: _Node) -> Optional[_Node]:
        if node.right is not None:
            node = node.right
            while node.left is not None:
                node = node.left
            return node
        while node.parent is not None and node is node.parent.right:
            node = node.parent
        return node.parent

    @staticmethod
    def predecessor(node: _Node) -> Optional[_Node]:
        if node.left is not None:
            node = node.left
            while node.right is not None:
                node = node.right
            return node
        while node.parent is not None and node is node.parent.left:
            node = node.parent
        return node.parent

    def insert(self, centroid: Centroid) -> _Node:
        """Insert a centroid in mean order and rebalance.

        Args:
            centroid: The centroid to insert. The tree takes ownership of it.

        Returns:
            The node holding the centroid.
        """
        node = _Node(centroid)
        key = node._key()
        parent = None
        current = self.root
        while current is not None:
            current.total += centroid.weight
            parent = current
            current = current.left if key < current._key() else current.right
        node.parent = parent
        if parent is None:
            self.root = node
        elif key < parent._key():
            parent.left = node
        else:
            parent.right = node
        self._size += 1
        self._insert_fixup(node)
        return node

    def delete(self, node: _Node):
        """Remove a node from the tree and rebalance.

        A node with two children takes over the centroid of its in-order successor and the successor's node is
        unlinked instead, so handles to that successor become stale.
        """
        if node.left is not None and node.right is not None:
            successor = node.right
            while successor.left is not None:
                successor = successor.left
            node.centroid, successor.centroid = successor.centroid, node.centroid
            node = successor
        child = node.left if node.left is not None else node.right
        parent = node.parent
        if child is not None:
            child.parent = parent
        if parent is None:
            self.root = child
        elif node is parent.left:
            parent.left = child
        else:
            parent.right = child
        self._size -= 1
        current = parent
        while current is not None:
            current.total = current.weight + _total(current.left) + _total(current.right)
            current = current.parent
        node.left = node.right = node.parent = None
        if not node.red:
            self._delete_fixup(child, parent)

    def add_weight(self, node: _Node, n: int):
        """Grow the weight of the centroid held by `node` by `n`, fixing up the subtree weights above it."""
        node.centroid.weight += n
        while node is not None:
            node.total += n
            node = node.parent

    def find_nearest_by_mean(self, value: float) -> Tuple[Optional[_Node], Optional[_Node]]:
        """Find the neighbours of `value` in mean order.

        Returns:
            A pair `(lower, upper)` where `lower` holds the greatest mean <= value and `upper` the smallest
            mean >= value. On an exact match both are the same node; either may be None at the ends.
        """
        lower = upper = None
        node = self.root
        while node is not None:
            mean = node.centroid.mean
            if value < mean:
                upper = node
                node = node.left
            elif value > mean:
                lower = node
                node = node.right
            else:
                return node, node
        return lower, upper

    def find_by_cumulative_weight(self, rank: float) -> Tuple[Optional[_Node], float]:
        """Find the centroid whose cumulative-weight span `[before, before + weight)` contains `rank`.

        Returns:
            The node and the cumulative weight in front of it. For rank >= total weight the node is None and the
            total weight is returned.
        """
        node = self.root
        before = 0
        while node is not None:
            left = _total(node.left)
            if rank < before + left:
                node = node.left
            elif rank < before + left + node.centroid.weight:
                return node, before + left
            else:
                before += left + node.centroid.weight
                node = node.right
        return None, before

    @staticmethod
    def cumulative_weight(node: _Node) -> int:
        """Total weight of all centroids in front of `node` in mean order."""
        before = _total(node.left)
        while node.parent is not None:
            if node is node.parent.right:
                before += node.parent.centroid.weight + _total(node.parent.left)
            node = node.parent
        return before

    @classmethod
    def from_root(cls, root: Optional[_Node]) -> CentroidTree:
        """Adopt an already linked node structure (children set, parents and totals not yet) and validate it.

        Raises:
            ValueError: If the structure is not a valid red-black tree in mean order.
        """
        tree = cls()
        tree.root = root
        if root is not None:
            root.parent = None
            for node in tree._postorder():
                if node.left is not None:
                    node.left.parent = node
                if node.right is not None:
                    node.right.parent = node
                node.total = node.centroid.weight + _total(node.left) + _total(node.right)
                tree._size += 1
        tree.validate()
        return tree

    def validate(self):
        """Check ordering, cached weights, parent links and the red-black invariants.

        Raises:
            ValueError: Describing the first violation found.
        """
        if self.root is None:
            if self._size:
                raise ValueError(f'Empty tree reports {self._size} nodes.')
            return
        if self.root.parent is not None:
            raise ValueError('Root has a parent.')
        if self.root.red:
            raise ValueError('Root is red.')
        self._check_nodes()
        previous = None
        count = 0
        for node in self.nodes():
            if previous is not None and not previous._key() < node._key():
                raise ValueError(f'Centroids out of order: {previous.centroid} before {node.centroid}.')
            previous = node
            count += 1
        if count != self._size:
            raise ValueError(f'Tree holds {count} nodes but reports {self._size}.')

    def _check_nodes(self) -> int:
        heights = {}
        for node in self._postorder():
            if node.centroid.weight < 1:
                raise ValueError(f'Centroid {node.centroid} has non-positive weight.')
            for child in (node.left, node.right):
                if child is not None:
                    if child.parent is not node:
                        raise ValueError(f'Broken parent link below {node.centroid}.')
                    if node.red and child.red:
                        raise ValueError(f'Red centroid {node.centroid} has a red child.')
            left_height = heights.pop(node.left, 1)
            right_height = heights.pop(node.right, 1)
            if left_height != right_height:
                raise ValueError(f'Unequal black heights below {node.centroid}.')
            if node.total != node.centroid.weight + _total(node.left) + _total(node.right):
                raise ValueError(f'Stale subtree weight at {node.centroid}.')
            heights[node] = left_height + (0 if node.red else 1)
        return heights[self.root]

    def _postorder(self) -> Iterator[_Node]:
        stack = [(self.root, False)]
        while stack:
            node, visited = stack.pop()
            if visited:
                yield node
                continue
            stack.append((node, True))
            for child in (node.right, node.left):
                if child is not None:
                    stack.append((child, False))

    def _rotate_left(self, x: _Node):
        y = x.right
        x.right = y.left
        if y.left is not None:
            y.left.parent = x
        self._replace_child(x, y)
        y.left = x
        x.parent = y
        y.total = x.total
        x.total = x.centroid.weight + _total(x.left) + _total(x.right)

    def _rotate_right(self, x: _Node):
        y = x.left
        x.left = y.right
        if y.right is not None:
            y.right.parent = x
        self._replace_child(x, y)
        y.right = x
        x.parent = y
        y.total = x.total
        x.total = x.centroid.weight + _total(x.left) + _total(x.right)

    def _replace_child(self, old: _Node, new: _Node):
        new.parent = old.parent
        if old.parent is None:
            self.root = new
        elif old is old.parent.left:
            old.parent.left = new
        else:
            old.parent.right = new

    def _insert_fixup(self, node: _Node):
        while _is_red(node.parent):
            parent = node.parent
            grandparent = parent.parent
            if parent is grandparent.left:
                uncle = grandparent.right
                if _is_red(uncle):
                    parent.red = uncle.red = False
                    grandparent.red = True
                    node = grandparent
                    continue
                if node is parent.right:
                    node = parent
                    self._rotate_left(node)
                    parent = node.parent
                parent.red = False
                grandparent.red = True
                self._rotate_right(grandparent)
            else:
                uncle = grandparent.left
                if _is_red(uncle):
                    parent.red = uncle.red = False
                    grandparent.red = True
                    node = grandparent
                    continue
                if node is parent.left:
                    node = parent
                    self._rotate_right(node)
                    parent = node.parent
                parent.red = False
                grandparent.red = True
                self._rotate_left(grandparent)
        self.root.red = False

    def _delete_fixup(self, node: Optional[_Node], parent: Optional[_Node]):
        # `node` carries an extra black; it may be None, hence the explicit parent
        while node is not self.root and not _is_red(node):
            if node is parent.left:
                sibling = parent.right
                if sibling.red:
                    sibling.red = False
                    parent.red = True
                    self._rotate_left(parent)
                    sibling = parent.right
                if not _is_red(sibling.left) and not _is_red(sibling.right):
                    sibling.red = True
                    node = parent
                    parent = node.parent
                else:
                    if not _is_red(sibling.right):
                        sibling.left.red = False
                        sibling.red = True
                        self._rotate_right(sibling)
                        sibling = parent.right
                    sibling.red = parent.red
                    parent.red = False
                    sibling.right.red = False
                    self._rotate_left(parent)
                    node = self.root
            else:
                sibling = parent.left
                if sibling.red:
                    sibling.red = False
                    parent.red = True
                    self._rotate_right(parent)
                    sibling = parent.left
                if not _is_red(sibling.left) and not _is_red(sibling.right):
                    sibling.red = True
                    node = parent
                    parent = node.parent
                else:
                    if not _is_red(sibling.left):
                        sibling.right.red = False
                        sibling.red = True
                        self._rotate_left(sibling)
                        sibling = parent.left
                    sibling.red = parent.red
                    parent.red = False
                    sibling.left.red = False
                    self._rotate_right(parent)
                    node = self.root
        if node is not None:
            node.red = False
