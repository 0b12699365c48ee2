#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Python package for **streaming** TDigest calculation on a balanced tree.

- centroids kept in a red-black tree augmented with subtree weights
- logarithmic insertion, rank and percentile lookup
- exact minimum and maximum, finely resolved tails
- compact nested-list serialization that restores the exact tree

Based on the t-digest of Ted Dunning.

- https://github.com/tdunning/t-digest

Basic example
-------------

.. code:: python

    from treedigest import TDigest
    import numpy as np

    rng = np.random.default_rng(12354)
    x = rng.uniform(size=100_000)

    td = TDigest()
    td.push(x)
    td.compress()

    # estimated fraction of data at or below given values (CDF)
    td.p_rank([0.1, 0.5, 0.9])

    # estimated values at given ranks (inverse CDF)
    td.percentile([0., 0.25, 0.5, 0.75, 1.])

    # digests travel as plain nested lists
    blob = td.serialize()
    td2 = TDigest.of_serialized(blob)

Exact and approximate modes
---------------------------

``TDigest(discrete=True)`` never merges distinct values and reports the exact step CDF, which suits categorical
data. ``Digest`` starts in this exact mode and switches to the approximate one once most of its centroids are
singletons:

.. code:: python

    from treedigest import Digest

    digest = Digest(thresh=1000, ratio=0.9)
    digest.push(values)
    digest.mode  # DigestMode.Discrete or DigestMode.Continuous after the switch

Legal stuff
-----------

Apache License, Version 2.0,
http://www.apache.org/licenses/LICENSE-2.0

Copyright (c) 2015 Ted Dunning, All rights reserved.
     https://github.com/tdunning/t-digest

"""


from .centroid_tree import Centroid, CentroidTree
from .treedigest import TDigest, HandlingInvalid, DeserializationError
from .digest import Digest, DigestMode

__all__ = ['TDigest', 'Digest', 'DigestMode', 'HandlingInvalid', 'DeserializationError', 'Centroid',
           'CentroidTree']
__version__ = '0.1.0'
