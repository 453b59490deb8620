"""
Adaptive Romberg integration.

The domain is split into an unbalanced binary tree of intervals. Each leaf
caches evenly spaced samples (2^k + 1 of them, at most max_leaf_size) and a
Romberg estimate over them; each internal node holds the sum of its
children's estimates. Every refinement step expands the leaf whose
uncertainty per sample (its efficiency) is highest anywhere in the tree.
Each node caches its best leaf, so finding it costs O(depth).

Ownership runs downward: a node owns its left and right children. The
parent attribute is a back-reference used only to walk root-ward when a
leaf changes; nothing is ever rebuilt by following it down again.
"""

import math

import numpy as np

from diagramcore.models import NumericEstimate, Precision, Status
from diagramcore.numerics.romberg import integral_samples, is_valid_sample_count
from diagramcore.tracer import get_tracer, trace

# Samples taken by a fresh leaf; also the smallest leaf a split may leave behind.
MIN_LEAF_SIZE = 5

DEFAULT_LEAF_SIZE = 9


def _select_best_leaf(left, right):
    """
    Return the most efficient leaf below an internal node with these children.

    Ties go to the left child. Depends only on the children's cached best
    leaves, so recomputing it bottom-up restores the cache exactly.
    """
    a = left.best_leaf
    b = right.best_leaf
    return a if a.efficiency() >= b.efficiency() else b


def _sample(f, xs):
    get_tracer().count("samples", len(xs))
    return np.array([f(x) for x in xs], dtype=float)


class AdaptiveRombergIntegral:
    """
    A node of the adaptive integration tree over [lo, hi].

    The tree a caller builds is a single unsampled leaf. refine() does one
    unit of work; integral() refines until a Precision is satisfied.
    """

    def __init__(self, f, lo, hi, max_leaf_size=DEFAULT_LEAF_SIZE):
        if lo > hi:
            raise ValueError(f"Integration bounds are inverted: lo={lo} > hi={hi}")
        if max_leaf_size < MIN_LEAF_SIZE or not is_valid_sample_count(max_leaf_size):
            raise ValueError(
                f"max_leaf_size must be 2^i + 1 and at least {MIN_LEAF_SIZE}, got {max_leaf_size}"
            )
        self._init_node(f, lo, hi, max_leaf_size)
        self._refresh()

    def _init_node(self, f, lo, hi, max_leaf_size, ys=None):
        self.f = f
        self.lo = lo
        self.hi = hi
        self.max_leaf_size = max_leaf_size
        self.left = None
        self.right = None
        self.parent = None
        self.ys = ys
        # Set once halving the sample spacing stops changing the sample x values.
        self.exhausted = False
        self.estimate = None
        self.best_leaf = None

    def _new_node(self, lo, hi, ys=None):
        """Unvalidated node sharing this tree's integrand and leaf size."""
        node = AdaptiveRombergIntegral.__new__(AdaptiveRombergIntegral)
        node._init_node(self.f, lo, hi, self.max_leaf_size, ys)
        return node

    # -- structure -------------------------------------------------------

    def is_leaf(self):
        return self.left is None

    def is_left(self):
        return self.parent is not None and self.parent.left is self

    def is_right(self):
        return self.parent is not None and self.parent.right is self

    def root(self):
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def leaves(self):
        """Yield the leaves of this subtree from left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    @property
    def sample_cnt(self):
        return self.estimate.sample_cnt

    def efficiency(self):
        """
        Estimate width per sample: what one more unit of work is worth here.

        An unsampled subtree is infinitely efficient. A subtree whose best
        leaf can no longer be refined has efficiency 0.
        """
        if self.best_leaf.exhausted:
            return 0.0
        if self.estimate.sample_cnt == 0:
            return math.inf
        return self.estimate.width() / self.estimate.sample_cnt

    # -- cache maintenance ----------------------------------------------

    def _refresh(self):
        """Recompute this node's estimate and best leaf from its own state."""
        if self.is_leaf():
            if self.ys is None:
                self.estimate = NumericEstimate.bad(0.0, status=Status.OK)
            else:
                self.estimate = integral_samples(self.ys, self.lo, self.hi)
            self.best_leaf = self
        else:
            self.estimate = self.left.estimate.copy().add(self.right.estimate)
            self.best_leaf = _select_best_leaf(self.left, self.right)

    def _update(self):
        """Refresh this node and every ancestor after a mutation."""
        node = self
        while node is not None:
            node._refresh()
            node = node.parent

    # -- leaf mutation ---------------------------------------------------

    def _double(self):
        """
        Insert a sample between each pair of neighbours.

        Returns the number of new samples, or 0 (marking the leaf exhausted)
        if the new midpoints would coincide with existing sample positions.
        """
        n = len(self.ys)
        xs = np.linspace(self.lo, self.hi, 2 * n - 1)
        mids = xs[1::2]
        if np.any(mids <= xs[0:-1:2]) or np.any(mids >= xs[2::2]):
            self.exhausted = True
            get_tracer().event("Adaptive leaf step size underflow", level="WARN",
                               lo=self.lo, hi=self.hi, samples=n)
            return 0
        ys = np.empty(2 * n - 1)
        ys[0::2] = self.ys
        ys[1::2] = _sample(self.f, mids)
        self.ys = ys
        return n - 1

    def _split(self):
        """Turn this leaf into an internal node with two leaf children."""
        new_cnt = 0
        if len(self.ys) < 2 * MIN_LEAF_SIZE - 1:
            new_cnt = self._double()
            if self.exhausted:
                return 0

        ys = self.ys
        m = (len(ys) - 1) // 2
        mid = (self.lo + self.hi) / 2
        left = self._new_node(self.lo, mid, ys[:m + 1].copy())
        right = self._new_node(mid, self.hi, ys[m:].copy())
        for child in (left, right):
            child.parent = self
            child._refresh()
        self.left = left
        self.right = right
        self.ys = None
        return new_cnt

    def expand(self, force_split=False):
        """
        Do one unit of work on this leaf.

        An unsampled leaf takes its first samples. A leaf below
        max_leaf_size doubles its sample count unless force_split is set.
        Otherwise the leaf splits at its midpoint, handing each half of its
        samples to a child.

        Returns:
            Number of new function evaluations.
        """
        if not self.is_leaf():
            raise ValueError("expand() applies only to leaves")

        if self.ys is None:
            self.ys = _sample(self.f, np.linspace(self.lo, self.hi, MIN_LEAF_SIZE))
            new_cnt = MIN_LEAF_SIZE
        elif self.exhausted:
            return 0
        elif len(self.ys) < self.max_leaf_size and not force_split:
            new_cnt = self._double()
        else:
            new_cnt = self._split()
        self._update()
        return new_cnt

    def refine(self):
        """
        Expand the most efficient leaf of this subtree.

        Returns:
            Number of new samples taken; 0 if no leaf can be refined.
        """
        leaf = self.best_leaf
        if leaf.exhausted:
            return 0
        return leaf.expand()

    def expand_right(self):
        """
        Double the domain by attaching a right sibling under a new root.

        The sibling spans [hi, 2*hi - lo] and is sampled with as many
        points as the current rightmost leaf. Must be called on a root;
        afterwards root() returns the new root.

        Returns:
            Number of new samples taken.
        """
        if self.parent is not None:
            raise ValueError("expand_right() applies only to the root")
        if self.hi <= self.lo:
            raise ValueError("Cannot expand an empty domain")

        rightmost = self
        while not rightmost.is_leaf():
            rightmost = rightmost.right
        cnt = MIN_LEAF_SIZE if rightmost.ys is None else max(len(rightmost.ys), MIN_LEAF_SIZE)

        new_hi = self.hi + (self.hi - self.lo)
        sibling = self._new_node(self.hi, new_hi)
        sibling.ys = _sample(self.f, np.linspace(self.hi, new_hi, cnt))

        new_root = self._new_node(self.lo, new_hi)
        new_root.left = self
        new_root.right = sibling
        self.parent = new_root
        sibling.parent = new_root
        sibling._refresh()
        new_root._refresh()
        return cnt

    # -- integration ----------------------------------------------------

    @trace(label="adaptive_integral")
    def integral(self, precision=None):
        """
        Refine until the estimate satisfies precision.

        Returns:
            A copy of the estimate. Status is TOO_MANY_STEPS when the
            sample budget ran out and TOO_SMALL_STEP_SIZE when the best leaf
            can no longer be refined.
        """
        p = precision or Precision()
        while self.sample_cnt < p.min_sample_cnt or not p.close_enough_estimate(self.estimate):
            if self.sample_cnt > p.max_sample_cnt:
                res = self.estimate.copy()
                res.status = Status.TOO_MANY_STEPS
                get_tracer().event("Adaptive sample budget exhausted", level="WARN",
                                   estimate=res)
                return res
            if self.best_leaf.exhausted:
                res = self.estimate.copy()
                res.status = Status.TOO_SMALL_STEP_SIZE
                get_tracer().event("Adaptive refinement stalled", level="WARN", estimate=res)
                return res
            self.refine()
        return self.estimate.copy()

    def __repr__(self):
        kind = "leaf" if self.is_leaf() else "node"
        return (f"AdaptiveRombergIntegral({kind} [{self.lo:g}, {self.hi:g}] "
                f"{self.estimate.value:.10g} +/- {self.estimate.width() / 2:.3g}, "
                f"n={self.sample_cnt})")
