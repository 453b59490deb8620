"""
Exceptions raised by the diagram core.

Numeric shortfalls are never raised; they travel as a Status on the
returned estimate. These exceptions cover per-query geometric failures.
"""


class UnsolvableError(Exception):
    """The inputs do not define the requested object (ellipse, inverse transform, ...)."""


class FailedToConvergeError(Exception):
    """An iterative geometric search ran out of steps before reaching its tolerance."""
