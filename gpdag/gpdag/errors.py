"""Exceptions signalling broken DAG invariants.

These are programmer errors: a DAG built from a valid sample never raises
them, so callers should not try to recover.
"""

from __future__ import annotations


class SubsplitDAGError(RuntimeError):
    pass


class MissingPCSPError(SubsplitDAGError, KeyError):
    """A generalized PCSP has no parameter index."""


class MissingSubsplitError(SubsplitDAGError, KeyError):
    """A subsplit has no DAG node."""


class InvalidPLVTypeError(SubsplitDAGError, ValueError):
    pass


class EmptyDAGError(SubsplitDAGError):
    """The DAG has no real (non-fake) nodes."""
