"""Compute utilities shared by the fitting code."""

from lmmscreen.core.compute.timing import Timer

__all__ = ["Timer"]
