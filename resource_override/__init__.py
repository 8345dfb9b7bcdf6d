"""Admission webhook that overrides pod resource requests and limits from configured ratios."""

__version__ = "0.1.0"
