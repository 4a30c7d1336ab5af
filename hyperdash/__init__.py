"""
HyperDash: Macro, FX, Commodity & Crypto Correlation Dashboard

A research tool for harmonizing heterogeneous public time series onto a
common calendar and comparing them as levels, indices and YoY changes.
"""

__version__ = "0.1.0"
