"""Agent-based simulations of cultural evolution.

Generic discrete-time population engine: a pluggable update rule maps each
generation to the next, an aggregator summarises every generation, and the
experiment driver runs replicates and parameter grids in parallel.
"""

from __future__ import annotations

__version__ = "0.1.0"
