"""Cancellation policy and adaptive fee engine.

Resolves cancellation fees from a facility's tiered policy and tunes that
policy from observed cancellation statistics.
"""

__version__ = "0.1.0"
