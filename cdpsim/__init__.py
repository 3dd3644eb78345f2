"""
cdpsim — stateful invariant harness for a CDP / stability-pool protocol.

Each step brackets exactly one operation of the system under test between two
snapshots and verifies the transition from the snapshot pair alone.
"""

__version__ = "0.1.0"
