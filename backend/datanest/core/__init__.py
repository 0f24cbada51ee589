"""Marketplace rules — access gate, lifecycles, upload checks, conversation grouping.

Nothing here awaits, queries or writes. Checks take row snapshots and return
an error (or None); handlers in services/ decide what to persist.
"""
