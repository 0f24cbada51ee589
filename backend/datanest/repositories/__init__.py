"""Repositories — SQLAlchemy implementations of the core repository Protocols.

Invariants:
    - Every repository works on the AsyncSession it was built with; none of them commits
    - Status changes are conditional UPDATEs (compare-and-swap) returning whether they applied
    - Counter changes are in-database increments (col = col + n), never read-modify-write

Design Decisions:
    - One file per aggregate, composed by SqlMarketplaceStore (the unit of work)
    - Lifecycle services depend on the Protocols only, so a different backend can be swapped in
"""
