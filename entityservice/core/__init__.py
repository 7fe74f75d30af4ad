"""Core Layer — entity cache, mapping plan and mapping process.

Invariants:
    - No module in core/ imports from services/, models/ or infrastructure/
    - No IO: the only suspension point is an async field operation

Design Decisions:
    - Engine kept free of transport concerns so it runs against any Transport
"""
