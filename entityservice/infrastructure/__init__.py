"""Infrastructure Layer — transport to the server and logging setup.

Invariants:
    - Infrastructure never imports from services/ or models/
    - External failures mapped to the core error hierarchy
"""
