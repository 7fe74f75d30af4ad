"""Chat Entities — dataclasses plus the mapping plan builder for each.

Design Decisions:
    - One file per entity for locality
"""
