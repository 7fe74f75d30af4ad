"""Services Layer — entity services binding a Transport, a MappingPlan and a cache.

Design Decisions:
    - One file per entity service; generic behaviour lives in entity_service.py
      and cached_entity_service.py
"""
