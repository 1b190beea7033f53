"""
Test support utilities for entity-repo tests.

Holds the mapped entity types the tests persist; fixtures live in
``conftest.py``.
"""
