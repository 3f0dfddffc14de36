"""
Pytest fixtures for tidemark tests.

Fixtures are organized by test category:
- source_tree.py: Temporary source trees with pinned mtimes
- detector.py: Fake clock, registries and wired ChangeDetector instances
"""
