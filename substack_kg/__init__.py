"""
Substack Knowledge Graph Builder

Incrementally builds a cumulative knowledge graph of entities, concepts and
relationships from an ordered corpus of blog posts.
"""

__version__ = "0.1.0"
