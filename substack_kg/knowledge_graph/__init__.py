"""Knowledge graph data model, merge rules and consolidation"""
