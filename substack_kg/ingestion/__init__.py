"""Corpus loading"""

from .document_loader import load_documents

__all__ = ["load_documents"]
