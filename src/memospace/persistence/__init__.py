"""Persistence boundary and its JSON file implementation."""

from .base import KnowledgeBaseService
from .json_store import JsonKnowledgeBase

__all__ = ["KnowledgeBaseService", "JsonKnowledgeBase"]
