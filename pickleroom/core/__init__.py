"""Core module for the pickleroom application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
