"""Symmetric cipher contract used for sensitive identifiers at rest."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Cipher(ABC):

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Return an opaque, printable token."""

    @abstractmethod
    def decrypt(self, token: str) -> str:
        """Invert ``encrypt``.  Raises ValidationError on a tampered token."""
