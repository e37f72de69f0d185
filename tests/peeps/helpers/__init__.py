"""Test helpers shared by the unit tests."""

from .fakes import FakeLauncher, FakeNode, FakePrivacyManager, PrivacyStore

__all__ = [
    "FakeLauncher",
    "FakeNode",
    "FakePrivacyManager",
    "PrivacyStore",
]
