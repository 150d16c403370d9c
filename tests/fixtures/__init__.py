"""Test fixtures for Contribution Tracker."""

from .fake_client import FakeGitHubClient

__all__ = ["FakeGitHubClient"]
