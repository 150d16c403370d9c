"""Command-line interface for Contribution Tracker."""
