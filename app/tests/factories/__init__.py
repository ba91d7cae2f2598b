"""Test factories for notification delivery tests."""
