"""Tests for the recurring task engine."""
