"""Tests for the match engine."""
