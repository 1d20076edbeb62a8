"""Unit tests for the Fixpoint components."""
