"""
Fixpoint Tests Module
Testing framework and test suites

This module contains test components:
- Engine and session tests
- Unit tests: individual component testing
"""

__version__ = "1.0.0"
__author__ = "Fixpoint Development Team"
