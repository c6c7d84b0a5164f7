"""
Auto-fit Test Suite

This package contains tests for the show coordinate system auto-fit.

Structure:
- unit/: Unit tests for individual components (projection, matching, alignment, ICP driver, adapters)
- integration/: End-to-end tests of the command-line pipeline
"""
