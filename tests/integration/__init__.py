"""Integration tests for hookgate.

End-to-end tests that run the whole gate pipeline.

Test Organization:
- test_scenarios.py: reference scenarios for each trigger point
- test_git_hooks.py: hooks installed in a real repository and fired by git
"""
