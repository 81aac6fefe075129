"""Test suite for the Colony visibility checker.

Hermetic tests on pytest: the network is replaced by a scripted probe client
or a mocked Playwright request context, and time is pinned per test.
"""
