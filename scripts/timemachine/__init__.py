"""
Show database helpers for the Grateful Dead Time Machine frontend.

Shared by scripts/build_show_database.py and the test suite.
"""
