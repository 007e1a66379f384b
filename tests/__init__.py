"""
Beacon Test Suite
=================

Test Organization
-----------------
- tests/unit/    : Fast unit tests with fakes and mocks (no network)
- tests/conftest.py : Shared fakes for the gateway session, command service
                      and interactions
"""
