"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vault.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_conversion.py - Exact floor conversions and the no-gain round trip
2. test_monotonicity.py - The rate never decreases
3. test_atomicity.py - Failed operations change nothing, anywhere
4. test_authorization.py - Only owners withdraw, only the administrator updates
5. test_conservation.py - Ledgers agree with external balances
6. test_concurrency.py - Concurrent callers see committed state only

These tests use hypothesis for property-based testing.
"""
