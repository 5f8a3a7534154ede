"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the taxed-transfer ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Total supply is fixed outside mint and burn
2. atomicity.py - All-or-nothing transfer semantics
3. tax_split.py - Exact, floored tax distribution

These tests use hypothesis for property-based testing.
"""
