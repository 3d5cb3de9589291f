"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the token ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - total_supply == sum(balances) <= max_supply
2. atomicity.py - Rejected calls leave no trace
3. idempotency.py - Repeated admin calls are no-ops
4. replay.py - Each permit signature is usable exactly once
5. temporal.py - Clock monotonicity, mint windows and permit deadlines
6. concurrency.py - Calls from many threads are totally ordered

These tests use hypothesis for property-based testing.
"""
