"""
Tests for the statement comparer.

Covers:
- Reflexivity and symmetry of matching
- Positional pairing of duplicate keys
- Verbose field mismatch reporting
- Pass/fail policies and match rates
- Currency guard and engine trace logging
"""

from datetime import date
from decimal import Decimal

import pytest

from statement_engines import MismatchPolicy, Side, compare
from statement_engines.reconciliation import MatchKey, field_mismatches
from statement_kernel.domain import Transaction
from statement_kernel.exceptions import StatementCurrencyMismatchError
from tests.samples import make_statement, make_transaction


def _txn(amount, day=15, **kwargs):
    return make_transaction(amount, date(2024, 1, day), **kwargs)


# =============================================================================
# Matching
# =============================================================================


class TestMatching:
    """Pairing by value date, currency and amount."""

    def test_statement_matches_itself(self):
        """Comparing a statement with itself is clean."""
        stmt = make_statement((_txn("10.00"), _txn("-3.00", 16), _txn("10.00")))
        diff = compare(stmt, stmt, verbose=True)

        assert diff.is_clean
        assert diff.matched_count == 3
        assert [(p.left_index, p.right_index) for p in diff.matched] == [(0, 0), (1, 1), (2, 2)]

    def test_empty_statements(self):
        diff = compare(make_statement(), make_statement())
        assert diff.is_clean
        assert diff.left_count == diff.right_count == 0

    def test_single_missing_transaction(self):
        """A transaction present only on the left is reported with its index."""
        left = make_statement((_txn("10.00"), _txn("20.00", 16)))
        right = make_statement((_txn("10.00"),))
        diff = compare(left, right)

        assert diff.matched_count == 1
        [only] = diff.only_left
        assert only.side is Side.LEFT
        assert only.index == 1
        assert only.transaction.amount == Decimal("20.00")
        assert diff.only_right == ()

    def test_unmatched_on_both_sides(self):
        left = make_statement((_txn("10.00"),))
        right = make_statement((_txn("10.01"),))
        diff = compare(left, right)

        assert diff.matched_count == 0
        assert [u.index for u in diff.only_left] == [0]
        assert [u.index for u in diff.only_right] == [0]
        assert diff.only_right[0].side is Side.RIGHT

    def test_sign_is_part_of_the_key(self):
        left = make_statement((_txn("10.00"),))
        right = make_statement((_txn("-10.00"),), opening="1020.00")
        assert compare(left, right).unmatched_count == 2

    def test_booking_date_ignored(self):
        """Only the value date takes part in matching."""
        booked_late = Transaction(
            booking_date=date(2024, 1, 17),
            value_date=date(2024, 1, 15),
            amount=Decimal("10.00"),
            currency="EUR",
        )
        diff = compare(make_statement((_txn("10.00"),)), make_statement((booked_late,)))
        assert diff.matched_count == 1

    def test_duplicates_paired_positionally(self):
        """Surplus duplicates on one side stay unmatched, in statement order."""
        left = make_statement((
            _txn("5.00", bank_reference="A"),
            _txn("5.00", bank_reference="B"),
            _txn("5.00", bank_reference="C"),
        ))
        right = make_statement((
            _txn("5.00", bank_reference="X"),
            _txn("5.00", bank_reference="Y"),
        ))
        diff = compare(left, right)

        assert [(p.left.bank_reference, p.right.bank_reference) for p in diff.matched] == [
            ("A", "X"),
            ("B", "Y"),
        ]
        assert [u.transaction.bank_reference for u in diff.only_left] == ["C"]

    def test_matching_is_symmetric_in_counts(self):
        left = make_statement((_txn("5.00"), _txn("5.00"), _txn("7.00", 16)))
        right = make_statement((_txn("5.00"), _txn("8.00", 17)))
        forward, backward = compare(left, right), compare(right, left)

        assert forward.matched_count == backward.matched_count
        assert len(forward.only_left) == len(backward.only_right)
        assert len(forward.only_right) == len(backward.only_left)

    def test_match_key(self):
        txn = _txn("-2.50", 20)
        assert MatchKey.of(txn) == MatchKey(date(2024, 1, 20), "EUR", Decimal("-2.50"))

    def test_different_account_currencies_rejected(self):
        with pytest.raises(StatementCurrencyMismatchError) as exc_info:
            compare(make_statement(), make_statement(currency="USD"))
        assert exc_info.value.left_currency == "EUR"
        assert exc_info.value.right_currency == "USD"


# =============================================================================
# Field mismatches
# =============================================================================


class TestFieldMismatches:
    def test_not_reported_without_verbose(self):
        left = make_statement((_txn("5.00", narrative=("Rent",)),))
        right = make_statement((_txn("5.00", narrative=("Rent January",)),))
        diff = compare(left, right)
        assert diff.matched[0].is_exact
        assert diff.is_clean

    def test_verbose_reports_differing_fields(self):
        left = make_statement((_txn("5.00", narrative=("Rent",), bank_reference="R1"),))
        right = make_statement((_txn("5.00", narrative=("Rent January",), bank_reference="R1"),))
        diff = compare(left, right, verbose=True)

        [pair] = diff.matched
        [mismatch] = pair.mismatches
        assert mismatch.field_name == "narrative"
        assert mismatch.left == "Rent"
        assert mismatch.right == "Rent January"
        assert diff.mismatch_count == 1
        assert not diff.is_clean

    def test_missing_equals_empty(self):
        assert field_mismatches(_txn("1.00"), _txn("1.00", customer_reference="")) == ()

    def test_missing_reference_reported_as_none(self):
        [mismatch] = field_mismatches(_txn("1.00", customer_reference="E2E"), _txn("1.00"))
        assert mismatch.field_name == "customer_reference"
        assert mismatch.left == "E2E"
        assert mismatch.right is None

    def test_narrative_segments_compared_as_text(self):
        left = _txn("1.00", narrative=("Invoice 4711", "ACME GmbH"))
        right = _txn("1.00", narrative=("Invoice 4711 ACME GmbH",))
        assert field_mismatches(left, right) == ()


# =============================================================================
# Policies and rates
# =============================================================================


class TestPolicies:
    @pytest.fixture
    def mismatch_only(self):
        left = make_statement((_txn("5.00", bank_reference="A"),))
        right = make_statement((_txn("5.00", bank_reference="B"),))
        return compare(left, right, verbose=True)

    @pytest.fixture
    def unmatched(self):
        return compare(make_statement((_txn("5.00"),)), make_statement())

    def test_default_policy_ignores_field_mismatches(self, mismatch_only):
        assert not mismatch_only.has_differences()

    def test_any_policy(self, mismatch_only, unmatched):
        assert mismatch_only.has_differences(MismatchPolicy.ANY)
        assert unmatched.has_differences(MismatchPolicy.ANY)

    def test_unmatched_policy(self, unmatched):
        assert unmatched.has_differences(MismatchPolicy.UNMATCHED)

    def test_never_policy(self, unmatched):
        assert not unmatched.has_differences(MismatchPolicy.NEVER)

    def test_policy_from_string(self, unmatched):
        assert unmatched.has_differences("unmatched")

    def test_match_rate(self):
        left = make_statement((_txn("1.00"), _txn("2.00"), _txn("3.00")))
        right = make_statement((_txn("1.00"),))
        diff = compare(left, right)
        assert diff.match_rate(Side.LEFT) == Decimal("33.33")
        assert diff.match_rate(Side.RIGHT) == Decimal("100.00")

    def test_match_rate_of_empty_side(self, unmatched):
        assert unmatched.match_rate(Side.RIGHT) == Decimal("100")
        assert unmatched.match_rate(Side.LEFT) == Decimal("0.00")


# =============================================================================
# Trace logging
# =============================================================================


class TestTrace:
    def test_engine_trace_emitted(self, captured_logs):
        stmt = make_statement((_txn("5.00"),))
        compare(stmt, stmt)
        [trace] = [r for r in captured_logs() if r["message"] == "STATEMENT_ENGINE_TRACE"]
        assert trace["engine_name"] == "reconciliation"
        assert trace["engine_version"] == "1.0"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["function"] == "compare"

    def test_fingerprint_deterministic(self, captured_logs):
        stmt = make_statement((_txn("5.00"),))
        compare(stmt, stmt)
        compare(stmt, stmt)
        prints = [
            r["input_fingerprint"]
            for r in captured_logs()
            if r["message"] == "STATEMENT_ENGINE_TRACE"
        ]
        assert len(prints) == 2
        assert prints[0] == prints[1]

    def test_fingerprint_depends_on_inputs(self, captured_logs):
        stmt = make_statement((_txn("5.00"),))
        other = make_statement((_txn("6.00"),))
        compare(stmt, stmt)
        compare(stmt, other)
        prints = [
            r["input_fingerprint"]
            for r in captured_logs()
            if r["message"] == "STATEMENT_ENGINE_TRACE"
        ]
        assert prints[0] != prints[1]

    def test_completion_summary_logged(self, captured_logs):
        left = make_statement((_txn("5.00"), _txn("6.00")), statement_id="BANK")
        right = make_statement((_txn("5.00"),), statement_id="LEDGER")
        compare(left, right)
        [summary] = [r for r in captured_logs() if r["message"] == "reconciliation_completed"]
        assert summary["left_statement"] == "BANK"
        assert summary["right_statement"] == "LEDGER"
        assert summary["matched"] == 1
        assert summary["only_left"] == 1
