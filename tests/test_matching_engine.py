"""
Tests for the bank transaction matching engine.
"""
import pytest
from datetime import date

from ynab_reconcile.core.matching_engine import (
    MatchingEngine,
    match_bank_transactions,
    payee_similarity,
)
from ynab_reconcile.models.schemas import MatchConfidence

from conftest import bank_txn, ledger_txn

D = date(2024, 3, 1)


def day(n):
    return date(2024, 3, n)


class TestPayeeSimilarity:
    """Payee similarity scoring"""

    def test_exact_ignores_case_and_whitespace(self):
        assert payee_similarity("  acme store ", "ACME STORE") == 1.0

    def test_all_tokens_of_shorter_contained(self):
        assert payee_similarity("Shell", "SHELL OIL 12345") == 1.0

    def test_partial_token_overlap(self):
        assert payee_similarity("Amazon Marketplace", "AMAZON MKTPLACE PMTS") == 0.5

    def test_token_containing_other_token_counts(self):
        # "starbucks" contains "starbuck"
        assert payee_similarity("starbucks", "starbuck coffee") == 1.0

    def test_missing_payee_scores_zero(self):
        assert payee_similarity(None, "Acme") == 0.0
        assert payee_similarity("Acme", None) == 0.0
        assert payee_similarity("   ", "Acme") == 0.0

    def test_no_overlap(self):
        assert payee_similarity("Grocery Mart", "City Utilities") == 0.0


class TestConfidenceTiers:
    """Tier assignment for a single bank/YNAB pair"""

    def test_statement_line_with_identical_ledger_row_is_exact(self):
        bank = bank_txn(day(1), "-45.00", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        result = match_bank_transactions([bank], [ledger])

        assert len(result.matched) == 1
        match = result.matched[0]
        assert match.confidence == MatchConfidence.EXACT
        assert match.ledger_transaction is ledger
        assert match.bank_transaction is bank
        assert match.reasons == ["Exact amount match", "Same date", "Payee match"]

    def test_one_day_off_with_similar_payee_is_high(self):
        bank = bank_txn(day(2), "-45.00", "ACME STORE #123")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        match = MatchingEngine().match_transaction(bank, [ledger])

        assert match.confidence == MatchConfidence.HIGH
        assert "Date within 1 day" in match.reasons

    def test_exact_amount_without_payee_is_medium(self):
        bank = bank_txn(day(1), "-45.00")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        match = MatchingEngine().match_transaction(bank, [ledger])

        assert match.confidence == MatchConfidence.MEDIUM

    def test_exact_amount_within_tolerance_is_medium(self):
        bank = bank_txn(day(4), "-45.00", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        match = MatchingEngine(tolerance_days=3).match_transaction(bank, [ledger])

        assert match.confidence == MatchConfidence.MEDIUM
        assert "Date within 3 days" in match.reasons

    def test_amount_within_slack_is_low(self):
        bank = bank_txn(day(1), "-45.50", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        match = MatchingEngine().match_transaction(bank, [ledger])

        assert match.confidence == MatchConfidence.LOW
        assert "Amount within $0.50" in match.reasons

    def test_amount_outside_slack_never_proposed(self):
        bank = bank_txn(day(1), "-46.50", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        result = match_bank_transactions([bank], [ledger])

        assert result.matched == []
        assert result.unmatched_bank == [bank]
        assert result.unmatched_ledger == [ledger]

    def test_amount_slack_boundary_is_inclusive(self):
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")
        engine = MatchingEngine()

        at_slack = engine.match_transaction(bank_txn(day(1), "-46.00", "Acme Store"), [ledger])
        past_slack = engine.match_transaction(bank_txn(day(1), "-46.001", "Acme Store"), [ledger])

        assert at_slack.confidence == MatchConfidence.LOW
        assert "Amount within $1.00" in at_slack.reasons
        assert past_slack is None

    def test_date_outside_tolerance_never_proposed(self):
        bank = bank_txn(day(5), "-45.00", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        assert MatchingEngine(tolerance_days=3).match_transaction(bank, [ledger]) is None

    def test_zero_tolerance_requires_same_day(self):
        bank = bank_txn(day(2), "-45.00", "Acme Store")
        ledger = ledger_txn("t1", day(1), -45000, "Acme Store")

        result = match_bank_transactions([bank], [ledger], tolerance_days=0)

        assert result.matched == []

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            MatchingEngine(tolerance_days=-1)


class TestCandidateSelection:
    """Best-candidate selection and greedy consumption"""

    def test_higher_tier_beats_earlier_lower_tier(self):
        bank = bank_txn(day(1), "-20.00", "Cafe")
        near = ledger_txn("near", day(1), -20500, "Cafe")
        exact = ledger_txn("exact", day(1), -20000, "Cafe")

        match = MatchingEngine().match_transaction(bank, [near, exact])

        assert match.ledger_transaction.id == "exact"

    def test_tie_within_tier_keeps_first_seen(self):
        bank = bank_txn(day(2), "-20.00")
        first = ledger_txn("first", day(4), -20000)
        second = ledger_txn("second", day(2), -20000)

        match = MatchingEngine().match_transaction(bank, [first, second])

        assert match.confidence == MatchConfidence.MEDIUM
        assert match.ledger_transaction.id == "first"

    def test_each_ledger_row_consumed_once(self):
        banks = [bank_txn(day(1), "-10.00", "Bus"), bank_txn(day(1), "-10.00", "Bus")]
        ledger = [ledger_txn("t1", day(1), -10000, "Bus")]

        result = match_bank_transactions(banks, ledger)

        assert len(result.matched) == 1
        assert result.matched[0].bank_transaction is banks[0]
        assert result.unmatched_bank == [banks[1]]
        assert result.unmatched_ledger == []

    def test_larger_amounts_claim_shared_rows_first(self):
        small_exact = bank_txn(day(1), "-100.00", "Shop")
        large_near = bank_txn(day(1), "-100.50", "Shop")
        ledger = [ledger_txn("t1", day(1), -100000, "Shop")]

        result = match_bank_transactions([small_exact, large_near], ledger)

        assert len(result.matched) == 1
        assert result.matched[0].bank_transaction is large_near
        assert result.matched[0].confidence == MatchConfidence.LOW
        assert result.unmatched_bank == [small_exact]

    def test_duplicate_amounts_pair_one_to_one(self):
        banks = [bank_txn(day(1), "-5.00", "Coffee A"), bank_txn(day(1), "-5.00", "Coffee B")]
        ledger = [
            ledger_txn("b", day(1), -5000, "Coffee B"),
            ledger_txn("a", day(1), -5000, "Coffee A"),
        ]

        result = match_bank_transactions(banks, ledger)

        pairs = {m.bank_transaction.payee: m.ledger_transaction.id for m in result.matched}
        assert pairs == {"Coffee A": "a", "Coffee B": "b"}


class TestMatchResult:
    """Partition invariants and summary"""

    @pytest.fixture
    def statement(self):
        return [
            bank_txn(day(1), "-45.00", "Acme Store"),
            bank_txn(day(3), "-12.30", "Bakery"),
            bank_txn(day(5), "1500.00", "Payroll"),
            bank_txn(day(9), "-99.99", "Unknown"),
            bank_txn(day(3), "-12.30", "Bakery"),
        ]

    @pytest.fixture
    def ledger(self):
        return [
            ledger_txn("acme", day(1), -45000, "Acme Store"),
            ledger_txn("bakery", day(4), -12300, "Bakery"),
            ledger_txn("payroll", day(5), 1500000, "Employer Payroll"),
            ledger_txn("rent", day(1), -800000, "Landlord"),
        ]

    def test_every_bank_transaction_accounted_once(self, statement, ledger):
        result = match_bank_transactions(statement, ledger)

        assert len(result.matched) + len(result.unmatched_bank) == len(statement)
        seen = [id(m.bank_transaction) for m in result.matched] + [id(b) for b in result.unmatched_bank]
        assert sorted(seen) == sorted(id(b) for b in statement)

    def test_every_ledger_id_in_at_most_one_group(self, statement, ledger):
        result = match_bank_transactions(statement, ledger)

        ids = [m.ledger_transaction.id for m in result.matched] + [t.id for t in result.unmatched_ledger]
        assert len(ids) == len(set(ids))
        assert set(ids) == {t.id for t in ledger}

    def test_summary(self, statement, ledger):
        result = match_bank_transactions(statement, ledger)

        assert result.summary.total_bank_transactions == 5
        assert result.summary.total_ledger_transactions == 4
        assert result.summary.matched_count == 3
        assert result.summary.match_rate == pytest.approx(0.6)
        assert [t.id for t in result.unmatched_ledger] == ["rent"]

    def test_deterministic(self, statement, ledger):
        first = match_bank_transactions(statement, ledger)
        second = match_bank_transactions(statement, ledger)

        assert [(id(m.bank_transaction), m.ledger_transaction.id, m.confidence) for m in first.matched] == \
            [(id(m.bank_transaction), m.ledger_transaction.id, m.confidence) for m in second.matched]

    def test_empty_statement_leaves_all_ledger_unmatched(self, ledger):
        result = match_bank_transactions([], ledger)

        assert result.matched == []
        assert result.summary.match_rate == 0.0
        assert result.unmatched_ledger == ledger

    def test_to_dict(self):
        result = match_bank_transactions(
            [bank_txn(D, "-45.00", "Acme Store")],
            [ledger_txn("t1", D, -45000, "Acme Store")]
        )

        data = result.to_dict()

        assert data["summary"]["matched_count"] == 1
        assert data["matched"][0]["confidence"] == "exact"
        assert data["matched"][0]["bank_transaction"]["amount"] == "-45.00"
        assert data["matched"][0]["ledger_transaction"]["date"] == "2024-03-01"
