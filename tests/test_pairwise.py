"""Tests for the pairwise debt resolver."""

import pytest

from errors import LedgerInputError
from factories import PEOPLE, d, dinner_for_four, make_expense, make_settlement
from pairwise import compute_pairwise_debts, expense_debts


def _rows(debts):
    return [(x.from_id, x.to_id, x.amount) for x in debts]


class TestExpenseDebts:
    def test_single_payer(self):
        debts = expense_debts(dinner_for_four())
        assert debts == {("bob", "alice"): d(250), ("charlie", "alice"): d(250), ("diana", "alice"): d(250)}

    def test_obligation_spread_over_payers(self):
        e = make_expense(
            total=300, paid={"alice": 200, "bob": 100},
            owed={"alice": 100, "bob": 100, "charlie": 100},
        )
        debts = expense_debts(e)
        assert debts[("charlie", "alice")] == d("66.67")
        assert debts[("charlie", "bob")] == d("33.33")
        assert debts[("bob", "alice")] == d("66.67")
        assert debts[("alice", "bob")] == d("33.33")
        assert ("alice", "alice") not in debts

    def test_celebration_is_an_obligation(self):
        e = make_expense(
            total=300, paid={"alice": 300},
            owed={"alice": 80, "bob": 80, "charlie": 80}, celebration=("diana", 60),
        )
        assert expense_debts(e)[("diana", "alice")] == d(60)

    def test_nothing_for_zero_total_or_no_payers(self):
        assert expense_debts(make_expense(total=0, paid={"alice": 0}, owed={"bob": 0})) == {}
        assert expense_debts(make_expense(total=100, paid={}, owed={"bob": 100})) == {}


class TestComputePairwiseDebts:
    def test_four_person_dinner(self):
        debts = compute_pairwise_debts(PEOPLE, [dinner_for_four()], [])
        assert _rows(debts) == [
            ("bob", "alice", d(250)),
            ("charlie", "alice", d(250)),
            ("diana", "alice", d(250)),
        ]
        assert all(x.contributing_expense_ids == ("dinner",) for x in debts)

    def test_opposing_directions_are_netted(self):
        expenses = [
            make_expense("exp-1", total=100, paid={"alice": 100}, owed={"alice": 50, "bob": 50}),
            make_expense("exp-2", total=60, paid={"bob": 60}, owed={"alice": 30, "bob": 30}),
        ]
        debts = compute_pairwise_debts(PEOPLE, expenses, [])
        assert _rows(debts) == [("bob", "alice", d(20))]
        assert debts[0].contributing_expense_ids == ("exp-1", "exp-2")

    def test_exactly_opposite_debts_cancel(self):
        expenses = [
            make_expense("exp-1", total=100, paid={"alice": 100}, owed={"alice": 50, "bob": 50}),
            make_expense("exp-2", total=100, paid={"bob": 100}, owed={"alice": 50, "bob": 50}),
        ]
        assert compute_pairwise_debts(PEOPLE, expenses, []) == []

    def test_multi_payer_netting(self):
        e = make_expense(
            total=300, paid={"alice": 200, "bob": 100},
            owed={"alice": 100, "bob": 100, "charlie": 100},
        )
        assert _rows(compute_pairwise_debts(PEOPLE, [e], [])) == [
            ("bob", "alice", d("33.34")),
            ("charlie", "alice", d("66.67")),
            ("charlie", "bob", d("33.33")),
        ]

    def test_settlement_reduces_outstanding(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"alice": 50, "bob": 50})
        [debt] = compute_pairwise_debts(PEOPLE, [e], [make_settlement("bob", "alice", 20)])
        assert debt.amount == d(50)
        assert debt.settled == d(20)
        assert debt.outstanding == d(30)

    def test_overpaid_settlement_goes_negative(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"alice": 50, "bob": 50})
        [debt] = compute_pairwise_debts(PEOPLE, [e], [make_settlement("bob", "alice", 80)])
        assert debt.outstanding == d(-30)

    def test_settlement_in_other_direction_is_ignored(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"alice": 50, "bob": 50})
        [debt] = compute_pairwise_debts(PEOPLE, [e], [make_settlement("alice", "bob", 20)])
        assert debt.settled == d(0)
        assert debt.outstanding == d(50)

    def test_excluded_expenses_are_skipped(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"bob": 100}, exclude=True)
        assert compute_pairwise_debts(PEOPLE, [e], []) == []

    def test_order_does_not_depend_on_input_order(self, mixed_ledger):
        forward = compute_pairwise_debts(mixed_ledger.people, mixed_ledger.expenses, mixed_ledger.settlement_payments)
        backward = compute_pairwise_debts(
            list(reversed(mixed_ledger.people)),
            list(reversed(mixed_ledger.expenses)),
            mixed_ledger.settlement_payments,
        )
        assert forward == backward

    def test_missing_collection_raises(self):
        with pytest.raises(LedgerInputError):
            compute_pairwise_debts(PEOPLE, None, [])
