"""Tests for expense normalization and net balance aggregation."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from computations import (
    compute_net_balances,
    compute_summary,
    filter_expenses_by_date,
    normalize_expense,
    reduction_factor,
)
from errors import LedgerInputError
from factories import PEOPLE, d, dinner_for_four, item, make_expense, make_settlement
from models import PayerShare


class TestNormalizeExpense:
    def test_equal_split_uses_stored_shares(self):
        n = normalize_expense(dinner_for_four())
        assert n.paid == {"alice": d(1000)}
        assert n.owed == {"alice": d(250), "bob": d(250), "charlie": d(250), "diana": d(250)}
        assert n.celebration is None

    def test_duplicate_entries_are_summed(self):
        e = make_expense(total=100, paid={"alice": 100})
        e = replace(e, shares=(PayerShare("bob", d(30)), PayerShare("bob", d(70))))
        assert normalize_expense(e).owed == {"bob": d(100)}

    def test_itemwise_without_celebration(self):
        e = make_expense(
            total=500, paid={"charlie": 500}, split_method="itemwise",
            items=[item("Wine", 200, "alice"), item("Steak", 300, "bob")],
        )
        n = normalize_expense(e)
        assert n.owed == {"alice": d(200), "bob": d(300)}
        assert sum(n.owed.values()) == d(500)

    def test_itemwise_with_celebration(self):
        e = make_expense(
            total=1500, paid={"alice": 1500}, split_method="itemwise",
            items=[item("Cake", 600, "alice", "bob"), item("Venue", 900, "charlie")],
            celebration=("diana", 200),
        )
        assert reduction_factor(e).quantize(Decimal("0.0001")) == Decimal("0.8667")
        n = normalize_expense(e)
        assert n.owed == {"alice": d(260), "bob": d(260), "charlie": d(780)}
        assert n.celebration.person_id == "diana"
        assert sum(n.obligations().values()) == d(1500)

    def test_uneven_item_split_conserves_cents(self):
        e = make_expense(
            total=100, paid={"alice": 100}, split_method="itemwise",
            items=[item("Pizza", 100, "charlie", "bob", "alice")],
        )
        assert normalize_expense(e).owed == {"alice": d("33.34"), "bob": d("33.33"), "charlie": d("33.33")}

    def test_duplicate_sharers_count_once(self):
        e = make_expense(
            total=90, paid={"alice": 90}, split_method="itemwise",
            items=[item("Fries", 90, "bob", "bob", "alice")],
        )
        assert normalize_expense(e).owed == {"alice": d(45), "bob": d(45)}

    def test_item_without_sharers_is_dropped(self, caplog):
        e = make_expense(
            total=300, paid={"alice": 300}, split_method="itemwise",
            items=[item("Soup", 100, "alice"), item("Mystery", 200)],
        )
        n = normalize_expense(e)
        assert n.owed == {"alice": d(100)}
        assert "no sharers" in caplog.text

    def test_no_items_leaves_nothing_owed(self):
        e = make_expense(total=100, paid={"alice": 100}, split_method="itemwise", items=[])
        assert reduction_factor(e) == 0
        assert normalize_expense(e).owed == {}

    def test_zero_total_zero_items(self):
        e = make_expense(total=0, split_method="itemwise", items=[])
        assert reduction_factor(e) == 1

    def test_itemwise_without_item_detail_falls_back_to_shares(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"bob": 100}, split_method="itemwise")
        assert normalize_expense(e).owed == {"bob": d(100)}

    def test_malformed_amount_counts_as_zero(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"bob": 100})
        e = replace(e, shares=(PayerShare("bob", "lots"),))
        assert normalize_expense(e).owed == {"bob": d(0)}

    def test_celebration_exceeding_total_leaves_nothing_for_items(self):
        e = make_expense(
            total=100, paid={"alice": 100}, split_method="itemwise",
            items=[item("Cake", 100, "bob")], celebration=("diana", 150),
        )
        assert normalize_expense(e).owed == {}


class TestNetBalances:
    def test_four_person_dinner(self):
        balances = compute_net_balances(PEOPLE, [dinner_for_four()], [])
        assert balances == {"alice": d(750), "bob": d(-250), "charlie": d(-250), "diana": d(-250)}
        assert list(balances) == ["alice", "bob", "charlie", "diana"]

    def test_everyone_starts_at_zero(self):
        assert compute_net_balances(PEOPLE, [], []) == {p.id: d(0) for p in PEOPLE}

    def test_multiple_payers(self):
        e = make_expense(
            total=300, paid={"alice": 200, "bob": 100},
            owed={"alice": 100, "bob": 100, "charlie": 100},
        )
        balances = compute_net_balances(PEOPLE, [e], [])
        assert balances["alice"] == d(100)
        assert balances["bob"] == d(0)
        assert balances["charlie"] == d(-100)

    def test_celebration_debits_contributor(self):
        e = make_expense(
            total=1500, paid={"alice": 1500}, split_method="itemwise",
            items=[item("Cake", 600, "alice", "bob"), item("Venue", 900, "charlie")],
            celebration=("diana", 200),
        )
        balances = compute_net_balances(PEOPLE, [e], [])
        assert balances == {"alice": d(1240), "bob": d(-260), "charlie": d(-780), "diana": d(-200)}
        assert sum(balances.values()) == 0

    def test_excluded_expense_has_no_effect(self):
        excluded = make_expense("gift", total=80, paid={"diana": 80}, owed={"alice": 80}, exclude=True)
        with_it = compute_net_balances(PEOPLE, [dinner_for_four(), excluded], [])
        without = compute_net_balances(PEOPLE, [dinner_for_four()], [])
        assert with_it == without

    def test_settlement_moves_only_its_two_parties(self):
        before = compute_net_balances(PEOPLE, [dinner_for_four()], [])
        after = compute_net_balances(PEOPLE, [dinner_for_four()], [make_settlement("bob", "alice", 100)])
        assert after["bob"] == before["bob"] + 100
        assert after["alice"] == before["alice"] - 100
        assert after["charlie"] == before["charlie"]
        assert after["diana"] == before["diana"]

    def test_overpaying_settlement_flips_sign(self):
        balances = compute_net_balances(PEOPLE, [dinner_for_four()], [make_settlement("bob", "alice", 300)])
        assert balances["bob"] == d(50)

    def test_orphan_ids_are_tracked(self, caplog):
        e = make_expense(total=100, paid={"zed": 100}, owed={"alice": 100})
        balances = compute_net_balances(PEOPLE, [e], [])
        assert balances["zed"] == d(100)
        assert sum(balances.values()) == 0
        assert "zed" in caplog.text

    def test_inconsistent_record_is_not_corrected(self):
        e = make_expense(total=100, paid={"alice": 100}, owed={"bob": 90})
        balances = compute_net_balances(PEOPLE, [e], [])
        assert sum(balances.values()) == d(10)

    @pytest.mark.parametrize("which", ["people", "expenses", "settlement_payments"])
    def test_missing_collection_raises(self, which):
        kwargs = {"people": PEOPLE, "expenses": [], "settlement_payments": []}
        kwargs[which] = None
        with pytest.raises(LedgerInputError):
            compute_net_balances(**kwargs)


class TestSummary:
    def test_summary_matches_balances(self, mixed_ledger):
        summary = compute_summary(mixed_ledger.people, mixed_ledger.expenses, mixed_ledger.settlement_payments)
        balances = compute_net_balances(mixed_ledger.people, mixed_ledger.expenses, mixed_ledger.settlement_payments)
        assert {pid: row["net"] for pid, row in summary.items()} == balances

    def test_summary_fields(self, mixed_ledger):
        summary = compute_summary(mixed_ledger.people, mixed_ledger.expenses, mixed_ledger.settlement_payments)
        assert summary["diana"]["celebration"] == d(200)
        assert summary["bob"]["settled_out"] == d(100)
        assert summary["alice"]["settled_in"] == d(100)
        # the excluded gift is not counted
        assert summary["diana"]["paid"] == d(0)


class TestFilterByDate:
    def test_range(self, mixed_ledger):
        out = filter_expenses_by_date(mixed_ledger.expenses, date(2026, 1, 2), date(2026, 1, 2))
        assert [e.id for e in out] == ["taxi", "groceries"]

    def test_undated_only_in_open_range(self):
        e = make_expense(created_at=None)
        assert filter_expenses_by_date([e], None, None) == [e]
        assert filter_expenses_by_date([e], date(2026, 1, 1), None) == []
