"""Tests for transfer matching."""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from tally.exceptions import RecomputeFailedError
from tally.services.transfer_service import (
    is_transfer_pair,
    find_transfer_pairs,
    recompute_transfers,
)
from tally.models.transaction import Transaction

from factories import USER_ID, build_transaction


class TestIsTransferPair:
    """Test the pair predicate."""

    def test_mirrored_within_three_days(self):
        debit = build_transaction("Transfer to Savings", "250.00", date(2024, 1, 10), account_id="A")
        credit = build_transaction("Transfer from Checking", "-250.00", date(2024, 1, 12), account_id="B")
        assert is_transfer_pair(debit, credit) is True

    def test_one_cent_difference_rejected(self):
        debit = build_transaction("Transfer", "250.00", date(2024, 1, 10), account_id="A")
        credit = build_transaction("Transfer", "-250.01", date(2024, 1, 10), account_id="B")
        assert is_transfer_pair(debit, credit) is False

    def test_same_sign_rejected(self):
        a = build_transaction("Payment", "250.00", date(2024, 1, 10))
        b = build_transaction("Payment", "250.00", date(2024, 1, 10))
        assert is_transfer_pair(a, b) is False

    def test_exactly_three_days_accepted(self):
        a = build_transaction("Out", "75.00", date(2024, 1, 10))
        b = build_transaction("In", "-75.00", date(2024, 1, 13))
        assert is_transfer_pair(a, b) is True

    def test_four_days_rejected(self):
        a = build_transaction("Out", "75.00", date(2024, 1, 10))
        b = build_transaction("In", "-75.00", date(2024, 1, 14))
        assert is_transfer_pair(a, b) is False


class TestFindTransferPairs:
    """Test greedy pairing."""

    def test_pairs_once(self):
        debit = build_transaction("Out", "250.00", date(2024, 1, 10), account_id="A")
        credit = build_transaction("In", "-250.00", date(2024, 1, 12), account_id="B")
        matches = find_transfer_pairs([debit, credit])
        assert len(matches) == 1
        assert matches[0].from_id == debit.id
        assert matches[0].to_id == credit.id
        assert matches[0].amount == Decimal("250.00")
        assert matches[0].confidence == 0.9

    def test_first_match_wins(self):
        debit = build_transaction("Out", "100.00", date(2024, 1, 10))
        first_credit = build_transaction("In", "-100.00", date(2024, 1, 11))
        second_credit = build_transaction("In", "-100.00", date(2024, 1, 12))

        matches = find_transfer_pairs([debit, first_credit, second_credit])
        assert len(matches) == 1
        assert matches[0].to_id == first_credit.id

    def test_transaction_in_at_most_one_pair(self):
        credit = build_transaction("In", "-100.00", date(2024, 1, 10))
        debit_a = build_transaction("Out", "100.00", date(2024, 1, 10))
        debit_b = build_transaction("Out", "100.00", date(2024, 1, 11))

        matches = find_transfer_pairs([credit, debit_a, debit_b])
        ids = [m.from_id for m in matches] + [m.to_id for m in matches]
        assert len(ids) == len(set(ids))
        assert len(matches) == 1

    def test_already_flagged_excluded(self):
        debit = build_transaction("Out", "50.00", date(2024, 1, 10), is_transfer=True)
        credit = build_transaction("In", "-50.00", date(2024, 1, 10))
        assert find_transfer_pairs([debit, credit]) == []

    def test_malformed_skipped(self):
        broken = build_transaction("Out", "50.00", None)
        debit = build_transaction("Out", "50.00", date(2024, 1, 10))
        credit = build_transaction("In", "-50.00", date(2024, 1, 10))
        matches = find_transfer_pairs([broken, debit, credit])
        assert len(matches) == 1
        assert matches[0].from_id == debit.id


class TestRecomputeTransfers:
    """Test the stored recompute."""

    TODAY = date(2024, 1, 20)

    def test_flags_both_sides(self, db_session, make_transaction):
        debit = make_transaction("Out", "250.00", date(2024, 1, 10), account_id="A")
        credit = make_transaction("In", "-250.00", date(2024, 1, 12), account_id="B")
        make_transaction("Groceries", "42.17", date(2024, 1, 11))

        matches = recompute_transfers(db_session, USER_ID, today=self.TODAY)
        assert len(matches) == 1

        db_session.refresh(debit)
        db_session.refresh(credit)
        assert debit.is_transfer and credit.is_transfer
        assert debit.transfer_match_id == credit.id
        assert credit.transfer_match_id == debit.id

    def test_rerun_does_not_repair(self, db_session, make_transaction):
        make_transaction("Out", "250.00", date(2024, 1, 10), account_id="A")
        make_transaction("In", "-250.00", date(2024, 1, 12), account_id="B")

        recompute_transfers(db_session, USER_ID, today=self.TODAY)
        state = sorted(
            (t.id, t.is_transfer, t.transfer_match_id) for t in db_session.query(Transaction).all()
        )

        assert recompute_transfers(db_session, USER_ID, today=self.TODAY) == []
        assert sorted(
            (t.id, t.is_transfer, t.transfer_match_id) for t in db_session.query(Transaction).all()
        ) == state

    def test_new_arrival_matches_unpaired(self, db_session, make_transaction):
        make_transaction("Out", "80.00", date(2024, 1, 10))
        assert recompute_transfers(db_session, USER_ID, today=self.TODAY) == []

        make_transaction("In", "-80.00", date(2024, 1, 11))
        assert len(recompute_transfers(db_session, USER_ID, today=self.TODAY)) == 1

    def test_outside_window_ignored(self, db_session, make_transaction):
        make_transaction("Out", "80.00", date(2023, 11, 1))
        make_transaction("In", "-80.00", date(2023, 11, 2))
        assert recompute_transfers(db_session, USER_ID, today=self.TODAY) == []

    def test_amounts_untouched(self, db_session, make_transaction):
        debit = make_transaction("Out", "250.00", date(2024, 1, 10), account_id="A")
        credit = make_transaction("In", "-250.00", date(2024, 1, 12), account_id="B")

        recompute_transfers(db_session, USER_ID, today=self.TODAY)
        db_session.refresh(debit)
        db_session.refresh(credit)
        assert (debit.amount, credit.amount) == (Decimal("250.00"), Decimal("-250.00"))

    def test_storage_failure_leaves_no_flags(self, db_session, make_transaction):
        make_transaction("Out", "250.00", date(2024, 1, 10), account_id="A")
        make_transaction("In", "-250.00", date(2024, 1, 12), account_id="B")

        with patch.object(db_session, "commit", side_effect=OperationalError("UPDATE", {}, Exception("disk full"))):
            with pytest.raises(RecomputeFailedError):
                recompute_transfers(db_session, USER_ID, today=self.TODAY)

        rows = db_session.query(Transaction).all()
        assert [(t.is_transfer, t.transfer_match_id) for t in rows] == [(False, None), (False, None)]

        assert len(recompute_transfers(db_session, USER_ID, today=self.TODAY)) == 1
