"""Tests for the per-user recompute guard."""

import pytest
from datetime import date

from tally.exceptions import RecomputeInProgressError
from tally.services.locks import in_flight_count, single_flight
from tally.services.recurring_service import recompute_recurring

from factories import USER_ID


class TestSingleFlight:
    """Concurrent recomputes of one component for one user are rejected."""

    def test_second_entry_rejected(self):
        with single_flight("recurring", "user-lock"):
            with pytest.raises(RecomputeInProgressError):
                with single_flight("recurring", "user-lock"):
                    pass

    def test_released_after_exit(self):
        with single_flight("recurring", "user-lock"):
            pass
        with single_flight("recurring", "user-lock"):
            pass

    def test_released_after_error(self):
        with pytest.raises(RuntimeError):
            with single_flight("transfers", "user-lock"):
                raise RuntimeError("boom")
        with single_flight("transfers", "user-lock"):
            pass

    def test_other_users_and_components_independent(self):
        with single_flight("recurring", "user-a"):
            with single_flight("recurring", "user-b"):
                with single_flight("transfers", "user-a"):
                    pass

    def test_service_respects_guard(self, db_session):
        with single_flight("recurring", USER_ID):
            with pytest.raises(RecomputeInProgressError):
                recompute_recurring(db_session, USER_ID, today=date(2024, 6, 1))

    def test_registry_empties_after_many_users(self):
        before = in_flight_count()
        for n in range(1000):
            with single_flight("recurring", f"user-{n}"):
                pass
        assert in_flight_count() == before

    def test_held_key_counted(self):
        before = in_flight_count()
        with single_flight("budgets", "user-held"):
            assert in_flight_count() == before + 1
        assert in_flight_count() == before
