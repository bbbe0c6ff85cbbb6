"""Tests for SM-2 scheduling."""

import itertools
from datetime import date, timedelta

import pytest

from focusforge.application.scheduler import compute_next_state
from focusforge.domain.cards.errors import InvalidInput, InvalidQuality
from focusforge.domain.cards.models import Quality, SchedulingState

TODAY = date(2026, 10, 16)


class TestReviewScenarios:
    """The walk-through of a new card from the product description."""

    def test_first_good_review(self):
        update = compute_next_state(SchedulingState(0, 2.5), Quality.GOOD, TODAY)
        assert update.interval == 1
        assert update.ease_factor == pytest.approx(2.5)
        assert update.next_review_date == TODAY + timedelta(days=1)

    def test_second_good_review(self):
        update = compute_next_state(SchedulingState(1, 2.5), 4, TODAY)
        assert update.interval == 6
        assert update.ease_factor == pytest.approx(2.5)
        assert update.next_review_date == date(2026, 10, 22)

    def test_third_good_review_multiplies_by_ease(self):
        update = compute_next_state(SchedulingState(6, 2.5), 4, TODAY)
        assert update.interval == 15
        assert update.ease_factor == pytest.approx(2.5)

    def test_again_resets_interval_and_lowers_ease(self):
        update = compute_next_state(SchedulingState(15, 2.5), Quality.AGAIN, TODAY)
        assert update.interval == 0
        assert update.ease_factor == pytest.approx(2.3)
        assert update.next_review_date == TODAY

    def test_hard_at_floor_stays_at_floor(self):
        update = compute_next_state(SchedulingState(0, 1.3), Quality.HARD, TODAY)
        assert update.interval == 0
        assert update.ease_factor == 1.3

    def test_easy_raises_ease_before_multiplying(self):
        update = compute_next_state(SchedulingState(6, 2.0), Quality.EASY, TODAY)
        assert update.ease_factor == pytest.approx(2.1)
        assert update.interval == 13
        assert update.next_review_date == date(2026, 10, 29)


class TestEaseFactor:
    def test_quality_three_leaves_ease_unchanged(self):
        update = compute_next_state(SchedulingState(6, 2.2), 3, TODAY)
        assert update.ease_factor == 2.2
        assert update.interval == 13  # 6 * 2.2 = 13.2

    def test_quality_four_leaves_ease_unchanged(self):
        update = compute_next_state(SchedulingState(10, 1.7), 4, TODAY)
        assert update.ease_factor == pytest.approx(1.7)

    def test_quality_one_lowers_ease_like_any_failure(self):
        update = compute_next_state(SchedulingState(30, 2.5), 1, TODAY)
        assert update.interval == 0
        assert update.ease_factor == pytest.approx(2.3)

    def test_ease_never_drops_below_floor(self):
        for sequence in itertools.product(range(6), repeat=4):
            state = SchedulingState(0, 2.5)
            for quality in sequence:
                update = compute_next_state(state, quality, TODAY)
                assert update.ease_factor >= 1.3
                assert update.interval >= 0
                state = SchedulingState(update.interval, update.ease_factor)

    def test_repeated_failures_bottom_out(self):
        state = SchedulingState(40, 2.5)
        for _ in range(20):
            update = compute_next_state(state, 0, TODAY)
            state = SchedulingState(update.interval, update.ease_factor)
        assert state.ease_factor == 1.3
        assert state.interval == 0


class TestIntervals:
    def test_interval_rounds_half_up(self):
        # 5 * 2.5 = 12.5 rounds up, not to even
        update = compute_next_state(SchedulingState(5, 2.5), 3, TODAY)
        assert update.interval == 13

    def test_failure_is_due_today(self):
        update = compute_next_state(SchedulingState(100, 2.5), 2, TODAY)
        assert update.next_review_date == TODAY

    def test_long_interval_crosses_month_and_year(self):
        update = compute_next_state(SchedulingState(80, 2.5), 4, date(2026, 12, 20))
        assert update.interval == 200
        assert update.next_review_date == date(2027, 7, 8)


class TestDeterminism:
    def test_identical_inputs_identical_outputs(self):
        state = SchedulingState(6, 2.36)
        first = compute_next_state(state, 5, TODAY)
        compute_next_state(SchedulingState(1, 1.3), 0, TODAY)
        second = compute_next_state(state, 5, TODAY)
        assert first == second

    def test_input_state_is_not_mutated(self):
        state = SchedulingState(6, 2.5)
        compute_next_state(state, 0, TODAY)
        assert state == SchedulingState(6, 2.5)


class TestValidation:
    @pytest.mark.parametrize("quality", [-1, 6, 10])
    def test_out_of_range(self, quality):
        with pytest.raises(InvalidQuality) as exc:
            compute_next_state(SchedulingState(), quality, TODAY)
        assert exc.value.quality == quality

    @pytest.mark.parametrize("quality", [2.5, "4", None, True])
    def test_not_an_integer(self, quality):
        with pytest.raises(InvalidQuality):
            compute_next_state(SchedulingState(), quality, TODAY)

    def test_bounds_are_inclusive(self):
        assert compute_next_state(SchedulingState(), 0, TODAY).interval == 0
        assert compute_next_state(SchedulingState(), 5, TODAY).interval == 1


class TestStatePreconditions:
    def test_negative_interval_rejected(self):
        with pytest.raises(InvalidInput):
            SchedulingState(-5, 2.5)

    def test_ease_below_floor_rejected(self):
        with pytest.raises(InvalidInput):
            SchedulingState(6, 1.1)

    def test_floor_values_accepted(self):
        update = compute_next_state(SchedulingState(0, 1.3), 3, TODAY)
        assert update.ease_factor == 1.3
        assert update.interval == 1
