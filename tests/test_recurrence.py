"""Tests for planner.core.recurrence — rule grammar and next-date engine."""

from datetime import date, datetime, timedelta

import pytest

from planner.core.recurrence import (
    DateSyntaxError,
    EveryNDays,
    RuleSyntaxError,
    Yearly,
    format_day,
    next_date,
    next_occurrence,
    parse_day,
    parse_rule,
)


# ---------------------------------------------------------------------------
# Rule grammar
# ---------------------------------------------------------------------------


class TestParseRule:
    def test_empty_means_no_repeat(self):
        assert parse_rule("") is None

    def test_yearly(self):
        assert parse_rule("y") == Yearly()

    def test_every_n_days(self):
        assert parse_rule("d 7") == EveryNDays(7)

    def test_day_bounds_accepted(self):
        assert parse_rule("d 1") == EveryNDays(1)
        assert parse_rule("d 400") == EveryNDays(400)

    def test_rules_render_back(self):
        assert str(parse_rule("y")) == "y"
        assert str(parse_rule("d 30")) == "d 30"

    @pytest.mark.parametrize(
        "text",
        [
            "d 401",    # over the cap
            "d 0",      # not positive
            "d -5",
            "d",        # missing argument
            "d ",
            "d  7",     # double space
            "d x",
            "d 1.5",
            "d 7 3",    # extra argument
            "y 1",      # yearly takes none
            "w",        # unsupported tokens
            "w 1 2",
            "m 3",
            "Y",
            " ",
            " y",
        ],
    )
    def test_invalid_rules(self, text):
        with pytest.raises(RuleSyntaxError):
            parse_rule(text)

    def test_rule_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_rule("d 401")


# ---------------------------------------------------------------------------
# Day codec
# ---------------------------------------------------------------------------


class TestParseDay:
    def test_valid_day(self):
        assert parse_day("20240229") == date(2024, 2, 29)

    def test_format_day(self):
        assert format_day(date(2024, 1, 5)) == "20240105"

    @pytest.mark.parametrize(
        "text",
        ["20230229", "20241301", "2024-01-01", "2024011", "202401011", "abcdefgh", "", "2024 101"],
    )
    def test_invalid_days(self, text):
        with pytest.raises(DateSyntaxError):
            parse_day(text)


# ---------------------------------------------------------------------------
# Next occurrence
# ---------------------------------------------------------------------------


REFERENCE = date(2024, 1, 26)


class TestEveryNDays:
    def test_steps_past_reference(self):
        assert next_occurrence(REFERENCE, "20240113", EveryNDays(7)) == date(2024, 1, 27)

    def test_landing_on_reference_is_skipped(self):
        # 19 + 7 = 26 equals the reference, so the next step wins
        assert next_occurrence(REFERENCE, "20240119", EveryNDays(7)) == date(2024, 2, 2)

    def test_anchor_on_reference(self):
        assert next_occurrence(REFERENCE, "20240126", EveryNDays(1)) == date(2024, 1, 27)

    def test_future_anchor_still_steps_once(self):
        assert next_occurrence(REFERENCE, "20240201", EveryNDays(1)) == date(2024, 2, 2)

    def test_crosses_year_boundary(self):
        assert next_occurrence(date(2023, 12, 30), "20231201", EveryNDays(20)) == date(2024, 1, 10)

    def test_max_interval(self):
        assert next_occurrence(REFERENCE, "20240126", EveryNDays(400)) == date(2025, 3, 1)

    @pytest.mark.parametrize("n", [1, 2, 7, 30, 365, 400])
    @pytest.mark.parametrize("anchor", [date(2020, 2, 29), date(2023, 12, 31), date(2024, 6, 15)])
    @pytest.mark.parametrize("reference", [date(2019, 1, 1), date(2024, 1, 26), date(2026, 3, 1)])
    def test_result_is_first_step_after_reference(self, n, anchor, reference):
        result = next_occurrence(reference, anchor, EveryNDays(n))
        delta = (result - anchor).days
        assert result > reference
        assert delta > 0 and delta % n == 0
        previous = result - timedelta(days=n)
        assert previous <= reference or previous == anchor


class TestYearly:
    def test_old_anchor(self):
        assert next_occurrence(REFERENCE, "16890220", Yearly()) == date(2024, 2, 20)

    def test_anniversary_passed_this_year(self):
        assert next_occurrence(REFERENCE, "20230110", Yearly()) == date(2025, 1, 10)

    def test_future_anchor_still_steps_once(self):
        assert next_occurrence(REFERENCE, "20250701", Yearly()) == date(2026, 7, 1)

    def test_anniversary_on_reference_is_skipped(self):
        assert next_occurrence(REFERENCE, "20200126", Yearly()) == date(2025, 1, 26)

    @pytest.mark.parametrize("reference", [date(2025, 1, 1), date(2025, 2, 28)])
    def test_leap_day_substitutes_march_first(self, reference):
        assert next_occurrence(reference, "20240229", Yearly()) == date(2025, 3, 1)

    def test_leap_day_substitute_is_strictly_after(self):
        assert next_occurrence(date(2025, 3, 1), "20240229", Yearly()) == date(2026, 3, 1)

    def test_substituted_anchor_keeps_march_first(self):
        # Once moved to March 1 the sequence stays there, even in leap years
        assert next_occurrence(date(2027, 6, 1), "20240229", Yearly()) == date(2028, 3, 1)
        assert next_occurrence(date(2028, 3, 1), "20240229", Yearly()) == date(2029, 3, 1)

    def test_leap_day_into_leap_year(self):
        assert next_occurrence(date(2024, 1, 1), "20200229", Yearly()) == date(2024, 3, 1)

    @pytest.mark.parametrize("anchor", [date(2000, 1, 31), date(2010, 12, 31), date(2021, 7, 4)])
    @pytest.mark.parametrize("reference", [date(2005, 6, 1), date(2024, 1, 26), date(2024, 12, 31)])
    def test_same_month_and_day(self, anchor, reference):
        result = next_occurrence(reference, anchor, Yearly())
        assert (result.month, result.day) == (anchor.month, anchor.day)
        assert result > reference
        assert result.year > anchor.year
        earlier = result.replace(year=result.year - 1)
        assert earlier <= reference or earlier == anchor


class TestNextOccurrenceInputs:
    def test_accepts_date_anchor(self):
        assert next_occurrence(REFERENCE, date(2024, 1, 13), EveryNDays(7)) == date(2024, 1, 27)

    def test_datetime_reference_truncated_to_day(self):
        reference = datetime(2024, 1, 26, 23, 59, 59)
        assert next_occurrence(reference, "20240119", EveryNDays(7)) == date(2024, 2, 2)

    def test_invalid_anchor(self):
        with pytest.raises(DateSyntaxError):
            next_occurrence(REFERENCE, "2024-01-13", EveryNDays(7))

    def test_missing_rule_fails_fast(self):
        with pytest.raises(TypeError):
            next_occurrence(REFERENCE, "20240113", None)

    def test_every_n_days_past_year_9999(self):
        with pytest.raises(DateSyntaxError, match="out of range"):
            next_occurrence(date(9999, 12, 31), "99991225", EveryNDays(7))

    def test_yearly_past_year_9999(self):
        with pytest.raises(DateSyntaxError, match="out of range"):
            next_occurrence(date(9999, 6, 1), "99990101", Yearly())

    def test_last_representable_day(self):
        assert next_occurrence(date(9999, 12, 30), "99991224", EveryNDays(7)) == date(9999, 12, 31)


# ---------------------------------------------------------------------------
# Text boundary
# ---------------------------------------------------------------------------


class TestNextDate:
    def test_every_n_days(self):
        assert next_date("20240126", "20240113", "d 7") == "20240127"

    def test_yearly(self):
        assert next_date("20240126", "20240126", "y") == "20250126"

    def test_empty_rule_rejected(self):
        with pytest.raises(RuleSyntaxError):
            next_date("20240126", "20240113", "")

    def test_bad_rule(self):
        with pytest.raises(RuleSyntaxError):
            next_date("20240126", "20240113", "d 401")

    def test_bad_now(self):
        with pytest.raises(DateSyntaxError):
            next_date("26.01.2024", "20240113", "d 7")

    def test_bad_date(self):
        with pytest.raises(DateSyntaxError):
            next_date("20240126", "20240230", "y")
