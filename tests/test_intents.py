import pytest
from clarity.intents import Intent, classify, has_day_cue, has_time_cue, is_counter_offer, match_any_keyword


class TestHold:
    @pytest.mark.parametrize("text", [
        "Can you hold one moment?",
        "Please hold.",
        "hang on, let me check",
        "Yes, one moment please",
        "One minute please",
        "Can you hold for a minute",
        "Could you hold?",
    ])
    def test_hold_phrases(self, text):
        assert classify(text) == Intent.HOLD

    def test_hold_wins_over_time(self):
        assert classify("one second, let me look at Tuesday") == Intent.HOLD


class TestWalkIn:
    @pytest.mark.parametrize("text", [
        "We take walk-ins",
        "Oh we're a walk in clinic",
        "No appointment needed, just come in",
    ])
    def test_walk_in(self, text):
        assert classify(text) == Intent.WALK_IN


class TestYesNo:
    @pytest.mark.parametrize("text", ["Yes", "Yeah that works", "Sure.", "OK", "Sounds good"])
    def test_affirmative(self, text):
        assert classify(text) == Intent.YES

    @pytest.mark.parametrize("text", ["No", "Nope.", "No, sorry", "Tuesday doesn't work", "We can't do that"])
    def test_decline(self, text):
        assert classify(text) == Intent.NO

    def test_decline_phrase_beats_okay(self):
        assert classify("Okay, that doesn't work for us") == Intent.NO

    def test_question_with_sure_is_not_yes(self):
        assert classify("What time works for you?") != Intent.YES

    def test_no_inside_word_is_not_decline(self):
        assert classify("I know a good slot") == Intent.OTHER


class TestTime:
    @pytest.mark.parametrize("text", [
        "Tuesday at 2pm",
        "How about October 25th",
        "We have 10:30 tomorrow",
        "Thursday afternoon",
    ])
    def test_time_cues(self, text):
        assert classify(text) == Intent.TIME

    def test_no_time_cue(self):
        assert not has_time_cue("let me check the system")

    def test_day_cue_ignores_clock_only(self):
        assert has_day_cue("Thursday at 3")
        assert has_day_cue("the 25th")
        assert not has_day_cue("yes, 2pm")


class TestOther:
    def test_closed_with_no_appointments_goes_to_fallback(self):
        assert classify("we're closed, no appointments available") == Intent.OTHER

    def test_empty(self):
        assert classify("") == Intent.OTHER

    def test_question(self):
        assert classify("Who is the patient's insurance with?") == Intent.OTHER


class TestCounterOffer:
    def test_counter_offer(self):
        assert is_counter_offer("No, but we have Thursday at 3")

    def test_plain_decline_naming_a_day(self):
        assert not is_counter_offer("Tuesday doesn't work")


class TestMatchAnyKeyword:
    def test_whole_word_only(self):
        assert not match_any_keyword("booking", {"ok"})

    def test_curly_apostrophe(self):
        assert match_any_keyword("That doesn’t work", {"doesn't work"})
