from alarms.extractor import extract_reminder_message, strip_time_clause


def test_strips_trailing_time_clause():
    assert extract_reminder_message("remind me to finish my homework in 20 minutes") == "Finish My Homework"


def test_specific_lead_in_beats_generic_to():
    # "to" alone would also match, but "remind me to" is tried first
    assert extract_reminder_message("please remind me to go to the gym") == "Go To The Gym"


def test_tell_me_to():
    assert extract_reminder_message("tell me to water the plants at 6 pm") == "Water The Plants"


def test_about_lead_in():
    assert extract_reminder_message("remind me about the dentist appointment") == "The Dentist Appointment"


def test_short_remainder_is_rejected_and_next_phrase_tried():
    # "to" yields "bed" (too short), "about" yields the laundry text
    assert extract_reminder_message("go to bed in an hour, and think about the laundry basket") == "The Laundry Basket"


def test_about_keeps_long_remainder():
    text = "please call the plumber about the sink and the shower and the bath tub leak"
    assert extract_reminder_message(text) == "The Sink And The Shower And The Bath Tub Leak"


def test_action_word_fallback_takes_ten_words():
    text = "i should study chemistry chapters one two three four five six seven eight"
    assert extract_reminder_message(text) == "Study Chemistry Chapters One Two Three Four Five Six Seven"


def test_trailing_period_removed():
    assert extract_reminder_message("remind me to feed the cat.") == "Feed The Cat"


def test_apostrophes_keep_lowercase_suffix():
    assert extract_reminder_message("remind me to check the kids' homework") == "Check The Kids' Homework"


def test_nothing_qualifies():
    assert extract_reminder_message("asdf qwerty") == ""
    assert extract_reminder_message("") == ""


def test_strip_time_clause_applies_every_time_word():
    assert strip_time_clause("pay rent for march at noon") == "pay rent"
    assert strip_time_clause("read chapter 3") == "read chapter 3"
