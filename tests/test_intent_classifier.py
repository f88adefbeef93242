from omnichat.services.intent import (
    INTENT_APPOINTMENT,
    INTENT_GENERAL,
    INTENT_HUMAN_REQUEST,
    INTENT_ORDER,
    classify,
    contains_arabic,
)


def test_classify_detects_each_english_category():
    assert classify("Can I talk to someone please?").category == INTENT_HUMAN_REQUEST
    assert classify("I'd like to buy two of those").category == INTENT_ORDER
    assert classify("Can I book for Friday?").category == INTENT_APPOINTMENT
    assert classify("What are your opening hours?").category == INTENT_GENERAL


def test_human_request_wins_over_order_and_appointment():
    intent = classify("I want to order but first let me speak to an agent")
    assert intent.category == INTENT_HUMAN_REQUEST
    assert intent.keyword == "agent"

    assert classify("order and book").category == INTENT_ORDER


def test_english_keywords_need_a_leading_word_boundary():
    assert classify("The border is closed").category == INTENT_GENERAL
    assert classify("We have a bookshelf").category == INTENT_APPOINTMENT  # prefix match on "book"
    assert classify("ORDERING now").category == INTENT_ORDER


def test_arabic_keywords_match_inside_words():
    intent = classify("وأريد أن أطلب قطعتين")
    assert intent.category == INTENT_ORDER
    assert intent.matched_language == "ar"

    assert classify("أريد التحدث مع موظف").category == INTENT_HUMAN_REQUEST
    assert classify("ممكن احجز موعد؟").category == INTENT_APPOINTMENT


def test_classify_is_deterministic_and_handles_empty_input():
    first = classify("please purchase this")
    second = classify("please purchase this")
    assert first == second

    assert classify("").category == INTENT_GENERAL
    assert classify(None).category == INTENT_GENERAL
    assert classify(None).matched_language == "en"


def test_contains_arabic():
    assert contains_arabic("مرحبا") is True
    assert contains_arabic("hello") is False
    assert contains_arabic(None) is False
