import pytest

from chatbubble.intent_rules import IntentRules


@pytest.mark.parametrize(
    "message,expected",
    [
        # question words take precedence over product words
        ("why are these shoes expensive", "conversational"),
        ("what color shoes do you have", "conversational"),
        ("is", "conversational"),
        # bare verb is rejected by the length guard
        ("show", "conversational"),
        ("show?", "conversational"),
        ("show me red shirts", "product_search"),
        ("Find me running shoes", "product_search"),
        ("browse jackets", "product_search"),
        ("I would like a blue jacket", "product_search"),
        ("looking for a gift", "product_search"),
        ("hello there", "conversational"),
        ("", "conversational"),
        (None, "conversational"),
    ],
)
def test_classify(message, expected):
    assert IntentRules.classify(message) == expected


def test_question_word_must_be_a_whole_word():
    # "whatever" does not start with the word "what"
    assert IntentRules.classify("whatever, show me hats") == "product_search"


def test_is_product_query():
    assert IntentRules.is_product_query("show me red shirts")
    assert not IntentRules.is_product_query("how are you")


def test_fallback_intent_price_currency_color():
    intent = IntentRules.extract_fallback_intent("Show me red shirts under 1000 rupees")
    assert intent["intent"] == "product_search"
    assert "shirts" in intent["keywords"]
    assert "show" not in intent["keywords"]
    assert intent["filters"]["price_max"] == 1000
    assert intent["filters"]["currency"] == "INR"
    assert intent["filters"]["color"] == "red"
    assert intent["raw_query"] == "Show me red shirts under 1000 rupees"


def test_fallback_intent_price_min_and_gender():
    intent = IntentRules.extract_fallback_intent("women dresses above 2000")
    assert intent["filters"]["price_min"] == 2000
    assert "price_max" not in intent["filters"]
    assert intent["filters"]["gender"] == "female"


def test_fallback_intent_bare_number_is_max():
    intent = IntentRules.extract_fallback_intent("black jeans 1500")
    assert intent["filters"]["price_max"] == 1500


def test_gender_from_keywords():
    assert IntentRules.gender_from_keywords(["Women", "dress"]) == "female"
    assert IntentRules.gender_from_keywords(["mens", "shirt"]) == "male"
    assert IntentRules.gender_from_keywords(["unisex"]) == "unisex"
    assert IntentRules.gender_from_keywords(["shirt"]) is None
