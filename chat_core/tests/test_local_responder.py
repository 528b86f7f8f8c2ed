from chat_core.local import APOLOGY, LocalResponder
from chat_core.local.responder import is_arithmetic_candidate, sanitize


def test_arithmetic_inside_sentence():
    assert LocalResponder().respond("what is 2+2*5") == "Result: 12"


def test_decimal_result():
    assert LocalResponder().respond("7 / 2 ?") == "Result: 3.5"


def test_negative_numbers_allowed():
    assert LocalResponder().respond("10 - -3") == "Result: 13"


def test_consecutive_operators_rejected():
    assert LocalResponder().respond("2++2") == APOLOGY
    assert LocalResponder().respond("2 * * 2") == APOLOGY


def test_no_digits_gives_apology():
    assert LocalResponder().respond("hello there") == APOLOGY
    assert LocalResponder().respond("") == APOLOGY


def test_division_by_zero_gives_apology():
    assert LocalResponder().respond("1/0") == APOLOGY


def test_unbalanced_parenthesis_gives_apology():
    assert LocalResponder().respond("(2+3") == APOLOGY


def test_long_expression_rejected():
    expr = "1+" * 30 + "1"
    assert not is_arithmetic_candidate(sanitize(expr))
    assert LocalResponder().respond(expr) == APOLOGY


def test_sanitize_keeps_only_arithmetic_characters():
    assert sanitize("calc: (1 + 2) * 3!") == "(1 + 2) * 3"
