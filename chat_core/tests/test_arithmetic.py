import pytest

from chat_core.local.arithmetic import ExpressionError, evaluate, format_number, tokenize


def test_tokenize_numbers_and_operators():
    assert tokenize("12.5 * (3 - .5)") == ["12.5", "*", "(", "3", "-", ".5", ")"]


def test_operator_precedence():
    assert evaluate("2+2*5") == 12
    assert evaluate("(2+2)*5") == 20
    assert evaluate("10-4-3") == 3
    assert evaluate("8/2/2") == 2


def test_unary_signs():
    assert evaluate("-3+5") == 2
    assert evaluate("10 - -3") == 13
    assert evaluate("+4") == 4


@pytest.mark.parametrize("expr", ["1/0", "2+", "((1)", "1 2", ")", "*3", ""])
def test_invalid_expressions_raise(expr):
    with pytest.raises(ExpressionError):
        evaluate(expr)


def test_deep_nesting_rejected():
    expr = "(" * 100 + "1" + ")" * 100
    with pytest.raises(ExpressionError):
        evaluate(expr)


def test_format_number():
    assert format_number(12.0) == "12"
    assert format_number(-3.0) == "-3"
    assert format_number(3.5) == "3.5"
