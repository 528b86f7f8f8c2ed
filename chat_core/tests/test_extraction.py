from chat_core.providers.extraction import extract_text, field_path, joined_text_parts, plain_text, stringify


def test_field_path_walks_dicts_and_lists():
    raw = {"choices": [{"message": {"content": "hi"}}]}
    assert field_path("choices", 0, "message", "content")(raw) == "hi"
    assert field_path("choices", -1, "message", "content")(raw) == "hi"


def test_field_path_missing_returns_none():
    raw = {"choices": []}
    assert field_path("choices", 0, "message", "content")(raw) is None
    assert field_path("output")(raw) is None
    assert field_path(0, "generated_text")(raw) is None


def test_field_path_ignores_non_string_values():
    assert field_path("count")({"count": 3}) is None


def test_joined_text_parts():
    raw = {"candidates": [{"content": {"parts": [{"text": "Hel"}, {"inline": 1}, {"text": "lo"}]}}]}
    assert joined_text_parts("candidates", 0, "content", "parts")(raw) == "Hello"


def test_first_non_blank_rule_wins():
    rules = (lambda raw: "   ", plain_text)
    assert extract_text("answer", rules) == "answer"


def test_falls_back_to_stringified_body():
    assert extract_text({"foo": 1}, (field_path("bar"),)) == '{"foo": 1}'


def test_stringify_empty_bodies():
    assert stringify(None) == ""
    assert stringify({}) == ""
    assert stringify([]) == ""
    assert stringify("x") == "x"


def test_no_stringify_fallback_for_structured_bodies():
    raw = {"choices": [{"message": {"content": "  "}}]}
    assert extract_text(raw, (field_path("choices", 0, "message", "content"),), stringify_fallback=False) == ""
