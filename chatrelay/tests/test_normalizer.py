from chatrelay.adapters.watsonx.normalizer import (
    FALLBACK_TEXT,
    extract_bare_message,
    extract_chat_choice,
    extract_generated_text,
    extract_text,
    normalize,
)


def _content(envelope) -> str:
    return envelope.choices[0].message.content


def test_generated_text_strips_echoed_prompt():
    body = {"results": [{"generated_text": "Human: X\n\nAssistant: Y"}]}
    assert _content(normalize(body)) == "Y"


def test_chat_choice_content_is_used():
    body = {"choices": [{"message": {"content": "Z"}}]}
    assert _content(normalize(body)) == "Z"


def test_unrecognised_shape_falls_back():
    assert _content(normalize({})) == FALLBACK_TEXT
    assert _content(normalize("plain text body")) == FALLBACK_TEXT
    assert _content(normalize(None)) == FALLBACK_TEXT


def test_bare_message_is_last_resort():
    assert _content(normalize({"message": "hello there"})) == "hello there"


def test_choices_win_over_results_and_message():
    body = {
        "choices": [{"message": {"content": "from choices"}}],
        "results": [{"generated_text": "from results"}],
        "message": "from message",
    }
    assert extract_text(body) == "from choices"


def test_first_matching_extractor_wins_even_when_empty():
    body = {"choices": [{"message": {"content": "   "}}], "message": "ignored"}
    assert extract_text(body) == "   "
    assert _content(normalize(body)) == FALLBACK_TEXT


def test_generated_text_without_echo_is_kept():
    body = {"results": [{"generated_text": "  Plan: read a chapter a day.  "}]}
    assert extract_generated_text(body) == "  Plan: read a chapter a day.  "
    assert _content(normalize(body)) == "Plan: read a chapter a day."


def test_assistant_marker_mid_text_is_not_an_echo():
    text = "Tip: label speakers, e.g. Assistant: and User:"
    assert extract_generated_text({"results": [{"generated_text": text}]}) == text


def test_malformed_shapes_are_not_matches():
    assert extract_chat_choice({"choices": []}) is None
    assert extract_chat_choice({"choices": ["x"]}) is None
    assert extract_chat_choice({"choices": [{"message": {"content": 3}}]}) is None
    assert extract_generated_text({"results": [{}]}) is None
    assert extract_bare_message({"message": {"content": "nested"}}) is None


def test_envelope_shape():
    envelope = normalize({"message": "ok"}).model_dump()
    assert envelope == {"choices": [{"index": 0, "message": {"content": "ok", "role": "assistant"}}]}
