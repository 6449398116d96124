import json

from src.core.models.events import DeltaEvent
from src.core.services.recovery import (
    ResponseRecovery,
    balance_braces,
    extract_markdown_links,
    parse_envelope,
    strip_code_fence,
)


def recover(*fragments):
    recovery = ResponseRecovery()
    for fragment in fragments:
        recovery.push(fragment)
    return recovery.recover()


def test_push_forwards_fragments_verbatim():
    recovery = ResponseRecovery()
    events = [recovery.push(text) for text in ['{"mess', 'age": "', "Hi", '"}']]
    assert events == [DeltaEvent(text='{"mess'), DeltaEvent(text='age": "'), DeltaEvent(text="Hi"), DeltaEvent(text='"}')]
    assert recovery.accumulated == '{"message": "Hi"}'


def test_strip_code_fence():
    assert strip_code_fence('```json\n{"message": "Hi"}\n```') == '{"message": "Hi"}'
    assert strip_code_fence('  ```\n{"a": 1}```  ') == '{"a": 1}'
    assert strip_code_fence('{"a": 1}') == '{"a": 1}'


def test_well_formed_envelope():
    envelope = {
        "message": "Try the **family** lesson.",
        "navigationLinks": [{"label": "Family Words", "url": "/lessons/10/vocabulary"}],
    }
    reply = recover(json.dumps(envelope))
    assert reply.structured
    assert reply.message == "Try the **family** lesson."
    assert reply.candidates == envelope["navigationLinks"]


def test_envelope_inside_fence_and_chatter():
    reply = recover('Here you go:\n```json\n{"message": "Hi", "navigationLinks": []}\n```')
    assert reply.structured
    assert reply.message == "Hi"
    assert reply.candidates == []


def test_missing_closing_braces_are_appended():
    truncated = '{"message": "Hi", "meta": {"tone": {"level": 1}'
    assert balance_braces(truncated) == truncated + "}}"
    reply = recover(truncated)
    assert reply.structured
    assert reply.message == "Hi"


def test_missing_array_bracket_is_not_repaired():
    truncated = '{"message": "See [Family](/lessons/10/vocabulary)", "navigationLinks": [{"label": "a", "url": "/x"}'
    assert parse_envelope(truncated) is None
    reply = recover(truncated)
    assert not reply.structured
    assert reply.message is None
    assert reply.candidates == [{"label": "Family", "url": "/lessons/10/vocabulary"}]


def test_object_without_any_closing_brace_falls_back():
    reply = recover('{"message": "Hi [Unit](/units/5)"')
    assert not reply.structured
    assert reply.candidates == [{"label": "Unit", "url": "/units/5"}]


def test_plain_text_falls_back_to_markdown_links():
    reply = recover("Sure! [Practice here](/lessons/12/practice) or [docs](https://example.com)")
    assert not reply.structured
    assert reply.message is None
    assert reply.candidates == [{"label": "Practice here", "url": "/lessons/12/practice"}]


def test_non_object_json_falls_back():
    assert parse_envelope("[1, 2, 3]") is None
    reply = recover('"See [Unit](/units/5)"')
    assert not reply.structured
    assert reply.candidates == [{"label": "Unit", "url": "/units/5"}]


def test_envelope_fields_of_wrong_type_are_ignored():
    reply = recover('{"message": 42, "navigationLinks": {"label": "x"}}')
    assert reply.structured
    assert reply.message is None
    assert reply.candidates == []


def test_empty_reply_recovers_nothing():
    reply = recover("  \n ")
    assert reply.message is None
    assert reply.candidates == []
    assert not reply.structured


def test_extract_markdown_links_keeps_order():
    text = "[B](/books/1) then [A](/units/5) and [Out](http://x.test)"
    assert extract_markdown_links(text) == [
        {"label": "B", "url": "/books/1"},
        {"label": "A", "url": "/units/5"},
    ]
