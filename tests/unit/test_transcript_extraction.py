# pylint: disable=missing-module-docstring,missing-function-docstring

from protocol.transcript import (
    ASRResult,
    TEXT_STRATEGIES,
    Utterance,
    extract_text,
    extract_utterances,
    find_result,
    parse_full_response,
)


# ---------------------------------------------------------------------
# Locating the result object
# ---------------------------------------------------------------------

def test_find_result_prefers_payload_msg():
    data = {
        "payload_msg": {"result": {"text": "nested"}},
        "result": {"text": "top"},
    }
    assert find_result(data) == {"text": "nested"}


def test_find_result_falls_back_to_top_level():
    assert find_result({"result": {"text": "top"}}) == {"text": "top"}


def test_find_result_none_for_non_mapping():
    assert find_result(None) is None
    assert find_result(["result"]) is None
    assert find_result({"result": "text"}) is None


# ---------------------------------------------------------------------
# Text strategies, one path at a time
# ---------------------------------------------------------------------

def test_strategy_order_is_explicit():
    assert [name for name, _ in TEXT_STRATEGIES] == [
        "result.text",
        "result.payload_msg.result.text",
        "result.utterances[].text",
    ]


def test_text_direct():
    assert extract_text({"text": "hello"}) == "hello"


def test_text_nested_payload():
    assert extract_text({"payload_msg": {"result": {"text": "nested"}}}) == "nested"


def test_text_from_utterances_in_order():
    result = {"utterances": [{"text": "hello "}, {"text": "world"}]}
    assert extract_text(result) == "hello world"


def test_direct_text_wins_over_utterances():
    result = {"text": "direct", "utterances": [{"text": "joined"}]}
    assert extract_text(result) == "direct"


def test_empty_direct_text_falls_through():
    result = {"text": "", "utterances": [{"text": "joined"}]}
    assert extract_text(result) == "joined"


def test_no_text_anywhere():
    assert extract_text({"additions": {}}) == ""


# ---------------------------------------------------------------------
# Utterances
# ---------------------------------------------------------------------

def test_utterances_accept_both_time_conventions():
    result = {
        "utterances": [
            {"text": "a", "start_time": 0, "end_time": 480, "definite": True},
            {"text": "b", "startTime": 480, "endTime": 900},
        ]
    }
    assert extract_utterances(result) == (
        Utterance(text="a", start_time_ms=0, end_time_ms=480, is_final=True),
        Utterance(text="b", start_time_ms=480, end_time_ms=900, is_final=False),
    )


def test_utterances_absent_or_not_a_list():
    assert extract_utterances({"text": "x"}) is None
    assert extract_utterances({"utterances": "x"}) is None


# ---------------------------------------------------------------------
# Full response -> ASRResult
# ---------------------------------------------------------------------

def test_parse_partial():
    result = parse_full_response({"result": {"text": "hel"}}, is_last=False)
    assert result == ASRResult(text="hel", is_partial=True)


def test_parse_final_with_utterances():
    data = {
        "result": {
            "text": "hello",
            "utterances": [{"text": "hello", "start_time": 10, "end_time": 500, "definite": True}],
        }
    }
    result = parse_full_response(data, is_last=True)

    assert result is not None
    assert result.is_partial is False
    assert result.utterances == (
        Utterance(text="hello", start_time_ms=10, end_time_ms=500, is_final=True),
    )


def test_parse_drops_empty_ack():
    assert parse_full_response(None, is_last=False) is None
    assert parse_full_response({}, is_last=True) is None
    assert parse_full_response({"result": {"text": ""}}, is_last=False) is None
    assert parse_full_response({"result": {"text": "", "utterances": []}}, is_last=False) is None


def test_parse_utterances_without_text_still_reported():
    data = {"result": {"utterances": [{"text": "", "start_time": 0, "end_time": 10}]}}
    result = parse_full_response(data, is_last=False)

    assert result is not None
    assert result.text == ""
    assert result.utterances is not None and len(result.utterances) == 1


def test_error_result_helpers():
    err = ASRResult.from_error("45000000: bad request")
    assert err.text == ""
    assert err.is_partial is True
    assert err.error == "45000000: bad request"

    promoted = ASRResult(text="hi", is_partial=True).as_final()
    assert promoted == ASRResult(text="hi", is_partial=False)
