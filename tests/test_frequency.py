"""Tests for payload decoding, shape classification and frequency resolution."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import sys
from typing import Any, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.frequency.decoder import (
    LENIENT_DECODER,
    STRICT_DECODER,
    DecoderOptions,
    PayloadDecodeError,
    decode_payload,
)
from src.frequency.records import FrequencyObservation, MetaKind, RawMetaRecord
from src.frequency.resolver import UNKNOWN_DISPLAY, group_by_dictionary, parse_frequency, resolve
from src.frequency.shapes import (
    BareNumber,
    BareString,
    NestedFrequencyObject,
    ScalarFrequencyObject,
    Unrecognized,
    ValueDisplayObject,
    classify_payload,
)


# ---------------------------------------------------------------------------
# Helper utilities


def _freq(payload: Any, dictionary_id: int = 1) -> RawMetaRecord:
    text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return RawMetaRecord(dictionary_id=dictionary_id, kind=MetaKind.FREQUENCY, payload=text)


def _ranks(observations: List[FrequencyObservation]) -> List[Any]:
    return [obs.rank for obs in observations]


# ---------------------------------------------------------------------------
# Scenario tests


def test_bare_number_payload() -> None:
    result = resolve([_freq("23500")])
    assert result == [FrequencyObservation(reading="", display_text="23500", rank=23500, source_dictionary_id=1)]


def test_bare_string_payload() -> None:
    result = resolve([_freq('"very common"')])
    assert result == [
        FrequencyObservation(reading="", display_text="very common", rank=None, source_dictionary_id=1)
    ]


def test_value_display_object_prefers_label_but_ranks_by_value() -> None:
    (obs,) = resolve([_freq({"value": 18000, "displayValue": "Common Word"})])
    assert obs.display_text == "Common Word"
    assert obs.rank == 18000
    assert obs.reading == ""


def test_scalar_frequency_with_reading() -> None:
    (obs,) = resolve([_freq({"reading": "せい", "frequency": 3500})])
    assert (obs.reading, obs.display_text, obs.rank) == ("せい", "3500", 3500)


def test_nested_frequency_with_reading() -> None:
    (obs,) = resolve([_freq({"reading": "なま", "frequency": {"value": 12000, "displayValue": "Frequent"}})])
    assert (obs.reading, obs.display_text, obs.rank) == ("なま", "Frequent", 12000)


def test_mixed_valid_and_malformed_records(caplog: pytest.LogCaptureFixture) -> None:
    records = [
        _freq({}, dictionary_id=1),
        _freq(900, dictionary_id=2),
        _freq("{not json", dictionary_id=3),
        _freq({"reading": "せい", "frequency": 3500}, dictionary_id=4),
    ]
    with caplog.at_level(logging.WARNING, logger="src.frequency.resolver"):
        result = resolve(records)

    assert [obs.source_dictionary_id for obs in result] == [2, 4]
    assert _ranks(result) == [900, 3500]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2


# ---------------------------------------------------------------------------
# Extraction rules


def test_non_integral_bare_number_keeps_text_without_rank() -> None:
    (obs,) = resolve([_freq("2.5")])
    assert obs.rank is None
    assert obs.display_text == "2.5"


def test_scalar_frequency_accepts_integer_text() -> None:
    (obs,) = resolve([_freq({"frequency": "4200"})])
    assert (obs.display_text, obs.rank) == ("4200", 4200)


def test_scalar_frequency_integer_text_must_match_whole_string() -> None:
    for text in ("4200\n", " 4200", "4_200"):
        (obs,) = resolve([_freq({"frequency": text})])
        assert (obs.display_text, obs.rank) == (text, None)


def test_scalar_frequency_unparseable_text_is_unranked_label() -> None:
    (obs,) = resolve([_freq({"frequency": "2.5k"})])
    assert (obs.display_text, obs.rank) == ("2.5k", None)


def test_scalar_frequency_float_is_unranked() -> None:
    (obs,) = resolve([_freq({"frequency": 12.5})])
    assert (obs.display_text, obs.rank) == ("12.5", None)


def test_value_only_uses_decimal_text() -> None:
    (obs,) = resolve([_freq({"value": 77})])
    assert (obs.display_text, obs.rank) == ("77", 77)


def test_display_value_only_is_unranked() -> None:
    (obs,) = resolve([_freq({"displayValue": "rare"})])
    assert (obs.display_text, obs.rank) == ("rare", None)


def test_value_as_integer_text() -> None:
    (obs,) = resolve([_freq({"value": "310", "displayValue": "★★★"})])
    assert (obs.display_text, obs.rank) == ("★★★", 310)


def test_nested_frequency_without_fields_falls_back_to_unknown() -> None:
    (obs,) = resolve([_freq({"reading": "か", "frequency": {}})])
    assert (obs.reading, obs.display_text, obs.rank) == ("か", UNKNOWN_DISPLAY, None)


def test_empty_display_value_falls_back_to_value() -> None:
    (obs,) = resolve([_freq({"value": 5, "displayValue": ""})])
    assert obs.display_text == "5"


def test_empty_bare_string_is_unknown() -> None:
    (obs,) = resolve([_freq('""')])
    assert obs.display_text == UNKNOWN_DISPLAY


def test_empty_reading_is_kept_empty() -> None:
    (obs,) = resolve([_freq({"reading": "", "frequency": 10})])
    assert obs.reading == ""


def test_object_with_only_reading_is_dropped() -> None:
    assert resolve([_freq({"reading": "せい"})]) == []


def test_array_frequency_field_is_dropped() -> None:
    assert resolve([_freq({"reading": "せい", "frequency": [1, 2], "value": 3})]) == []


def test_null_frequency_field_is_treated_as_absent() -> None:
    (obs,) = resolve([_freq({"frequency": None, "value": 8})])
    assert obs.rank == 8


def test_non_scalar_reading_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="src.frequency.resolver"):
        assert resolve([_freq({"reading": ["a"], "frequency": 1})]) == []
    assert "Failed to parse frequency data" in caplog.text


@pytest.mark.parametrize("payload", ["true", "null", "[1, 2]", "NaN"])
def test_unsupported_top_level_values_are_dropped(payload: str) -> None:
    assert resolve([_freq(payload)]) == []


def test_bare_word_payload_is_lenient_string() -> None:
    (obs,) = resolve([_freq("common")])
    assert (obs.display_text, obs.rank) == ("common", None)


def test_parse_frequency_returns_none_on_failure() -> None:
    assert parse_frequency(_freq("{")) is None
    assert parse_frequency(_freq("12")) == FrequencyObservation("", "12", 12, 1)


# ---------------------------------------------------------------------------
# Filtering, ordering and invariants


def test_non_frequency_kinds_are_ignored() -> None:
    records = [
        RawMetaRecord(dictionary_id=1, kind=MetaKind.PITCH, payload='{"reading": "x", "pitches": []}'),
        RawMetaRecord(dictionary_id=1, kind="ipa", payload="{}"),
        RawMetaRecord(dictionary_id=2, kind="frequency", payload="5"),
        RawMetaRecord(dictionary_id=3, kind="freq", payload="4"),
    ]
    assert [obs.source_dictionary_id for obs in resolve(records)] == [3, 2]


def test_ordering_places_unranked_last_and_is_stable() -> None:
    records = [
        _freq('"common"', dictionary_id=1),
        _freq(300, dictionary_id=2),
        _freq({"displayValue": "rare"}, dictionary_id=3),
        _freq(100, dictionary_id=4),
        _freq({"value": 300}, dictionary_id=5),
        _freq(-5, dictionary_id=6),
    ]
    result = resolve(records)
    assert [obs.source_dictionary_id for obs in result] == [6, 4, 2, 5, 1, 3]
    assert _ranks(result) == [-5, 100, 300, 300, None, None]


def test_output_length_bounded_by_frequency_records() -> None:
    records = [_freq(1), _freq({}), RawMetaRecord(9, MetaKind.PITCH, "1"), _freq('"x"')]
    result = resolve(records)
    frequency_count = sum(1 for r in records if MetaKind.parse(r.kind) is MetaKind.FREQUENCY)
    assert len(result) <= frequency_count
    assert len(result) == 2


def test_resolve_is_idempotent() -> None:
    records = [_freq(3), _freq('"a"'), _freq({"value": 1}), _freq("bad{")]
    assert resolve(records) == resolve(records)


def test_resolve_accepts_generators_and_empty_input() -> None:
    assert resolve([]) == []
    assert _ranks(resolve(_freq(n) for n in (3, 1, 2))) == [1, 2, 3]


def test_dictionary_id_is_propagated_verbatim() -> None:
    (obs,) = resolve([_freq(1, dictionary_id="jpdb-v2")])  # type: ignore[arg-type]
    assert obs.source_dictionary_id == "jpdb-v2"


def test_group_by_dictionary_preserves_order() -> None:
    result = resolve([_freq(5, 1), _freq(1, 2), _freq(3, 1), _freq('"x"', 2)])
    groups = group_by_dictionary(result)
    assert list(groups) == [2, 1]
    assert _ranks(groups[2]) == [1, None]
    assert _ranks(groups[1]) == [3, 5]


# ---------------------------------------------------------------------------
# Shape classification


def test_classify_payload_variants() -> None:
    assert isinstance(classify_payload(5), BareNumber)
    assert isinstance(classify_payload("x"), BareString)
    assert isinstance(classify_payload({"frequency": {"value": 1}}), NestedFrequencyObject)
    assert isinstance(classify_payload({"frequency": "1"}), ScalarFrequencyObject)
    assert isinstance(classify_payload({"displayValue": "x"}), ValueDisplayObject)
    assert isinstance(classify_payload(True), Unrecognized)
    assert isinstance(classify_payload([1]), Unrecognized)
    assert isinstance(classify_payload({"reading": "x"}), Unrecognized)


def test_nested_frequency_takes_priority_over_value_fields() -> None:
    shape = classify_payload({"frequency": {"value": 1}, "value": 2})
    assert isinstance(shape, NestedFrequencyObject)


# ---------------------------------------------------------------------------
# Decoder


def test_decode_payload_lenient_defaults() -> None:
    assert decode_payload("  42 ") == 42
    assert decode_payload("common") == "common"
    assert decode_payload(b'{"value": 1}') == {"value": 1}


def test_decode_payload_strict_rejects_bare_words() -> None:
    with pytest.raises(PayloadDecodeError):
        decode_payload("common", STRICT_DECODER)


def test_decode_payload_rejects_non_finite_by_default() -> None:
    with pytest.raises(PayloadDecodeError):
        decode_payload("Infinity")
    assert decode_payload("Infinity", DecoderOptions(allow_non_finite=True)) == float("inf")


def test_decoder_options_are_immutable() -> None:
    with pytest.raises(AttributeError):
        LENIENT_DECODER.allow_bare_words = False  # type: ignore[misc]


def test_meta_kind_parse_aliases() -> None:
    assert MetaKind.parse("frequency") is MetaKind.FREQUENCY
    assert MetaKind.parse("FREQ") is MetaKind.FREQUENCY
    assert MetaKind.parse("pitch") is MetaKind.PITCH
    assert MetaKind.parse("unknown") is None
