"""Frequency resolution: normalize heterogeneous dictionary frequency metadata."""

from .decoder import LENIENT_DECODER, DecoderOptions, PayloadDecodeError, decode_payload
from .records import FrequencyObservation, MetaKind, RawMetaRecord
from .resolver import UNKNOWN_DISPLAY, group_by_dictionary, parse_frequency, resolve
from .shapes import classify_payload

__all__ = [
    "DecoderOptions",
    "FrequencyObservation",
    "LENIENT_DECODER",
    "MetaKind",
    "PayloadDecodeError",
    "RawMetaRecord",
    "UNKNOWN_DISPLAY",
    "classify_payload",
    "decode_payload",
    "group_by_dictionary",
    "parse_frequency",
    "resolve",
]
