from __future__ import annotations

import base64
import binascii
import logging
import uuid
from dataclasses import dataclass

from agentronic.composition import Composition, Measure, Note, Part
from agentronic.errors import UnsupportedFormatError

logger = logging.getLogger(__name__)

MIDI_FORMATS = ("midi", "mid")
MUSICXML_FORMATS = ("musicxml", "xml")


@dataclass(frozen=True)
class ChunkHeader:
    """Type tag and declared length of a chunk at the start of a payload."""

    type: str
    length: int
    data_offset: int


def _read_u32_be(data: bytes, offset: int) -> tuple[int, int]:
    if offset + 4 > len(data):
        raise ValueError("Unexpected EOF while reading u32.")
    return int.from_bytes(data[offset : offset + 4], "big"), offset + 4


def read_chunk_header(data: bytes, offset: int = 0) -> ChunkHeader:
    if offset + 4 > len(data):
        raise ValueError("Unexpected EOF while reading chunk type.")
    chunk_type = data[offset : offset + 4].decode("latin-1")
    length, data_offset = _read_u32_be(data, offset + 4)
    return ChunkHeader(type=chunk_type, length=length, data_offset=data_offset)


def decode_payload(file_data: bytes | str) -> bytes:
    """Accept raw bytes or a base64 string; plain text is passed through as UTF-8."""
    if isinstance(file_data, bytes):
        return file_data
    try:
        return base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        return file_data.encode("utf-8")


def _new_id() -> str:
    return uuid.uuid4().hex


def _canned_midi_composition(data: bytes, filename: str) -> Composition:
    metadata: dict[str, object] = {"format": "MIDI", "source": filename, "tracks": 4}
    if data[:4] == b"MThd" and len(data) >= 8:
        header = read_chunk_header(data)
        metadata["headerChunk"] = {"type": header.type, "length": header.length}

    notes = (
        Note(pitch=60, velocity=80, start_time=0.0, duration=1.0, midi_note=60),
        Note(pitch=64, velocity=75, start_time=1.0, duration=1.0, midi_note=64),
        Note(pitch=67, velocity=70, start_time=2.0, duration=1.0, midi_note=67),
        Note(pitch=72, velocity=85, start_time=3.0, duration=1.0, midi_note=72),
    )
    measure = Measure(
        measure_number=1,
        time_signature="4/4",
        tempo=120.0,
        start_time=0.0,
        duration=4.0,
        notes=notes,
    )
    piano = Part(id=_new_id(), name="Piano", instrument="Piano", measures=(measure,))
    return Composition(
        id=_new_id(),
        title="Parsed MIDI Composition",
        composer="Unknown",
        parts=(piano,),
        duration=180.0,
        metadata=metadata,
    )


def _canned_musicxml_composition(filename: str) -> Composition:
    return Composition(
        id=_new_id(),
        title="Parsed MusicXML Composition",
        composer="Unknown",
        parts=(),
        duration=200.0,
        metadata={"format": "MusicXML", "source": filename},
    )


def parse_upload(file_data: bytes | str, filename: str, fmt: str) -> Composition:
    """Decode an uploaded music file into a ``Composition``.

    Decoding is a placeholder: MIDI uploads always yield the same four-note
    piano sketch and MusicXML uploads an empty score. Only the leading MIDI
    header chunk is read, and only to annotate the metadata.
    """
    fmt_key = str(fmt).lower()
    if fmt_key in MIDI_FORMATS:
        composition = _canned_midi_composition(decode_payload(file_data), filename)
    elif fmt_key in MUSICXML_FORMATS:
        composition = _canned_musicxml_composition(filename)
    else:
        raise UnsupportedFormatError(fmt)
    logger.info("Ingested %s as %s (%d parts)", filename, fmt_key, len(composition.parts))
    return composition


def format_from_filename(filename: str) -> str:
    suffix = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if suffix in MIDI_FORMATS + MUSICXML_FORMATS:
        return suffix
    raise UnsupportedFormatError(suffix or filename)
