from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

import numpy as np

from agentronic.analysis import analyze
from agentronic.composition import Note
from agentronic.errors import AgentronicError
from agentronic.generator import generate
from agentronic.ingest import parse_upload
from agentronic.note_io import note_from_dict, to_jsonable
from agentronic.storage import RecordStore

logger = logging.getLogger(__name__)


class MissingFieldsError(AgentronicError, ValueError):
    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require(payload: Mapping[str, Any], *fields: str) -> None:
    missing = [name for name in fields if payload.get(name) in (None, "")]
    if missing:
        raise MissingFieldsError(list(fields))


def _error_response(code: str, exc: Exception) -> dict[str, Any]:
    message = str(exc.args[0]) if isinstance(exc, KeyError) and exc.args else str(exc)
    return {"error": {"code": code, "message": message}}


def store_composition(store: RecordStore, composition_record: Mapping[str, Any], parts: list[Any]) -> str:
    """Persist a composition row plus its parts, measures and notes; return the composition id."""
    composition_row = store.insert("compositions", composition_record)
    composition_id = composition_row["id"]

    for part_number, part in enumerate(parts, start=1):
        part_row = store.insert(
            "parts",
            {
                "composition_id": composition_id,
                "name": part.name,
                "instrument": part.instrument or "Unknown",
                "part_number": part_number,
                "metadata": {},
            },
        )
        for measure in part.measures:
            measure_row = store.insert(
                "measures",
                {
                    "part_id": part_row["id"],
                    "composition_id": composition_id,
                    "measure_number": measure.measure_number,
                    "time_signature": measure.time_signature,
                    "tempo": measure.tempo,
                    "start_time": measure.start_time,
                    "duration": measure.duration,
                },
            )
            store.insert_many(
                "notes",
                [
                    {
                        "measure_id": measure_row["id"],
                        "pitch": note.pitch,
                        "velocity": note.velocity,
                        "start_time": note.start_time,
                        "duration": note.duration,
                        "midi_note": note.midi_note if note.midi_note is not None else note.pitch,
                        "articulation": note.articulation,
                    }
                    for note in measure.notes
                ],
            )
    return composition_id


def load_composition_notes(store: RecordStore, composition_id: str) -> list[Note]:
    """Notes of every measure belonging to ``composition_id``, in part, measure then time order."""
    store.get("compositions", composition_id)
    part_numbers = {row["id"]: row["part_number"] for row in store.select("parts", composition_id=composition_id)}
    measures = sorted(
        store.select("measures", composition_id=composition_id),
        key=lambda row: (part_numbers.get(row["part_id"], 0), row["measure_number"], row["start_time"]),
    )
    notes: list[Note] = []
    for measure in measures:
        rows = sorted(store.select("notes", measure_id=measure["id"]), key=lambda row: row["start_time"])
        notes.extend(
            note_from_dict(
                {
                    "pitch": row["pitch"],
                    "velocity": row["velocity"],
                    "startTime": row["start_time"],
                    "duration": row["duration"],
                    "midiNote": row.get("midi_note"),
                    "articulation": row.get("articulation"),
                }
            )
            for row in rows
        )
    return notes


def upload_music(store: RecordStore, payload: Mapping[str, Any]) -> dict[str, Any]:
    try:
        _require(payload, "fileData", "filename", "format")
        filename = payload["filename"]
        fmt = payload["format"]
        parsed = parse_upload(payload["fileData"], filename, fmt)

        record = {
            "title": parsed.title or filename,
            "composer": parsed.composer or "Unknown",
            "duration_seconds": parsed.duration or 0,
            "metadata": {
                "format": fmt,
                "originalFilename": filename,
                "parsedAt": _utc_now(),
                **parsed.metadata,
            },
        }
        composition_id = store_composition(store, record, list(parsed.parts))
        logger.info("Stored upload %s as composition %s", filename, composition_id)
        return {
            "success": True,
            "compositionId": composition_id,
            "title": record["title"],
            "parts": len(parsed.parts),
            "metadata": dict(parsed.metadata),
        }
    except (AgentronicError, ValueError, KeyError) as exc:
        logger.error("Music upload error: %s", exc)
        return _error_response("UPLOAD_FAILED", exc)


def analyze_composition(store: RecordStore, payload: Mapping[str, Any]) -> dict[str, Any]:
    try:
        _require(payload, "compositionId", "analysisType")
        composition_id = payload["compositionId"]
        analysis_type = payload["analysisType"]
        notes = load_composition_notes(store, composition_id)
        results = analyze(analysis_type, notes)

        store.insert(
            "analysis_results",
            {
                "composition_id": composition_id,
                "analysis_type": analysis_type,
                "results": results,
            },
        )
        logger.info("Analysed composition %s (%s, %d notes)", composition_id, analysis_type, len(notes))
        return {"success": True, "analysisType": analysis_type, "results": results}
    except (AgentronicError, ValueError, KeyError) as exc:
        logger.error("Analysis error: %s", exc)
        return _error_response("ANALYSIS_FAILED", exc)


def generate_music(
    store: RecordStore,
    payload: Mapping[str, Any],
    rng: np.random.Generator | None = None,
) -> dict[str, Any]:
    try:
        _require(payload, "type", "parameters")
        generation_type = payload["type"]
        parameters = dict(payload["parameters"])
        generated = generate(generation_type, parameters, rng=rng)

        record = {
            "title": f"Generated {generation_type} - {parameters.get('key', 'C')} {parameters.get('style', 'Classical')}",
            "composer": "AGENTRONIC AI",
            "duration_seconds": generated["duration"],
            "metadata": {
                "generated": True,
                "type": generation_type,
                "parameters": parameters,
                "generatedAt": _utc_now(),
            },
        }
        if payload.get("baseCompositionId"):
            record["metadata"]["baseCompositionId"] = payload["baseCompositionId"]
        composition_row = store.insert("compositions", record)
        logger.info("Generated %s as composition %s", generation_type, composition_row["id"])
        return {
            "success": True,
            "compositionId": composition_row["id"],
            "type": generation_type,
            "generatedContent": to_jsonable(generated),
        }
    except (AgentronicError, ValueError, KeyError, TypeError) as exc:
        logger.error("Generation error: %s", exc)
        return _error_response("GENERATION_FAILED", exc)


def register_agent(store: RecordStore, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Record a new agent as active and log an ``agent_registered`` event."""
    try:
        _require(payload, "name", "capabilities")
        name = payload["name"]
        capabilities = payload["capabilities"]
        agent = store.insert(
            "agents",
            {
                "name": name,
                "capabilities": capabilities,
                "status": "active",
                "last_active": _utc_now(),
            },
        )
        store.insert(
            "real_time_events",
            {
                "agent_id": agent["id"],
                "event_type": "agent_registered",
                "event_data": {
                    "name": name,
                    "capabilities": capabilities,
                    "version": payload.get("version"),
                },
            },
        )
        logger.info("Registered agent %s as %s", name, agent["id"])
        return {"success": True, "agentId": agent["id"], "status": agent["status"]}
    except (AgentronicError, ValueError, KeyError) as exc:
        logger.error("Agent registration error: %s", exc)
        return _error_response("REGISTRATION_FAILED", exc)
