import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from agentronic.configuration import load_config, save_config_file
from agentronic.errors import AgentronicError
from agentronic.pitch_classes import NOTE_NAMES

logger = logging.getLogger("agentronic")


def _configure_logging(config: dict[str, Any]) -> None:
    level_name = str(config.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _open_store(config: dict[str, Any], store_path: str | None):
    from agentronic.storage import RecordStore

    path = store_path if store_path is not None else config["storage"].get("path")
    return RecordStore.open(path), path


def _load_notes_and_measures(
    notes_json_path: str | None,
    composition_json_path: str | None,
) -> tuple[list, list]:
    from agentronic.note_io import load_composition_json, load_notes_json

    if bool(notes_json_path) == bool(composition_json_path):
        raise ValueError("Provide exactly one of notes_json_path or composition_json_path.")

    if notes_json_path:
        return load_notes_json(notes_json_path), []

    composition = load_composition_json(composition_json_path)
    return composition.notes(), composition.measures()


def run_analysis(
    analysis_type: str,
    notes_json_path: str | None,
    composition_json_path: str | None,
) -> int:
    from agentronic.analysis import analyze

    notes, _measures = _load_notes_and_measures(notes_json_path, composition_json_path)
    _print_json({"analysisType": analysis_type, "results": analyze(analysis_type, notes)})
    return 0


def run_stored_analysis(analysis_type: str, composition_id: str, config: dict[str, Any], store_path: str | None) -> int:
    from agentronic.service import analyze_composition

    store, path = _open_store(config, store_path)
    response = analyze_composition(store, {"compositionId": composition_id, "analysisType": analysis_type})
    _print_json(response)
    if "error" in response:
        return 1
    if path is not None:
        store.dump(path)
    return 0


def run_stats(
    notes_json_path: str | None,
    composition_json_path: str | None,
    default_tempo_bpm: float = 120.0,
) -> int:
    from agentronic.analyzer import average_tempo, detect_key, harmonic_progression, melodic_contour
    from agentronic.note_io import chord_to_dict

    notes, measures = _load_notes_and_measures(notes_json_path, composition_json_path)
    _print_json(
        {
            "noteCount": len(notes),
            "key": detect_key(notes),
            "contour": melodic_contour(notes),
            "averageTempo": average_tempo(measures, default_bpm=default_tempo_bpm),
            "harmonicProgression": [chord_to_dict(c) for c in harmonic_progression(measures)],
        }
    )
    return 0


def run_generation(generation_type: str, parameters: dict[str, Any], seed: int | None) -> int:
    import numpy as np

    from agentronic.generator import generate
    from agentronic.note_io import to_jsonable

    rng = np.random.default_rng(seed)
    record = generate(generation_type, parameters, rng=rng)
    _print_json({"type": generation_type, "generatedContent": to_jsonable(record)})
    return 0


def run_upload(file_path: str, fmt: str | None, config: dict[str, Any], store_path: str | None) -> int:
    from agentronic.ingest import format_from_filename
    from agentronic.service import upload_music

    path = Path(file_path)
    store, out_path = _open_store(config, store_path)
    response = upload_music(
        store,
        {
            "fileData": path.read_bytes(),
            "filename": path.name,
            "format": fmt or format_from_filename(path.name),
        },
    )
    _print_json(response)
    if "error" in response:
        return 1
    if out_path is not None:
        store.dump(out_path)
    return 0


def run_register(
    name: str,
    capabilities: list[str],
    version: str | None,
    config: dict[str, Any],
    store_path: str | None,
) -> int:
    from agentronic.service import register_agent

    store, path = _open_store(config, store_path)
    response = register_agent(store, {"name": name, "capabilities": capabilities, "version": version})
    _print_json(response)
    if "error" in response:
        return 1
    if path is not None:
        store.dump(path)
    return 0


def run_relay(config: dict[str, Any], store_path: str | None) -> int:
    from agentronic.relay import serve_lines

    store, path = _open_store(config, store_path)
    handled = serve_lines(sys.stdin, sys.stdout, store)
    logger.info("Relay handled %d events", handled)
    if path is not None:
        store.dump(path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AGENTRONIC music analysis and generation utilities")
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze", help="Run one analysis kind over notes or a composition")
    analyze_source = analyze.add_mutually_exclusive_group(required=True)
    analyze_source.add_argument(
        "--notes-json",
        type=str,
        help="Input JSON file with notes: [{pitch,velocity?,startTime?,duration?}, ...].",
    )
    analyze_source.add_argument("--composition-json", type=str, help="Input JSON file with one composition.")
    analyze_source.add_argument("--composition-id", type=str, help="Id of a composition in the record store.")
    analyze.add_argument(
        "--type",
        dest="analysis_type",
        required=True,
        help="Analysis kind: harmonic, melodic, structural or performance.",
    )
    analyze.add_argument("--store", type=str, default=None, help="Record store JSON path (overrides config).")

    stats = subparsers.add_parser("stats", help="Print key, contour, tempo and chord progression")
    stats_source = stats.add_mutually_exclusive_group(required=True)
    stats_source.add_argument("--notes-json", type=str, help="Input JSON file with notes.")
    stats_source.add_argument("--composition-json", type=str, help="Input JSON file with one composition.")

    generate = subparsers.add_parser("generate", help="Generate a melody, harmony or orchestration")
    generate.add_argument(
        "--type",
        dest="generation_type",
        required=True,
        help="Generation kind: melody, harmony or orchestration.",
    )
    generate.add_argument("--key", type=str, default=None, help="Key name, e.g. C or F# (default from config).")
    generate.add_argument("--length", type=int, default=None, help="Number of melody notes (default from config).")
    generate.add_argument("--style", type=str, default=None, help="Style label stored with the result.")
    generate.add_argument(
        "--instrument",
        dest="instruments",
        action="append",
        default=None,
        help="Orchestration instrument. Pass multiple --instrument values for several parts.",
    )
    generate.add_argument(
        "--progression",
        nargs="+",
        default=None,
        help="Roman numerals for harmony generation (default: I IV V I).",
    )
    generate.add_argument("--seed", type=int, default=None, help="Random seed for reproducible output.")
    generate.add_argument(
        "--save-config",
        type=str,
        default=None,
        help="Write the effective generation settings to this JSON config path.",
    )

    scale = subparsers.add_parser("scale", help="Print the major scale pitch classes of a key")
    scale.add_argument("--key", type=str, required=True, help="Key name, e.g. C or F#.")

    chord = subparsers.add_parser("chord", help="Print the semitone offsets of a chord")
    chord.add_argument("--root", type=str, required=True, help="Root name, e.g. A.")
    chord.add_argument("--type", dest="chord_type", type=str, default="major", help="major or minor (default: major).")

    upload = subparsers.add_parser("upload", help="Ingest a music file into the record store")
    upload.add_argument("--file", type=str, required=True, help="Input MIDI or MusicXML file.")
    upload.add_argument("--format", type=str, default=None, help="midi, mid, musicxml or xml (default: from suffix).")
    upload.add_argument("--store", type=str, default=None, help="Record store JSON path (overrides config).")

    register = subparsers.add_parser("register", help="Register an agent in the record store")
    register.add_argument("--name", type=str, required=True, help="Agent name.")
    register.add_argument(
        "--capability",
        dest="capabilities",
        action="append",
        required=True,
        help="Agent capability. Pass multiple --capability values for several.",
    )
    register.add_argument("--agent-version", dest="agent_version", type=str, default=None, help="Agent version label.")
    register.add_argument("--store", type=str, default=None, help="Record store JSON path (overrides config).")

    relay = subparsers.add_parser("relay", help="Relay JSON-lines agent events on stdin/stdout")
    relay.add_argument("--store", type=str, default=None, help="Record store JSON path (overrides config).")

    for sub in (analyze, stats, generate, scale, chord, upload, register, relay):
        sub.add_argument("--config", type=str, default=None, help="JSON config file (defaults applied if omitted).")
    return parser


def _validate_generate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.length is not None and args.length < 0:
        parser.error("--length must be >= 0.")
    if args.seed is not None and args.seed < 0:
        parser.error("--seed must be >= 0 when provided.")
    if args.key is not None and args.key not in NOTE_NAMES:
        parser.error(f"--key must be one of: {', '.join(NOTE_NAMES)}.")


def _validate_chord_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.root not in NOTE_NAMES:
        parser.error(f"--root must be one of: {', '.join(NOTE_NAMES)}.")


def _generation_parameters(args: argparse.Namespace, config: dict[str, Any]) -> dict[str, Any]:
    defaults = config["generation"]
    return {
        "key": args.key if args.key is not None else defaults["key"],
        "length": args.length if args.length is not None else defaults["length"],
        "style": args.style if args.style is not None else defaults["style"],
        "instruments": args.instruments if args.instruments is not None else list(defaults["instruments"]),
        "progression": args.progression if args.progression is not None else list(defaults["progression"]),
    }


def _dispatch(parser: argparse.ArgumentParser, args: argparse.Namespace, config: dict[str, Any]) -> int:
    if args.command == "analyze":
        if args.composition_id:
            return run_stored_analysis(args.analysis_type, args.composition_id, config, args.store)
        return run_analysis(args.analysis_type, args.notes_json, args.composition_json)

    if args.command == "stats":
        return run_stats(
            args.notes_json,
            args.composition_json,
            default_tempo_bpm=float(config["analysis"]["default_tempo_bpm"]),
        )

    if args.command == "generate":
        _validate_generate_args(parser, args)
        parameters = _generation_parameters(args, config)
        seed = args.seed if args.seed is not None else config["generation"].get("seed")
        if args.save_config:
            config["generation"].update(parameters)
            config["generation"]["seed"] = seed
            save_config_file(args.save_config, config)
        return run_generation(args.generation_type, parameters, seed)

    if args.command == "scale":
        from agentronic.generator import scale_for

        scale = scale_for(args.key)
        _print_json({"key": args.key, "pitchClasses": scale, "names": [NOTE_NAMES[pc] for pc in scale]})
        return 0

    if args.command == "chord":
        _validate_chord_args(parser, args)
        from agentronic.generator import chord_notes

        _print_json({"root": args.root, "type": args.chord_type, "notes": chord_notes(args.root, args.chord_type)})
        return 0

    if args.command == "upload":
        return run_upload(args.file, args.format, config, args.store)

    if args.command == "register":
        return run_register(args.name, args.capabilities, args.agent_version, config, args.store)

    if args.command == "relay":
        return run_relay(config, args.store)

    parser.error(f"Unsupported command: {args.command}")
    return 2


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        raise SystemExit(2)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        parser.error(f"Could not load config {args.config}: {exc}")
    _configure_logging(config)

    try:
        code = _dispatch(parser, args, config)
    except (AgentronicError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
