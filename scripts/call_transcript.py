#!/usr/bin/env python3
"""Rebuild a call transcript from the server's TRANSCRIPT_DUMP log lines.

Usage:
    python scripts/call_transcript.py server.log                # last call
    python scripts/call_transcript.py server.log --call-id CA...
    python scripts/call_transcript.py --raw < server.log        # raw JSON
    python scripts/call_transcript.py server.log --list         # one line per call
"""

import argparse
import json
import sys

DUMP_MARKER = "TRANSCRIPT_DUMP|"
SPEAKERS = {"agent": "Agent", "receptionist": "Receptionist"}


def parse_transcript_lines(lines: list[str], call_id: str | None = None) -> list[dict]:
    """Reassemble chunked dumps into transcript dicts, oldest first.

    A ``1/n`` chunk starts a new transcript; later chunks append entries.
    Lines that don't parse are skipped.
    """
    groups: list[dict[int, str]] = []
    for line in lines:
        if DUMP_MARKER not in line:
            continue
        parts = line[line.index(DUMP_MARKER):].split("|", 2)
        if len(parts) < 3:
            continue
        try:
            index, _total = (int(n) for n in parts[1].split("/"))
        except ValueError:
            continue
        if index == 1:
            groups.append({})
        if groups:
            groups[-1][index] = parts[2]

    transcripts = []
    for chunks in groups:
        try:
            head = json.loads(chunks.get(1, "{}"))
        except json.JSONDecodeError:
            continue
        if call_id and head.get("call_id") != call_id:
            continue
        entries = list(head.get("entries", []))
        for index in sorted(k for k in chunks if k != 1):
            try:
                entries.extend(json.loads(chunks[index]).get("entries", []))
            except json.JSONDecodeError:
                continue
        head["entries"] = entries
        transcripts.append(head)
    return transcripts


def format_transcript(transcript: dict, gap_threshold: float = 5.0) -> str:
    """Human-readable transcript; long silences (holds) are annotated."""
    duration = transcript.get("duration_s", 0)
    lines = [
        f"Call {transcript.get('call_id', 'unknown')} | {transcript.get('callback') or 'no callback'} "
        f"| {duration}s | {transcript.get('final_state', 'unknown')}",
        "=" * 55,
        "",
    ]

    prev_t = None
    for entry in transcript.get("entries", []):
        t = entry.get("t", 0.0)
        if prev_t is not None and t - prev_t >= gap_threshold:
            lines.append(f"      | +{t - prev_t:.1f}s")
        speaker = SPEAKERS.get(entry.get("role", ""), entry.get("role", "?"))
        state = f"[{entry['state']}]" if entry.get("state") else ""
        lines.append(f"{t:5.1f}s {state:<16} {speaker}: {entry.get('content', '')}")
        prev_t = t

    if transcript.get("entries"):
        lines.append(f"{duration:5.1f}s {'':16} (call ended)")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Rebuild a call transcript from server logs")
    parser.add_argument("logfile", nargs="?", help="Log file to read (default: stdin)")
    parser.add_argument("--raw", action="store_true", help="Output raw JSON")
    parser.add_argument("--call-id", type=str, default=None, help="Filter by call id")
    parser.add_argument("--list", action="store_true", help="List every call found")
    parser.add_argument("--gap-threshold", type=float, default=5.0, help="Gap threshold in seconds (default: 5.0)")
    args = parser.parse_args()

    if args.logfile:
        try:
            with open(args.logfile, encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            print(f"Error: cannot read {args.logfile}: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        lines = sys.stdin.read().splitlines()

    transcripts = parse_transcript_lines(lines, call_id=args.call_id)
    if not transcripts:
        print("No call transcripts found.", file=sys.stderr)
        sys.exit(1)

    if args.list:
        for t in transcripts:
            print(f"{t.get('call_id')}\t{t.get('final_state')}\t{t.get('duration_s', 0)}s")
        return

    transcript = transcripts[-1]
    if args.raw:
        print(json.dumps(transcript, indent=2))
    else:
        print(format_transcript(transcript, gap_threshold=args.gap_threshold))


if __name__ == "__main__":
    main()
