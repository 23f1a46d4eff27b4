import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))
from call_transcript import format_transcript, parse_transcript_lines

from clarity.post_call import chunk_transcript_dump


def _dump(call_id="CA_test", entries=None):
    return {
        "call_id": call_id,
        "callback": "+15125551234",
        "final_state": "confirmed",
        "duration_s": 31.0,
        "entries": entries if entries is not None else [
            {"t": 0.0, "role": "agent", "state": "greeting", "content": "Hello."},
            {"t": 4.1, "role": "receptionist", "state": "listening", "content": "Tuesday at 2pm"},
        ],
    }


class TestParseTranscriptLines:
    def test_single_chunk_with_log_prefix(self):
        lines = [f"2026-10-18 09:00:31 INFO clarity.post_call: TRANSCRIPT_DUMP|1/1|{json.dumps(_dump())}"]
        result = parse_transcript_lines(lines)
        assert len(result) == 1
        assert result[0]["call_id"] == "CA_test"
        assert len(result[0]["entries"]) == 2

    def test_reassembles_chunks_from_server(self):
        entries = [{"t": float(i), "role": "agent", "state": "listening", "content": "x" * 300} for i in range(20)]
        lines = chunk_transcript_dump(_dump(entries=entries), max_bytes=1000)
        assert len(lines) > 1
        result = parse_transcript_lines(["noise"] + lines)
        assert result[0]["entries"] == entries

    def test_call_id_filter(self):
        lines = [
            f"TRANSCRIPT_DUMP|1/1|{json.dumps(_dump('CA_first'))}",
            f"TRANSCRIPT_DUMP|1/1|{json.dumps(_dump('CA_second'))}",
        ]
        result = parse_transcript_lines(lines, call_id="CA_first")
        assert [t["call_id"] for t in result] == ["CA_first"]

    def test_malformed_lines_skipped(self):
        lines = ["TRANSCRIPT_DUMP|x/y|{}", "TRANSCRIPT_DUMP|1/1|not json"]
        assert parse_transcript_lines(lines) == []


class TestFormatTranscript:
    def test_header_and_speakers(self):
        out = format_transcript(_dump())
        assert out.splitlines()[0] == "Call CA_test | +15125551234 | 31.0s | confirmed"
        assert "Agent: Hello." in out
        assert "Receptionist: Tuesday at 2pm" in out

    def test_gap_annotation(self):
        dump = _dump(entries=[
            {"t": 0.0, "role": "agent", "content": "Certainly, I can hold."},
            {"t": 40.0, "role": "receptionist", "content": "Thanks for waiting"},
        ])
        assert "+40.0s" in format_transcript(dump)
