from clarity.session import TranscriptEntry
from clarity.transcript import to_timestamped_dump


def _log():
    return [
        TranscriptEntry("agent", "Hello, this is Clarity.", 100.0, "greeting"),
        TranscriptEntry("receptionist", "Tuesday at 2pm", 104.3, "listening"),
    ]


class TestTimestampedDump:
    def test_relative_times(self):
        dump = to_timestamped_dump(_log(), start_time=100.0, call_id="CA_1", callback="+1", final_state="confirmed")
        assert dump["call_id"] == "CA_1"
        assert dump["final_state"] == "confirmed"
        assert [e["t"] for e in dump["entries"]] == [0.0, 4.3]
        assert dump["entries"][1]["state"] == "listening"

    def test_zero_start_uses_first_entry(self):
        dump = to_timestamped_dump(_log(), start_time=0, call_id="CA_1", callback="", final_state="ended")
        assert dump["entries"][0]["t"] == 0.0
