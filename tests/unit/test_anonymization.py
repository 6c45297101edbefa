from nightowl.rules.anonymization import REDACTED, redact_metadata


class TestRedactMetadata:
    def test_none_stays_none(self):
        assert redact_metadata(None) is None

    def test_personal_fields_are_redacted(self):
        metadata = {"action": "diary_entry", "note": "Could not sleep", "streakDay": 3}
        assert redact_metadata(metadata) == {
            "action": "diary_entry",
            "note": REDACTED,
            "streakDay": 3,
        }

    def test_nested_structures_are_redacted(self):
        metadata = {
            "questId": "diary_streak_7",
            "entry": {"text": "woke at 3am", "score": 4},
            "friends": [{"username": "sam"}, "plain"],
        }
        redacted = redact_metadata(metadata)
        assert redacted["questId"] == "diary_streak_7"
        assert redacted["entry"] == {"text": REDACTED, "score": 4}
        assert redacted["friends"] == [{"username": REDACTED}, "plain"]

    def test_input_is_not_mutated(self):
        metadata = {"email": "a@b.c"}
        redact_metadata(metadata)
        assert metadata == {"email": "a@b.c"}
