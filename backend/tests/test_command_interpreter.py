import copy

from app.commands.interpreter import (
    CONFLICT_MESSAGE,
    HELP_MESSAGE,
    MISSING_DEFAULT_MESSAGE,
    MISSING_MEETING_MESSAGE,
    run_command,
)
from app.models.user_settings import SlackStatus, UserSettings
from app.repositories.user_settings import SettingsConflictError


class _FakeStore:
    def __init__(self):
        self.saved_mappings = []
        self.saved_defaults = []

    def upsert_status_mappings(self, settings):
        snapshot = copy.deepcopy(settings)
        snapshot.version += 1
        self.saved_mappings.append(snapshot)
        return snapshot

    def upsert_default_status(self, settings):
        snapshot = copy.deepcopy(settings)
        snapshot.version += 1
        self.saved_defaults.append(snapshot)
        return snapshot


def _settings() -> UserSettings:
    return UserSettings(email="a@example.com", slack_token="xoxp-1")


def test_show_without_mappings():
    reply = run_command("show", _settings(), _FakeStore())
    assert "don't have any status mappings yet" in reply


def test_show_lists_mappings_in_insertion_order():
    settings = _settings()
    settings.upsert_mapping("Team Sync", SlackStatus(text="In a meeting", emoji=":calendar:"))
    settings.upsert_mapping("Focus", SlackStatus(text="", emoji=":headphones:"))
    settings.upsert_mapping("Lunch", SlackStatus(text="Lunch"))

    reply = run_command("show", settings, _FakeStore())
    assert reply.split("\n") == [
        ":calendar: `Team Sync` uses status `In a meeting`",
        ":headphones: `Focus`",
        "`Lunch` uses status `Lunch`",
    ]


def test_set_appends_mapping_and_defaults_text_to_meeting():
    settings = _settings()
    store = _FakeStore()

    reply = run_command('set meeting="Team Sync" emoji=📅', settings, store)

    assert len(store.saved_mappings) == 1
    saved = store.saved_mappings[0].status_mappings
    assert len(saved) == 1
    assert saved[0].calendar_text == "Team Sync"
    assert saved[0].slack_status == SlackStatus(text="Team Sync", emoji="📅")
    assert reply == "📅 `Team Sync` uses status `Team Sync`"


def test_set_is_case_insensitive_update_not_duplicate():
    settings = _settings()
    store = _FakeStore()

    run_command('set meeting="Standup"', settings, store)
    run_command('set meeting="standup" emoji=🧍', settings, store)

    assert len(settings.status_mappings) == 1
    mapping = settings.status_mappings[0]
    assert mapping.calendar_text == "Standup"
    assert mapping.slack_status.emoji == "🧍"
    assert mapping.slack_status.text == "standup"


def test_set_uses_message_when_given():
    settings = _settings()
    run_command('set meeting="1:1" message="Chatting" emoji=:speech_balloon:', settings, _FakeStore())
    assert settings.status_mappings[0].slack_status == SlackStatus(text="Chatting", emoji=":speech_balloon:")


def test_set_without_meeting_is_rejected_without_mutation():
    settings = _settings()
    settings.upsert_mapping("Lunch", SlackStatus(text="Lunch"))
    store = _FakeStore()

    reply = run_command("set emoji=:calendar: message=Busy", settings, store)

    assert reply == MISSING_MEETING_MESSAGE
    assert [m.calendar_text for m in settings.status_mappings] == ["Lunch"]
    assert store.saved_mappings == []


def test_remove_existing_mapping():
    settings = _settings()
    settings.upsert_mapping("Standup", SlackStatus(text="Standup"))
    store = _FakeStore()

    reply = run_command('remove meeting="STANDUP"', settings, store)

    assert "Removed" in reply
    assert settings.status_mappings == []
    assert len(store.saved_mappings) == 1


def test_remove_missing_mapping_is_noop():
    settings = _settings()
    store = _FakeStore()
    reply = run_command("remove meeting=Nope", settings, store)
    assert "nothing to remove" in reply
    assert store.saved_mappings == []


def test_set_default_overwrites_wholesale():
    settings = _settings()
    settings.default_status = SlackStatus(text="Old", emoji=":old:")
    store = _FakeStore()

    reply = run_command("set-default emoji=:computer:", settings, store)

    assert settings.default_status == SlackStatus(text="", emoji=":computer:")
    assert store.saved_defaults[0].default_status == SlackStatus(text="", emoji=":computer:")
    assert ":computer:" in reply


def test_set_default_requires_message_or_emoji():
    settings = _settings()
    settings.default_status = SlackStatus(text="Keep")
    store = _FakeStore()

    assert run_command("set-default", settings, store) == MISSING_DEFAULT_MESSAGE
    assert settings.default_status == SlackStatus(text="Keep")
    assert store.saved_defaults == []


def test_remove_default_is_idempotent():
    settings = _settings()
    settings.default_status = SlackStatus(text="Working")
    store = _FakeStore()

    run_command("remove-default", settings, store)
    run_command("remove-default", settings, store)

    assert settings.default_status is None
    assert [saved.default_status for saved in store.saved_defaults] == [None, None]


def test_unknown_and_empty_commands_reply_with_help():
    store = _FakeStore()
    assert run_command("dance", _settings(), store) == HELP_MESSAGE
    assert run_command("", _settings(), store) == HELP_MESSAGE
    assert run_command("Show", _settings(), store) == HELP_MESSAGE
    assert run_command("help", _settings(), store) == HELP_MESSAGE


def test_write_conflict_is_reported_to_user():
    class _ConflictStore(_FakeStore):
        def upsert_status_mappings(self, settings):
            raise SettingsConflictError(settings.email)

    reply = run_command("set meeting=Standup", _settings(), _ConflictStore())
    assert reply == CONFLICT_MESSAGE
