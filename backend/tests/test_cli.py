"""
Tests for the transaction detection CLI.
"""

import json

import pytest
from click.testing import CliRunner

import cli as cli_module
from conftest import BASE_TIME, to_ms
from src.services.transaction_detection.state_storage import JsonStateStorage
from src.utils.settings import Settings

HDFC_DEBIT = "Rs.1,250.00 debited from A/c XX4321 on 05-Jan. Avl Bal Rs.8,750.00. Ref 123ABC456"


@pytest.fixture
def state_file(tmp_path, monkeypatch):
    path = tmp_path / "state.json"
    settings = Settings(DETECTION_PLATFORM="desktop", DETECTION_STATE_PATH=str(path))
    monkeypatch.setattr(cli_module, "get_settings", lambda: settings)
    return path


class TestParseCommands:
    """Test one-off parsing commands."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_parse_sms(self):
        result = self.runner.invoke(cli_module.cli, ["parse-sms", "--sender", "VM-HDFCBK", "--body", HDFC_DEBIT])

        assert result.exit_code == 0
        assert "1250.00" in result.output
        assert "HDFC Bank" in result.output
        assert "4321" in result.output

    def test_parse_sms_rejects_otp(self):
        result = self.runner.invoke(
            cli_module.cli,
            ["parse-sms", "--sender", "VM-HDFCBK", "--body", "Your OTP is 123456 for txn of Rs.500"],
        )
        assert result.exit_code == 1

    def test_parse_sms_rejects_unknown_sender(self):
        result = self.runner.invoke(cli_module.cli, ["parse-sms", "--sender", "AD-SWIGGY", "--body", HDFC_DEBIT])
        assert result.exit_code == 1

    def test_parse_notification(self):
        result = self.runner.invoke(
            cli_module.cli,
            [
                "parse-notification",
                "--package", "com.phonepe.app",
                "--title", "Payment successful",
                "--text", "₹500 paid to Ramesh Stores",
            ],
        )

        assert result.exit_code == 0
        assert "Ramesh Stores" in result.output
        assert "PhonePe" in result.output

    def test_monitored_apps(self):
        result = self.runner.invoke(cli_module.cli, ["monitored-apps"])

        assert result.exit_code == 0
        assert "com.phonepe.app" in result.output


class TestStateCommands:
    """Test commands backed by the persisted detection state."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_replay(self, tmp_path, state_file):
        events = tmp_path / "events.jsonl"
        records = [
            {"_id": 1, "address": "VM-HDFCBK", "body": HDFC_DEBIT, "date": to_ms(BASE_TIME)},
            {"package": "com.phonepe.app", "title": "Paid", "text": "₹500 paid to Ramesh Stores", "time": to_ms(BASE_TIME)},
            {"_id": 2, "address": "AD-SWIGGY", "body": "Your order is on the way", "date": to_ms(BASE_TIME)},
        ]
        events.write_text("\n".join(json.dumps(r) for r in records) + "\n\n", encoding="utf-8")

        result = self.runner.invoke(cli_module.cli, ["replay", str(events), "--state-file", str(state_file)])

        assert result.exit_code == 0
        assert "Queued: 2" in result.output
        assert "Skipped: 1" in result.output

    def test_replay_skips_resolved_ids(self, tmp_path, state_file):
        events = tmp_path / "events.jsonl"
        events.write_text(
            json.dumps({"_id": 1, "address": "VM-HDFCBK", "body": HDFC_DEBIT, "date": to_ms(BASE_TIME)}) + "\nnot json\n",
            encoding="utf-8",
        )
        state_file.write_text(json.dumps({"processed_ids": ["sms_1"]}), encoding="utf-8")

        result = self.runner.invoke(cli_module.cli, ["replay", str(events), "--state-file", str(state_file)])

        assert result.exit_code == 0
        assert "Queued: 0" in result.output
        assert "Skipped: 2" in result.output

    def test_settings_then_status(self, state_file):
        result = self.runner.invoke(cli_module.cli, ["settings", "--no-sms", "--no-auto-prompt"])
        assert result.exit_code == 0

        state = JsonStateStorage(state_file).load()
        assert state.settings.sms_reader_enabled is False
        assert state.settings.auto_show_prompt is False
        assert state.settings.notification_listener_enabled is True

        result = self.runner.invoke(cli_module.cli, ["status"])
        assert result.exit_code == 0
        assert "Disabled" in result.output

    def test_settings_without_flags(self, state_file):
        result = self.runner.invoke(cli_module.cli, ["settings"])

        assert result.exit_code == 0
        assert not state_file.exists()
