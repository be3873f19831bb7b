"""Smoke tests for the end-to-end flow and the command line."""

import json
from datetime import date

import pytest

from shiftengine.cli import create_sample_store, load_config, main
from shiftengine.domain.policies import PairingSettings, ShortShiftLogic
from shiftengine.scheduling.scheduler import DemandScheduler
from shiftengine.validation.validator import ScheduleValidator

MONDAY = date(2024, 1, 15)


@pytest.fixture
def snapshot_file(tmp_path):
    data = {
        "skills": [{"id": "REG", "code": "REG", "name": "Register"}],
        "employees": [
            {"id": "E1", "name": "Alice", "skills": ["REG"]},
            {"id": "E2", "name": "Bob", "skills": ["REG"]},
            {"id": "E3", "name": "Carol", "skills": ["REG"], "rule": {"daily_max_hours": 4}},
        ],
        "demand": [
            {"skill_id": "REG", "day_of_week": "MONDAY", "start": "09:00", "end": "18:00",
             "seats": 2},
            {"skill_id": "REG", "day_of_week": "MONDAY", "start": "18:00", "end": "22:00",
             "seats": 1},
        ],
        "shift_templates": [
            {"name": "Morning", "start": "09:00", "end": "17:00", "required_employees": 2},
        ],
        "constraints": [
            {"employee_id": "E2", "date": "2024-01-15", "type": "VACATION"},
        ],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestSampleData:
    """End-to-end runs over the bundled sample data."""

    def test_sample_week_is_valid(self):
        store = create_sample_store(12, MONDAY)
        report = DemandScheduler(store).generate_period(MONDAY, date(2024, 1, 21))

        assert report.assignments, "Sample week should produce assignments"
        snapshot = store.load_snapshot(MONDAY, date(2024, 1, 21))
        result = ScheduleValidator().validate(report.assignments, snapshot)
        assert result.is_valid, f"Errors: {[str(e) for e in result.errors]}"

    def test_sample_week_with_pairing_is_valid(self):
        store = create_sample_store(12, MONDAY)
        scheduler = DemandScheduler(store, pairing=PairingSettings(enabled=True))
        report = scheduler.generate_period(MONDAY, date(2024, 1, 21))

        assert any((a.start, a.end) == (540, 1080) for a in report.assignments)
        snapshot = store.load_snapshot(MONDAY, date(2024, 1, 21))
        assert ScheduleValidator().validate(report.assignments, snapshot).is_valid


class TestConfigFile:
    """Tests for reading engine and pairing settings."""

    def test_nested_sections(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "engine": {"shift.short.logic": "a_only", "granularity_minutes": 30},
            "pairing": {"enabled": True, "morningWindow": "08:00-13:00"},
        }), encoding="utf-8")
        config, pairing = load_config(str(path))
        assert config.short_logic == ShortShiftLogic.A_ONLY
        assert config.granularity_minutes == 30
        assert pairing.enabled
        assert pairing.morning_window == "08:00-13:00"

    def test_flat_engine_settings(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"shift.short.enabled": False}), encoding="utf-8")
        config, pairing = load_config(str(path))
        assert not config.short_enabled
        assert not pairing.enabled

    def test_no_file(self):
        config, pairing = load_config(None)
        assert config.granularity_minutes == 60
        assert not pairing.enabled


class TestCommandLine:
    """Tests for the CLI entry point."""

    def test_generate_writes_output(self, snapshot_file, tmp_path, capsys):
        output = tmp_path / "out.json"
        code = main([
            "generate", str(snapshot_file), "--start", "2024-01-15", "--output", str(output),
        ])

        assert code == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        employees = sorted(a["employee_id"] for a in payload["assignments"])
        assert employees == ["E1", "E3"]
        assert payload["summary"]["assignments"] == 2
        assert payload["shortages"], "One of the two seats cannot be filled"
        assert "Validation: PASSED" in capsys.readouterr().out

    def test_generate_month(self, snapshot_file, capsys):
        assert main(["generate", str(snapshot_file), "--month", "2024-01", "--pairing"]) == 0
        assert "2024-01-01 to 2024-01-31" in capsys.readouterr().out

    def test_templates(self, snapshot_file, capsys):
        assert main(["templates", str(snapshot_file), "--start", "2024-01-15"]) == 0
        assert "Shortages" in capsys.readouterr().out

    def test_demand(self, snapshot_file, capsys):
        assert main(["demand", str(snapshot_file), "--start", "2024-01-15"]) == 0
        out = capsys.readouterr().out
        assert "09:00-10:00" in out
        assert "REG: 22 seat-slot(s)" in out

    def test_diagnose(self, snapshot_file, capsys):
        assert main(["diagnose", str(snapshot_file), "--date", "2024-01-15"]) == 0
        out = capsys.readouterr().out
        assert "Morning 09:00-17:00" in out
        assert "Bob" in out

    def test_demo(self, capsys):
        assert main(["demo", "--count", "8", "--days", "2"]) == 0
        assert "Validation: PASSED" in capsys.readouterr().out

    def test_invalid_period_reports_error(self, snapshot_file, capsys):
        code = main(["generate", str(snapshot_file), "--start", "2024-01-16", "--end", "2024-01-15"])
        assert code == 2
        assert "Error:" in capsys.readouterr().err

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_log_file(self, snapshot_file, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        main(["--log-file", str(log_file), "generate", str(snapshot_file), "--start", "2024-01-15"])
        assert log_file.exists()
        assert "Demand generation" in log_file.read_text(encoding="utf-8")
