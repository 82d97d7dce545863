"""
Test CLI Module
===============

Tests for the command-line entry point.
"""

import json
import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from core.logging import set_debug_logging


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    for name in ("ANSWERING_MACHINE_DEBUG", "ANSWERING_MACHINE_ENABLE_FETCH"):
        monkeypatch.delenv(name, raising=False)
    yield tmp_path
    set_debug_logging(False)


class TestCLI:
    """Tests for main()."""

    def test_list_bootstraps_default_rule(self, config_dir, capsys):
        assert main.main(["--list", "--config-dir", str(config_dir)]) == 0
        out = capsys.readouterr().out
        assert "#my-channel" in out
        assert "pong" in out

    def test_test_message_fires(self, config_dir, capsys):
        """The default rule answers ping."""
        assert main.main(["--test", "ping", "--config-dir", str(config_dir)]) == 0
        assert "-> [#my-channel] pong" in capsys.readouterr().out

    def test_test_message_no_match(self, config_dir, capsys):
        assert main.main(["--test", "hello", "--config-dir", str(config_dir)]) == 1
        assert "No rule fired." in capsys.readouterr().out

    def test_validate(self, tmp_path, capsys):
        good = tmp_path / "good.json"
        good.write_text(json.dumps([
            {"server": "s", "listen_channel": "#c", "trigger_text": "t", "response_text": "r"}
        ]), encoding="utf-8")
        bad = tmp_path / "bad.json"
        bad.write_text('[{"server": "s"}]', encoding="utf-8")

        assert main.main(["--validate", str(good)]) == 0
        assert main.main(["--validate", str(bad)]) == 1
        assert "Rule #1" in capsys.readouterr().out

    def test_validate_missing_file(self, tmp_path):
        assert main.main(["--validate", str(tmp_path / "nope.json")]) == 1

    def test_validate_unreadable_paths(self, tmp_path, capsys):
        """Directories and non-UTF-8 files are reported, not raised."""
        binary = tmp_path / "rules.json"
        binary.write_bytes(b"\xff\xfe\x00[")

        assert main.main(["--validate", str(tmp_path)]) == 1
        assert main.main(["--validate", str(binary)]) == 1
        assert capsys.readouterr().out.count("Could not read") == 2

    def test_import_malformed_url(self, config_dir, capsys):
        """A URL httpx cannot parse ends with an error message and exit code 1."""
        (config_dir / "config.yaml").write_text(
            "enable_fetch: true\nfetch_whitelist: [example.org]\n", encoding="utf-8"
        )
        assert main.main(["--import", "https://example.org:0x/", "--config-dir", str(config_dir)]) == 1
        assert "Invalid URL" in capsys.readouterr().out

    def test_debug_mode(self, config_dir, capsys):
        args = ["--config-dir", str(config_dir), "--debug-mode"]
        assert main.main(args + ["enable"]) == 0
        assert main.main(args + ["status"]) == 0
        out = capsys.readouterr().out
        assert "Debug mode has been ENABLED" in out
        assert "Debug mode is currently ENABLED." in out

    def test_import_refused_when_disabled(self, config_dir, capsys):
        assert main.main(["--import", "https://example.org/r.json", "--config-dir", str(config_dir)]) == 1
        assert "disabled" in capsys.readouterr().out

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            main.parse_args(["--list", "--run"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
