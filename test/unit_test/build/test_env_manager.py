import os

import pytest

from sitedeploy.build.env_manager import EnvManager, parse_env, quote_if_needed
from sitedeploy.build.errors import EnvFileWriteError


class TestQuoteIfNeeded:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("plain", "plain"),
            (3000, "3000"),
            (None, ""),
            ("with space", '"with space"'),
            ('say "hi"', '"say \\"hi\\""'),
            ("a#b", '"a#b"'),
            ("$HOME", '"$HOME"'),
        ],
    )
    def test_quoting(self, value, expected):
        assert quote_if_needed(value) == expected


class TestParseEnv:
    def test_parse_env(self):
        content = '# comment\n\nA=1\nexport B="two words"\nC=\'single\'\nnot a pair\nA=override\r\nD=x=y'

        assert parse_env(content) == {"A": "override", "B": "two words", "C": "single", "D": "x=y"}


class TestEnvManager:
    def setup_method(self):
        self.manager = EnvManager()

    def test_creates_missing_file(self, tmp_path):
        env_path = self.manager.update_or_create_env(tmp_path, {"PORT": 3001})

        assert env_path == tmp_path / ".env"
        assert parse_env(env_path.read_text()) == {"PORT": "3001"}

    def test_replaces_in_place_and_keeps_comments(self, tmp_path):
        (tmp_path / ".env").write_text("# app\nPORT=3000\nNAME=old\n")

        self.manager.update_or_create_env(tmp_path, {"PORT": 3005, "NEW": "value"})

        assert (tmp_path / ".env").read_text() == "# app\nPORT=3005\nNAME=old\nNEW=value\n"

    def test_file_without_trailing_newline(self, tmp_path):
        (tmp_path / ".env").write_text("PORT=3000")

        self.manager.update_or_create_env(tmp_path, {"NEW": "x"})

        assert (tmp_path / ".env").read_text() == "PORT=3000\nNEW=x"

    def test_crlf_input_written_as_lf(self, tmp_path):
        (tmp_path / ".env").write_bytes(b"A=1\r\nB=2\r\n")

        self.manager.update_or_create_env(tmp_path, {"B": "3"})

        assert (tmp_path / ".env").read_bytes() == b"A=1\nB=3\n"

    def test_invalid_keys_are_skipped(self, tmp_path):
        self.manager.update_or_create_env(tmp_path, {"": "x", 5: "y", "OK": "z"})

        assert parse_env((tmp_path / ".env").read_text()) == {"OK": "z"}

    def test_backup_is_left_next_to_file(self, tmp_path):
        (tmp_path / ".env").write_text("A=1\n")

        self.manager.update_or_create_env(tmp_path, {"A": "2"})

        backups = list(tmp_path.glob(".env.*.bak"))
        assert len(backups) == 1
        assert backups[0].read_text() == "A=1\n"
        assert not (tmp_path / ".env.tmp").exists()

    def test_permissions_are_preserved(self, tmp_path):
        env_path = tmp_path / ".env"
        env_path.write_text("A=1\n")
        env_path.chmod(0o640)

        self.manager.update_or_create_env(tmp_path, {"A": "2"})

        assert os.stat(env_path).st_mode & 0o777 == 0o640

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(EnvFileWriteError):
            self.manager.update_or_create_env(tmp_path / "missing", {"A": "1"})
