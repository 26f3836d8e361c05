"""Tests for daemon PID file handling."""

import os

import pytest

from recollect.config import RecollectConfig
from recollect.daemon import RecollectDaemon


@pytest.fixture
def daemon(tmp_path) -> RecollectDaemon:
    return RecollectDaemon(RecollectConfig(pid_file=tmp_path / "run" / "recollect.pid"))


class TestPidFile:
    def test_write_and_remove(self, daemon):
        daemon._write_pid()
        assert daemon.config.pid_file.read_text() == str(os.getpid())
        daemon._remove_pid()
        assert not daemon.config.pid_file.exists()

    def test_malformed_pid_file_is_cleared(self, daemon):
        daemon.config.pid_file.parent.mkdir(parents=True)
        daemon.config.pid_file.write_text("not-a-pid")
        daemon._check_existing()
        assert not daemon.config.pid_file.exists()

    def test_live_instance_exits(self, daemon):
        daemon._write_pid()
        with pytest.raises(SystemExit):
            daemon._check_existing()
