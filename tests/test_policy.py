"""Tests for the ignore policy."""

import logging
import os
import pytest
import re
import time
from pathlib import Path

from src.trail.config import TrailOptions
from src.trail.policy import PolicyFilter, file_age


def make_policy(**kwargs) -> PolicyFilter:
    kwargs.setdefault("ignore_if_older_than", None)
    kwargs.setdefault("logger", logging.getLogger("tests.policy"))
    return PolicyFilter(TrailOptions(**kwargs))


class TestPolicyFilterPatterns:
    """Tests for name and directory rules."""

    def test_no_rules_ignores_nothing(self):
        policy = make_policy()

        assert policy.should_ignore("/app/logs/a.tmp") is False

    def test_combined_rules(self):
        policy = make_policy(
            path_include=re.compile("/app/logs"),
            file_include=re.compile(r"\.log$"),
            file_exclude=re.compile(r"\.tmp$"),
        )

        assert policy.should_ignore("/app/logs/a.tmp") is True
        assert policy.should_ignore("/app/logs/a.log") is False
        assert policy.should_ignore("/other/b.log") is True

    def test_path_include_matches_directory_only(self):
        policy = make_policy(path_include=re.compile("logs$"))

        assert policy.should_ignore(Path("/srv/logs/app.log")) is False
        assert policy.should_ignore(Path("/srv/data/logs")) is True

    def test_file_include_matches_name_only(self):
        policy = make_policy(file_include=re.compile("^app"))

        assert policy.should_ignore("/app/other.log") is True
        assert policy.should_ignore("/var/app.log") is False

    def test_file_exclude(self):
        policy = make_policy(file_exclude=re.compile(r"\.gz$"))

        assert policy.should_ignore("/var/log/syslog.1.gz") is True
        assert policy.should_ignore("/var/log/syslog") is False

    def test_patterns_are_unanchored(self):
        policy = make_policy(file_include=re.compile("err"))

        assert policy.should_ignore("/var/log/stderr.log") is False


class TestPolicyFilterAge:
    """Tests for the age rule."""

    def test_recent_file_not_ignored(self, tmp_path):
        path = tmp_path / "recent.log"
        path.write_text("x\n")
        policy = make_policy(ignore_if_older_than=3600)

        assert policy.should_ignore(path) is False

    def test_old_file_ignored(self, tmp_path):
        path = tmp_path / "old.log"
        path.write_text("x\n")
        old = time.time() - 7200
        os.utime(path, (old, old))
        policy = make_policy(ignore_if_older_than=3600)

        assert policy.should_ignore(path) is True

    def test_age_rule_disabled(self, tmp_path):
        path = tmp_path / "old.log"
        path.write_text("x\n")
        os.utime(path, (0, 0))
        policy = make_policy(ignore_if_older_than=None)

        assert policy.should_ignore(path) is False

    def test_missing_file_fails_open(self, tmp_path, caplog):
        policy = make_policy(ignore_if_older_than=0)

        with caplog.at_level(logging.ERROR, logger="tests.policy"):
            result = policy.should_ignore(tmp_path / "missing.log")

        assert result is False
        assert "Failed to get file info" in caplog.text

    def test_clock_is_used(self, tmp_path):
        path = tmp_path / "a.log"
        path.write_text("x\n")
        mtime = os.stat(path).st_mtime
        options = TrailOptions(ignore_if_older_than=100, logger=logging.getLogger("tests.policy"))

        assert PolicyFilter(options, clock=lambda: mtime + 50).should_ignore(path) is False
        assert PolicyFilter(options, clock=lambda: mtime + 150).should_ignore(path) is True

    def test_name_rules_checked_before_stat(self, tmp_path, caplog):
        policy = make_policy(file_include=re.compile(r"\.log$"), ignore_if_older_than=0)

        with caplog.at_level(logging.ERROR, logger="tests.policy"):
            assert policy.should_ignore(tmp_path / "missing.txt") is True

        assert caplog.text == ""


class TestFileAge:
    """Tests for file_age helper."""

    def test_age(self, tmp_path):
        path = tmp_path / "a.log"
        path.write_text("x\n")
        os.utime(path, (1000, 1000))

        assert file_age(path, clock=lambda: 1500) == pytest.approx(500)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            file_age(tmp_path / "missing.log")
