"""
Tests for executable resolution and launch arguments.
"""

import os
import sys

import pytest

from mpv_session.managers import binary
from mpv_session.managers.binary import (
    DEFAULT_OPTIONS,
    build_arguments,
    endpoint_from_args,
    option_key,
    random_endpoint,
    resolve_executable,
)
from mpv_session.utils.errors import ConfigurationError


class TestBuildArguments:
    """Test default option merging."""

    def test_defaults_appended(self):
        args = build_arguments([], endpoint="/tmp/sock")
        assert args == ["--input-ipc-server=/tmp/sock", *DEFAULT_OPTIONS]

    def test_caller_arguments_come_first(self):
        args = build_arguments(["--no-video", "--volume=50"], endpoint="/tmp/sock")
        assert args[:2] == ["--no-video", "--volume=50"]

    def test_caller_option_overrides_default(self):
        args = build_arguments(["--msg-level=all=v"], endpoint="/tmp/sock")
        assert [a for a in args if option_key(a) == "--msg-level"] == ["--msg-level=all=v"]

    def test_caller_endpoint_wins(self):
        args = build_arguments(["--input-ipc-server=/tmp/mine"])
        assert endpoint_from_args(args) == "/tmp/mine"
        assert sum(1 for a in args if a.startswith("--input-ipc-server")) == 1

    def test_non_option_arguments_ignored_for_merging(self):
        args = build_arguments(["song.flac"], endpoint="/tmp/sock")
        assert args[0] == "song.flac"
        assert "--idle" in args

    def test_random_endpoint_used_when_none_given(self):
        args = build_arguments()
        assert os.path.basename(endpoint_from_args(args)).startswith("mpvsocket")


class TestEndpoints:
    """Test endpoint generation and extraction."""

    def test_random_endpoints_are_unique(self):
        assert len({random_endpoint() for _ in range(50)}) == 50

    @pytest.mark.skipif(sys.platform == "win32", reason="socket paths are POSIX only")
    def test_random_endpoint_in_temp_dir(self):
        import tempfile
        assert os.path.dirname(random_endpoint()) == tempfile.gettempdir()

    def test_windows_endpoint_is_named_pipe(self, monkeypatch):
        monkeypatch.setattr(binary.sys, "platform", "win32")
        assert random_endpoint().startswith("\\\\.\\pipe\\mpvsocket")

    def test_missing_endpoint(self):
        with pytest.raises(ConfigurationError, match="Invalid socket path"):
            endpoint_from_args(["--idle"])

    def test_empty_endpoint(self):
        with pytest.raises(ConfigurationError, match="Invalid socket path"):
            endpoint_from_args(["--input-ipc-server="])


class TestResolveExecutable:
    """Test executable lookup order."""

    def test_explicit_path_wins(self):
        assert resolve_executable("/opt/player/mpv") == "/opt/player/mpv"

    @pytest.mark.skipif(sys.platform == "win32", reason="executable bit is POSIX only")
    def test_working_directory_binary_preferred(self, temp_dir, monkeypatch):
        local = temp_dir / "mpv"
        local.write_text("#!/bin/sh\n")
        local.chmod(0o755)
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(binary.shutil, "which", lambda name: "/usr/bin/mpv")

        assert resolve_executable() == str(local)

    def test_path_lookup(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(binary.shutil, "which", lambda name: "/usr/bin/" + name)

        assert resolve_executable().startswith("/usr/bin/mpv")

    def test_bare_name_fallback(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr(binary.shutil, "which", lambda name: None)

        assert resolve_executable() == "mpv"
