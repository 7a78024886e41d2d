"""
Unit tests for the command-line interface.
"""

import pytest

from minihttpd.__main__ import build_parser, main


class TestArgumentParser:
    """Tests for build_parser()."""

    def test_defaults(self):
        """Test default argument values."""
        args = build_parser().parse_args([])

        assert args.directory is None
        assert args.host == "127.0.0.1"
        assert args.port == 4221
        assert args.timeout is None
        assert args.log_level == "INFO"
        assert args.log_format == "text"

    def test_directory(self):
        """Test the --directory option."""
        args = build_parser().parse_args(["--directory", "/tmp/files"])

        assert args.directory == "/tmp/files"

    def test_unknown_log_format(self):
        """Test that an unknown log format exits with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--log-format", "xml"])

        assert exc_info.value.code == 2


class TestMain:
    """Tests for main()."""

    def test_invalid_config_exits_2(self, capsys):
        """Test that an out-of-range port is reported and exits with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "70000"])

        assert exc_info.value.code == 2
        assert "Invalid port" in capsys.readouterr().err

    def test_directory_is_a_file(self, tmp_path, capsys):
        """Test that a regular file given as --directory is rejected."""
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(SystemExit) as exc_info:
            main(["--directory", str(path)])

        assert exc_info.value.code == 2
