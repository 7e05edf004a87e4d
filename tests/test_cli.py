"""Tests for the command-line entrypoint."""

import io

import cli


def test_parser_optimize_defaults() -> None:
    """Ensure optimize defaults to concise mode with titles."""
    args = cli._build_parser().parse_args(["optimize", "draft"])  # pylint: disable=protected-access
    assert args.command == "optimize"
    assert args.text == "draft"
    assert args.mode == "concise"
    assert args.backend is None
    assert not args.no_title


def test_parser_serve_options() -> None:
    """Ensure serve accepts host and port."""
    args = cli._build_parser().parse_args(  # pylint: disable=protected-access
        ["serve", "--host", "0.0.0.0", "--port", "9000"]
    )
    assert args.host == "0.0.0.0"
    assert args.port == 9000


def test_optimize_blank_stdin(monkeypatch, capsys) -> None:
    """Ensure blank input exits with a usage error and no backend call."""
    monkeypatch.setattr("sys.stdin", io.StringIO("   \n"))
    assert cli.main(["optimize"]) == 2
    assert "nothing to optimize" in capsys.readouterr().err
