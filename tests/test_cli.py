import pytest

from study_tutor import cli


@pytest.fixture(autouse=True)
def fake_version(monkeypatch):
    def version(name: str) -> str:
        assert name == "study-tutor"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", version)


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: tutor" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    assert cli.main(argv) == 0
    assert "Usage: tutor" in capsys.readouterr().out


def test_list_outputs_command_table(capsys):
    assert cli.main(["list"]) == 0
    out = capsys.readouterr().out
    for name in ("init", "auth", "config", "chat", "quiz", "progress"):
        assert name in out
    assert "(interactive)" in out


@pytest.mark.parametrize("argv", [["version"], ["--version"], ["-V"]])
def test_version(argv, capsys):
    assert cli.main(argv) == 0
    assert capsys.readouterr().out.strip() == "0.0-test"


def test_version_handles_missing_package(monkeypatch, capsys):
    def missing(name):
        raise cli.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(cli.metadata, "version", missing)
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out.strip() == "unknown"


def test_help_known_command(capsys):
    assert cli.main(["help", "quiz"]) == 0
    out = capsys.readouterr().out
    assert "quiz:" in out
    assert "Run `tutor quiz --help`" in out


def test_help_unknown_command(capsys):
    assert cli.main(["help", "nope"]) == 2
    assert "Unknown command 'nope'" in capsys.readouterr().err


def test_unknown_command(capsys):
    assert cli.main(["dance"]) == 2
    err = capsys.readouterr().err
    assert "Unknown command 'dance'" in err
    assert "Available commands:" in err


def test_subcommand_help_exit_is_normalised(capsys):
    assert cli.main(["progress", "--help"]) == 0
    assert "tutor progress" in capsys.readouterr().out


def test_subcommand_usage_error_returns_argparse_code(capsys):
    assert cli.main(["auth"]) == 2
    assert "tutor auth" in capsys.readouterr().err


def test_dispatches_to_module_main(data_home, capsys):
    assert cli.main(["config", "path"]) == 0
    out = capsys.readouterr().out.strip()
    assert out.endswith("tutor.toml")


def test_normalise_string_exit(capsys):
    assert cli._normalize_system_exit(SystemExit("bad")) == 1
    assert "bad" in capsys.readouterr().err
    assert cli._normalize_system_exit(SystemExit(None)) == 0
