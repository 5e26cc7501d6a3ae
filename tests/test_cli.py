import json

from factories import make_snapshot

from healthdash import cli
from healthdash.system_state import CollectionError


def test_json_output_contains_snapshot_and_checks(monkeypatch, capsys):
    monkeypatch.setattr(cli, "fetch_info", lambda config: make_snapshot(swap_percent=60))
    assert cli.main(["--json", "--config", "/dev/null"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["snapshot"]["host"]["hostname"] == "devbox"
    assert payload["snapshot"]["timestamp"] == "2024-05-01T12:00:00"
    swap = next(check for check in payload["checks"] if check["name"] == "swap")
    assert swap["passed"] is False


def test_json_collection_failure_exits_nonzero(monkeypatch):
    def fail(config):
        raise CollectionError("no /proc")

    monkeypatch.setattr(cli, "fetch_info", fail)
    assert cli.main(["--json", "--config", "/dev/null"]) == 1


def test_top_flag_overrides_config(monkeypatch):
    seen = {}

    def fetch(config):
        seen["top_n"] = config.top_n
        return make_snapshot()

    monkeypatch.setattr(cli, "fetch_info", fetch)
    cli.main(["--json", "--top", "9", "--config", "/dev/null"])
    assert seen["top_n"] == 9


def test_bad_config_exits_with_usage_error(tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("bogus: 1\n", encoding="utf-8")
    assert cli.main(["--config", str(path)]) == 2
    assert "bogus" in capsys.readouterr().err


def test_session_failure_reported(monkeypatch, capsys):
    def fail(config):
        raise cli.SessionError("healthdash needs an interactive terminal")

    monkeypatch.setattr(cli, "run_session", fail)
    assert cli.main(["--config", "/dev/null"]) == 1
    assert "interactive terminal" in capsys.readouterr().err
