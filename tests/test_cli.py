"""
Tests for the rantboard command line.
"""
import json

import pytest

from rantboard.cli import main
from rantboard.config import clear_config_cache
from rantboard.services import create_post, list_posts
from rantboard_web.server import parse_listen_addr


def _run(capsys, *argv):
    with pytest.raises(SystemExit) as exc:
        main(list(argv))
    return exc.value.code, json.loads(capsys.readouterr().out)


class TestCli:

    def test_posts(self, capsys):
        create_post("launch-day", "alice")
        code, out = _run(capsys, "posts")
        assert code == 0
        assert out["count"] == 1
        assert out["posts"][0]["id"] == "launch-day"

    def test_init_db(self, capsys):
        code, out = _run(capsys, "init-db")
        assert code == 0
        assert out["success"] is True

    def test_check_db(self, capsys):
        code, out = _run(capsys, "check-db")
        assert code == 0
        assert out["status"] == "connected"
        assert out["type"] == "sqlite"

    def test_reset_refused_outside_dev_mode(self, capsys):
        create_post("launch-day", "alice")
        code, out = _run(capsys, "reset", "--yes")
        assert code == 1
        assert out["success"] is False
        assert len(list_posts()) == 1

    def test_reset_needs_confirmation(self, capsys, monkeypatch):
        monkeypatch.setenv("DEV_ENV", "TRUE")
        clear_config_cache()
        create_post("launch-day", "alice")
        code, _ = _run(capsys, "reset")
        assert code == 1
        assert len(list_posts()) == 1

    def test_reset_in_dev_mode(self, capsys, monkeypatch):
        monkeypatch.setenv("DEV_ENV", "TRUE")
        clear_config_cache()
        create_post("launch-day", "alice")
        code, out = _run(capsys, "reset", "--yes")
        assert code == 0
        assert out["success"] is True
        assert list_posts() == []

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2


class TestListenAddr:

    @pytest.mark.parametrize("addr,expected", [
        ("127.0.0.1:8080", ("127.0.0.1", 8080)),
        (":8080", ("0.0.0.0", 8080)),
        ("localhost:3000", ("localhost", 3000)),
    ])
    def test_parse(self, addr, expected):
        assert parse_listen_addr(addr) == expected

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_listen_addr("localhost")
