"""Tests for the credstasher command line."""
import orjson
import pytest

from navigator_credstash.cli import (
    EXIT_INTEGRITY,
    EXIT_KEY_SERVICE,
    EXIT_NOT_FOUND,
    main,
    parse_context,
)


class TestParseContext:

    def test_none(self):
        assert parse_context(None) is None

    def test_object(self):
        assert parse_context('{"env": "prod"}') == {"env": "prod"}

    @pytest.mark.parametrize("raw", ["{bad", '["env"]', '{"n": 1}'])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_context(raw)


class TestCommands:

    def test_put_get(self, store, capsys):
        assert main(["put", "db-pass", "s3cr3t"], store=store) == 0
        assert main(["get", "db-pass"], store=store) == 0
        out = capsys.readouterr().out
        assert "stored successfully (v: 1)" in out
        assert out.endswith("s3cr3t\n")

    def test_get_noline(self, store, capsys):
        main(["put", "db-pass", "s3cr3t"], store=store)
        capsys.readouterr()
        assert main(["get", "db-pass", "-n"], store=store) == 0
        assert capsys.readouterr().out == "s3cr3t"

    def test_context(self, store, capsys):
        main(["put", "db-pass", "s3cr3t", "-c", '{"env": "test"}'], store=store)
        assert main(["get", "db-pass", "-c", '{"env": "prod"}'], store=store) == EXIT_KEY_SERVICE
        assert main(["get", "db-pass", "-c", '{"env": "test"}'], store=store) == 0

    def test_missing(self, store, capsys):
        assert main(["get", "nope"], store=store) == EXIT_NOT_FOUND
        assert "not found" in capsys.readouterr().err

    def test_tampered(self, store, table, capsys):
        main(["put", "db-pass", "s3cr3t"], store=store)
        item = table.items[("db-pass", "1")]
        item["hmac"] = "00" * 32
        assert main(["get", "db-pass"], store=store) == EXIT_INTEGRITY

    def test_bad_context_json(self, store, capsys):
        assert main(["put", "db-pass", "x", "-c", "{bad"], store=store) == 1
        assert "Invalid JSON" in capsys.readouterr().err

    def test_list(self, store, capsys):
        assert main(["list"], store=store) == 0
        assert "No secrets found." in capsys.readouterr().out
        main(["put", "db-pass", "a"], store=store)
        main(["put", "db-pass", "b"], store=store)
        capsys.readouterr()
        assert main(["list", "--json"], store=store) == 0
        listing = orjson.loads(capsys.readouterr().out)
        assert {"name": "db-pass", "version": "2"} in listing

    def test_delete_all(self, store, table, capsys):
        main(["put", "db-pass", "a"], store=store)
        main(["put", "db-pass", "b"], store=store)
        assert main(["delete", "db-pass", "--all"], store=store) == 0
        assert "All versions" in capsys.readouterr().out
        assert table.items == {}

    def test_delete_version(self, store, table):
        main(["put", "db-pass", "a"], store=store)
        main(["put", "db-pass", "b"], store=store)
        assert main(["delete", "db-pass", "-v", "1"], store=store) == 0
        assert list(table.items) == [("db-pass", "2")]
