# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-process CLI tests: stdout/stderr separation and exit codes."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from pathpick import cli
from tests._dom_helpers import PRODUCT_HTML


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


@pytest.fixture
def shop_file(tmp_path):
    path = tmp_path / "shop.html"
    path.write_text(PRODUCT_HTML, encoding="utf-8")
    return str(path)


def _run(capsys, *argv: str) -> tuple[int, str, str]:
    code = 0
    try:
        cli.main(list(argv))
    except SystemExit as e:
        code = e.code if isinstance(e.code, int) else 1
    captured = capsys.readouterr()
    return code, captured.out, captured.err


class TestDescribe:
    def test_prints_descriptor(self, capsys, shop_file):
        code, out, _ = _run(capsys, "describe", shop_file, "--xpath", "/html/body/div/h1")
        assert code == 0
        payload = json.loads(out)
        assert payload["tagName"] == "h1"
        assert payload["cssSelector"] == ".title"
        assert payload["fullXPath"] == "/html/body/div/h1"

    def test_unresolved_xpath(self, capsys, shop_file):
        code, out, err = _run(capsys, "describe", shop_file, "--xpath", "/html/body/table")
        assert code == 1
        assert out == ""
        assert err.startswith("Error: No element matches")


class TestPattern:
    def test_prints_matches(self, capsys, shop_file):
        code, out, _ = _run(
            capsys, "pattern", shop_file, "--root", "/html/body/div/ul", "--node", "/html/body/div/ul/li[2]/span"
        )
        assert code == 0
        payload = json.loads(out)
        assert payload["relativeXPath"] == "li/span"
        assert payload["matchingCount"] == 3
        assert payload["matchingValues"] == ["19.99", "24.50", "39.00"]
        assert payload["matchingPaths"][0] == "/html/body/div/ul/li[1]/span"

    def test_node_outside_root(self, capsys, shop_file):
        code, _, err = _run(capsys, "pattern", shop_file, "--root", "/html/body/div/ul", "--node", "/html/body/div/p")
        assert code == 1
        assert "not strictly inside" in err


class TestExtract:
    def test_prints_record(self, capsys, shop_file, tmp_path):
        selectors = tmp_path / "selectors.json"
        selectors.write_text(
            json.dumps(
                {
                    "title": {"type": "single", "cssSelector": ".title"},
                    "prices": {"type": "list", "rootFullXPath": "/html/body/div/ul", "relativeXPath": "li/span"},
                }
            ),
            encoding="utf-8",
        )
        code, out, _ = _run(capsys, "extract", shop_file, "--selectors", str(selectors), "--url", "https://shop.example/")
        assert code == 0
        record = json.loads(out)
        assert record["url"] == "https://shop.example/"
        assert record["data"] == {"title": "Spring Catalog", "prices": ["19.99", "24.50", "39.00"]}

    def test_invalid_selectors_file(self, capsys, shop_file, tmp_path):
        selectors = tmp_path / "selectors.json"
        selectors.write_text("{not json", encoding="utf-8")
        code, out, err = _run(capsys, "extract", shop_file, "--selectors", str(selectors))
        assert code == 1
        assert out == ""
        assert "not valid JSON" in err

    def test_selectors_must_be_an_object(self, capsys, shop_file, tmp_path):
        selectors = tmp_path / "selectors.json"
        selectors.write_text("[1, 2]", encoding="utf-8")
        code, _, err = _run(capsys, "extract", shop_file, "--selectors", str(selectors))
        assert code == 1
        assert "JSON object" in err


class TestErrors:
    def test_missing_source(self, capsys, tmp_path):
        code, _, err = _run(capsys, "describe", str(tmp_path / "gone.html"), "--xpath", "/html")
        assert code == 1
        assert err.startswith("Error: Cannot read")
        assert "Traceback" not in err

    def test_keyboard_interrupt(self, capsys, monkeypatch, shop_file):
        def _interrupt(source, settings):
            raise KeyboardInterrupt

        monkeypatch.setattr("pathpick.cli.load_page", _interrupt)
        code, _, err = _run(capsys, "describe", shop_file, "--xpath", "/html")
        assert code == 130
        assert "Interrupted" in err

    def test_subcommand_required(self, capsys):
        code, _, _ = _run(capsys)
        assert code == 2
