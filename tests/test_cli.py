# File: tests/test_cli.py
"""Тесты для CLI (`site_audit.cli`) с использованием click.testing.CliRunner.
Проверяют команды `scan`, `serve`, `config`, `--version`, а также обработку ошибок.
"""
import importlib
import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import fake_audit

from site_audit.aggregator import ScanReport, ScanResultEntry, ScanStatistics
from site_audit.cli import cli
from site_audit.exceptions import ScanTimeoutError, SessionError
from site_audit.logger import configure

cli_module = importlib.import_module("site_audit.cli")

SEED = "https://example.com/"


def write_config(name, content):
    path = Path(name)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def calls():
    return {}


@pytest.fixture(autouse=True)
def patch_start_scan(monkeypatch, calls):
    """Патчим start_scan: без браузера, один прогресс-кадр и готовый отчёт."""

    async def fake_scan(cfg, url, on_progress=None):
        calls["config"] = cfg
        calls["url"] = url
        if on_progress is not None:
            on_progress(ScanStatistics(1, 1, (url,)))
        return ScanReport(seed_url=url, discovered=[url], results=[ScanResultEntry(url, fake_audit(url))])

    monkeypatch.setattr(cli_module, "start_scan", fake_scan)


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI перенастраивает логгер на stderr CliRunner; возвращаем консольный вывод."""
    yield
    configure()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "SiteAudit" in result.output


def test_show_config():
    cfg_file = write_config("cfg.yaml", "max_pages: 12\nport: 4000\n")
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["max_pages"] == 12
    assert data["port"] == 4000


def test_limit_overrides_max_pages(calls):
    result = CliRunner().invoke(cli, ["--limit", "3", "scan", SEED])
    assert result.exit_code == 0
    assert calls["config"].max_pages == 3


def test_invalid_config_is_reported():
    cfg_file = write_config("bad.yaml", "max_pages: -1\n")
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_scan_stdout(calls):
    result = CliRunner().invoke(cli, ["scan", SEED])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["seedUrl"] == SEED
    assert data["scanStats"] == {"pagesScanned": 1, "totalPages": 1, "scannedUrls": [SEED]}
    assert calls["url"] == SEED


def test_scan_json_and_html_files(monkeypatch, isolated_cwd):
    saved = {}
    monkeypatch.setattr(cli_module, "render_json", lambda report, path: saved.setdefault("json", path))
    monkeypatch.setattr(cli_module, "render_html", lambda report, tpl, path: saved.setdefault("html", path))

    json_out = isolated_cwd / "report.json"
    html_out = isolated_cwd / "report.html"
    result = CliRunner().invoke(cli, ["scan", SEED, "--json", str(json_out), "--html", str(html_out)])

    assert result.exit_code == 0
    assert saved == {"json": json_out, "html": html_out}
    assert "[1/1]" in result.output
    assert f"JSON report: {json_out}" in result.output


def test_scan_writes_real_reports(isolated_cwd):
    json_out = isolated_cwd / "out" / "report.json"
    html_out = isolated_cwd / "out" / "report.html"
    result = CliRunner().invoke(cli, ["scan", SEED, "-j", str(json_out), "-h", str(html_out)])
    assert result.exit_code == 0
    assert json.loads(json_out.read_text(encoding="utf-8"))["results"][0]["url"] == SEED
    assert SEED in html_out.read_text(encoding="utf-8")


def test_scan_timeout(monkeypatch, calls):
    async def slow(cfg, url, on_progress=None):
        calls["config"] = cfg
        raise ScanTimeoutError(cfg.scan_timeout)

    monkeypatch.setattr(cli_module, "start_scan", slow)
    result = CliRunner().invoke(cli, ["scan", SEED, "--scan-timeout", "1"])
    assert result.exit_code == 1
    assert "не завершено" in result.output
    assert calls["config"].scan_timeout == 1.0


def test_scan_fatal_error(monkeypatch):
    async def broken(cfg, url, on_progress=None):
        raise SessionError("browser launch failed")

    monkeypatch.setattr(cli_module, "start_scan", broken)
    result = CliRunner().invoke(cli, ["scan", SEED])
    assert result.exit_code == 1
    assert "browser launch failed" in result.output


def test_serve_uses_overrides(monkeypatch):
    seen = {}
    monkeypatch.setattr(cli_module, "run_server", lambda cfg, host, port: seen.update(host=host, port=port))
    result = CliRunner().invoke(cli, ["serve", "--host", "0.0.0.0", "--port", "8080"])
    assert result.exit_code == 0
    assert seen == {"host": "0.0.0.0", "port": 8080}

