# File: tests/test_minifier.py
import pytest
import rjsmin
from conftest import CSS_SOURCE, JS_SOURCE

from site_audit.minifier import NoContentError, minify_assets, minify_css, minify_js


def test_minify_js_reports_savings():
    code, saved = minify_js(JS_SOURCE)
    assert "greet the user" not in code
    assert "function greet(name)" in code
    assert 0 < saved < 100
    assert saved == round((len(JS_SOURCE) - len(code)) / len(JS_SOURCE) * 100, 2)


def test_minify_css_reports_savings():
    code, saved = minify_css(CSS_SOURCE)
    assert "layout" not in code
    assert code.startswith("body{margin:0;padding:0")
    assert saved > 50


def test_minifier_failure_returns_source(monkeypatch):
    def broken(_source):
        raise ValueError("unexpected token")

    monkeypatch.setattr(rjsmin, "jsmin", broken)
    assert minify_js(JS_SOURCE) == (JS_SOURCE, 0)


@pytest.mark.asyncio()
async def test_minify_assets_fetches_and_concatenates(assets):
    result = await minify_assets(
        [assets("/app.js"), assets("/app.js")],
        [assets("/style.css")],
        timeout=5,
    )
    assert result.js.count("function greet(name)") == 2
    assert result.css.startswith("body{margin:0;padding:0")
    assert result.savings["js"] > 0
    assert result.savings["css"] > 0


@pytest.mark.asyncio()
async def test_unreachable_files_are_skipped(assets):
    result = await minify_assets([assets("/missing.js")], [assets("/style.css")], timeout=5)
    assert result.js is None
    assert result.savings["js"] == 0
    assert result.to_dict()["css"].startswith("body{margin:0")


@pytest.mark.asyncio()
async def test_nothing_fetched_is_an_error(assets):
    with pytest.raises(NoContentError, match="No content to minify"):
        await minify_assets([assets("/missing.js")], [], timeout=5)
    with pytest.raises(NoContentError):
        await minify_assets([], [], timeout=5)
