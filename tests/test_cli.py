import httpx
import pytest
from typer.testing import CliRunner

from mapleads import __version__
from mapleads.cli.commands import businesses, scraper
from mapleads.cli.main import app
from mapleads.core.session import ScrapeSession

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MAPLEADS_API_URL", raising=False)


@pytest.fixture
def api(monkeypatch):
    """Route CLI sessions to an in-process handler."""
    routes = {}

    def handler(request):
        route = routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        return route(request)

    def open_session(config=None):
        return ScrapeSession.from_config(config, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(businesses, "open_session", open_session)
    monkeypatch.setattr(scraper, "open_session", open_session)
    return routes


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_default_config(tmp_path):
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    config_file = tmp_path / "configs" / "app.yaml"
    assert "interval_seconds: 1.0" in config_file.read_text(encoding="utf-8")

    again = runner.invoke(app, ["init"])
    assert again.exit_code == 1


def test_businesses_list_prints_page(api):
    api[("GET", "/api/businesses")] = lambda request: httpx.Response(200, json={
        "data": [{"_id": "b1", "name": "Joe's Coffee", "address": "1 Congress Ave", "website": "https://joes.example"}],
        "pagination": {"page": 1, "limit": 50, "total": 1, "pages": 1},
    })

    result = runner.invoke(app, ["businesses", "list", "--format", "json"])

    assert result.exit_code == 0
    assert "Joe's Coffee" in result.output
    assert '"pages": 1' in result.output


def test_businesses_delete_reports_failure(api):
    api[("DELETE", "/api/businesses/b1")] = lambda request: httpx.Response(500, json={"message": "boom"})

    result = runner.invoke(app, ["businesses", "delete", "b1", "--yes"])

    assert result.exit_code == 1


def test_export_search_requires_keyword_and_location(api):
    result = runner.invoke(app, ["businesses", "export", "--keyword", "bakery"])

    assert result.exit_code == 1


def test_status_shows_progress(api):
    api[("GET", "/api/scraper/status")] = lambda request: httpx.Response(200, json={
        "data": {"keyword": "coffee shop", "location": "Austin", "totalFound": 5,
                 "progress": {"processed": 5, "total": 12}},
    })

    result = runner.invoke(app, ["status", "coffee shop", "Austin"])

    assert result.exit_code == 0
    assert "5 / 12" in result.output


def test_search_stops_following_when_job_fails(api):
    def unavailable(request):
        return httpx.Response(503, json={"message": "Service Unavailable"})

    api[("POST", "/api/scraper/scrape")] = unavailable
    api[("GET", "/api/scraper/status")] = unavailable

    result = runner.invoke(app, ["search", "coffee shop", "Austin", "--max-wait", "30"])

    assert result.exit_code == 1
    assert "Service Unavailable" in result.output
