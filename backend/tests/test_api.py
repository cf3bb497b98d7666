"""API tests using FastAPI TestClient."""

import math

import pytest
from fastapi.testclient import TestClient

from backend.app import main
from backend.app.main import app, format_number

client = TestClient(app)


def test_run_returns_stringified_result():
    r = client.post("/run", json={"code": "2😂3"})
    assert r.status_code == 200
    assert r.json() == "6"


@pytest.mark.parametrize(
    "code, expected",
    [
        ("🗨.5", "0.5"),
        ("1🤔0", "inf"),
        ("0🤔0", "NaN"),
        ("9🔁🔚", "0"),
        ("🏁f4🚩📞f", "4"),
    ],
)
def test_run_results(code, expected):
    r = client.post("/run", json={"code": code})
    assert r.status_code == 200
    assert r.json() == expected


def test_run_undefined_function_is_error():
    r = client.post("/run", json={"code": "📞g"})
    assert r.status_code == 400
    err = r.json()["errors"]
    assert err["code"] == "RUNTIME_ERROR"
    assert "g" in err["message"]


def test_run_unterminated_range_is_error():
    r = client.post("/run", json={"code": "🔁[1🔁3"})
    assert r.status_code == 400
    err = r.json()["errors"]
    assert err["code"] == "SYNTAX_ERROR"
    assert isinstance(err["position"], int)


def test_run_requires_code():
    r = client.post("/run", json={})
    assert r.status_code == 422


def test_index_fills_in_api_url(monkeypatch):
    monkeypatch.setattr(main, "API_URL", "http://emoji.example")
    r = client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "http://emoji.example" in r.text
    assert "API_URL_PLACEHOLDER" not in r.text


@pytest.mark.parametrize(
    "value, text",
    [
        (6.0, "6"),
        (0.5, "0.5"),
        (-2.5, "-2.5"),
        (100.0, "100"),
        (1e20, "100000000000000000000"),
        (1e-7, "0.0000001"),
        (-0.0, "-0"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "NaN"),
    ],
)
def test_format_number(value, text):
    assert format_number(value) == text
