import logging

from fastapi.testclient import TestClient

from league_core.exceptions import InvalidMatchDataError
from league_core.main import create_app


def test_unhandled_exception_logs_traceback(caplog):
    app = create_app()

    @app.get("/boom")
    def boom():
        raise ValueError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR):
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["code"] == "internal_server_error"
    record = next((r for r in caplog.records if r.message == "Unhandled exception"), None)
    assert record is not None
    assert record.exc_info[0] is ValueError
    assert "ValueError: boom" in caplog.text


def test_invalid_match_data_is_unprocessable():
    app = create_app()

    @app.get("/bad-score")
    def bad_score():
        raise InvalidMatchDataError("Set 1: 6-5 is not a finished set.")

    response = TestClient(app).get("/bad-score")
    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["detail"] == "Set 1: 6-5 is not a finished set."
