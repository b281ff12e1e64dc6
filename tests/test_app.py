import asyncio

from fastapi.testclient import TestClient

from marketplace.main import create_app


def _in_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_startup_store_calls_run_off_the_event_loop(database, monkeypatch):
    calls = []
    monkeypatch.setattr(database, "wait_until_ready", lambda: calls.append(("wait", _in_event_loop())))
    monkeypatch.setattr(database, "create_all", lambda: calls.append(("create_all", _in_event_loop())))

    with TestClient(create_app(database=database, create_tables=True)) as client:
        assert client.get("/health").status_code == 200

    assert calls == [("wait", False), ("create_all", False)]


def test_injected_database_is_not_disposed_on_shutdown(database, monkeypatch):
    disposed = []
    monkeypatch.setattr(database, "dispose", lambda: disposed.append(True))

    with TestClient(create_app(database=database, create_tables=False)):
        pass

    assert disposed == []
