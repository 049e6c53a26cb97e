import pytest
from fastapi.testclient import TestClient

from mini_miner import app as app_module
from mini_miner import config
from mini_miner.block import Block
from mini_miner.errors import InvariantViolation
from mini_miner.pow import is_block_valid


@pytest.fixture
def client(monkeypatch):
    # Small, thread-based searches keep the tests fast.
    monkeypatch.setattr(config, "MAX_NONCE", 5000)
    monkeypatch.setattr(config, "USE_PROCESSES", False)
    monkeypatch.setattr(config, "WORKERS", 2)
    monkeypatch.setattr(config, "CHUNK_SIZE", 128)
    monkeypatch.setattr(config, "TIMEOUT_S", None)
    monkeypatch.setattr(app_module, "stats", app_module.SolveStats())
    return TestClient(app_module.app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_solve(client):
    data = [["abc", 1], ["def", 2]]
    r = client.post("/solve", json={"difficulty": 5, "block": {"data": data, "nonce": None}})
    assert r.status_code == 200
    nonce = r.json()["nonce"]
    assert is_block_valid(Block.from_problem(data).with_nonce(nonce), 5)

    metrics = client.get("/metrics").json()
    assert metrics["solved_total"] == 1
    assert metrics["last_nonce"] == nonce
    assert metrics["last_difficulty"] == 5


def test_solve_not_found(client):
    r = client.post("/solve", json={"difficulty": 257, "block": {"data": [], "nonce": None}})
    assert r.status_code == 404
    body = r.json()
    assert body["error"] == "NotFound"
    assert body["checked"] == 5001
    assert client.get("/metrics").json()["not_found_total"] == 1


def test_solve_rejects_malformed_problem(client):
    r = client.post("/solve", json={"difficulty": 5, "block": {"data": [["a", "1"]]}})
    assert r.status_code == 422


def test_invariant_violation_is_500(client, monkeypatch):
    def broken(problem, **options):
        raise InvariantViolation("nonce is None")

    monkeypatch.setattr(app_module, "solve_with_result", broken)
    r = client.post("/solve", json={"difficulty": 1, "block": {"data": []}})
    assert r.status_code == 500
    assert r.json()["error"] == "InvariantViolation"
    assert client.get("/metrics").json()["errors_total"] == 1


def test_solve_with_worker_processes(client, monkeypatch):
    monkeypatch.setattr(config, "USE_PROCESSES", True)
    r = client.post("/solve", json={"difficulty": 8, "block": {"data": [], "nonce": None}})
    assert r.status_code == 200
    assert is_block_valid(Block(entries=()).with_nonce(r.json()["nonce"]), 8)
