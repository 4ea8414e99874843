import jobtracker.main as main_mod
import jobtracker.routers.auth as auth_mod


def test_auth_rate_limit_blocks_excess_requests(monkeypatch, client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_auth_per_min", 2)
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: None)

    payload = {"email": "x@example.com", "password": "bad"}
    r1 = client.post("/auth/login", json=payload)
    r2 = client.post("/auth/login", json=payload)
    r3 = client.post("/auth/login", json=payload)

    assert r1.status_code == 401
    assert r2.status_code == 401
    assert r3.status_code == 429
    assert r3.json()["success"] is False
    assert int(r3.headers["Retry-After"]) >= 1


def test_ai_routes_share_one_bucket(monkeypatch, client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_ai_per_min", 1)
    first = client.post("/resumes/job-fit", json={})
    second = client.post("/resumes/cover-letter", json={})
    assert first.status_code == 400
    assert second.status_code == 429


def test_zero_limit_disables_guard(monkeypatch, client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_auth_per_min", 0)
    monkeypatch.setattr(auth_mod, "get_by_email", lambda db, email: None)
    payload = {"email": "x@example.com", "password": "bad"}
    statuses = {client.post("/auth/login", json=payload).status_code for _ in range(5)}
    assert statuses == {401}
