from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
from main import app, get_db


def _client() -> TestClient:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _login(client: TestClient, username: str = "casey") -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "hunter22!"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_health_needs_no_auth() -> None:
    client = _client()

    assert client.get("/api/health").json() == {"status": "ok"}


def test_register_login_and_me() -> None:
    client = _client()
    headers = _login(client)

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["username"] == "casey"
    assert "password_hash" not in me.json()

    login = client.post("/api/auth/login", json={"username": "casey", "password": "hunter22!"})
    assert login.status_code == 200
    bad = client.post("/api/auth/login", json={"username": "casey", "password": "wrong-pass"})
    assert bad.status_code == 401

    duplicate = client.post(
        "/api/auth/register",
        json={"username": "casey", "email": "other@example.com", "password": "hunter22!"},
    )
    assert duplicate.status_code == 400


def test_protected_routes_require_token() -> None:
    client = _client()

    assert client.get("/api/bills").status_code == 401
    bogus = {"Authorization": "Bearer not-a-real-token"}
    assert client.get("/api/bills", headers=bogus).status_code == 401


def test_validation_error_names_the_field() -> None:
    client = _client()
    headers = _login(client)

    response = client.post(
        "/api/bills", json={"bill_type": "water", "target_amount": 40}, headers=headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "bill_name: Field required"


def test_bill_update_and_delete_round_trip() -> None:
    client = _client()
    headers = _login(client)
    created = client.post(
        "/api/bills",
        json={"bill_name": "Electric", "bill_type": "electric", "target_amount": 120},
        headers=headers,
    )
    assert created.status_code == 201
    bill_id = created.json()["id"]

    payload = {
        "bill_name": "Power Co",
        "bill_type": "electric",
        "target_amount": 135.5,
        "due_day": 12,
        "is_active": True,
        "notes": "autopay",
    }
    assert client.put(f"/api/bills/{bill_id}", json=payload, headers=headers).status_code == 200
    fetched = client.get(f"/api/bills/{bill_id}", headers=headers).json()
    for key, value in payload.items():
        assert fetched[key] == value

    missing = client.delete("/api/bills/999", headers=headers)
    assert missing.status_code == 404
    assert len(client.get("/api/bills", headers=headers).json()) == 1

    deleted = client.delete(f"/api/bills/{bill_id}", headers=headers)
    assert deleted.json() == {"message": "Bill deleted successfully"}
    assert client.get("/api/bills", headers=headers).json() == []


def test_records_are_scoped_to_their_owner() -> None:
    client = _client()
    owner = _login(client, "owner")
    other = _login(client, "other")
    bill = client.post(
        "/api/bills",
        json={"bill_name": "Water", "bill_type": "water", "target_amount": 40},
        headers=owner,
    ).json()

    assert client.get(f"/api/bills/{bill['id']}", headers=other).status_code == 404
    assert client.get("/api/bills", headers=other).json() == []


def test_ai_tokens_are_masked_and_upserted() -> None:
    client = _client()
    headers = _login(client)
    body = {"service": "groq", "token": "gsk_1234567890abcdef"}

    first = client.post("/api/ai-tokens", json=body, headers=headers)
    second = client.post(
        "/api/ai-tokens",
        json={"service": "groq", "token": "gsk_abcdefghij987654"},
        headers=headers,
    )

    assert first.status_code == 201
    assert second.status_code == 200
    listed = client.get("/api/ai-tokens", headers=headers)
    assert "gsk_abcdefghij987654" not in listed.text
    (token,) = listed.json()
    assert token["masked_token"] == "gsk_abcd...7654"
    assert token["is_active"] is True


def test_llm_insights_without_tokens_is_a_client_error() -> None:
    client = _client()
    headers = _login(client)

    response = client.post("/api/ai/llm-insights", headers=headers)

    assert response.status_code == 400
    assert "No AI tokens configured" in response.json()["detail"]


def test_net_worth_combines_accounts_and_assets() -> None:
    client = _client()
    headers = _login(client)
    client.post(
        "/api/wealth/accounts",
        json={"name": "Checking", "type": "checking", "balance": 1500},
        headers=headers,
    )
    client.post(
        "/api/wealth/accounts",
        json={"name": "Visa", "type": "credit_card", "balance": -500},
        headers=headers,
    )
    client.post(
        "/api/wealth/assets",
        json={"name": "Car", "type": "vehicle", "value": 1500},
        headers=headers,
    )

    summary = client.get("/api/wealth/networth", headers=headers).json()

    assert summary["total_assets"] == 3000
    assert summary["total_liabilities"] == 500
    assert summary["net_worth"] == 2500


def test_bad_month_query_is_rejected() -> None:
    client = _client()
    headers = _login(client)

    response = client.get("/api/budget/overview?month=2025-13", headers=headers)

    assert response.status_code == 400
