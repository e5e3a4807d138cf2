def upsert(client, **body):
    return client.post("/api/diary/upsert", json={"userId": "p1", **body})


def get_entry(client, date, user_id="p1"):
    return client.get("/api/diary", params={"userId": user_id, "date": date})


def test_upsert_then_get(client):
    saved = upsert(client, date="2025-01-05", text="felt great")
    assert saved.status_code == 200

    entry = get_entry(client, "2025-01-05").json()["entry"]
    assert entry["text"] == "felt great"
    assert entry["date"] == "2025-01-05"
    assert entry["mood"] is None

    assert get_entry(client, "2025-01-06").json() == {"entry": None}
    assert get_entry(client, "2025-01-05", user_id="p2").json() == {"entry": None}


def test_second_save_replaces_all_fields(client):
    first = upsert(client, date="2025-01-05", text="A", imageData="data:image/png;base64,AAAA").json()["entry"]
    second = upsert(client, date="2025-01-05", text="B", mood="calm").json()["entry"]

    assert second["id"] == first["id"]
    assert second["text"] == "B"
    assert second["mood"] == "calm"
    assert second["imageData"] == ""


def test_dates_are_normalized(client):
    upsert(client, date="2025-01-05T10:00:00Z", text="morning")
    assert get_entry(client, "2025-01-05").json()["entry"]["text"] == "morning"


def test_validation(client):
    assert upsert(client, date="yesterday").status_code == 400
    assert upsert(client, date="2025-01-05", mood="angry").status_code == 400
    assert client.post("/api/diary/upsert", json={"date": "2025-01-05"}).status_code == 400
    assert get_entry(client, "").status_code == 400
