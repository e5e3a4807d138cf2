import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from momcare import llm_integration
from momcare.errors import UpstreamFailure


@pytest.fixture
def fake_llm(monkeypatch):
    prompts = []

    async def reply(message):
        prompts.append(message)
        return f"Take care! You said: {message}"

    monkeypatch.setattr(llm_integration, "companion_reply", reply)
    return prompts


def test_chat_records_both_turns(client, fake_llm):
    session = client.post("/api/ai/sessions", json={"userId": "p1", "title": "Week 12"}).json()["session"]

    res = client.post("/api/ai/chat", json={"message": "I feel dizzy", "userId": "p1", "sessionId": session["id"]})
    assert res.status_code == 200
    assert res.json() == {"reply": "Take care! You said: I feel dizzy"}
    assert fake_llm == ["I feel dizzy"]

    history = client.get("/api/ai/history", params={"userId": "p1", "sessionId": session["id"]}).json()["messages"]
    assert [(m["role"], m["content"]) for m in history] == [
        ("user", "I feel dizzy"),
        ("assistant", "Take care! You said: I feel dizzy"),
    ]

    sessions = client.get("/api/ai/sessions", params={"userId": "p1"}).json()["sessions"]
    assert sessions[0]["lastMessage"] == "Take care! You said: I feel dizzy"
    assert sessions[0]["title"] == "Week 12"


def test_chat_creates_unknown_session(client, fake_llm):
    client.post("/api/ai/chat", json={"message": "hi", "userId": "p1", "sessionId": "adhoc"})
    sessions = client.get("/api/ai/sessions", params={"userId": "p1"}).json()["sessions"]
    assert [s["id"] for s in sessions] == ["adhoc"]


def test_chat_validation(client, fake_llm):
    assert client.post("/api/ai/chat", json={"userId": "p1", "sessionId": "s"}).status_code == 400
    assert client.post("/api/ai/chat", json={"message": "hi", "sessionId": "s"}).status_code == 400
    assert client.post("/api/ai/chat", json={"message": "hi", "userId": "p1"}).status_code == 400
    assert fake_llm == []


def test_model_failure_is_a_500(client, monkeypatch):
    async def broken(message):
        raise UpstreamFailure("AI failed", status_code=500)

    monkeypatch.setattr(llm_integration, "companion_reply", broken)
    res = client.post("/api/ai/chat", json={"message": "hi", "userId": "p1", "sessionId": "s1"})
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "AI failed"}


def test_rename_and_delete_session(client, fake_llm):
    session = client.post("/api/ai/sessions", json={"userId": "p1"}).json()["session"]
    client.post("/api/ai/chat", json={"message": "hello", "userId": "p1", "sessionId": session["id"]})

    assert client.patch(f"/api/ai/sessions/{session['id']}", json={"title": " "}).status_code == 400
    assert client.patch("/api/ai/sessions/missing", json={"title": "x"}).status_code == 404
    renamed = client.patch(f"/api/ai/sessions/{session['id']}", json={"title": "Cravings"}).json()["session"]
    assert renamed["title"] == "Cravings"

    assert client.delete(f"/api/ai/sessions/{session['id']}").json() == {"success": True}
    assert client.get("/api/ai/sessions", params={"userId": "p1"}).json()["sessions"] == []
    history = client.get("/api/ai/history", params={"userId": "p1", "sessionId": session["id"]}).json()
    assert history == {"messages": []}


class FakeChatModel:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return AIMessage(content=self.content)


def use_model(monkeypatch, model):
    monkeypatch.setattr(llm_integration, "get_llm", lambda: model)
    return model


def chat(client, message="hi"):
    return client.post("/api/ai/chat", json={"message": message, "userId": "p1", "sessionId": "s1"})


def test_model_reply_is_trimmed(client, monkeypatch):
    model = use_model(monkeypatch, FakeChatModel(content="  Drink water and rest.  "))

    res = chat(client, "I have a headache")
    assert res.status_code == 200
    assert res.json() == {"reply": "Drink water and rest."}
    assert res.headers["X-AI-Model"]

    system, human = model.calls[0]
    assert isinstance(system, SystemMessage)
    assert system.content.startswith("Your name is Thozhi.")
    assert isinstance(human, HumanMessage)
    assert human.content == "I have a headache"


@pytest.mark.parametrize("content", ["", "   ", [{"type": "text", "text": "structured"}]])
def test_empty_or_structured_reply_uses_fallback(client, monkeypatch, content):
    use_model(monkeypatch, FakeChatModel(content=content))
    assert chat(client).json() == {"reply": llm_integration.FALLBACK_REPLY}


def test_model_exception_is_a_500(client, monkeypatch):
    use_model(monkeypatch, FakeChatModel(error=RuntimeError("rate limited")))

    res = chat(client)
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "AI failed"}
    history = client.get("/api/ai/history", params={"userId": "p1", "sessionId": "s1"}).json()["messages"]
    assert [m["role"] for m in history] == ["user"]


def test_missing_api_key_stores_nothing(client, monkeypatch):
    model = use_model(monkeypatch, FakeChatModel(content="unused"))
    monkeypatch.setattr(llm_integration, "GROQ_API_KEY", "")

    res = chat(client)
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "GROQ_API_KEY not set"}
    assert model.calls == []
    assert client.get("/api/ai/history", params={"userId": "p1", "sessionId": "s1"}).json() == {"messages": []}
    assert client.get("/api/ai/sessions", params={"userId": "p1"}).json() == {"sessions": []}
