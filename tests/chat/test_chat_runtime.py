import pytest
from rich.console import Console

from fixtures import FakeModelClient, FlakyStore

from study_tutor.chat import ChatRuntime, session_title
from study_tutor.core.errors import UpstreamUnavailable, ValidationError
from study_tutor.models import Role


def _inputs(*values):
    queue = list(values)

    def provider(prompt: str) -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return provider


def test_session_title_uses_subject():
    assert session_title("Physics") == "Physics Discussion"
    assert session_title(None) == "New Chat"


def test_send_without_session_creates_one(store, user):
    model = FakeModelClient(replies=["Gravity pulls masses together."])
    runtime = ChatRuntime(store=store, client=model, user=user)

    turn = runtime.send("Explain gravity")

    assert turn is not None
    sessions = store.list_sessions(user)
    assert len(sessions) == 1
    assert sessions[0].title == "New Chat"
    assert runtime.session == sessions[0]
    assert model.chat_calls == [("Explain gravity", sessions[0].id)]

    messages = store.list_messages(sessions[0].id)
    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT]
    assert messages[0].content == "Explain gravity"
    assert messages[1].content == "Gravity pulls masses together."

    entries = runtime.transcript
    assert [e.status for e in entries] == ["saved", "saved"]
    assert entries[0].message_id == messages[0].id
    assert turn.response == "Gravity pulls masses together."


def test_upstream_failure_keeps_user_message(store, user):
    model = FakeModelClient(replies=[UpstreamUnavailable("down")])
    runtime = ChatRuntime(store=store, client=model, user=user)
    sess = runtime.start_session("Physics")

    with pytest.raises(UpstreamUnavailable):
        runtime.send_turn(sess.id, "Explain gravity")

    entries = runtime.transcript
    assert len(entries) == 1
    assert entries[0].role is Role.USER
    assert entries[0].status == "saved"
    notices = runtime.drain_notices()
    assert [n.level for n in notices] == ["error"]
    assert notices[0].message == "Failed to send message. Please try again."
    messages = store.list_messages(sess.id)
    assert [m.role for m in messages] == [Role.USER]
    assert not runtime.is_loading


def test_unsaved_messages_stay_visible(tmp_path, user):
    store = FlakyStore(tmp_path / "s")
    runtime = ChatRuntime(
        store=store, client=FakeModelClient(replies=["Answer"]), user=user
    )
    sess = runtime.start_session()
    store.fail.add("create_message")

    turn = runtime.send_turn(sess.id, "Hello")

    assert turn is not None
    assert [e.status for e in runtime.transcript] == ["unsaved", "unsaved"]
    assert all(e.message_id is None for e in runtime.transcript)
    assert [n.level for n in runtime.drain_notices()] == [
        "warning",
        "warning",
    ]


def test_blank_message_is_rejected(store, user, model):
    runtime = ChatRuntime(store=store, client=model, user=user)
    with pytest.raises(ValidationError):
        runtime.send("   ")
    assert store.list_sessions(user) == []
    assert model.chat_calls == []


def test_unknown_session_is_rejected(store, user, model):
    runtime = ChatRuntime(store=store, client=model, user=user)
    with pytest.raises(ValidationError):
        runtime.send_turn("missing", "Hello")
    assert model.chat_calls == []


def test_other_users_session_is_rejected(store, user, model):
    from study_tutor.auth import UserContext

    other = UserContext(user_id="bob", signed_in_at="2024-01-01T00:00:00Z")
    foreign = store.create_session(other, title="Bob's chat")
    runtime = ChatRuntime(store=store, client=model, user=user)
    with pytest.raises(ValidationError):
        runtime.open_session(foreign.id)


def test_in_flight_send_is_ignored(store, user):
    runtime = None

    class ReentrantModel(FakeModelClient):
        def complete(self, message, *, context):
            assert runtime.is_loading
            assert runtime.send("second") is None
            return super().complete(message, context=context)

    model = ReentrantModel(replies=["ok"])
    runtime = ChatRuntime(store=store, client=model, user=user)
    runtime.send("first")

    assert [call[0] for call in model.chat_calls] == ["first"]
    assert len(runtime.transcript) == 2


def test_open_session_loads_history_in_order(store, user, model):
    runtime = ChatRuntime(store=store, client=model, user=user)
    sess = runtime.start_session("Math")
    runtime.send("one")
    runtime.send("two")

    fresh = ChatRuntime(store=store, client=model, user=user)
    fresh.open_session(sess.id)

    assert [e.content for e in fresh.transcript if e.role is Role.USER] == [
        "one",
        "two",
    ]
    assert all(e.status == "saved" for e in fresh.transcript)


def test_closed_runtime_still_persists_reply(store, user):
    runtime = None

    class ClosingModel(FakeModelClient):
        def complete(self, message, *, context):
            runtime.close()
            return super().complete(message, context=context)

    runtime = ChatRuntime(
        store=store, client=ClosingModel(replies=["late"]), user=user
    )
    sess = runtime.start_session()
    runtime.send_turn(sess.id, "hi")

    assert [e.role for e in runtime.transcript] == [Role.USER]
    assert [m.content for m in store.list_messages(sess.id)] == ["hi", "late"]


def test_interactive_loop_commands(store, user):
    model = FakeModelClient(replies=["**Explanation:** gravity"])
    runtime = ChatRuntime(store=store, client=model, user=user)
    console = Console(record=True, width=100)

    runtime.interactive_loop(
        console,
        _inputs(":new Physics", "What is gravity?", ":sessions", ":open 9",
                ":open 1", ":quit"),
    )

    text = console.export_text()
    assert "Started Physics Discussion" in text
    assert "Explanation:" in text
    assert "Chat Sessions" in text
    assert "Run :sessions and pick a listed number." in text
    assert "Opened Physics Discussion" in text
    assert "Goodbye!" in text


def test_interactive_loop_shows_send_failure(store, user):
    model = FakeModelClient(replies=[UpstreamUnavailable("down")])
    runtime = ChatRuntime(store=store, client=model, user=user)
    console = Console(record=True, width=100)

    runtime.interactive_loop(console, _inputs("Hello"))

    text = console.export_text()
    assert "Failed to send message" in text
    assert "Exiting chat." in text
