"""Tests for session state and the association logic."""

import threading

from pdfchat.session import RequestGuard, Session

from conftest import FakeAI, make_conversation


def _seed(store, *conversations):
    for conv in conversations:
        store.save(conv)


class TestLoadPdf:
    def test_creates_conversation_when_none_exist(self, session, store, fake_ai):
        session.load_pdf("file://a", "doc.pdf", "some text")

        stored = store.list_all()
        assert len(stored) == 1
        assert stored[0].file_name == "doc.pdf"
        assert session.current_conversation.id == stored[0].id
        assert fake_ai.document_text == "some text"

    def test_resumes_most_recent(self, store, fake_ai):
        _seed(
            store,
            make_conversation("old", last_updated="2024-01-01T00:00:00.000Z"),
            make_conversation("new", last_updated="2024-06-01T00:00:00.000Z"),
        )
        session = Session(store, fake_ai)

        session.load_pdf("file://a", "doc.pdf", "some text")

        assert session.current_conversation.id == "new"
        assert len(store.list_all()) == 2

    def test_other_pdf_conversations_ignored(self, store, fake_ai):
        _seed(store, make_conversation("x", file_name="other.pdf"))
        session = Session(store, fake_ai)

        session.load_pdf("file://a", "doc.pdf", "some text")

        assert session.current_conversation.id != "x"
        assert session.current_conversation.file_name == "doc.pdf"
        assert len(store.list_all()) == 2

    def test_empty_text_sets_pdf_but_no_conversation(self, session, store):
        session.load_pdf("file://a", "doc.pdf", "")

        assert session.file_name == "doc.pdf"
        assert session.pdf_uri == "file://a"
        assert session.current_conversation is None
        assert store.list_all() == []

    def test_empty_text_drops_other_pdf_conversation(self, session, store):
        session.load_pdf("file://a", "a.pdf", "text")
        a_conv = session.current_conversation

        session.load_pdf("file://b", "b.pdf", "")

        assert session.file_name == "b.pdf"
        assert session.current_conversation is None
        assert session.ask("question") is None
        assert len(store.get_by_id(a_conv.id).messages) == 1

    def test_empty_text_keeps_same_pdf_conversation(self, session):
        session.load_pdf("file://a", "a.pdf", "text")
        conv = session.current_conversation
        session.clear_pdf()

        session.load_pdf("file://a", "a.pdf", "")

        assert session.current_conversation is conv

    def test_rehydrates_from_store_on_creation(self, store, fake_ai):
        _seed(store, make_conversation("saved"))

        session = Session(store, fake_ai)

        assert [c.id for c in session.conversations] == ["saved"]
        session.load_pdf("file://a", "doc.pdf", "text")
        assert session.current_conversation.id == "saved"
        assert len(store.list_all()) == 1


class TestClearPdf:
    def test_keeps_active_conversation(self, session, fake_ai):
        session.load_pdf("file://a", "doc.pdf", "some text")
        conv = session.current_conversation

        session.clear_pdf()

        assert session.pdf_uri is None
        assert session.file_name == ""
        assert session.pdf_content is None
        assert fake_ai.document_text is None
        assert session.current_conversation is conv


class TestDeleteConversation:
    def setup_method(self):
        self.ai = FakeAI()

    def _open(self, store):
        session = Session(store, self.ai)
        session.load_pdf("file://a", "doc.pdf", "some text")
        return session

    def test_active_deleted_sibling_takes_over(self, store):
        _seed(
            store,
            make_conversation("sibling", last_updated="2024-01-01T00:00:00.000Z"),
            make_conversation("active", last_updated="2024-06-01T00:00:00.000Z"),
        )
        session = self._open(store)
        assert session.current_conversation.id == "active"

        assert session.delete_conversation("active")

        assert session.current_conversation.id == "sibling"
        assert session.file_name == "doc.pdf"
        assert session.pdf_uri == "file://a"

    def test_picks_most_recent_sibling(self, store):
        _seed(
            store,
            make_conversation("s1", last_updated="2024-01-01T00:00:00.000Z"),
            make_conversation("s2", last_updated="2024-03-01T00:00:00.000Z"),
            make_conversation("active", last_updated="2024-06-01T00:00:00.000Z"),
            make_conversation("foreign", file_name="other.pdf", last_updated="2025-01-01T00:00:00.000Z"),
        )
        session = self._open(store)

        session.delete_conversation("active")

        assert session.current_conversation.id == "s2"

    def test_last_conversation_deleted_pdf_stays_open(self, store):
        _seed(store, make_conversation("only"))
        session = self._open(store)

        session.delete_conversation("only")

        assert session.current_conversation is None
        assert session.file_name == "doc.pdf"
        assert session.pdf_uri == "file://a"
        assert store.list_all() == []

    def test_deleting_inactive_keeps_active(self, store):
        _seed(
            store,
            make_conversation("other", last_updated="2024-01-01T00:00:00.000Z"),
            make_conversation("active", last_updated="2024-06-01T00:00:00.000Z"),
        )
        session = self._open(store)

        session.delete_conversation("other")

        assert session.current_conversation.id == "active"
        assert [c.id for c in session.conversations] == ["active"]


class TestUpdateCurrentConversation:
    def test_noop_without_active_conversation(self, session, store, kv):
        _seed(store, make_conversation("a"))
        before = kv.get("pdf_chat_conversations")

        session.update_current_conversation([])

        assert kv.get("pdf_chat_conversations") == before

    def test_replaces_messages_and_refreshes_timestamp(self, store, fake_ai):
        _seed(store, make_conversation("a", last_updated="2024-01-01T00:00:00.000Z"))
        session = Session(store, fake_ai)
        session.load_pdf("file://a", "doc.pdf", "text")

        messages = session.current_conversation.messages[:]
        session.update_current_conversation(messages + messages)

        saved = store.get_by_id("a")
        assert len(saved.messages) == 2
        assert saved.last_updated > "2024-01-01T00:00:00.000Z"
        assert session.current_conversation == saved
        assert session.conversations == [saved]


class TestConversationSwitching:
    def test_start_new_requires_pdf(self, session):
        assert session.start_new_conversation() is None

    def test_start_new_becomes_active(self, session, store):
        session.load_pdf("file://a", "doc.pdf", "text")
        first = session.current_conversation

        second = session.start_new_conversation()

        assert second.id != first.id
        assert session.current_conversation.id == second.id
        assert len(store.list_all()) == 2

    def test_select_within_pdf(self, store, fake_ai):
        _seed(store, make_conversation("a"), make_conversation("b", last_updated="2024-02-01T00:00:00Z"))
        session = Session(store, fake_ai)
        session.load_pdf("file://a", "doc.pdf", "text")

        assert session.select_conversation("a").id == "a"
        assert session.current_conversation.id == "a"

    def test_select_refuses_other_pdf(self, store, fake_ai):
        _seed(store, make_conversation("a"), make_conversation("x", file_name="other.pdf"))
        session = Session(store, fake_ai)
        session.load_pdf("file://a", "doc.pdf", "text")

        assert session.select_conversation("x") is None
        assert session.current_conversation.id == "a"

    def test_current_pdf_conversations_sorted(self, store, fake_ai):
        _seed(
            store,
            make_conversation("a", last_updated="2024-01-01T00:00:00Z"),
            make_conversation("b", last_updated="2024-03-01T00:00:00Z"),
            make_conversation("x", file_name="other.pdf"),
        )
        session = Session(store, fake_ai)
        session.load_pdf("file://a", "doc.pdf", "text")

        assert [c.id for c in session.current_pdf_conversations()] == ["b", "a"]


class TestAsk:
    def test_appends_question_and_answer(self, session, store, fake_ai):
        session.load_pdf("file://a", "doc.pdf", "text")

        reply = session.ask("What is this about?")

        assert reply.text == "An answer."
        saved = store.get_by_id(session.current_conversation.id)
        assert [m.is_user for m in saved.messages] == [False, True, False]
        assert saved.messages[1].text == "What is this about?"
        assert len({m.id for m in saved.messages}) == 3

        question, prior = fake_ai.queries[0]
        assert question == "What is this about?"
        assert len(prior) == 1

    def test_blank_question_ignored(self, session, fake_ai):
        session.load_pdf("file://a", "doc.pdf", "text")
        assert session.ask("   ") is None
        assert fake_ai.queries == []

    def test_no_active_conversation(self, session, fake_ai):
        assert session.ask("hello") is None
        assert fake_ai.queries == []

    def test_stale_answer_discarded(self, store):
        ai = FakeAI()
        session = Session(store, ai)
        session.load_pdf("file://a", "doc.pdf", "text")
        asking = session.current_conversation.id
        ai.on_query = session.start_new_conversation

        assert session.ask("hello") is None

        saved = store.get_by_id(asking)
        assert [m.is_user for m in saved.messages] == [False, True]
        assert session.current_conversation.id != asking
        assert len(session.current_conversation.messages) == 1

    def test_second_request_refused_while_in_flight(self, store):
        ai = FakeAI()
        session = Session(store, ai)
        session.load_pdf("file://a", "doc.pdf", "text")
        nested = []
        ai.on_query = lambda: nested.append(session.ask("again"))

        assert session.ask("hello") is not None
        assert nested == [None]
        assert len(ai.queries) == 1


class TestRequestGuard:
    def test_single_slot(self):
        guard = RequestGuard()
        with guard.hold() as first:
            assert first is True
            assert guard.busy
            with guard.hold() as second:
                assert second is False
        assert not guard.busy

    def test_other_thread_refused(self):
        guard = RequestGuard()
        results = []
        with guard.hold():
            def attempt():
                with guard.hold() as acquired:
                    results.append(acquired)
            t = threading.Thread(target=attempt)
            t.start()
            t.join()
        assert results == [False]
