"""Message aggregation and keyset pagination."""

from datetime import datetime, timedelta

import pytest

from teamchat.core import aggregator
from teamchat.core.aggregator import aggregate_message, aggregate_reactions, thread_summary
from teamchat.core.errors import InvalidInput, NotFound
from teamchat.core.pagination import (
    MessageContainer,
    PaginationOpts,
    decode_cursor,
    encode_cursor,
    paginate_messages,
    resolve_container,
)
from teamchat.database import operations as ops
from teamchat.database.schema import MemberRole

T0 = datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def channel_setup(session, make_user):
    ada = make_user("Ada")
    bob = make_user("Bob")
    workspace = ops.create_workspace(session, name="Engines", owner_user_id=ada.id)
    bob_member = ops.add_member(session, workspace.id, bob.id, role=MemberRole.member)
    return {
        "workspace_id": workspace.id,
        "channel_id": ops.list_channels(session, workspace.id)[0].id,
        "ada_member": ops.get_member(session, workspace.id, ada.id),
        "bob_member": bob_member,
    }


def _message(session, setup, member_key="ada_member", offset=0, **kwargs):
    kwargs.setdefault("channel_id", setup["channel_id"])
    return ops.create_message(
        session,
        workspace_id=setup["workspace_id"],
        member_id=setup[member_key].id,
        body=kwargs.pop("body", "hello"),
        created_at=T0 + timedelta(seconds=offset),
        **kwargs,
    )


class TestAggregation:
    def test_reactions_grouped_in_first_seen_order(self, session, channel_setup):
        message = _message(session, channel_setup)
        ada, bob = channel_setup["ada_member"], channel_setup["bob_member"]
        ops.add_reaction(session, message, bob.id, "🎉", created_at=T0)
        ops.add_reaction(session, message, ada.id, "👍", created_at=T0 + timedelta(seconds=1))
        ops.add_reaction(session, message, bob.id, "👍", created_at=T0 + timedelta(seconds=2))

        grouped = aggregate_reactions(ops.list_reactions(session, message.id))

        assert [r.value for r in grouped] == ["🎉", "👍"]
        assert grouped[1].count == 2
        assert grouped[1].member_ids == [ada.id, bob.id]
        assert grouped[1].message_id == message.id
        assert "member_id" not in grouped[0].model_dump()

    def test_empty_thread_summary(self, session, channel_setup):
        message = _message(session, channel_setup)
        summary = thread_summary(session, message.id)
        assert summary.model_dump() == {"count": 0, "image": None, "timestamp": 0, "name": ""}

    def test_thread_summary_reports_last_reply(self, session, channel_setup):
        root = _message(session, channel_setup)
        _message(session, channel_setup, parent_message_id=root.id, offset=10)
        last = _message(
            session, channel_setup, "bob_member", parent_message_id=root.id, offset=20
        )

        summary = thread_summary(session, root.id)
        assert summary.count == 2
        assert summary.name == "Bob"
        assert summary.timestamp == int(last.created_at.timestamp() * 1000)

    def test_unresolvable_reply_author_keeps_count(self, session, channel_setup, monkeypatch):
        root = _message(session, channel_setup)
        _message(session, channel_setup, parent_message_id=root.id, offset=10)
        last = _message(
            session, channel_setup, "bob_member", parent_message_id=root.id, offset=20
        )
        bob_id = channel_setup["bob_member"].id
        real_populate = aggregator.populate_member
        monkeypatch.setattr(
            aggregator,
            "populate_member",
            lambda s, member_id: None if member_id == bob_id else real_populate(s, member_id),
        )

        summary = thread_summary(session, root.id)
        assert summary.count == 2
        assert summary.name == ""
        assert summary.image is None
        assert summary.timestamp == int(last.created_at.timestamp() * 1000)

    def test_message_with_unresolvable_author_is_dropped(
        self, session, channel_setup, monkeypatch
    ):
        message = _message(session, channel_setup, "bob_member")
        monkeypatch.setattr(aggregator, "populate_member", lambda s, member_id: None)
        assert aggregate_message(session, message) is None

    def test_image_resolved_to_url(self, session, channel_setup, storage):
        stored = storage.save(session, b"\x89PNG fake", "image/png")
        with_image = _message(session, channel_setup, image=stored.id)
        dangling = _message(session, channel_setup, image="sdoesnotexist", offset=1)

        view = aggregate_message(session, with_image, storage)
        assert view.image == f"http://testserver/api/storage/{stored.id}"
        assert aggregate_message(session, dangling, storage).image is None

    def test_view_fields(self, session, channel_setup):
        message = _message(session, channel_setup, body='{"ops":[{"insert":"hi"}]}')
        view = aggregate_message(session, message)
        data = view.model_dump(mode="json")
        assert data["creation_time"] == int(T0.timestamp() * 1000)
        assert data["member"]["role"] == "admin"
        assert data["user"]["name"] == "Ada"
        assert data["updated_at"] is None
        assert data["reactions"] == []


class TestPagination:
    def test_cursor_round_trip(self, session, channel_setup):
        message = _message(session, channel_setup)
        created_at, message_id = decode_cursor(encode_cursor(message))
        assert created_at == message.created_at
        assert message_id == message.id

    def test_invalid_cursor(self):
        with pytest.raises(InvalidInput):
            decode_cursor("not-a-cursor")

    def test_resolve_container_from_parent(self, session, channel_setup):
        root = _message(session, channel_setup)
        container = resolve_container(session, parent_message_id=root.id)
        assert container == MessageContainer(
            channel_id=channel_setup["channel_id"], parent_message_id=root.id
        )
        with pytest.raises(NotFound):
            resolve_container(session, parent_message_id="XMISSING")

    def test_walk_is_newest_first_without_duplicates(self, session, channel_setup):
        ids = [_message(session, channel_setup, offset=i).id for i in range(5)]
        # Two rows sharing a timestamp are ordered by id
        ids += [_message(session, channel_setup, offset=10).id for _ in range(2)]
        container = MessageContainer(channel_id=channel_setup["channel_id"])

        seen = []
        cursor = None
        while True:
            page = paginate_messages(
                session, container, PaginationOpts(num_items=2, cursor=cursor)
            )
            seen.extend(m.id for m in page.page)
            cursor = page.continue_cursor
            if page.is_done:
                break

        assert len(seen) == len(ids)
        assert set(seen) == set(ids)
        expected = ops.list_container_messages(
            session, channel_setup["channel_id"], None, None, limit=len(ids)
        )
        assert seen == [m.id for m in expected]
        assert seen[-1] == ids[0]

    def test_new_rows_do_not_shift_pages(self, session, channel_setup):
        for i in range(4):
            _message(session, channel_setup, offset=i, body=f"m{i}")
        container = MessageContainer(channel_id=channel_setup["channel_id"])

        first = paginate_messages(session, container, PaginationOpts(num_items=2))
        assert [m.body for m in first.page] == ["m3", "m2"]

        _message(session, channel_setup, offset=100, body="late")
        second = paginate_messages(
            session, container, PaginationOpts(num_items=2, cursor=first.continue_cursor)
        )
        assert [m.body for m in second.page] == ["m1", "m0"]

    def test_exact_page_size_reports_done(self, session, channel_setup):
        for i in range(2):
            _message(session, channel_setup, offset=i)
        container = MessageContainer(channel_id=channel_setup["channel_id"])
        page = paginate_messages(session, container, PaginationOpts(num_items=2))
        assert len(page.page) == 2
        assert page.is_done is True

    def test_containers_are_isolated(self, session, channel_setup):
        root = _message(session, channel_setup, body="root")
        _message(session, channel_setup, parent_message_id=root.id, offset=1, body="reply")
        conversation = ops.create_conversation(
            session,
            workspace_id=channel_setup["workspace_id"],
            member_one_id=channel_setup["ada_member"].id,
            member_two_id=channel_setup["bob_member"].id,
        )
        _message(session, channel_setup, channel_id=None, conversation_id=conversation.id, body="dm")

        def bodies(container):
            page = paginate_messages(session, container, PaginationOpts())
            return [m.body for m in page.page]

        assert bodies(MessageContainer(channel_id=channel_setup["channel_id"])) == ["root"]
        assert bodies(
            MessageContainer(channel_id=channel_setup["channel_id"], parent_message_id=root.id)
        ) == ["reply"]
        assert bodies(MessageContainer(conversation_id=conversation.id)) == ["dm"]
