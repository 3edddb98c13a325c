"""Workspace, channel and member handlers against a real SQLite database."""

import re

import pytest
from sqlalchemy import func, select

from teamchat.api.models import (
    ChannelIdArgs,
    CreateChannelArgs,
    CreateMessageArgs,
    CreateOrGetConversationArgs,
    CreateWorkspaceArgs,
    JoinWorkspaceArgs,
    MemberIdArgs,
    NewJoinCodeArgs,
    NoArgs,
    ToggleReactionArgs,
    UpdateChannelArgs,
    UpdateMemberArgs,
    UpdateWorkspaceArgs,
    WorkspaceIdArgs,
    WorkspaceScopedArgs,
)
from teamchat.core.errors import InvalidInput, NotFound, Unauthorized
from teamchat.database import operations as ops
from teamchat.database.schema import (
    Channel,
    Conversation,
    Member,
    MemberRole,
    Message,
    Reaction,
    Workspace,
)
from teamchat.handlers import (
    channels,
    conversations,
    members,
    messages,
    reactions,
    workspaces,
)


def _count(session, model, *criteria):
    return session.execute(
        select(func.count()).select_from(model).where(*criteria)
    ).scalar_one()


@pytest.fixture
def ada(make_user):
    return make_user("Ada")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def workspace_id(make_ctx, ada):
    return workspaces.create(make_ctx(ada), CreateWorkspaceArgs(name="Analytical Engine"))


@pytest.fixture
def bob_member(session, make_ctx, bob, workspace_id):
    workspace = session.get(Workspace, workspace_id)
    workspaces.join(
        make_ctx(bob),
        JoinWorkspaceArgs(join_code=workspace.join_code, workspace_id=workspace_id),
    )
    return ops.get_member(session, workspace_id, bob.id)


class TestWorkspaces:
    def test_create_inserts_admin_and_general_channel(self, session, ada, workspace_id):
        workspace = session.get(Workspace, workspace_id)
        assert workspace.name == "Analytical Engine"
        assert workspace.user_id == ada.id
        assert re.fullmatch(r"[0-9a-z]{6}", workspace.join_code)

        workspace_members = ops.list_members(session, workspace_id)
        assert len(workspace_members) == 1
        assert workspace_members[0].user_id == ada.id
        assert workspace_members[0].role == MemberRole.admin

        workspace_channels = ops.list_channels(session, workspace_id)
        assert [c.name for c in workspace_channels] == ["general"]

    def test_create_requires_user(self, make_ctx):
        with pytest.raises(Unauthorized):
            workspaces.create(make_ctx(None), CreateWorkspaceArgs(name="Nobody's"))

    def test_get_lists_only_own_workspaces(self, make_ctx, ada, bob, workspace_id):
        workspaces.create(make_ctx(bob), CreateWorkspaceArgs(name="Difference Engine"))

        ada_workspaces = workspaces.get(make_ctx(ada), NoArgs())
        assert [w.id for w in ada_workspaces] == [workspace_id]
        assert workspaces.get(make_ctx(None), NoArgs()) == []

    def test_get_by_id_is_soft_for_non_members(self, make_ctx, ada, bob, workspace_id):
        assert workspaces.get_by_id(make_ctx(bob), WorkspaceIdArgs(id=workspace_id)) is None
        found = workspaces.get_by_id(make_ctx(ada), WorkspaceIdArgs(id=workspace_id))
        assert found.id == workspace_id

    def test_get_by_id_anonymous_is_unauthorized(self, make_ctx, workspace_id):
        with pytest.raises(Unauthorized):
            workspaces.get_by_id(make_ctx(None), WorkspaceIdArgs(id=workspace_id))

    def test_get_info_by_id_for_prospective_member(self, make_ctx, bob, workspace_id):
        info = workspaces.get_info_by_id(make_ctx(bob), WorkspaceIdArgs(id=workspace_id))
        assert info.name == "Analytical Engine"
        assert info.is_member is False
        assert workspaces.get_info_by_id(make_ctx(None), WorkspaceIdArgs(id=workspace_id)) is None
        assert workspaces.get_info_by_id(make_ctx(bob), WorkspaceIdArgs(id="WMISSING")) is None

    def test_join_accepts_uppercase_code(self, session, make_ctx, bob, workspace_id):
        workspace = session.get(Workspace, workspace_id)
        joined = workspaces.join(
            make_ctx(bob),
            JoinWorkspaceArgs(
                join_code=workspace.join_code.upper(), workspace_id=workspace_id
            ),
        )
        assert joined == workspace_id
        member = ops.get_member(session, workspace_id, bob.id)
        assert member.role == MemberRole.member

    def test_join_errors_in_order(self, session, make_ctx, bob, workspace_id):
        workspace = session.get(Workspace, workspace_id)

        with pytest.raises(Unauthorized):
            workspaces.join(
                make_ctx(None),
                JoinWorkspaceArgs(join_code="zzzzzz", workspace_id="WMISSING"),
            )
        with pytest.raises(NotFound) as exc:
            workspaces.join(
                make_ctx(bob),
                JoinWorkspaceArgs(join_code="zzzzzz", workspace_id="WMISSING"),
            )
        assert exc.value.detail == "Workspace not found"

        wrong_code = "000000" if workspace.join_code != "000000" else "111111"
        with pytest.raises(InvalidInput) as exc:
            workspaces.join(
                make_ctx(bob),
                JoinWorkspaceArgs(join_code=wrong_code, workspace_id=workspace_id),
            )
        assert exc.value.detail == "Invalid join code"

    def test_second_join_fails(self, session, make_ctx, bob, workspace_id, bob_member):
        workspace = session.get(Workspace, workspace_id)
        with pytest.raises(InvalidInput) as exc:
            workspaces.join(
                make_ctx(bob),
                JoinWorkspaceArgs(join_code=workspace.join_code, workspace_id=workspace_id),
            )
        assert exc.value.detail == "Already an active member"
        assert _count(session, Member, Member.user_id == bob.id) == 1

    def test_update_and_new_join_code_are_admin_only(
        self, session, make_ctx, ada, bob, workspace_id, bob_member
    ):
        with pytest.raises(Unauthorized):
            workspaces.update(
                make_ctx(bob), UpdateWorkspaceArgs(id=workspace_id, name="Hijacked")
            )
        with pytest.raises(Unauthorized):
            workspaces.new_join_code(
                make_ctx(bob), NewJoinCodeArgs(workspace_id=workspace_id)
            )

        workspaces.update(make_ctx(ada), UpdateWorkspaceArgs(id=workspace_id, name="Engines"))
        old_code = session.get(Workspace, workspace_id).join_code
        workspaces.new_join_code(make_ctx(ada), NewJoinCodeArgs(workspace_id=workspace_id))

        workspace = session.get(Workspace, workspace_id)
        assert workspace.name == "Engines"
        assert re.fullmatch(r"[0-9a-z]{6}", workspace.join_code)
        assert workspace.join_code != old_code

    def test_remove_cascades_everything(
        self, session, make_ctx, ada, bob, workspace_id, bob_member
    ):
        general = ops.list_channels(session, workspace_id)[0]
        message_id = messages.create(
            make_ctx(bob),
            CreateMessageArgs(body="hello", workspace_id=workspace_id, channel_id=general.id),
        )
        messages.create(
            make_ctx(ada),
            CreateMessageArgs(
                body="reply", workspace_id=workspace_id, parent_message_id=message_id
            ),
        )
        reactions.toggle(make_ctx(ada), ToggleReactionArgs(message_id=message_id, value="👍"))
        conversations.create_or_get(
            make_ctx(ada),
            CreateOrGetConversationArgs(workspace_id=workspace_id, member_id=bob_member.id),
        )

        with pytest.raises(Unauthorized):
            workspaces.remove(make_ctx(bob), WorkspaceIdArgs(id=workspace_id))

        workspaces.remove(make_ctx(ada), WorkspaceIdArgs(id=workspace_id))
        session.flush()

        assert session.get(Workspace, workspace_id) is None
        for model in (Member, Channel, Conversation, Message, Reaction):
            assert _count(session, model, model.workspace_id == workspace_id) == 0


class TestChannels:
    def test_admin_creates_normalized_channel(self, session, make_ctx, ada, workspace_id):
        channel_id = channels.create(
            make_ctx(ada), CreateChannelArgs(name="Team Chat", workspace_id=workspace_id)
        )
        assert session.get(Channel, channel_id).name == "team-chat"

    def test_non_admin_cannot_create(self, make_ctx, bob, workspace_id, bob_member):
        with pytest.raises(Unauthorized) as exc:
            channels.create(
                make_ctx(bob), CreateChannelArgs(name="Team Chat", workspace_id=workspace_id)
            )
        assert exc.value.detail == "Unauthorized"

    @pytest.mark.parametrize("name", ["ab", "  x  ", "a" * 81])
    def test_rejects_names_outside_length_bounds(self, make_ctx, ada, workspace_id, name):
        with pytest.raises(InvalidInput) as exc:
            channels.create(make_ctx(ada), CreateChannelArgs(name=name, workspace_id=workspace_id))
        assert exc.value.detail == "Invalid channel name"

    def test_reads_are_soft(self, make_ctx, ada, bob, workspace_id):
        assert channels.get(make_ctx(bob), WorkspaceScopedArgs(workspace_id=workspace_id)) == []
        listed = channels.get(make_ctx(ada), WorkspaceScopedArgs(workspace_id=workspace_id))
        assert [c.name for c in listed] == ["general"]
        assert channels.get_by_id(make_ctx(bob), ChannelIdArgs(id=listed[0].id)) is None
        assert channels.get_by_id(make_ctx(ada), ChannelIdArgs(id="CMISSING")) is None

    def test_update_renames_with_normalization(self, session, make_ctx, ada, workspace_id):
        channel_id = channels.create(
            make_ctx(ada), CreateChannelArgs(name="random", workspace_id=workspace_id)
        )
        channels.update(make_ctx(ada), UpdateChannelArgs(id=channel_id, name="Off   Topic"))
        assert session.get(Channel, channel_id).name == "off-topic"

        with pytest.raises(NotFound) as exc:
            channels.update(make_ctx(ada), UpdateChannelArgs(id="CMISSING", name="whatever"))
        assert exc.value.detail == "Channel not found"

    def test_remove_deletes_channel_messages(self, session, make_ctx, ada, workspace_id):
        channel_id = channels.create(
            make_ctx(ada), CreateChannelArgs(name="random", workspace_id=workspace_id)
        )
        message_id = messages.create(
            make_ctx(ada),
            CreateMessageArgs(body="bye", workspace_id=workspace_id, channel_id=channel_id),
        )
        reactions.toggle(make_ctx(ada), ToggleReactionArgs(message_id=message_id, value="👋"))

        channels.remove(make_ctx(ada), ChannelIdArgs(id=channel_id))
        session.flush()

        assert session.get(Channel, channel_id) is None
        assert _count(session, Message, Message.channel_id == channel_id) == 0
        assert _count(session, Reaction, Reaction.message_id == message_id) == 0


class TestMembers:
    def test_get_returns_members_with_users(self, make_ctx, ada, bob, workspace_id, bob_member):
        listed = members.get(make_ctx(ada), WorkspaceScopedArgs(workspace_id=workspace_id))
        assert {m.user.name for m in listed} == {"Ada", "Bob"}
        assert members.get(make_ctx(None), WorkspaceScopedArgs(workspace_id=workspace_id)) == []

    def test_current_and_get_by_id(self, make_ctx, ada, bob, workspace_id, bob_member):
        current = members.current(make_ctx(bob), WorkspaceScopedArgs(workspace_id=workspace_id))
        assert current.id == bob_member.id
        assert current.role == MemberRole.member

        found = members.get_by_id(make_ctx(ada), MemberIdArgs(id=bob_member.id))
        assert found.user.id == bob.id

    def test_update_role_is_admin_only(self, session, make_ctx, ada, bob, workspace_id, bob_member):
        with pytest.raises(Unauthorized):
            members.update(make_ctx(bob), UpdateMemberArgs(id=bob_member.id, role="admin"))

        members.update(make_ctx(ada), UpdateMemberArgs(id=bob_member.id, role="admin"))
        assert session.get(Member, bob_member.id).role == MemberRole.admin

        with pytest.raises(NotFound) as exc:
            members.update(make_ctx(ada), UpdateMemberArgs(id="MMISSING", role="member"))
        assert exc.value.detail == "Member not found"

    def test_admin_cannot_be_deleted(self, session, make_ctx, ada, workspace_id):
        admin = ops.get_member(session, workspace_id, ada.id)
        with pytest.raises(InvalidInput) as exc:
            members.remove(make_ctx(ada), MemberIdArgs(id=admin.id))
        assert exc.value.detail == "Admin cannot be deleted"

    def test_remove_errors(self, make_ctx, ada, make_user, workspace_id, bob_member):
        with pytest.raises(NotFound) as exc:
            members.remove(make_ctx(ada), MemberIdArgs(id="MMISSING"))
        assert exc.value.detail == "Member not found"

        outsider = make_user("Eve")
        with pytest.raises(Unauthorized):
            members.remove(make_ctx(outsider), MemberIdArgs(id=bob_member.id))

    def test_member_can_leave(self, session, make_ctx, bob, workspace_id, bob_member):
        members.remove(make_ctx(bob), MemberIdArgs(id=bob_member.id))
        session.flush()
        assert ops.get_member(session, workspace_id, bob.id) is None

    def test_remove_leaves_nothing_referencing_member(
        self, session, make_ctx, ada, bob, workspace_id, bob_member
    ):
        general = ops.list_channels(session, workspace_id)[0]
        ada_message = messages.create(
            make_ctx(ada),
            CreateMessageArgs(body="hi", workspace_id=workspace_id, channel_id=general.id),
        )
        bob_message = messages.create(
            make_ctx(bob),
            CreateMessageArgs(body="hey", workspace_id=workspace_id, channel_id=general.id),
        )
        reactions.toggle(make_ctx(bob), ToggleReactionArgs(message_id=ada_message, value="🎉"))
        reactions.toggle(make_ctx(ada), ToggleReactionArgs(message_id=bob_message, value="👍"))
        conversation_id = conversations.create_or_get(
            make_ctx(ada),
            CreateOrGetConversationArgs(workspace_id=workspace_id, member_id=bob_member.id),
        )
        messages.create(
            make_ctx(ada),
            CreateMessageArgs(
                body="psst", workspace_id=workspace_id, conversation_id=conversation_id
            ),
        )

        members.remove(make_ctx(ada), MemberIdArgs(id=bob_member.id))
        session.flush()

        assert session.get(Member, bob_member.id) is None
        assert _count(session, Message, Message.member_id == bob_member.id) == 0
        assert _count(session, Reaction, Reaction.member_id == bob_member.id) == 0
        assert _count(session, Reaction, Reaction.message_id == bob_message) == 0
        assert _count(
            session,
            Conversation,
            (Conversation.member_one_id == bob_member.id)
            | (Conversation.member_two_id == bob_member.id),
        ) == 0
        assert _count(session, Message, Message.conversation_id == conversation_id) == 0
        # Ada's own channel message survives
        assert session.get(Message, ada_message) is not None
