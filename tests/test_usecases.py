import pytest

from wetalk.entities import Chat, ChatParticipant, User
from wetalk.repositories import NotFoundError
from wetalk.usecases import ChatUsecase, InvalidChatError, MessageUsecase, UserUsecase


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {u.id: u for u in users}
        self.updates = []
        self._counter = 0

    def index(self, user_filter=None):
        if user_filter is None or not user_filter.ids:
            return list(self.users.values())
        return [self.users[i] for i in user_filter.ids if i in self.users]

    def get(self, user_id):
        if user_id not in self.users:
            raise NotFoundError(user_id)
        u = self.users[user_id]
        return User(id=u.id, name=u.name, is_online=u.is_online)

    def create(self, user):
        self._counter += 1
        new_id = f"u{self._counter}"
        self.users[new_id] = User(id=new_id, name=user.name, is_online=user.is_online)
        return new_id

    def update(self, user):
        self.updates.append(user)
        self.users[user.id] = user

    def get_online_users(self, user_ids=None):
        ids = list(user_ids or [])
        return [
            u for u in self.users.values() if u.is_online and (not ids or u.id in ids)
        ]


class FakeChatRepo:
    def __init__(self):
        self.chats = {}
        self.participants = []

    def index(self, user_id):
        ids = {p.chat_id for p in self.participants if p.user_id == user_id}
        return [c for c in self.chats.values() if c.id in ids]

    def get(self, chat_id):
        if chat_id not in self.chats:
            raise NotFoundError(chat_id)
        return self.chats[chat_id]

    def create(self, chat):
        self.chats[chat.id] = chat
        return chat.id

    def add_participants(self, participants):
        self.participants.extend(participants)

    def get_participants(self, chat_id):
        return [p for p in self.participants if p.chat_id == chat_id]

    def delete(self, chat_id):
        self.chats.pop(chat_id, None)


@pytest.fixture
def users():
    return FakeUserRepo(
        [User("alice", "Alice", True), User("bob", "Bob", False), User("carol", "Carol", True)]
    )


@pytest.fixture
def chats():
    return FakeChatRepo()


def test_create_requires_participants(chats, users):
    uc = ChatUsecase(chats, users)
    with pytest.raises(InvalidChatError, match="at least one participant"):
        uc.create("room", [])
    assert chats.chats == {}


def test_create_rejects_unknown_users(chats, users):
    uc = ChatUsecase(chats, users)
    with pytest.raises(InvalidChatError, match="invalid"):
        uc.create("room", ["alice", "nobody"])
    assert chats.chats == {}
    assert chats.participants == []


def test_create_stores_chat_and_participants(chats, users):
    uc = ChatUsecase(chats, users)
    chat_id = uc.create("room", ["alice", "bob"])
    assert chat_id
    assert uc.get(chat_id).name == "room"
    assert uc.get_participants(chat_id) == [
        ChatParticipant(chat_id, "alice"),
        ChatParticipant(chat_id, "bob"),
    ]


def test_created_chats_have_distinct_ids(chats, users):
    uc = ChatUsecase(chats, users)
    assert uc.create("a", ["alice"]) != uc.create("b", ["alice"])
    assert len(chats.chats) == 2


def test_index_lists_chats_of_user(chats, users):
    uc = ChatUsecase(chats, users)
    first = uc.create("a", ["alice", "bob"])
    uc.create("b", ["carol"])
    assert [c.id for c in uc.index("bob")] == [first]


def test_add_participants(chats, users):
    uc = ChatUsecase(chats, users)
    chats.create(Chat("c1", "room"))
    uc.add_participants("c1", ["alice", "carol"])
    assert [p.user_id for p in uc.get_participants("c1")] == ["alice", "carol"]


def test_get_missing_chat_raises(chats, users):
    with pytest.raises(NotFoundError):
        ChatUsecase(chats, users).get("missing")


def test_delete_chat(chats, users):
    uc = ChatUsecase(chats, users)
    chat_id = uc.create("room", ["alice"])
    uc.delete(chat_id)
    with pytest.raises(NotFoundError):
        uc.get(chat_id)


def test_message_usecase_has_no_receivers(users):
    assert MessageUsecase(users).get_receivers("alice", "hello") == []


def test_user_create_is_online(users):
    uc = UserUsecase(users)
    user_id = uc.create("Dave")
    user = uc.get(user_id)
    assert user.name == "Dave"
    assert user.is_online is True


def test_user_update(users):
    uc = UserUsecase(users)
    uc.update(User("bob", "Robert", True))
    assert uc.get("bob") == User("bob", "Robert", True)


def test_get_online_users(users):
    uc = UserUsecase(users)
    assert sorted(u.id for u in uc.get_online_users([])) == ["alice", "carol"]
    assert [u.id for u in uc.get_online_users(["carol", "bob"])] == ["carol"]


def test_handle_unregister_client_marks_offline(users):
    uc = UserUsecase(users)
    assert uc.handle_unregister_client("alice") == "alice"
    assert uc.get("alice").is_online is False
    assert users.updates[-1].id == "alice"


def test_handle_unregister_unknown_user(users):
    with pytest.raises(NotFoundError):
        UserUsecase(users).handle_unregister_client("ghost")
    assert users.updates == []