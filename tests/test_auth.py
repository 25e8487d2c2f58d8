import pytest

from photondb.network.auth import AuthError, AuthManager, Permission, User


def _manager():
    return AuthManager(rounds=4)


@pytest.mark.asyncio
async def test_add_user():
    auth = _manager()
    await auth.add_user("test_user", "password", [Permission.READ, Permission.WRITE])
    assert await auth.user_count() == 1


@pytest.mark.asyncio
async def test_add_duplicate_user():
    auth = _manager()
    await auth.add_user("alice", "password", [Permission.READ])
    with pytest.raises(AuthError, match="User already exists: alice"):
        await auth.add_user("alice", "secret", [Permission.WRITE])
    assert await auth.user_count() == 1


@pytest.mark.asyncio
async def test_authenticate():
    auth = _manager()
    await auth.add_user("alice", "secret", [Permission.READ])
    user = await auth.authenticate("alice", "secret")
    assert user.username == "alice"
    assert Permission.READ in user.permissions
    with pytest.raises(AuthError, match="Invalid username or password"):
        await auth.authenticate("alice", "password")
    with pytest.raises(AuthError, match="Invalid username or password"):
        await auth.authenticate("bob", "secret")


@pytest.mark.asyncio
async def test_password_hash_is_not_plain_text():
    auth = _manager()
    await auth.add_user("alice", "secret", [Permission.READ])
    user = await auth.authenticate("alice", "secret")
    assert user.password_hash.startswith("$2")
    assert "secret" not in user.password_hash


def test_permissions():
    admin = User(username="admin", password_hash="", permissions=(Permission.ADMIN,))
    reader = User(username="reader", password_hash="", permissions=(Permission.READ,))
    assert AuthManager.has_permission(admin, Permission.WRITE)
    assert AuthManager.has_permission(admin, Permission.READ)
    assert not AuthManager.has_permission(reader, Permission.WRITE)
    assert AuthManager.has_permission(reader, Permission.READ)


@pytest.mark.asyncio
async def test_auth_key():
    auth = _manager()
    user = await auth.authenticate_key("")
    assert user.username == "default"
    assert Permission.ADMIN in user.permissions


@pytest.mark.asyncio
async def test_auth_key_without_default_user_fails():
    auth = _manager()
    with pytest.raises(AuthError, match="Invalid authentication key"):
        await auth.authenticate_key("placeholder")
    await auth.add_user("alice", "secret", [Permission.READ])
    with pytest.raises(AuthError, match="Invalid authentication key"):
        await auth.authenticate_key("")


@pytest.mark.asyncio
async def test_with_admin():
    auth = AuthManager.with_admin("password")
    assert await auth.user_count() == 1
    admin = await auth.authenticate("admin", "password")
    assert Permission.ADMIN in admin.permissions
    by_key = await auth.authenticate_key("placeholder")
    assert by_key.username == "admin"


@pytest.mark.asyncio
async def test_remove_and_list_users():
    auth = _manager()
    await auth.add_user("alice", "secret", [Permission.READ])
    await auth.add_user("bob", "secret", [Permission.WRITE])
    assert await auth.list_users() == ["alice", "bob"]
    await auth.remove_user("alice")
    assert await auth.list_users() == ["bob"]
    with pytest.raises(AuthError, match="User not found: alice"):
        await auth.remove_user("alice")