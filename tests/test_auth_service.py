from unittest import mock

import pytest

from task_api.auth_service import AuthService
from task_api.errors import ConflictError, UnauthorizedError


class TestRegister:
    def test_register_stores_hash_not_plaintext(self, auth_service, user_repo):
        auth_service.register("alice", "s3cret-pass")
        stored = user_repo.find_by_username("alice")
        assert stored is not None
        assert stored["password_hash"] != "s3cret-pass"
        assert "s3cret-pass" not in stored["password_hash"]
        assert stored["password_hash"].startswith("$2")

    def test_register_twice_conflicts(self, auth_service):
        auth_service.register("alice", "s3cret-pass")
        with pytest.raises(ConflictError, match="Username already exists"):
            auth_service.register("alice", "another-pass")

    def test_usernames_are_case_sensitive(self, auth_service, user_repo):
        auth_service.register("alice", "s3cret-pass")
        auth_service.register("Alice", "s3cret-pass")
        assert user_repo.find_by_username("alice")["id"] != user_repo.find_by_username("Alice")["id"]

    def test_lost_race_surfaces_store_conflict(self, hasher, signer):
        users = mock.Mock()
        users.find_by_username.return_value = None
        users.insert.side_effect = ConflictError("Username already exists")
        service = AuthService(users, hasher, signer)
        with pytest.raises(ConflictError):
            service.register("alice", "s3cret-pass")

    def test_plaintext_is_never_logged(self, auth_service, caplog):
        caplog.set_level("DEBUG", logger="task_api")
        auth_service.register("alice", "s3cret-pass")
        auth_service.login("alice", "s3cret-pass")
        with pytest.raises(UnauthorizedError):
            auth_service.login("alice", "wrong-pass-1")
        assert "s3cret-pass" not in caplog.text
        assert "wrong-pass-1" not in caplog.text


class TestLogin:
    def test_login_with_original_password(self, auth_service):
        auth_service.register("alice", "s3cret-pass")
        issued = auth_service.login("alice", "s3cret-pass")
        assert issued.claims.identity == "alice"
        assert issued.claims.expires_at > issued.claims.issued_at
        assert "s3cret-pass" not in issued.access_token

    @pytest.mark.parametrize("attempt", ["s3cret-pasS", "S3cret-pass", "s3cret-pass ", "s3cret-pas"])
    def test_login_with_altered_password_fails(self, auth_service, attempt):
        auth_service.register("alice", "s3cret-pass")
        with pytest.raises(UnauthorizedError):
            auth_service.login("alice", attempt)

    def test_unknown_user_and_wrong_password_are_identical(self, auth_service):
        auth_service.register("alice", "s3cret-pass")
        with pytest.raises(UnauthorizedError) as unknown:
            auth_service.login("nobody", "s3cret-pass")
        with pytest.raises(UnauthorizedError) as wrong:
            auth_service.login("alice", "bad-password")
        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.message == wrong.value.message == "Invalid credentials"

    def test_unknown_user_still_runs_password_check(self, user_repo, signer):
        hasher = mock.Mock()
        hasher.hash.return_value = "dummy"
        hasher.verify.return_value = False
        service = AuthService(user_repo, hasher, signer)
        with pytest.raises(UnauthorizedError):
            service.login("nobody", "s3cret-pass")
        hasher.verify.assert_called_once_with("s3cret-pass", "dummy")


class TestAuthenticate:
    def test_token_resolves_to_user(self, auth_service):
        user = auth_service.register("alice", "s3cret-pass")
        issued = auth_service.login("alice", "s3cret-pass")
        assert auth_service.authenticate(issued.access_token)["id"] == user["id"]

    def test_token_for_vanished_user_is_rejected(self, hasher, signer, auth_service):
        auth_service.register("alice", "s3cret-pass")
        token = auth_service.login("alice", "s3cret-pass").access_token

        users = mock.Mock()
        users.find_by_username.return_value = None
        other = AuthService(users, hasher, signer)
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            other.authenticate(token)
