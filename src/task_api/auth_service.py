from __future__ import annotations

import logging

from .errors import ConflictError, UnauthorizedError
from .models import UserEntity
from .repositories import UserRepository
from .security import PasswordHasher
from .tokens import IssuedToken, TokenSigner

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """
    Registration and sign-in on top of a credential store.

    The password hasher and token signer are injected so the hashing algorithm
    and token settings can change without touching this class.
    """

    def __init__(self, users: UserRepository, hasher: PasswordHasher, signer: TokenSigner) -> None:
        self._users = users
        self._hasher = hasher
        self._signer = signer
        # Verified against on unknown usernames so both failure paths do the same work.
        self._dummy_hash = hasher.hash("dummy-password-for-timing")

    def register(self, username: str, password: str) -> UserEntity:
        """
        Create a user with a freshly salted hash of password.

        Raises:
            ConflictError: if the username is already registered, including when
            a concurrent registration wins the race at insert time.
        """
        if self._users.find_by_username(username) is not None:
            logger.info('Registration rejected: username "%s" already exists', username)
            raise ConflictError("Username already exists")

        user = self._users.insert(username, self._hasher.hash(password))
        logger.info('Registered user "%s"', username)
        return user

    def login(self, username: str, password: str) -> IssuedToken:
        """
        Verify credentials and issue a signed access token.

        Unknown usernames and wrong passwords fail with the same error.
        """
        user = self._users.find_by_username(username)
        if user is None:
            self._hasher.verify(password, self._dummy_hash)
            logger.warning('Failed sign-in for "%s"', username)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not self._hasher.verify(password, user["password_hash"]):
            logger.warning('Failed sign-in for "%s"', username)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        return self._signer.issue(user["username"])

    def authenticate(self, token: str) -> UserEntity:
        """Resolve a bearer token to its user, or raise UnauthorizedError."""
        claims = self._signer.verify(token)
        user = self._users.find_by_username(claims.identity)
        if user is None:
            raise UnauthorizedError("Invalid token")
        return user
