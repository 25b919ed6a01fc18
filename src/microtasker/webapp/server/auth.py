"""Authentication service for the MicroTasker API."""

import secrets
from datetime import timedelta
from typing import Optional
import logging

import bcrypt
import jwt

from ...config import ConfigModel, get_config
from ...utils.datetime import now_utc
from .models import User, Session, TokenPair
from .database import Database, get_db


logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Authentication failed."""
    pass


class AuthService:
    """Password and token handling."""

    def __init__(self, db: Optional[Database] = None, config: Optional[ConfigModel] = None):
        """Initialize auth service.

        Args:
            db: Database instance (uses global if None)
            config: Configuration carrying the JWT secret and expiry settings
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.logger = logging.getLogger(__name__)

    # Password Management

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt(rounds=self.config.bcrypt_rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """Verify a password against its hash.

        Args:
            password: Plain text password
            password_hash: Bcrypt hash string

        Returns:
            True if password matches
        """
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError as e:
            logger.error(f"Password verification failed: {e}")
            return False

    # User Registration & Authentication

    def register_user(self, email: str, password: str, name: Optional[str] = None) -> User:
        """Register a new user.

        Raises:
            ValueError: If the input is invalid or the email already exists
        """
        email = email.strip().lower()
        if len(password) < 8:
            raise ValueError("Password must be at least 8 characters")
        if '@' not in email:
            raise ValueError("Invalid email address")
        if name is not None:
            name = name.strip() or None

        user = self.db.create_user(
            email=email,
            password_hash=self.hash_password(password),
            name=name,
        )

        self.logger.info(f"Registered new user: {email}")
        return user

    def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate a user by email and password.

        Raises:
            AuthenticationError: If authentication fails
        """
        user = self.db.get_user_by_email(email.strip().lower())

        if not user or not self.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        self.db.update_last_login(user.id)
        user.last_login = now_utc()

        self.logger.info(f"User authenticated: {user.email}")
        return user

    # Token Management

    def _issue(self, user: User, token_type: str, lifetime: timedelta,
               device_info: Optional[str], ip_address: Optional[str]) -> str:
        issued_at = now_utc()
        payload = {
            'sub': str(user.id),
            'email': user.email,
            'type': token_type,
            'jti': secrets.token_hex(8),
            'iat': issued_at,
            'exp': issued_at + lifetime,
        }
        token = jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

        self.db.create_session(Session(
            id=Session.generate_session_id(),
            user_id=user.id,
            token_hash=Session.hash_token(token),
            created_at=issued_at,
            expires_at=issued_at + lifetime,
            is_refresh_token=token_type == 'refresh',
            device_info=device_info,
            ip_address=ip_address
        ))
        return token

    def create_tokens(self, user: User, device_info: Optional[str] = None,
                      ip_address: Optional[str] = None) -> TokenPair:
        """Create access and refresh tokens for a user."""
        access_lifetime = timedelta(minutes=self.config.access_token_expire_minutes)
        refresh_lifetime = timedelta(days=self.config.refresh_token_expire_days)

        access_token = self._issue(user, 'access', access_lifetime, device_info, ip_address)
        refresh_token = self._issue(user, 'refresh', refresh_lifetime, device_info, ip_address)

        self.logger.debug(f"Created tokens for user {user.email}")

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_in=int(access_lifetime.total_seconds()),
            refresh_expires_in=int(refresh_lifetime.total_seconds())
        )

    def verify_token(self, token: str, token_type: str = 'access') -> Optional[dict]:
        """Verify and decode a JWT token.

        The token must be well-formed, unexpired, of the expected type, and
        still backed by a stored session (not revoked).

        Returns:
            Decoded token payload or None if invalid
        """
        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            self.logger.debug("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            self.logger.warning(f"Invalid token: {e}")
            return None

        if payload.get('type') != token_type:
            self.logger.warning(f"Token type mismatch: expected {token_type}, got {payload.get('type')}")
            return None

        session = self.db.get_session_by_token_hash(Session.hash_token(token))
        if session is None or session.is_expired():
            self.logger.debug("Token has no active session")
            return None

        return payload

    def refresh_tokens(self, refresh_token: str, device_info: Optional[str] = None,
                       ip_address: Optional[str] = None) -> Optional[TokenPair]:
        """Exchange a refresh token for a new token pair.

        The used refresh token is revoked.
        """
        payload = self.verify_token(refresh_token, token_type='refresh')
        if not payload:
            return None

        user = self.db.get_user_by_id(int(payload['sub']))
        if not user or not user.is_active:
            return None

        self.revoke_token(refresh_token)
        return self.create_tokens(user, device_info, ip_address)

    def revoke_token(self, token: str) -> bool:
        """Revoke a token by removing its session."""
        revoked = self.db.delete_session_by_token_hash(Session.hash_token(token))
        if revoked:
            self.logger.debug("Revoked token")
        return revoked

    def revoke_all_user_tokens(self, user_id: int) -> int:
        return self.db.delete_user_sessions(user_id)

    # User Retrieval

    def get_current_user(self, token: str) -> Optional[User]:
        """Get user from access token."""
        payload = self.verify_token(token, token_type='access')
        if not payload:
            return None

        return self.db.get_user_by_id(int(payload['sub']))

    def cleanup_expired_sessions(self) -> int:
        return self.db.cleanup_expired_sessions()


# Global auth service instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get global auth service instance.

    Returns:
        AuthService instance
    """
    global _auth_service

    if _auth_service is None:
        _auth_service = AuthService()

    return _auth_service


def reset_auth_service():
    """Reset global auth service (for testing)."""
    global _auth_service
    _auth_service = None
