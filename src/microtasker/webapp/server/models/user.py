"""User and authentication models for the MicroTasker API."""

from datetime import datetime
from typing import Optional, Dict, Any
from dataclasses import dataclass
import secrets
import hashlib

from ....utils.datetime import ensure_aware, now_utc, parse_iso_datetime, to_iso_string


@dataclass
class User:
    """User account."""

    id: int
    email: str
    password_hash: str
    created_at: datetime
    name: Optional[str] = None
    last_login: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_active: bool = True

    def to_dict(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Convert user to dictionary.

        Args:
            include_sensitive: Include password hash in output

        Returns:
            Dictionary representation of user
        """
        data = {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'created_at': to_iso_string(self.created_at),
            'last_login': to_iso_string(self.last_login),
            'is_active': self.is_active,
        }

        if include_sensitive:
            data['password_hash'] = self.password_hash

        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=data['id'],
            email=data['email'],
            password_hash=data['password_hash'],
            created_at=parse_iso_datetime(data['created_at']),
            name=data.get('name'),
            last_login=parse_iso_datetime(data.get('last_login')),
            updated_at=parse_iso_datetime(data.get('updated_at')),
            is_active=data.get('is_active', True),
        )


@dataclass
class Session:
    """Issued token, stored by hash so it can be revoked."""

    id: str
    user_id: int
    token_hash: str
    created_at: datetime
    expires_at: datetime
    is_refresh_token: bool = False
    device_info: Optional[str] = None
    ip_address: Optional[str] = None

    def is_expired(self) -> bool:
        return now_utc() > ensure_aware(self.expires_at)

    def is_valid(self) -> bool:
        return not self.is_expired()

    @staticmethod
    def generate_session_id() -> str:
        """Generate unique session ID.

        Returns:
            Random session ID
        """
        return secrets.token_urlsafe(32)

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token for storage.

        Args:
            token: Token to hash

        Returns:
            SHA-256 hash of token
        """
        return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class TokenPair:
    """Pair of access and refresh tokens."""

    access_token: str
    refresh_token: str
    access_expires_in: int  # seconds
    refresh_expires_in: int  # seconds
    token_type: str = "Bearer"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'token_type': self.token_type,
            'expires_in': self.access_expires_in
        }

