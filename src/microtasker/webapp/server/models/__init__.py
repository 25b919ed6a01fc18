"""Models package for the web API."""

from .user import User, Session, TokenPair

__all__ = ['User', 'Session', 'TokenPair']
