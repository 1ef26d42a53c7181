"""
External identity provider seam.

Registration and login write to the provider first and to the user
collection second. The provider is allowed to fail: registration still
creates the local record and login falls back to the stored bcrypt hash.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IdentityProviderError(Exception):
    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class IdentityProvider(ABC):
    @abstractmethod
    def create_user(self, email: str, password: str, display_name: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def sign_in(self, email: str, password: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def sign_out(self, uid: Optional[str] = None) -> None:
        raise NotImplementedError


class DisabledIdentityProvider(IdentityProvider):
    """Used when no provider is configured; every call fails as unavailable."""

    def create_user(self, email: str, password: str, display_name: str) -> str:
        raise IdentityProviderError("auth/unavailable", "Identity provider not configured")

    def sign_in(self, email: str, password: str) -> str:
        raise IdentityProviderError("auth/unavailable", "Identity provider not configured")

    def sign_out(self, uid: Optional[str] = None) -> None:
        raise IdentityProviderError("auth/unavailable", "Identity provider not configured")


_provider: IdentityProvider = DisabledIdentityProvider()


def get_identity_provider() -> IdentityProvider:
    return _provider
