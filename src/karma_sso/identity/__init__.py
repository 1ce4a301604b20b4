"""Remote collaborators: identity provider token verification and karma awards."""

from .karma import KarmaClient
from .provider import IdentityProviderClient

__all__ = ["IdentityProviderClient", "KarmaClient"]
