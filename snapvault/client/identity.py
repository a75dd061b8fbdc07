from typing import Optional, Protocol

from snapvault.exceptions import NotSignedInError

class IdentityProvider(Protocol):
    def get_current_identity(self) -> Optional[str]:
        ...

class StaticIdentity:
    """Identity fixed at construction, or signed out when None."""
    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id

    def get_current_identity(self) -> Optional[str]:
        return self.user_id

    def sign_in(self, user_id: str):
        self.user_id = user_id

    def sign_out(self):
        self.user_id = None

def resolve_owner(owner_id: Optional[str], identity: Optional[IdentityProvider]) -> str:
    """Explicit owner first, then the signed-in identity."""
    if owner_id:
        return owner_id
    current = identity.get_current_identity() if identity else None
    if not current:
        raise NotSignedInError()
    return current
