# backend/services/context.py
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthContext:
    """Credentials of the caller, resolved by the authentication layer.

    Every service call receives one explicitly; services never look up the
    current user on their own.
    """

    user_id: int
    is_admin: bool = False

    def owns(self, user_id: int) -> bool:
        return self.is_admin or self.user_id == user_id
