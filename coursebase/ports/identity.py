from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class VerifiedIdentity:
    email: str
    verified: bool
    first_name: str = ""
    last_name: str = ""
    picture_url: str | None = None


class IdentityVerifierPort(Protocol):
    async def verify(self, token: str) -> VerifiedIdentity:
        """Verify a bearer credential. Raises UnauthenticatedError when it is not valid."""
        ...
