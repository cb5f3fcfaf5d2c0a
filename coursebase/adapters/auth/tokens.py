import logging
from collections.abc import Sequence

from jose import JWTError, jwt

from coursebase.domain.errors import UnauthenticatedError
from coursebase.ports.identity import VerifiedIdentity

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "The specified authorization token is invalid."


class JWTIdentityVerifier:
    """
    Verifies bearer tokens issued by the identity provider.

    Expected claims: `email` (required), `email_verified`, `given_name`,
    `family_name`, `picture`.
    """

    def __init__(
        self,
        secret: str,
        audience: str | None = None,
        algorithms: Sequence[str] = ("HS256",),
        issuer: str | None = None,
    ):
        self.secret = secret
        self.audience = audience
        self.algorithms = list(algorithms)
        self.issuer = issuer

    async def verify(self, token: str) -> VerifiedIdentity:
        if not token:
            raise UnauthenticatedError(INVALID_TOKEN_MESSAGE)
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            logger.info("Rejected bearer token: %s", e)
            raise UnauthenticatedError(INVALID_TOKEN_MESSAGE) from e

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise UnauthenticatedError(INVALID_TOKEN_MESSAGE)

        return VerifiedIdentity(
            email=email,
            verified=bool(claims.get("email_verified", False)),
            first_name=claims.get("given_name") or "",
            last_name=claims.get("family_name") or "",
            picture_url=claims.get("picture"),
        )


def issue_token(
    secret: str,
    email: str,
    *,
    verified: bool = True,
    first_name: str = "",
    last_name: str = "",
    audience: str | None = None,
    algorithm: str = "HS256",
) -> str:
    """Sign an identity token. Used by the CLI for local development and by tests."""
    claims = {
        "email": email,
        "email_verified": verified,
        "given_name": first_name,
        "family_name": last_name,
    }
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=algorithm)
