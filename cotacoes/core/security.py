"""Credential verification (signed JWT and static fallback token)."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import jwt

SIGNING_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    username: str
    name: str
    is_admin: bool = False

    def to_dict(self) -> dict:
        return {"username": self.username, "name": self.name, "isAdmin": self.is_admin}


API_IDENTITY = Identity(username="api", name="API User", is_admin=True)
SESSION_IDENTITY = Identity(username="sessao", name="Sessão", is_admin=False)


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one verifier: accepted with an identity, or rejected with a reason."""

    accepted: bool
    identity: Optional[Identity] = None
    status_code: int = 401
    reason: str = ""

    @classmethod
    def accept(cls, identity: Identity) -> "VerificationOutcome":
        return cls(True, identity, 200, "")

    @classmethod
    def reject(cls, status_code: int, reason: str) -> "VerificationOutcome":
        return cls(False, None, status_code, reason)


class CredentialVerifier(Protocol):
    def verify(self, credential: str) -> VerificationOutcome: ...


class SignedTokenVerifier:
    """Validates HS256 JWTs issued by the central system."""

    def __init__(self, secret: str, algorithms: Iterable[str] = (SIGNING_ALGORITHM,)) -> None:
        self.secret = secret
        self.algorithms = list(algorithms)

    def verify(self, credential: str) -> VerificationOutcome:
        try:
            claims = jwt.decode(credential, self.secret, algorithms=self.algorithms)
        except jwt.ExpiredSignatureError as exc:
            return VerificationOutcome.reject(401, str(exc))
        except jwt.InvalidTokenError as exc:
            return VerificationOutcome.reject(403, str(exc))
        username = str(claims.get("username") or "")
        if not username:
            return VerificationOutcome.reject(403, "Token sem usuario")
        return VerificationOutcome.accept(
            Identity(
                username=username,
                name=str(claims.get("name") or username),
                is_admin=bool(claims.get("isAdmin", False)),
            )
        )


class StaticTokenVerifier:
    """Exact-match comparison against a shared machine-to-machine token."""

    def __init__(self, token: str, identity: Identity = API_IDENTITY) -> None:
        self.token = token
        self.identity = identity

    def verify(self, credential: str) -> VerificationOutcome:
        if self.token and secrets.compare_digest(credential.encode(), self.token.encode()):
            return VerificationOutcome.accept(self.identity)
        return VerificationOutcome.reject(403, "Token fixo invalido")


class VerifierChain:
    """Evaluate verifiers in order; the first acceptance wins.

    When every verifier rejects, the first rejection is reported since it
    belongs to the preferred credential type.
    """

    def __init__(self, verifiers: Iterable[CredentialVerifier]) -> None:
        self.verifiers = list(verifiers)

    def verify(self, credential: str) -> VerificationOutcome:
        first_rejection: Optional[VerificationOutcome] = None
        for verifier in self.verifiers:
            outcome = verifier.verify(credential)
            if outcome.accepted:
                return outcome
            if first_rejection is None:
                first_rejection = outcome
        return first_rejection or VerificationOutcome.reject(401, "Nenhum verificador configurado")


def build_verifier_chain(jwt_secret: str, api_token: str) -> VerifierChain:
    verifiers: list[CredentialVerifier] = []
    secret = jwt_secret or api_token
    if secret:
        verifiers.append(SignedTokenVerifier(secret))
    if api_token:
        verifiers.append(StaticTokenVerifier(api_token))
    return VerifierChain(verifiers)
