from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.auth import jwt_handler
from backend.models.enums import ActorRole

security = HTTPBearer()


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, resolved once per request."""

    role: ActorRole
    user_id: int

    @property
    def provider_id(self) -> int | None:
        return self.user_id if self.role == ActorRole.PROVIDER else None

    @property
    def patient_id(self) -> int | None:
        return self.user_id if self.role == ActorRole.PATIENT else None


SYSTEM_ACTOR = Actor(role=ActorRole.SYSTEM, user_id=0)

_TOKEN_ROLES = {ActorRole.PATIENT, ActorRole.PROVIDER, ActorRole.ADMIN}


def actor_from_claims(payload: dict) -> Actor:
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token subject") from exc

    try:
        role = ActorRole(payload.get("role"))
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid token role") from exc
    if role not in _TOKEN_ROLES:
        raise HTTPException(status_code=401, detail="Invalid token role")

    return Actor(role=role, user_id=user_id)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    return actor_from_claims(payload)
