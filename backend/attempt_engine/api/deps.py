from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from attempt_engine.core.security import TokenDecodeError, decode_access_token
from attempt_engine.models.constants import GRADER_ROLE_VALUES


# Tokens are issued by the platform's auth service.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl='/api/v1/auth/login')


@dataclass(frozen=True)
class CurrentLearner:
    id: UUID
    name: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_grader(self) -> bool:
        return bool(self.roles.intersection(GRADER_ROLE_VALUES))


def get_current_learner(token: str = Depends(oauth2_scheme)) -> CurrentLearner:
    try:
        payload = decode_access_token(token)
        subject = payload.get('sub')
        if not subject:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid access token subject')
        learner_id = UUID(subject)
    except (TokenDecodeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid access token') from exc

    roles = payload.get('roles') or []
    if not isinstance(roles, list):
        roles = []
    return CurrentLearner(id=learner_id, name=payload.get('name'), roles=frozenset(str(role) for role in roles))


def require_roles(*required_roles: str) -> Callable:
    required_set = set(required_roles)

    def role_checker(current: CurrentLearner = Depends(get_current_learner)) -> CurrentLearner:
        if 'admin' in current.roles:
            return current

        if not required_set.intersection(current.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Insufficient role permissions',
            )
        return current

    return role_checker
