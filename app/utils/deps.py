from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import decode_access_token
from app.crud.user import user as user_crud
from app.schemas.token import TokenPayload
from app.schemas.user import User, UserContext

http_bearer = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_user_id(token: str) -> int:
    try:
        token_data = TokenPayload(**decode_access_token(token))
    except JWTError:
        raise _unauthorized("Could not validate credentials")
    except ValidationError:
        raise _unauthorized("Invalid token payload")
    if token_data.user_id is None:
        raise _unauthorized("Invalid token payload")
    return token_data.user_id


def get_current_user_with_context(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    """Resolve the bearer token to an active user.

    Tokens are issued elsewhere; only ``user_id`` and ``exp`` are read here.
    """
    user = user_crud.get(db, id=_token_user_id(credentials.credentials))
    if not user:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )
    return UserContext(user=User.model_validate(user))
