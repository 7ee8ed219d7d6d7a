"""
Security and Authentication for the ClinicDesk API.

Validates bearer JWTs issued by the platform identity provider and maps
roles to scopes. Token issuance lives outside this service; `create_access_token`
exists for operational tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes
from jose import JWTError, jwt
from pydantic import BaseModel

from backend.app.core.config import get_settings

settings = get_settings()

# Compliance scopes
AUDIT_READ = "audit:read"
AUDIT_ADMIN = "audit:admin"
ADMIN_ALL = "admin:all"

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="api/v1/auth/token",
    scopes={
        AUDIT_READ: "Read audit trails and retention policies",
        AUDIT_ADMIN: "Run retention maintenance",
        ADMIN_ALL: "Cross-clinic platform administration",
    },
)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """
    Generate a signed JWT token.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


# Role definitions
class Role:
    PLATFORM_ADMIN = "platform_admin"
    CLINIC_ADMIN = "clinic_admin"
    STAFF = "staff"
    RECEPTIONIST = "receptionist"


ROLE_SCOPES = {
    Role.PLATFORM_ADMIN: [AUDIT_READ, AUDIT_ADMIN, ADMIN_ALL],
    Role.CLINIC_ADMIN: [AUDIT_READ],
    Role.STAFF: [AUDIT_READ],
    Role.RECEPTIONIST: [],
}


class User(BaseModel):
    username: str
    role: str
    scopes: List[str] = []
    clinic_id: Optional[str] = None

    @property
    def is_platform_admin(self) -> bool:
        return ADMIN_ALL in self.scopes


async def get_current_user(
    security_scopes: SecurityScopes,
    token: str = Depends(oauth2_scheme)
) -> User:
    """
    Validate JWT token and check required scopes based on Role-Based Access Control.
    """
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'
    else:
        authenticate_value = "Bearer"

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
    except JWTError:
        raise credentials_exception

    username: Optional[str] = payload.get("sub")
    if username is None:
        raise credentials_exception

    role: str = payload.get("role", Role.RECEPTIONIST)
    clinic_id: Optional[str] = payload.get("clinic_id")
    # Assign scopes based on role if not present in token
    token_scopes = payload.get("scopes", ROLE_SCOPES.get(role, []))

    for scope in security_scopes.scopes:
        if scope not in token_scopes:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not enough permissions. Required scope: {scope}",
                headers={"WWW-Authenticate": authenticate_value},
            )

    return User(username=username, role=role, scopes=token_scopes, clinic_id=clinic_id)
