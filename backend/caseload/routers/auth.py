from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..access import authorize, ensure_account, normalize_identity, shared_caseloads
from ..db import get_db
from ..settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])

# Tokens are minted by the hosting platform's session; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class User(BaseModel):
	username: str
	display_name: Optional[str] = None


class Scope(BaseModel):
	"""Acting identity plus the caseload it is working in."""
	actor: str
	owner: str


def create_identity_token(email: str, name: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
	# Used by local tooling and tests to stand in for the platform
	expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=8))
	claims = {"sub": email, "exp": expire}
	if name:
		claims["name"] = name
	return jwt.encode(claims, settings.identity_secret_key, algorithm=settings.identity_algorithm)


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate identity")
	if not token:
		raise credentials_exception
	try:
		payload = jwt.decode(token, settings.identity_secret_key, algorithms=[settings.identity_algorithm])
	except JWTError:
		raise credentials_exception
	username = normalize_identity(payload.get("sub"))
	if not username:
		raise credentials_exception
	name = payload.get("name")
	# First use of an identity creates its caseload document
	ensure_account(db, username, name if isinstance(name, str) else None)
	return User(username=username, display_name=name if isinstance(name, str) else None)


def get_scope(
	caseload: Optional[str] = Query(default=None, description="Owner email of the caseload; defaults to your own"),
	user: User = Depends(get_current_user),
) -> Scope:
	owner = normalize_identity(caseload) or user.username
	return Scope(actor=user.username, owner=owner)


def check_scope(db: Session, scope: Scope):
	return authorize(db, scope.owner, scope.actor)


@router.get("/me")
async def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {
		"username": user.username,
		"display_name": user.display_name,
		"shared_caseloads": shared_caseloads(db, user.username),
	}
