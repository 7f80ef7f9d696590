"""
Firebase authentication for FastAPI.

Verifies Firebase ID tokens, then resolves the verified uid to a registered
user. Both steps fail with 401 before any route logic runs.
"""

from pathlib import Path

import firebase_admin
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.ext.asyncio import AsyncSession

from taskhive.config import get_settings
from taskhive.database import get_session
from taskhive.exceptions import UnauthenticatedError
from taskhive.logging_config import get_logger
from taskhive.models import User
from taskhive.services.policy import Caller

logger = get_logger(__name__)


def _init_firebase() -> None:
    """Initialize the Firebase Admin SDK once, on first use."""
    try:
        firebase_admin.get_app()
        return  # Already initialized
    except ValueError:
        pass  # Need to initialize

    settings = get_settings()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None

    # __file__ = backend/taskhive/auth.py -> .parent.parent = backend/
    backend_dir = Path(__file__).parent.parent
    possible_paths = []
    if settings.firebase_credentials_path:
        possible_paths.append(Path(settings.firebase_credentials_path))
    possible_paths.extend([
        backend_dir / "serviceAccountKey.json",
        backend_dir / "firebase-service-account.json",
    ])
    possible_paths.extend(backend_dir.glob("*-firebase-adminsdk-*.json"))

    for key_path in possible_paths:
        if key_path.exists() and key_path.is_file():
            cred = credentials.Certificate(str(key_path))
            firebase_admin.initialize_app(cred, options)
            logger.info(f"Firebase Admin SDK initialized with: {key_path.name}")
            return

    # Falls back to Application Default Credentials
    logger.warning("No Firebase service account key found; using application default credentials")
    firebase_admin.initialize_app(options=options)


security = HTTPBearer(auto_error=False)


class AuthenticatedUser:
    """A verified Firebase identity, registered or not."""

    def __init__(self, uid: str, email: str | None = None, name: str | None = None):
        self.uid = uid
        self.email = email
        self.name = name

    def __repr__(self):
        return f"AuthenticatedUser(uid={self.uid}, email={self.email})"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthenticatedUser:
    """
    Verify the bearer Firebase ID token.

    Raises:
        UnauthenticatedError: Token missing, expired or invalid.
    """
    if credentials is None:
        raise UnauthenticatedError()

    _init_firebase()
    try:
        decoded_token = auth.verify_id_token(credentials.credentials)
    except auth.ExpiredIdTokenError:
        logger.warning("Expired Firebase token")
        raise UnauthenticatedError("Token has expired")
    except (auth.InvalidIdTokenError, ValueError):
        logger.warning("Invalid Firebase token")
        raise UnauthenticatedError("Invalid authentication token")
    except firebase_exceptions.FirebaseError as e:
        logger.error(f"Authentication error: {e}")
        raise UnauthenticatedError("Authentication failed")

    logger.debug(f"Authenticated uid: {decoded_token['uid']}")
    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        name=decoded_token.get("name"),
    )


async def get_current_account(
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> User:
    """The registered user behind the token."""
    user = await session.get(User, identity.uid)
    if user is None:
        logger.warning(f"Token for unregistered uid {identity.uid}")
        raise UnauthenticatedError("User not registered")
    return user


async def get_caller(user: User = Depends(get_current_account)) -> Caller:
    """Identity context handed to the access policy."""
    return Caller(id=user.id, role=user.role)
