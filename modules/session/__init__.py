"""
Session module.

Owns the authentication lifecycle: sign-up, sign-in (password, Google,
Apple), email verification, token refresh, logout and profile updates.

Public API:
- SessionManager: The session state machine
- build_session_manager: Factory wired to keyring, disk cache and HTTP
- Models: AppUser, AuthTokens, SessionState, SessionStatus
- Storage: ITokenStore, IUserCache and their implementations
- merge_users / needs_profile_completion: Pure helpers
"""

# Models first: the transport package imports them while it initializes.
from .models import (
    AppUser,
    UserPet,
    AuthTokens,
    AuthResponse,
    RegisterResponse,
    MessageResponse,
    SessionState,
    SessionStatus,
)
from .interfaces import ITokenStore, IKeyValueStore, IUserCache
from .storage import (
    InMemoryTokenStore,
    KeyringTokenStore,
    InMemoryStore,
    JsonFileStore,
    UserProfileCache,
)
from .merge import merge_users
from .completion import needs_profile_completion, ProfilePromptTracker
from .state import SessionStateBroadcaster
from .service import SessionManager, build_session_manager
from .exceptions import (
    SessionError,
    InvalidEmailError,
    WeakPasswordError,
    MissingVerificationCodeError,
    TokenStoreError,
)

__all__ = [
    # Service
    "SessionManager",
    "build_session_manager",
    "SessionStateBroadcaster",
    # Models
    "AppUser",
    "UserPet",
    "AuthTokens",
    "AuthResponse",
    "RegisterResponse",
    "MessageResponse",
    "SessionState",
    "SessionStatus",
    # Storage
    "ITokenStore",
    "IKeyValueStore",
    "IUserCache",
    "InMemoryTokenStore",
    "KeyringTokenStore",
    "InMemoryStore",
    "JsonFileStore",
    "UserProfileCache",
    # Helpers
    "merge_users",
    "needs_profile_completion",
    "ProfilePromptTracker",
    # Exceptions
    "SessionError",
    "InvalidEmailError",
    "WeakPasswordError",
    "MissingVerificationCodeError",
    "TokenStoreError",
]
