from services.credential import CredentialService, Challenge
from services.token import TokenService, RefreshTokenStore
from services.upload import LocalUploader
from services.user import UserService

__all__ = [
    "Challenge",
    "CredentialService",
    "LocalUploader",
    "RefreshTokenStore",
    "TokenService",
    "UserService",
]
