from authcore.repositories.refresh_token import RefreshTokenRepository
from authcore.repositories.user import UserRepository

__all__ = ["RefreshTokenRepository", "UserRepository"]
