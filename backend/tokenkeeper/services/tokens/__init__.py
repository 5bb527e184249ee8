from .dto import TokenLifecycleConfig, UserTokenView
from .service import UserTokenService

__all__ = ["UserTokenService", "UserTokenView", "TokenLifecycleConfig"]
