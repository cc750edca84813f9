from .auth import AuthRepository
from .chat import ChatRepository
from .service import ServiceRepository, progress_for

__all__ = ["AuthRepository", "ChatRepository", "ServiceRepository", "progress_for"]
