from .auth import AuthController
from .chat import ChatController
from .service import ServiceController

__all__ = ["AuthController", "ChatController", "ServiceController"]
