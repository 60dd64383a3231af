from typing import Callable, ContextManager, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.db import session_scope


def get_directory_client(request: Request) -> Optional[BaseDirectoryClient]:
    """Directory client built at startup by the app factory."""
    return getattr(request.app.state, "directory_client", None)


def get_session_scope() -> Callable[[], ContextManager[Session]]:
    """Session factory for background processing after the response is sent."""
    return session_scope
