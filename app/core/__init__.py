"""Core module - config, database, dependencies, exceptions."""

from app.core.config import get_settings, Settings
from app.core.database import Database, get_db
from app.core.dependencies import get_channel, get_current_user
from app.core.exceptions import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    BadRequestException,
    ConflictException,
)

__all__ = [
    "get_settings",
    "Settings",
    "Database",
    "get_db",
    "get_channel",
    "get_current_user",
    "AppException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "BadRequestException",
    "ConflictException",
]
