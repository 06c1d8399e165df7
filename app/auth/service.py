"""Authentication service - JWT handling, password hashing, user operations."""

from datetime import datetime, timedelta
from typing import Optional
import jwt
from passlib.context import CryptContext
from bson import ObjectId
from bson.errors import InvalidId

from app.core.config import get_settings
from app.core.database import Database
from app.core.exceptions import BadRequestException, UnauthorizedException, NotFoundException
from app.auth.models import ShopSummary, UserCreate, UserResponse, TokenResponse

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:
    """Handles authentication and user operations."""

    # ==================== Password & Token ====================

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_access_token(user_id: str, email: str) -> str:
        """Create a JWT access token."""
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
        payload = {
            "sub": user_id,
            "email": email,
            "exp": expire,
            "iat": datetime.utcnow(),
        }
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    # ==================== Users ====================

    @classmethod
    def _get_collection(cls):
        return Database.get_collection("users")

    @staticmethod
    def _to_response(user: dict) -> UserResponse:
        return UserResponse(
            id=str(user["_id"]),
            email=user["email"],
            name=user["name"],
            phone=user.get("phone"),
            role=user.get("role", "customer"),
            created_at=user["created_at"],
        )

    @staticmethod
    async def _owned_shop(user_id: str) -> Optional[ShopSummary]:
        shop = await Database.get_collection("shops").find_one({"owner_id": user_id})
        if not shop:
            return None
        return ShopSummary(shop_id=shop["shop_id"], shop_name=shop["shop_name"])

    @classmethod
    async def register(cls, user_data: UserCreate) -> TokenResponse:
        """Register a new user."""
        users = cls._get_collection()

        existing = await users.find_one({"email": user_data.email})
        if existing:
            raise BadRequestException("Email already registered")

        user_doc = {
            "email": user_data.email,
            "password_hash": cls.hash_password(user_data.password),
            "name": user_data.name,
            "phone": user_data.phone,
            "role": "customer",
            "created_at": datetime.utcnow(),
        }

        result = await users.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id

        token = cls.create_access_token(str(result.inserted_id), user_data.email)
        return TokenResponse(access_token=token, user=cls._to_response(user_doc))

    @classmethod
    async def login(cls, email: str, password: str) -> TokenResponse:
        """Authenticate user and return token plus the shop they operate, if any."""
        users = cls._get_collection()

        user = await users.find_one({"email": email})
        if not user or not user.get("password_hash"):
            raise UnauthorizedException("Invalid email or password")

        if not cls.verify_password(password, user["password_hash"]):
            raise UnauthorizedException("Invalid email or password")

        user_id = str(user["_id"])
        token = cls.create_access_token(user_id, user["email"])

        return TokenResponse(
            access_token=token,
            user=cls._to_response(user),
            shop=await cls._owned_shop(user_id),
        )

    @classmethod
    async def get_user_by_id(cls, user_id: str) -> UserResponse:
        """Get user by ID."""
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            raise NotFoundException("User not found")

        user = await cls._get_collection().find_one({"_id": oid})
        if not user:
            raise NotFoundException("User not found")

        return cls._to_response(user)
