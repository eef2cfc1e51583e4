import os

# Store
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "chat_app")

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change-me")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days
SESSION_COOKIE_NAME = "jwt"
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
MIN_PASSWORD_LENGTH = 6

# Media host
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

# Server
PORT = int(os.getenv("PORT", 5001))
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def is_development() -> bool:
    return APP_ENV == "development"
