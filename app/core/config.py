from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator
from decimal import Decimal
from typing import Optional, List
import logging


class Settings(BaseSettings):
    # -------------------------
    # Application Info
    # -------------------------
    APP_NAME: str = "PureNFT Marketplace API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    PORT: int = 5000

    # -------------------------
    # Security / JWT
    # -------------------------
    SECRET_KEY: str = Field(
        default="your-secret-key-here-change-in-production",
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"),
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ADMIN_API_KEY: Optional[str] = None

    # -------------------------
    # Rate limiting
    # -------------------------
    RATE_LIMIT_ENABLED: bool = True
    AUTH_RATE_LIMIT: str = "20/minute"

    # -------------------------
    # Database
    # -------------------------
    DATABASE_URL: str = "sqlite:///./marketplace.db"

    # -------------------------
    # Exchange rate
    # -------------------------
    EXCHANGE_RATE_URL: str = "https://api.coingecko.com/api/v3/simple/price?ids=ethereum&vs_currencies=usd"
    EXCHANGE_RATE_TTL_SECONDS: int = 300
    EXCHANGE_RATE_TIMEOUT_SECONDS: float = 5.0
    FALLBACK_ETH_USD_RATE: Decimal = Decimal("2074")

    # -------------------------
    # Marketplace rules
    # -------------------------
    PLATFORM_FEE_PERCENT: Decimal = Decimal("2.5")
    FREEZE_PERIOD_DAYS: int = 15

    # -------------------------
    # Deposits
    # -------------------------
    DEPOSIT_WINDOW_MINUTES: int = 30
    DEPOSIT_REVIEW_SECONDS: int = 11
    MIN_TRANSACTION_HASH_LENGTH: int = 10
    DEPOSIT_WALLET_ADDRESS: str = "0xc68c825191546453e36aaa005ebf10b5219ce175"
    SUPPORT_CONTACT_URL: str = "https://t.me/purenftsupport"

    # -------------------------
    # KYC document storage (Cloudflare R2)
    # -------------------------
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_ACCOUNT_ID: Optional[str] = None
    R2_BUCKET_NAME: Optional[str] = None
    R2_PUBLIC_HOST: Optional[str] = None
    KYC_FOLDER: str = "kyc_documents"

    # -------------------------
    # CORS
    # -------------------------
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore extra env vars not defined here
        populate_by_name=True,
    )

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v):
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator('PLATFORM_FEE_PERCENT')
    @classmethod
    def validate_fee(cls, v):
        if v < 0 or v >= 100:
            raise ValueError("PLATFORM_FEE_PERCENT must be between 0 and 100")
        return v

    def validate_production_config(self):
        """Validate configuration for production deployment"""
        logger = logging.getLogger(__name__)

        if not self.DEBUG:
            warnings = []

            if not self.ADMIN_API_KEY:
                warnings.append("ADMIN_API_KEY not set - operator endpoints are disabled")

            if not self.R2_BUCKET_NAME:
                warnings.append("R2_BUCKET_NAME not set - KYC uploads will fail")

            if self.SECRET_KEY == "your-secret-key-here-change-in-production":
                raise ValueError("SECRET_KEY must be changed in production")

            for warning in warnings:
                logger.warning(f"Production config warning: {warning}")


# Create a settings instance
settings = Settings()

# Validate production configuration
settings.validate_production_config()
