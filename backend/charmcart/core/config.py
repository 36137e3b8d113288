from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # MongoDB Configuration
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "charmcart_db"
    USER_CARTS_COLLECTION: str = "user_carts"
    INVENTORY_COLLECTION: str = "inventory"

    # Pricing
    TAX_RATE: float = 0.08
    FREE_SHIPPING_THRESHOLD: float = 75.0
    STANDARD_SHIPPING: float = 12.99
    CURRENCY: str = "USD"

    # Cart limits
    MAX_ITEM_PRICE: float = 10000.0
    MAX_CART_ITEMS: int = 50
    MAX_QUANTITY_PER_ITEM: int = 10
    MAX_CART_HISTORY: int = 20
    STRICT_GUEST_MERGE: bool = False

    # Design editor
    MAX_DESIGN_HISTORY: int = 50
    POSITION_TOLERANCE: float = 1.0
    BASE_DESIGN_FEE: float = 25.0
    DESIGN_COMPLEXITY_DIVISOR: int = 5

    # Persistence
    ENABLE_PERSISTENCE: bool = True
    PERSISTENCE_INTERVAL_SECONDS: float = 30.0
    PERSISTENCE_MAX_RETRIES: int = 3
    PERSISTENCE_RETRY_DELAY_SECONDS: float = 1.0
    GUEST_CART_EXPIRY_HOURS: int = 168  # 7 days

    # Sessions
    SESSION_IDLE_MINUTES: int = 30
    CLEANUP_INTERVAL_SECONDS: float = 900.0

    # Application Settings
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Charm Cart"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
