import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

class LeavePolicySettings(BaseModel):
    # Leave year runs from the 1st of this month to the last day of the previous month
    leave_year_start_month: int = Field(default=int(os.getenv("LEAVE_YEAR_START_MONTH", "6")))
    justification_grace_days: int = Field(default=int(os.getenv("JUSTIFICATION_GRACE_DAYS", "2")))
    sick_leave_max_advance_days: int = Field(default=int(os.getenv("SICK_LEAVE_MAX_ADVANCE_DAYS", "30")))

    # Accrual (Code du travail L3141-3 / L3141-4)
    days_per_month: float = 2.5
    max_acquired_days: float = 30.0
    working_days_per_month: int = 24
    max_months_worked: int = 12

    # Main leave period (May to October) and the length that makes a leave "main"
    main_period_first_month: int = 5
    main_period_last_month: int = 10
    main_leave_min_days: int = 12

class Config(BaseModel):
    app_name: str = "Home Care Leave Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Leave rules
    leave: LeavePolicySettings = LeavePolicySettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Connection pool (PostgreSQL only)
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "300"))

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

settings = Config()

# --- Startup Validation ---
_logger = logging.getLogger(__name__)
if not 1 <= settings.leave.leave_year_start_month <= 12:
    raise RuntimeError(
        f"FATAL: LEAVE_YEAR_START_MONTH must be between 1 and 12, got {settings.leave.leave_year_start_month}."
    )
if settings.environment != "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.warning("Using a local SQLite file outside development; absence overlap is only enforced in-app.")
