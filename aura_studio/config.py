import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./aura_studio.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Public site URL, used to build the booking verification redirect
SITE_URL = os.getenv("SITE_URL", "http://localhost:3000")

# Studio timezone; availability is grouped by calendar day in this zone
STUDIO_TIMEZONE = os.getenv("STUDIO_TIMEZONE", "America/New_York")

# Admin dashboard password (compared server-side, never shipped to the browser)
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_COOKIE_NAME = "auraAdminAuth"
ADMIN_SESSION_HOURS = int(os.getenv("ADMIN_SESSION_HOURS", "12"))

# Cal.com Configuration (public slots and reservation holds)
CAL_API_KEY = os.getenv("CAL_API_KEY") or os.getenv("CAL_COM_API_KEY")
CAL_API_BASE_URL = os.getenv("CAL_API_BASE_URL", "https://api.cal.com/v2")
# Minutes the provider keeps a slot reserved for us
CAL_RESERVATION_MINUTES = int(os.getenv("CAL_RESERVATION_MINUTES", "2"))

# Hapio Configuration (admin scheduling resources)
HAPIO_API_TOKEN = os.getenv("HAPIO_API_TOKEN")
HAPIO_BASE_URL = os.getenv("HAPIO_BASE_URL", "https://eu-central-1.hapio.net/v1")

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
DEPOSIT_PERCENT = int(os.getenv("DEPOSIT_PERCENT", "50"))

# Brevo Configuration (email marketing list)
BREVO_API_KEY = os.getenv("BREVO_API_KEY")
BREVO_LIST_ID = os.getenv("BREVO_LIST_ID")

# Booking token lifetime after a successful payment
BOOKING_TOKEN_TTL_MINUTES = int(os.getenv("BOOKING_TOKEN_TTL_MINUTES", "30"))

# Deployment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"
FRONTEND_ORIGINS = [
    origin.strip() for origin in os.getenv("FRONTEND_ORIGINS", SITE_URL).split(",") if origin.strip()
]

# Redis (optional) - shared rate limit counters and provider lookups
REDIS_URL = os.getenv("REDIS_URL")
