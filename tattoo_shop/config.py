import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tattoo_shop.db")

# Shop wall-clock timezone used to interpret business hours ("09:00" means 09:00 here)
SHOP_TIMEZONE = os.getenv("SHOP_TIMEZONE", "UTC")

# Scheduling rules
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))
MAX_AVAILABILITY_RESULTS = int(os.getenv("MAX_AVAILABILITY_RESULTS", "50"))
# Widest startAtMin..startAtMax range a single search may cover
MAX_SEARCH_WINDOW_DAYS = int(os.getenv("MAX_SEARCH_WINDOW_DAYS", "90"))
MAX_SLOT_SUGGESTIONS = int(os.getenv("MAX_SLOT_SUGGESTIONS", "5"))
MIN_APPOINTMENT_DURATION = int(os.getenv("MIN_APPOINTMENT_DURATION", "15"))
MAX_APPOINTMENT_DURATION = int(os.getenv("MAX_APPOINTMENT_DURATION", "480"))

# Anonymous bookings may materialize a customer record from the contact email
ALLOW_ANONYMOUS_BOOKING = os.getenv("ALLOW_ANONYMOUS_BOOKING", "true").lower() == "true"

# Square Bookings Configuration
SQUARE_ENVIRONMENT = os.getenv("SQUARE_ENVIRONMENT", "sandbox")  # sandbox or production
SQUARE_ACCESS_TOKEN = os.getenv("SQUARE_ACCESS_TOKEN")
SQUARE_LOCATION_ID = os.getenv("SQUARE_LOCATION_ID")
SQUARE_API_VERSION = os.getenv("SQUARE_API_VERSION", "2024-12-18")
SQUARE_SERVICE_VARIATION_ID = os.getenv("SQUARE_SERVICE_VARIATION_ID")
SQUARE_SERVICE_VARIATION_VERSION = os.getenv("SQUARE_SERVICE_VARIATION_VERSION")
SQUARE_TIMEOUT_SECONDS = float(os.getenv("SQUARE_TIMEOUT_SECONDS", "10"))
# Square has no reliable in-place update for every booking shape; default is cancel + recreate
SQUARE_NATIVE_UPDATE = os.getenv("SQUARE_NATIVE_UPDATE", "false").lower() == "true"

# Background retry of bookings that never reached Square
SQUARE_RESYNC_INTERVAL_SECONDS = int(os.getenv("SQUARE_RESYNC_INTERVAL_SECONDS", "300"))
SQUARE_RESYNC_BATCH_SIZE = int(os.getenv("SQUARE_RESYNC_BATCH_SIZE", "50"))

if SQUARE_ENVIRONMENT == "production":
    SQUARE_API_URL = "https://connect.squareup.com/v2"
else:
    SQUARE_API_URL = "https://connect.squareupsandbox.com/v2"

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
