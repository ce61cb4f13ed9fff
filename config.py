"""
Runtime configuration

Values come from the process environment, with a local .env file loaded first.
"""

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    addon_surcharge: Decimal = Decimal("2.00")
    tax_rate: Decimal = Decimal("0.08")
    admin_passcode: str = "RBKGSB"
    seed_data: bool = True
    restaurant_name: str = "Taste of π"
    restaurant_location: str = "123 Italian Way, Little Italy, NY 10013"
    restaurant_phone: str = "(555) 123-PIZZA"
    restaurant_email: str = "info@tasteofpi.com"
    youtube_video_url: str = ""
    log_level: str = "INFO"
    port: int = 8000

    @property
    def use_mongo(self) -> bool:
        return bool(self.database_url and self.database_name)


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        database_name=os.getenv("DATABASE_NAME"),
        addon_surcharge=Decimal(os.getenv("ADDON_SURCHARGE", str(defaults.addon_surcharge))),
        tax_rate=Decimal(os.getenv("TAX_RATE", str(defaults.tax_rate))),
        admin_passcode=os.getenv("ADMIN_PASSCODE", defaults.admin_passcode),
        seed_data=_as_bool(os.getenv("SEED_DATA"), defaults.seed_data),
        restaurant_name=os.getenv("RESTAURANT_NAME", defaults.restaurant_name),
        restaurant_location=os.getenv("RESTAURANT_LOCATION", defaults.restaurant_location),
        restaurant_phone=os.getenv("RESTAURANT_PHONE", defaults.restaurant_phone),
        restaurant_email=os.getenv("RESTAURANT_EMAIL", defaults.restaurant_email),
        youtube_video_url=os.getenv("YOUTUBE_VIDEO_URL", defaults.youtube_video_url),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        port=int(os.getenv("PORT", defaults.port)),
    )
