"""
Configuration Module
------------------
Runtime configuration loaded from environment variables.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nominatim_proxy.exceptions import ConfigurationError

# Get logger
logger = logging.getLogger(__name__)

# Fixed query parameters sent with every reverse lookup
PARAM_FORMAT = "json"
PARAM_LAYER = "address"
PARAM_ADDRESS_DETAILS = "1"
PARAM_ZOOM = "18"

# Stays below one request per second, the hard cap of the public Nominatim instance
DEFAULT_RATE_LIMIT_MS = 2000
DEFAULT_RATE_LIMIT_MAX_WAIT_MS = 5000
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_CACHE_DB_PATH = "data/geodata.sqlite"

# All ISO 639-1 language codes.
# Nominatim falls back to its own locale for anything else, which would
# pollute the cache with answers in the wrong language.
ACCEPTED_LANGUAGE_CODES = frozenset({
    "aa", "ab", "ae", "af", "ak", "am", "an", "ar", "as", "av", "ay", "az",
    "ba", "be", "bg", "bh", "bi", "bm", "bn", "bo", "br", "bs", "ca", "ce",
    "ch", "co", "cr", "cs", "cu", "cv", "cy", "da", "de", "dv", "dz", "ee",
    "el", "en", "eo", "es", "et", "eu", "fa", "ff", "fi", "fj", "fo", "fr",
    "fy", "ga", "gd", "gl", "gn", "gu", "ha", "he", "hi", "ho", "hr", "ht",
    "hu", "hy", "hz", "ia", "id", "ie", "ig", "ii", "ik", "io", "is", "it",
    "iu", "ja", "jv", "ka", "kg", "ki", "kj", "kk", "kl", "km", "kn", "ko",
    "kr", "ks", "ku", "kv", "kw", "ky", "la", "lb", "lg", "li", "ln", "lo",
    "lt", "lu", "lv", "mg", "mh", "mi", "mk", "ml", "mn", "mr", "ms", "mt",
    "my", "na", "nb", "nd", "ne", "ng", "nl", "nn", "no", "nr", "nv", "ny",
    "oc", "oj", "om", "or", "os", "pa", "pi", "pl", "ps", "pt", "qu", "rm",
    "rn", "ro", "ru", "rw", "sa", "sc", "sd", "se", "sg", "si", "sk", "sl",
    "sm", "sn", "so", "sq", "sr", "ss", "st", "su", "sv", "sw", "ta", "te",
    "tg", "th", "ti", "tk", "tl", "tn", "to", "tr", "ts", "tt", "tw", "ty",
    "ug", "uk", "ur", "uz", "ve", "vi", "vo", "wa", "wo", "xh", "yi", "yo",
    "za", "zh", "zu",
})


class Settings(BaseSettings):
    """Service settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_key: str
    nominatim_url: str
    user_agent: str
    email: str
    cache_db_path: str = DEFAULT_CACHE_DB_PATH
    rate_limit_ms: int = DEFAULT_RATE_LIMIT_MS
    rate_limit_max_wait_ms: int = DEFAULT_RATE_LIMIT_MAX_WAIT_MS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    host: str = "0.0.0.0"
    port: int = 8080

    @field_validator("api_key", "nominatim_url", "user_agent", "email")
    @classmethod
    def not_blank(cls, value):
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("nominatim_url")
    @classmethod
    def strip_trailing_slash(cls, value):
        return value.rstrip("/")

    @field_validator("rate_limit_ms", "rate_limit_max_wait_ms", "request_timeout", "port", mode="before")
    @classmethod
    def fall_back_on_invalid_number(cls, value, info: ValidationInfo):
        field = cls.model_fields[info.field_name]
        try:
            return field.annotation(value)
        except (TypeError, ValueError):
            logger.warning(
                f"Ignoring invalid value '{value}' for {info.field_name.upper()}, using {field.default}"
            )
            return field.default


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """
    Build the settings from the environment.

    Raises ConfigurationError when one of API_KEY, NOMINATIM_URL, USER_AGENT
    or EMAIL is missing or empty. Numeric values that do not parse fall back
    to their defaults.
    """
    try:
        return Settings(_env_file=env_file)
    except ValidationError as e:
        names = sorted({str(error["loc"][0]).upper() for error in e.errors()})
        raise ConfigurationError(f"{', '.join(names)} not defined") from e


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
