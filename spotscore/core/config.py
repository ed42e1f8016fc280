"""Application configuration using Pydantic Settings.

This module provides type-safe environment variable management
for the database, the signal cache, the external gateway and the
batch refresh jobs.
"""

from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Attributes:
        APP_ENV: Application environment (development, staging, production).
        DEBUG: Enable debug mode (SQL echo, debug logging).
        LOG_LEVEL: Root log level when DEBUG is off.
        TIMEZONE: IANA zone used for hour-of-day and month rules.
        POSTGRES_USER: PostgreSQL username.
        POSTGRES_PASSWORD: PostgreSQL password.
        POSTGRES_DB: PostgreSQL database name.
        POSTGRES_HOST: PostgreSQL host address.
        POSTGRES_PORT: PostgreSQL port number.
        REDIS_HOST: Redis host for the signal cache.
        REDIS_PORT: Redis port.
        REDIS_DB: Redis database index.
        CACHE_ENABLED: Turn the signal cache off entirely.
        HTTP_TIMEOUT_SECONDS: Per-request timeout for every upstream call.
        EPHEMERIS_PATH: JPL ephemeris file used by the solunar almanac.
        BATCH_SIZE: Default number of spots per refresh batch.
        WEATHER_GRID_RESOLUTION: Grid cell size (degrees) for shared weather.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Europe/Paris"

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "fishing_spots"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    # Signal cache
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    CACHE_ENABLED: bool = True

    # Gateway
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_USER_AGENT: str = "spotscore/0.1"
    EPHEMERIS_PATH: str = "de421.bsp"

    OPEN_METEO_URL: str = "https://api.open-meteo.com/v1/meteofrance"
    OPEN_METEO_ARCHIVE_URL: str = "https://archive-api.open-meteo.com/v1/archive"
    OPEN_METEO_FLOOD_URL: str = "https://flood-api.open-meteo.com/v1/flood"
    HUBEAU_URL: str = "https://hubeau.eaufrance.fr/api"
    VIGIEAU_URL: str = "https://api.vigieau.gouv.fr/api"
    VIGICRUES_URL: str = "https://www.vigicrues.gouv.fr/services"
    GEOPF_WFS_URL: str = "https://data.geopf.fr/wfs/ows"
    SANDRE_DPF_URL: str = "https://services.sandre.eaufrance.fr/geo/dpf"
    CADASTRE_URL: str = "https://apicarto.ign.fr/api/cadastre/parcelle"
    MAJIC_URL: str = (
        "https://opendata.koumoul.com/data-fair/api/v1/datasets/"
        "parcelles-des-personnes-morales/lines"
    )
    GEORISQUES_URL: str = "https://www.georisques.gouv.fr/api/v1/installations_classees"

    # Cache TTLs (seconds)
    TTL_WEATHER: int = 1800
    TTL_PRESSURE_DELTA: int = 7200
    TTL_WATER_LEVEL: int = 1800
    TTL_WATER_TEMPERATURE: int = 1800
    TTL_FLOW_STATUS: int = 21600
    TTL_GROUNDWATER: int = 21600
    TTL_DROUGHT: int = 3600
    TTL_FLOOD_FORECAST: int = 10800
    TTL_FLOOD_VIGILANCE: int = 1800
    TTL_BIOLOGICAL_INDICES: int = 86400
    TTL_FISH_INDEX: int = 86400
    TTL_WATER_BODY: int = 604800
    TTL_CADASTRE: int = 2592000
    TTL_AGRICULTURAL_PARCEL: int = 604800
    TTL_RIVER_DOMAIN: int = 604800
    TTL_INSTALLATIONS: int = 86400

    # Batch jobs
    BATCH_SIZE: int = 50
    WEATHER_GRID_RESOLUTION: float = 0.1

    @computed_field  # type: ignore[misc]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the async PostgreSQL database URI.

        Returns:
            Async database connection string for SQLAlchemy.
        """
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance.
    """
    return Settings()


settings = get_settings()
