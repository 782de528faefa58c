"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos principales:
    - AIRTABLE_*: credenciales y comportamiento de red del record store
    - RESOLVER_*: cache de resolucion nombre -> record id
    - UPSERT_*: serializacion en proceso de los upsert
    - SESSION_* / SECRET_KEY: firma de la cookie de sesion
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Fisio Records API")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Airtable (record store)
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_API_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_FETCH_TIMEOUT_S: float = Field(default=20.0)
    AIRTABLE_FETCH_RETRY_ON_TIMEOUT: bool = Field(default=True)
    AIRTABLE_MAX_RETRIES: int = Field(default=3)
    AIRTABLE_RECORD_ID_PREFIX: str = Field(default="rec")
    # JSON opcional que sobreescribe el mapa tabla -> campo primario
    AIRTABLE_SCHEMA_FILE: str = Field(default="")

    # Cache de resolucion de registros vinculados
    RESOLVER_CACHE_TTL_S: float = Field(default=600.0)
    RESOLVER_CACHE_MAX_ENTRIES: int = Field(default=500)
    RESOLVER_CACHE_EVICT_RATIO: float = Field(default=0.15)
    FIELD_NAME_CACHE_TTL_S: float = Field(default=3600.0)

    # Upsert
    UPSERT_SERIALIZE: bool = Field(default=True)
    UPSERT_LOCK_TIMEOUT_S: float = Field(default=30.0)

    # Seguridad / sesion
    SECRET_KEY: str = Field(default="change-this-secret-key-in-production")
    ALGORITHM: str = Field(default="HS256")
    SESSION_TTL_HOURS: int = Field(default=12)
    SESSION_COOKIE_NAME: str = Field(default="fp_session")
    SESSION_COOKIE_SECURE: bool = Field(default=True)
    COLLABORATORS_TABLE: str = Field(default="COLLABORATORI")

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    @computed_field
    @property
    def airtable_configured(self) -> bool:
        """True si hay token y base de Airtable."""
        return bool(self.AIRTABLE_TOKEN and self.AIRTABLE_BASE_ID)

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",") if origin.strip()]


# Instancia global de configuracion
settings = Settings()
