"""
Application configuration.

This module loads and validates settings from config.yaml and environment variables.
"""
import yaml
from pathlib import Path
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional

from annotations_rw.utils.exceptions import ConfigurationError


# Get the backend directory (parent of the package directory)
BACKEND_DIR = Path(__file__).parent.parent.parent
CONFIG_FILE = BACKEND_DIR / "config.yaml"
ENV_FILE = BACKEND_DIR / ".env"


def load_config_yaml(path: Path = CONFIG_FILE) -> dict:
    """Load configuration from a YAML file, or an empty dict if it is missing."""
    if path.exists():
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    return {}


class Settings(BaseSettings):
    """Application settings loaded from config.yaml and environment variables."""

    def __init__(self, **kwargs):
        config_data = load_config_yaml()

        # Service identity
        app_config = config_data.get('app', {})
        kwargs.setdefault('app_name', app_config.get('name', "annotations-rw"))
        kwargs.setdefault('app_system_code', app_config.get('system_code', "annotations-rw"))
        kwargs.setdefault('environment', app_config.get('environment', "development"))
        kwargs.setdefault('log_level', app_config.get('log_level', "INFO"))
        kwargs.setdefault('log_json', app_config.get('log_json', True))

        # API Settings
        api_config = config_data.get('api', {})
        kwargs.setdefault('api_title', api_config.get('title', "Annotations RW API"))
        kwargs.setdefault('api_version', api_config.get('version', "1.0.0"))
        kwargs.setdefault('api_description', api_config.get('description', "A RESTful API for managing Annotations in neo4j"))
        kwargs.setdefault('host', api_config.get('host', "0.0.0.0"))
        kwargs.setdefault('port', api_config.get('port', 8080))
        kwargs.setdefault('public_api_url', api_config.get('public_api_url', "http://localhost:8080"))

        # Neo4j Settings
        neo4j_config = config_data.get('neo4j', {})
        kwargs.setdefault('neo4j_uri', neo4j_config.get('uri', "bolt://localhost:7687"))
        kwargs.setdefault('neo4j_user', neo4j_config.get('user', "neo4j"))
        kwargs.setdefault('neo4j_database', neo4j_config.get('database', "neo4j"))
        kwargs.setdefault('neo4j_timeout', neo4j_config.get('timeout', 30))
        kwargs.setdefault('neo4j_max_connection_pool_size', neo4j_config.get('max_connection_pool_size', 50))

        # Annotation lifecycle settings
        annotations_config = config_data.get('annotations', {})
        kwargs.setdefault('origin_map', annotations_config.get('origin_map', {}))
        kwargs.setdefault('lifecycle_map', annotations_config.get('lifecycle_map', {}))
        kwargs.setdefault('message_type', annotations_config.get('message_type', "Annotations"))
        kwargs.setdefault('payload_version', annotations_config.get('payload_version', "flat"))
        kwargs.setdefault('allow_default_predicate', annotations_config.get('allow_default_predicate', False))

        # Messaging settings
        messaging_config = config_data.get('messaging', {})
        kwargs.setdefault('should_consume_messages', messaging_config.get('should_consume_messages', False))
        kwargs.setdefault('should_forward_messages', messaging_config.get('should_forward_messages', True))
        kwargs.setdefault('consumer_group', messaging_config.get('consumer_group'))
        kwargs.setdefault('consumer_topics', messaging_config.get('consumer_topics', []))
        kwargs.setdefault('producer_topic', messaging_config.get('producer_topic', "PostPublicationMetadataEvents"))

        super().__init__(**kwargs)

    # Service identity
    app_name: str
    app_system_code: str
    environment: str
    log_level: str
    log_json: bool

    # API Settings
    api_title: str
    api_version: str
    api_description: str
    host: str
    port: int
    debug: bool = False
    # Base URL used when building the public thing links in read responses
    public_api_url: str

    # Neo4j Settings - password from env
    neo4j_uri: str
    neo4j_user: str
    neo4j_password: str = "neo4j-password"
    neo4j_database: str
    neo4j_timeout: int
    neo4j_max_connection_pool_size: int

    # Annotation lifecycle settings
    origin_map: Dict[str, str]  # Origin-System-Id -> lifecycle
    lifecycle_map: Dict[str, str]  # lifecycle -> platform version
    message_type: str
    payload_version: str
    allow_default_predicate: bool

    # Messaging settings
    should_consume_messages: bool
    should_forward_messages: bool
    consumer_group: Optional[str] = None
    consumer_topics: List[str]
    producer_topic: str

    model_config = {
        "env_file": str(ENV_FILE),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator('message_type')
    @classmethod
    def message_type_required(cls, value: str) -> str:
        if not value:
            raise ConfigurationError("message type is not configured", {"message_type": value})
        return value

    @model_validator(mode='after')
    def origins_point_to_known_lifecycles(self) -> "Settings":
        unknown = {
            origin: lifecycle
            for origin, lifecycle in self.origin_map.items()
            if lifecycle not in self.lifecycle_map
        }
        if unknown:
            raise ConfigurationError(
                "origin_map references lifecycles missing from lifecycle_map",
                {"origins": unknown},
            )
        return self

    def platform_version_for(self, lifecycle: str) -> Optional[str]:
        """Return the platform version configured for a lifecycle, if any."""
        return self.lifecycle_map.get(lifecycle)

    def origin_system_for(self, lifecycle: str) -> Optional[str]:
        """Return the first origin system id that maps onto a lifecycle."""
        for origin, mapped_lifecycle in self.origin_map.items():
            if mapped_lifecycle == lifecycle:
                return origin
        return None


settings = Settings()
