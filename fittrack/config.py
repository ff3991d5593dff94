from datetime import tzinfo
from pathlib import Path

import yaml
from dateutil import tz
from pydantic import BaseModel, Field, computed_field


class MongoConfig(BaseModel):
    database: str
    workouts_collection: str = "workouts"
    nutrition_collection: str = "nutrition"
    host: str = "localhost"
    port: int = 27017
    user: str = ""
    password: str = ""

    @computed_field
    @property
    def uri(self) -> str:
        """Constructs the MongoDB connection URI from components."""
        if self.user and self.password:
            return f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/"
        return f"mongodb://{self.host}:{self.port}/"


class BackupConfig(BaseModel):
    directory: str = "sessions_backup"


class EngineConfig(BaseModel):
    # Empty timezone means the host's local zone.
    timezone: str = ""
    streak_max_days: int = Field(default=365, ge=1)
    streak_cache_ttl: int = Field(default=300, ge=0)
    streak_cache_size: int = Field(default=256, ge=1)
    definitions_path: str = "workout_definitions.yaml"
    history_limit: int = Field(default=20, ge=1)

    def tzinfo(self) -> tzinfo:
        """Resolve the configured timezone, falling back to the local zone."""
        if not self.timezone:
            return tz.tzlocal()
        zone = tz.gettz(self.timezone)
        if zone is None:
            raise ValueError(f"Unknown timezone: {self.timezone}")
        return zone


class Settings(BaseModel):
    mongo: MongoConfig
    backup: BackupConfig = BackupConfig()
    engine: EngineConfig = EngineConfig()

    @classmethod
    def load(cls, environment: str, directory: str | Path = ".") -> "Settings":
        """Load all configuration from a YAML file for the given environment."""
        path = Path(directory) / f"config-{environment}.yaml"
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
