from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

load_dotenv()

# 5 groups of 6 and 2 groups of 7 => 44
DEFAULT_CAPACITIES = [7, 7, 6, 6, 6, 6, 6]
DEFAULT_RESET_TOKEN = "teacher"

Base = declarative_base()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    database_url: str = "sqlite:///./data/classgroups.db"
    group_capacities: Annotated[list[int], NoDecode] = DEFAULT_CAPACITIES
    reset_token: str = DEFAULT_RESET_TOKEN
    legacy_state_file: str | None = None
    sse_heartbeat_seconds: float = 15.0
    subscriber_queue_size: int = 16
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_dir: str = "logs"
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("group_capacities", mode="before")
    @classmethod
    def _parse_capacities(cls, value):
        if isinstance(value, str):
            value = [part for part in value.strip().strip("[]").split(",") if part.strip()]
        caps = [int(v) for v in value]
        if not caps or any(c <= 0 for c in caps):
            raise ValueError("group_capacities must be a non-empty list of positive integers")
        return caps

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @property
    def total_capacity(self) -> int:
        return sum(self.group_capacities)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def create_db_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return create_engine(database_url)
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every session sees its own empty database.
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args={"check_same_thread": False})


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
