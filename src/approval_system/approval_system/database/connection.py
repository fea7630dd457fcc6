from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, db_config: Mapping[str, Any]) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "approval_db")),
        )


class DatabaseConnection:
    """DB connection factory, one shared instance per distinct DBConfig.

    Note: one short-lived connection per operation; each document save is a
    single statement, so no connection is shared across requests.
    """

    _instances: ClassVar[dict[DBConfig, "DatabaseConnection"]] = {}
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._lock:
            instance = cls._instances.get(config)
            if instance is None:
                instance = cls._instances[config] = DatabaseConnection(config)
            return instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )
