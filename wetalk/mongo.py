"""Connection handling for the MongoDB store."""

from __future__ import annotations

import os
from dataclasses import dataclass

import pymongo
from pymongo import MongoClient
from pymongo.database import Database

DEFAULT_URI = "mongodb://localhost:27017"
CONNECT_TIMEOUT = 10
PING_TIMEOUT = 5


@dataclass
class MongoStore:
    """A MongoDB client together with the database the application uses."""

    client: MongoClient | None
    db: Database | None

    @classmethod
    def connect(cls, uri: str = "", db_name: str = "") -> MongoStore:
        """Connect and ping the server; the environment fills in blanks."""
        if not uri:
            uri = os.environ.get("MONGODB_URI") or DEFAULT_URI
        if not db_name:
            db_name = os.environ.get("MONGODB_DATABASE", "")
        if not db_name:
            raise ValueError(
                "database name required (set db_name or MONGODB_DATABASE)"
            )

        client = MongoClient(
            uri,
            maxPoolSize=100,
            serverSelectionTimeoutMS=CONNECT_TIMEOUT * 1000,
        )
        try:
            with pymongo.timeout(CONNECT_TIMEOUT):
                client.admin.command("ping")
        except BaseException:
            client.close()
            raise
        return cls(client=client, db=client[db_name])

    def close(self) -> None:
        if self.client is None:
            return
        self.client.close()

    def ping(self) -> None:
        if self.client is None:
            raise RuntimeError("mongo client is not connected")
        with pymongo.timeout(PING_TIMEOUT):
            self.client.admin.command("ping")