"""Redis-backed package store.

Each package is written with a single MULTI/EXEC transaction holding the
blob ``SET`` and the metadata ``HSET``, so a reader sees either the previous
package and its metadata or the new pair, never a mix or a partial blob.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .exceptions import ConnectivityError, TransferError
from .naming import DEFAULT_KEY_PREFIX, meta_key, store_key

LOGGER = logging.getLogger(__name__)

DEFAULT_RELOAD_CHANNEL = "osd:reload"


class RedisPackageStore:
    """Package store on top of a ``redis.Redis`` client."""

    def __init__(
        self,
        client: "redis.Redis",
        *,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        channel: str = DEFAULT_RELOAD_CHANNEL,
        label: str = "package store",
    ) -> None:
        self._client = client
        self.key_prefix = key_prefix
        self.channel = channel
        self.label = label

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        *,
        password: Optional[str],
        db: int = 0,
        timeout: float = 10.0,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        channel: str = DEFAULT_RELOAD_CHANNEL,
    ) -> "RedisPackageStore":
        """Build a store around a fresh client. No I/O happens until ``ping``."""

        client = redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password or None,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(
            client,
            key_prefix=key_prefix,
            channel=channel,
            label=f"package store at {host}:{port}",
        )

    def ping(self) -> None:
        try:
            self._client.ping()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            # AuthenticationError is a ConnectionError subclass.
            raise ConnectivityError(
                f"Unable to connect to {self.label}: {exc}\n\n"
                f"Troubleshooting:\n"
                f"  1. Check REDIS_PASSWORD matches the store's requirepass\n"
                f"  2. Check REDIS_HOST/REDIS_PORT as seen from the deploy host\n"
                f"  3. Use --no-tunnel only if the store is reachable from this machine"
            ) from exc
        except RedisError as exc:
            raise ConnectivityError(f"{self.label} rejected PING: {exc}") from exc

    def put_package(self, logical_name: str, data: bytes, metadata: Mapping[str, str]) -> str:
        key = store_key(logical_name, self.key_prefix)
        pipe = self._client.pipeline(transaction=True)
        pipe.set(key, data)
        if metadata:
            pipe.hset(meta_key(logical_name, self.key_prefix), mapping=dict(metadata))
        try:
            pipe.execute()
        except RedisError as exc:
            raise TransferError(f"Failed to store {key} ({len(data)} bytes): {exc}") from exc
        finally:
            pipe.reset()
        LOGGER.debug("Stored %s (%d bytes)", key, len(data))
        return key

    def publish(self, message: str) -> int:
        try:
            receivers = self._client.publish(self.channel, message)
        except RedisError as exc:
            raise TransferError(f"Failed to publish to {self.channel}: {exc}") from exc
        return int(receivers or 0)

    def close(self) -> None:
        try:
            self._client.close()
        except RedisError as exc:  # pragma: no cover - network dependent
            LOGGER.debug("Error closing %s: %s", self.label, exc)


__all__ = ["RedisPackageStore", "DEFAULT_RELOAD_CHANNEL"]
