"""
Named, versioned on-disk cache buckets mapping request URLs to responses.

Each bucket is a directory; each cached response is a JSON file named after
the MD5 of its URL. A small index file keeps bucket names in creation order.
"""

import asyncio
import base64
import hashlib
import json
import logging
import os
import shutil
import time
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os

from work_timesheet.exceptions import GatewayInstallError, NetworkError

from .messages import GatewayResponse

log = logging.getLogger(__name__)


class CacheBucket:
    """A single named cache of request URL -> response."""

    def __init__(self, name: str, bucket_dir: Path):
        self.name = name
        self.bucket_dir = bucket_dir

    def _entry_path(self, url: str) -> Path:
        hashed_key = hashlib.md5(url.encode("utf-8")).hexdigest()  # noqa: S324
        return self.bucket_dir / f"{hashed_key}.json"

    async def match(self, url: str) -> GatewayResponse | None:
        """Returns the stored response for a URL, or None."""
        path = self._entry_path(url)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                data = json.loads(await f.read())
            return GatewayResponse(
                url=data["url"],
                status=int(data["status"]),
                headers=tuple((k, v) for k, v in data.get("headers", [])),
                body=base64.b64decode(data.get("body", "")),
            )
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.debug(f"Cache entry for '{url}' in '{self.name}' is unreadable: {e}")
            return None

    async def put(self, url: str, response: GatewayResponse) -> None:
        """Stores a response under a URL, replacing any previous entry."""
        path = self._entry_path(url)
        payload = {
            "url": url,
            "status": response.status,
            "headers": [list(h) for h in response.headers],
            "body": base64.b64encode(response.body).decode("ascii"),
            "stored_at": time.time(),
        }
        tmp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload))
        await aiofiles.os.replace(tmp_path, path)

    async def delete(self, url: str) -> bool:
        try:
            await aiofiles.os.remove(self._entry_path(url))
            return True
        except FileNotFoundError:
            return False

    async def keys(self) -> list[str]:
        """URLs currently stored in this bucket."""
        urls = []
        for entry_file in sorted(self.bucket_dir.glob("*.json")):
            try:
                async with aiofiles.open(entry_file, encoding="utf-8") as f:
                    urls.append(json.loads(await f.read())["url"])
            except (OSError, ValueError, KeyError) as e:
                log.debug(f"Skipping unreadable cache entry {entry_file.name}: {e}")
        return urls

    async def add_all(
        self,
        urls: Iterable[str],
        fetch: Callable[[str], Awaitable[GatewayResponse]],
    ) -> int:
        """
        Fetches every URL and stores all of them, or none if any fails.

        Raises:
            GatewayInstallError: If a fetch fails or returns a non-200 status.
        """
        urls = list(urls)
        try:
            responses = await asyncio.gather(*(fetch(url) for url in urls))
        except NetworkError as e:
            raise GatewayInstallError(f"Precaching failed: {e}") from e

        for url, response in zip(urls, responses):
            if not response.ok:
                raise GatewayInstallError(
                    f"Precaching failed: '{url}' returned status {response.status}."
                )

        for url, response in zip(urls, responses):
            await self.put(url, response)
        return len(urls)


class CacheStorage:
    """The set of cache buckets owned by the gateway."""

    INDEX_FILE = "buckets.json"

    def __init__(self, root_dir: Path):
        self.root_dir = root_dir
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self.root_dir / self.INDEX_FILE
        self._lock = asyncio.Lock()

    def _bucket_dir(self, name: str) -> Path:
        return self.root_dir / quote(name, safe="")

    async def _read_index(self) -> list[str]:
        try:
            async with aiofiles.open(self._index_path, encoding="utf-8") as f:
                names = json.loads(await f.read())
            return [n for n in names if isinstance(n, str)]
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            log.warning(f"Cache index is unreadable, rebuilding it: {e}")
            return sorted(
                unquote(p.name) for p in self.root_dir.iterdir() if p.is_dir()
            )

    async def _write_index(self, names: list[str]) -> None:
        tmp_path = self._index_path.with_name(self.INDEX_FILE + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(names))
        await aiofiles.os.replace(tmp_path, self._index_path)

    async def open(self, name: str) -> CacheBucket:
        """Returns the named bucket, creating it if needed."""
        async with self._lock:
            bucket_dir = self._bucket_dir(name)
            if not bucket_dir.is_dir():
                await asyncio.to_thread(os.makedirs, bucket_dir, exist_ok=True)
                log.debug(f"Created cache bucket '{name}'.")
            names = await self._read_index()
            if name not in names:
                names.append(name)
                await self._write_index(names)
            return CacheBucket(name, bucket_dir)

    async def has(self, name: str) -> bool:
        return name in await self.keys()

    async def keys(self) -> list[str]:
        """Bucket names in creation order."""
        names = [n for n in await self._read_index() if self._bucket_dir(n).is_dir()]
        # Directories missing from the index (e.g. after a crash) still count.
        on_disk = sorted(
            unquote(p.name) for p in self.root_dir.iterdir() if p.is_dir()
        )
        return names + [n for n in on_disk if n not in names]

    async def delete(self, name: str) -> bool:
        """Deletes a bucket and everything in it."""
        async with self._lock:
            bucket_dir = self._bucket_dir(name)
            names = await self._read_index()
            existed = bucket_dir.is_dir()
            if existed:
                await asyncio.to_thread(shutil.rmtree, bucket_dir)
            if name in names:
                names.remove(name)
                await self._write_index(names)
            return existed

    async def match(self, url: str) -> GatewayResponse | None:
        """Looks a URL up across all buckets, oldest bucket first."""
        for name in await self.keys():
            response = await CacheBucket(name, self._bucket_dir(name)).match(url)
            if response is not None:
                return response
        return None
