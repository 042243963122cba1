# SPDX-License-Identifier: MIT
"""The registry engine.

Holds the canonical in-memory registry, applies the admission, ownership and
download-statistics rules to it, and hands every change to the configured
storage backend.

Registry document shape::

    {
        "<name>": {
            "metadata": {...package.json...},
            "owner": "github:alice",
            "versions": [{"version": "0.2.0", "published": "...", "brackets": "...", "downloads": 5}],
            "totalDownloads": 5,
            "recent": {"20130805": 5},
        }
    }
"""

from __future__ import annotations

import asyncio
import copy
import enum
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from extension_manifest import (
    ErrorCode as ValidationCode,
    PackageValidationResult,
    ValidationErrorDetail,
    validate_package,
)
from extension_version import is_newer

from .config import RegistryConfig
from .errors import (
    BadVersionError,
    NotAuthorizedError,
    NotConfiguredError,
    RegistryNotLoadedError,
    UnknownExtensionError,
    ValidationFailedError,
)
from .storage import RegistryStorage, create_storage

logger = logging.getLogger(__name__)

# Number of distinct dates kept in an entry's "recent" downloads
RECENT_DOWNLOADS_WINDOW = 7

PackageValidator = Callable[[Path], PackageValidationResult]


class EngineState(enum.Enum):
    UNCONFIGURED = "unconfigured"
    LOADING = "loading"
    READY = "ready"


def _published_timestamp() -> str:
    """Current UTC time in the registry's ``2013-08-05T17:02:11.123Z`` format."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def merge_recent_downloads(
    current: Mapping[str, int],
    incoming: Mapping[str, int],
    window: int = RECENT_DOWNLOADS_WINDOW,
) -> dict[str, int]:
    """Merge a fresh trailing window of daily counts into the stored one.

    Incoming counts replace stored counts for the same date; they are not
    added, because every stats run recounts its whole window. Only the
    ``window`` greatest date keys survive, newest first.
    """
    combined = dict(current)
    combined.update(incoming)
    return {date: combined[date] for date in sorted(combined, reverse=True)[:window]}


def _default_validator(path: Path) -> PackageValidationResult:
    return validate_package(path, require_package_json=True)


class RegistryEngine:
    """Stateful registry core.

    Lifecycle is ``UNCONFIGURED -> LOADING -> READY``. Construct one per
    process and share it with the HTTP layer; tests build fresh instances.

    Readers get direct references from :meth:`get_registry` and must treat
    them as read-only.
    """

    def __init__(self, validator: PackageValidator | None = None) -> None:
        self._validator: PackageValidator = validator or _default_validator
        self._config: RegistryConfig | None = None
        self._storage: RegistryStorage | None = None
        self._registry: dict | None = None
        self._load_task: asyncio.Task | None = None
        # name -> (lock, number of admissions holding or waiting on it)
        self._admission_locks: dict[str, list] = {}

    # ------------------------------------------------------------------
    # Configuration and state
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        if self._config is None or self._storage is None:
            return EngineState.UNCONFIGURED
        if self._registry is None:
            return EngineState.LOADING
        return EngineState.READY

    @property
    def config(self) -> RegistryConfig | None:
        return self._config

    @property
    def storage(self) -> RegistryStorage | None:
        return self._storage

    def configure(
        self,
        config: RegistryConfig,
        storage: RegistryStorage | None = None,
    ) -> asyncio.Task:
        """Select the storage backend and start loading the registry.

        Must be called from a running event loop. The returned task finishes
        once loading succeeded or failed; a failed load is logged and leaves
        the engine in LOADING.

        Raises:
            NotConfiguredError: If no storage backend is named
        """
        if storage is None:
            if not config.storage.backend:
                raise NotConfiguredError("Storage not provided in configuration")
            storage = create_storage(config.storage)

        self._config = config
        self._storage = storage
        self._registry = None
        self._load_task = asyncio.get_running_loop().create_task(self._load(storage))
        return self._load_task

    async def _load(self, storage: RegistryStorage) -> None:
        try:
            registry = await storage.get_registry()
        except Exception:
            logger.exception("Unable to load registry!")
            return

        # A later configure() call owns the engine now
        if storage is self._storage:
            self._registry = registry if registry is not None else {}
            logger.info("Registry loaded with %d package(s)", len(self._registry))

    def get_registry(self) -> dict | None:
        """Return the live registry, or None until it has loaded."""
        return self._registry

    def is_admin(self, user_id: str | None) -> bool:
        return bool(user_id) and self._config is not None and user_id in self._config.admins

    def _require_ready(self) -> dict:
        if self._config is None or self._storage is None:
            raise NotConfiguredError()
        if self._registry is None:
            raise RegistryNotLoadedError()
        return self._registry

    def _authorize(self, name: str, user_id: str) -> dict:
        registry = self._require_ready()
        entry = registry.get(name)
        if entry is None:
            raise UnknownExtensionError(name)
        if entry.get("owner") != user_id and not self.is_admin(user_id):
            raise NotAuthorizedError(name)
        return entry

    def _save(self) -> None:
        self._storage.save_registry(self._registry)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def _title_taken(self, name: str, title: object) -> bool:
        if not title or not isinstance(title, str):
            return False
        title = title.lower()
        for key, entry in (self._registry or {}).items():
            other = (entry.get("metadata") or {}).get("title")
            if key != name and isinstance(other, str) and other.lower() == title:
                return True
        return False

    def _check_title(self, name: str, title: object) -> None:
        if self._title_taken(name, title):
            raise ValidationFailedError(
                [ValidationErrorDetail(ValidationCode.DUPLICATE_TITLE, (title,))]
            )

    @asynccontextmanager
    async def _admission_lock(self, name: str) -> AsyncIterator[None]:
        slot = self._admission_locks.get(name)
        if slot is None:
            slot = self._admission_locks[name] = [asyncio.Lock(), 0]
        slot[1] += 1
        try:
            async with slot[0]:
                yield
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                del self._admission_locks[name]

    async def add_package(self, package_path: str | Path, user_id: str) -> dict:
        """Validate an uploaded package and add it as a new entry or version.

        The artifact is stored before the registry is touched; if storing it
        fails nothing in the registry changes.

        Raises:
            NotConfiguredError, RegistryNotLoadedError: Engine not ready
            ValidationFailedError: Invalid package or duplicate title
            NotAuthorizedError: The package belongs to someone else
            BadVersionError: Version is not greater than the latest one
            UnknownExtensionError: The package was deleted during the upload
        """
        self._require_ready()
        package_path = Path(package_path)

        result = await asyncio.to_thread(self._validator, package_path)
        if result.errors:
            raise ValidationFailedError(result.errors)
        if result.metadata is None:
            raise ValidationFailedError(
                [ValidationErrorDetail(ValidationCode.MISSING_PACKAGE_JSON, (str(package_path),))]
            )

        metadata = result.metadata
        name = metadata["name"]
        version = metadata["version"]

        # One admission per name at a time, so version checks never race
        async with self._admission_lock(name):
            registry = self._require_ready()

            title = metadata.get("title")
            self._check_title(name, title)

            record: dict = {"version": version, "published": _published_timestamp()}
            brackets = (metadata.get("engines") or {}).get("brackets")
            if brackets:
                record["brackets"] = brackets

            existing = registry.get(name)
            if existing is not None:
                if existing.get("owner") != user_id:
                    raise NotAuthorizedError(name)
                latest = existing["versions"][-1]["version"]
                if not is_newer(version, latest):
                    raise BadVersionError(name, version, latest)
                entry = copy.deepcopy(existing)
                entry["versions"].append(record)
                entry["metadata"] = metadata
            else:
                entry = {"metadata": metadata, "owner": user_id, "versions": [record]}

            await self._storage.save_package(entry, package_path)

            # The registry may have changed while the artifact uploaded:
            # other names may have claimed the title, and the entry may have
            # been deleted or handed to another owner
            self._check_title(name, title)
            live = registry.get(name)
            if existing is not None:
                if live is None:
                    raise UnknownExtensionError(name)
                if live.get("owner") != user_id:
                    raise NotAuthorizedError(name)
                # Extend the live entry so download counts applied meanwhile stay
                live["versions"].append(record)
                live["metadata"] = metadata
                entry = live
            else:
                registry[name] = entry

            self._save()
            logger.info("Added %s %s for %s", name, version, user_id)
            return entry

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def delete_package_metadata(self, name: str, user_id: str) -> None:
        """Remove a package from the registry. Its artifacts are kept."""
        self._authorize(name, user_id)
        del self._registry[name]
        self._save()
        logger.info("Deleted %s on behalf of %s", name, user_id)

    def change_package_owner(self, name: str, user_id: str, new_owner: str) -> None:
        entry = self._authorize(name, user_id)
        entry["owner"] = new_owner
        self._save()
        logger.info("Owner of %s changed to %s by %s", name, new_owner, user_id)

    def change_package_requirements(self, name: str, user_id: str, requirements: str) -> None:
        """Set the compatibility range on every version of a package."""
        entry = self._authorize(name, user_id)
        for record in entry["versions"]:
            record["brackets"] = requirements
        self._save()
        logger.info("Requirements of %s changed to %r by %s", name, requirements, user_id)

    # ------------------------------------------------------------------
    # Download statistics
    # ------------------------------------------------------------------

    def update_recent_downloads(self, name: str, recent: Mapping[str, int] | None) -> bool:
        """Merge recent daily download counts into an entry.

        Returns True if the entry changed. Does not persist.
        """
        registry = self._require_ready()
        entry = registry.get(name)
        if entry is None or not recent:
            return False

        current = entry.get("recent") or {}
        merged = merge_recent_downloads(current, recent)
        if merged == current:
            return False
        entry["recent"] = merged
        return True

    def add_download_data_to_package(
        self,
        name: str,
        version_deltas: Mapping[str, int] | None,
        recent_deltas: Mapping[str, int] | None,
    ) -> bool:
        """Add per-version download counts and merge recent counts.

        Unknown packages and versions are ignored. Returns True if anything
        changed, in which case the registry is persisted.
        """
        registry = self._require_ready()
        entry = registry.get(name)
        if entry is None:
            logger.debug("Ignoring download data for unknown package %s", name)
            return False

        logger.debug("Extension package with name %s found", name)
        updated = False
        for version, delta in (version_deltas or {}).items():
            for record in entry["versions"]:
                if record["version"] == version:
                    record["downloads"] = (record.get("downloads") or 0) + delta
                    updated = True

        if updated:
            entry["totalDownloads"] = sum(
                record.get("downloads") or 0 for record in entry["versions"]
            )

        recent_updated = self.update_recent_downloads(name, recent_deltas)

        if updated or recent_updated:
            self._save()
            return True
        return False

    def add_download_stats(self, stats: Mapping[str, Mapping]) -> int:
        """Apply a whole stats document, one call per package.

        Args:
            stats: ``{name: {"downloads": {"versions": {...}, "recent": {...}}}}``

        Returns:
            Number of packages that changed
        """
        changed = 0
        for name, data in stats.items():
            downloads = (data or {}).get("downloads") or {}
            if self.add_download_data_to_package(
                name, downloads.get("versions"), downloads.get("recent")
            ):
                changed += 1
        return changed
