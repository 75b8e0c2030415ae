"""Migration discovery.

Scans a directory for ``<version>_<label>.sql`` files and returns them as
:class:`MigrationDescriptor` objects sorted by version. Discovery lists,
filters, then sorts; nothing observable depends on the order the
filesystem reports entries in.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from cashflow.core.errors import (
    DuplicateMigrationError,
    ErrorContext,
    MigrationDirectoryError,
    MigrationFileError,
)
from cashflow.core.logging import get_logger

logger = get_logger(__name__)

MIGRATION_SUFFIX = ".sql"
VERSION_SEPARATOR = "_"


@dataclass(frozen=True)
class MigrationDescriptor:
    """Parsed identity of one migration file.

    The SQL body is not held in memory; :meth:`read_sql` loads it when the
    applier is about to execute it.
    """

    version: int
    label: str
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    def read_sql(self) -> str:
        """Return the file's full content.

        Raises:
            MigrationFileError: The file can no longer be read.
        """
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MigrationFileError(
                f"Failed to read migration file {self.path}: {e}",
                context=ErrorContext(version=self.version, filename=self.filename, path=str(self.path)),
                cause=e,
            ) from e


def parse_migration_filename(name: str) -> tuple[int, str] | None:
    """Split ``001_create_users.sql`` into ``(1, "create_users")``.

    Returns ``None`` when the name has no separator or the part before
    the first separator is not a plain decimal number.
    """
    stem = name[: -len(MIGRATION_SUFFIX)] if name.endswith(MIGRATION_SUFFIX) else name
    prefix, sep, label = stem.partition(VERSION_SEPARATOR)
    if not sep:
        return None
    # str.isdigit() accepts superscripts and other non-ASCII digits
    if not prefix or not prefix.isascii() or not prefix.isdigit():
        return None
    return int(prefix), label


def discover_migrations(directory: Path | str) -> list[MigrationDescriptor]:
    """Return the migrations in *directory*, ascending by version.

    Sub-directories and files without the ``.sql`` suffix are ignored.
    Files whose name lacks a valid decimal version prefix are skipped with
    a warning.

    Raises:
        MigrationDirectoryError: *directory* is missing, not a directory,
            or cannot be listed.
        DuplicateMigrationError: Two files share a version.
    """
    root = Path(directory)
    try:
        entries = list(root.iterdir())
    except OSError as e:
        raise MigrationDirectoryError(
            f"Failed to read migrations dir {root}: {e}",
            context=ErrorContext(path=str(root)),
            cause=e,
        ) from e

    by_version: dict[int, MigrationDescriptor] = {}
    for entry in entries:
        if not entry.name.endswith(MIGRATION_SUFFIX) or entry.is_dir():
            continue

        parsed = parse_migration_filename(entry.name)
        if parsed is None:
            logger.warning("migration.skipped", filename=entry.name, reason="invalid version prefix")
            continue

        version, label = parsed
        if version in by_version:
            raise DuplicateMigrationError(
                version, sorted([by_version[version].filename, entry.name])
            )
        by_version[version] = MigrationDescriptor(version=version, label=label, path=entry)

    migrations = sorted(by_version.values(), key=lambda m: m.version)
    logger.debug("migration.discovered", directory=str(root), count=len(migrations))
    return migrations
