"""Configuration models describing StudyShelf settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SortOrderName = Literal[
    "name_ascending",
    "name_descending",
    "date_created_newest",
    "date_created_oldest",
    "date_modified_newest",
    "date_modified_oldest",
]


class ShelfBaseModel(BaseModel):
    """Shared configuration for StudyShelf Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StorageSettings(ShelfBaseModel):
    """Where library metadata and document payloads live on disk.

    Attributes:
        data_dir: Directory holding the metadata records and the blob directory.
        blob_dirname: Name of the blob directory inside ``data_dir``.
    """

    data_dir: str = "~/.studyshelf/library"
    blob_dirname: str = "blobs"


class LibrarySettings(ShelfBaseModel):
    """Behavior of the virtual file system.

    Attributes:
        default_sort: Sort order applied to folder listings on startup.
        recent_limit: Number of recently opened documents to remember.
        seed_default_folder: Whether an empty library gets a starter folder.
        default_folder_name: Name of the starter folder.
        cascade_deletes: Whether deleting a folder also deletes its descendants.
        persist_recents: Whether the recent documents list survives restarts.
    """

    default_sort: SortOrderName = "name_ascending"
    recent_limit: int = Field(default=5, ge=1)
    seed_default_folder: bool = True
    default_folder_name: str = "Documents"
    cascade_deletes: bool = False
    persist_recents: bool = False


class ProgressSettings(ShelfBaseModel):
    """Study progress bookkeeping.

    Attributes:
        initial_progress: Progress assigned to a document on its first session.
        minutes_per_progress_unit: Minutes of study that add a full 1.0 of progress.
    """

    initial_progress: float = Field(default=0.1, ge=0.0, le=1.0)
    minutes_per_progress_unit: float = Field(default=100.0, gt=0.0)


class LoggingSettings(ShelfBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
        file_name: Log file name inside the data directory.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5
    file_name: str = "studyshelf.log"


class CLIOptions(ShelfBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        progress_limit: Default number of entries shown by ``studyshelf progress``.
    """

    quiet_default: bool = False
    progress_limit: int = 5


class ShelfConfig(ShelfBaseModel):
    """Top-level configuration struct for StudyShelf.

    Attributes:
        storage: Storage locations.
        library: Virtual file system behavior.
        progress: Study progress settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    storage: StorageSettings = Field(default_factory=StorageSettings)
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    progress: ProgressSettings = Field(default_factory=ProgressSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ShelfBaseModel",
    "SortOrderName",
    "StorageSettings",
    "LibrarySettings",
    "ProgressSettings",
    "LoggingSettings",
    "CLIOptions",
    "ShelfConfig",
]
