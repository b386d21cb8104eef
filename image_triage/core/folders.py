"""Validated folder configuration consumed by the categorization engine."""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Iterable, Union, Tuple, List

from .models import CategoryFolder
from .exceptions import ConfigurationError, UnknownCategoryError


logger = logging.getLogger(__name__)

CategoryInput = Union[Mapping[str, Union[str, Path]], Iterable[Union[CategoryFolder, str, Path]]]


def _is_within(path: Path, other: Path) -> bool:
    """Return True if path equals other or lives below it."""
    try:
        path.relative_to(other)
        return True
    except ValueError:
        return False


def _normalize_categories(categories: CategoryInput) -> List[CategoryFolder]:
    if isinstance(categories, Mapping):
        return [
            CategoryFolder(label=str(label), directory=Path(path).expanduser().resolve())
            for label, path in categories.items()
        ]

    folders = []
    for item in categories:
        if isinstance(item, CategoryFolder):
            folders.append(CategoryFolder(item.label, Path(item.directory).expanduser().resolve()))
        else:
            folders.append(CategoryFolder.from_path(Path(item)))
    return folders


def _require_directory(path: Path, role: str) -> None:
    if not path.exists():
        raise ConfigurationError(f"{role} folder does not exist: {path}")
    if not path.is_dir():
        raise ConfigurationError(f"{role} folder is not a directory: {path}")


@dataclass(frozen=True)
class FolderSet:
    """Input, trash and category folders for one triage session. Read-only."""
    input_dir: Path
    trash_dir: Path
    categories: Mapping[str, CategoryFolder]

    @classmethod
    def validate(
        cls,
        input_dir: Union[str, Path],
        trash_dir: Union[str, Path],
        categories: CategoryInput,
        create_missing: bool = False,
    ) -> "FolderSet":
        """
        Validate a folder configuration and build a FolderSet.

        Args:
            input_dir: Folder holding the images to triage
            trash_dir: Reversible holding folder for discarded images
            categories: Either a label -> path mapping or an iterable of
                        CategoryFolder / paths (labels taken from folder names)
            create_missing: Create the trash and category folders if absent

        Raises:
            ConfigurationError: If the folder set is invalid
        """
        input_path = Path(input_dir).expanduser().resolve()
        trash_path = Path(trash_dir).expanduser().resolve()
        folders = _normalize_categories(categories)

        if create_missing:
            for directory in [trash_path] + [f.directory for f in folders]:
                if not directory.exists():
                    try:
                        directory.mkdir(parents=True)
                    except OSError as e:
                        raise ConfigurationError(f"Cannot create folder {directory}: {e}") from e
                    logger.info(f"Created missing folder {directory}")

        _require_directory(input_path, "Input")
        _require_directory(trash_path, "Trash")

        if input_path == trash_path:
            raise ConfigurationError("Input and trash folders must differ")

        labels = {}
        for folder in folders:
            if not folder.label or not folder.label.strip():
                raise ConfigurationError(f"Category folder {folder.directory} has an empty label")
            if folder.label in labels:
                raise ConfigurationError(f"Duplicate category label: {folder.label}")
            _require_directory(folder.directory, f"Category '{folder.label}'")
            labels[folder.label] = folder

        for i, first in enumerate(folders):
            if first.directory == input_path:
                raise ConfigurationError(f"Category '{first.label}' points at the input folder")
            if _is_within(first.directory, trash_path) or _is_within(trash_path, first.directory):
                raise ConfigurationError(
                    f"Category '{first.label}' and the trash folder overlap: {first.directory}"
                )
            for second in folders[i + 1:]:
                if first.directory == second.directory:
                    raise ConfigurationError(
                        f"Categories '{first.label}' and '{second.label}' share {first.directory}"
                    )
                if _is_within(first.directory, second.directory) or _is_within(second.directory, first.directory):
                    raise ConfigurationError(
                        f"Categories '{first.label}' and '{second.label}' are nested"
                    )

        logger.debug(f"Validated folder set: input={input_path}, trash={trash_path}, "
                     f"categories={list(labels)}")
        return cls(input_dir=input_path, trash_dir=trash_path, categories=MappingProxyType(labels))

    @property
    def labels(self) -> Tuple[str, ...]:
        """Category labels in configuration order."""
        return tuple(self.categories)

    def category(self, label: str) -> CategoryFolder:
        """
        Look up a category by label.

        Raises:
            UnknownCategoryError: If no category carries this label
        """
        try:
            return self.categories[label]
        except KeyError:
            raise UnknownCategoryError(label) from None
