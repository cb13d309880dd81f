"""
Infraction dataset sources.

Datasets are produced at build or deploy time. Reading them is plain file
I/O and always happens before the coin validator takes its lock.
"""

from __future__ import annotations

import importlib.resources as importlib_resources
import logging
from pathlib import Path
from typing import List, Union

from coinguard.core.exceptions import FatalConfigurationError, InfractionFormatError

logger = logging.getLogger(__name__)

PACKAGED_DATA = "coinguard.data"


def split_dataset(text: str) -> List[str]:
    """Split dataset text into lines, dropping line endings and blank lines."""
    return [line for line in text.splitlines() if line]


def read_infraction_lines(path: Union[str, Path]) -> List[str]:
    """
    Read an infraction dataset file.

    Args:
        path: Path to a UTF-8 dataset file

    Returns:
        Dataset lines in file order

    Raises:
        OSError: If the file cannot be read
        InfractionFormatError: If the file is not valid UTF-8
    """
    dataset_path = Path(path)
    try:
        text = dataset_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        logger.critical(
            "Dataset %s is not valid UTF-8",
            dataset_path,
            extra={"event": "dataset.undecodable", "path": str(dataset_path), "offset": exc.start},
        )
        raise InfractionFormatError(
            f"Dataset is not valid UTF-8 at byte {exc.start}",
            details={"reason": "invalid encoding", "path": str(dataset_path), "offset": exc.start},
        ) from exc
    lines = split_dataset(text)
    logger.debug(
        "Read %d dataset lines from %s",
        len(lines),
        dataset_path,
        extra={"event": "dataset.read", "path": str(dataset_path), "lines": len(lines)},
    )
    return lines


def read_packaged_lines(name: str) -> List[str]:
    """Read a dataset shipped inside the coinguard.data package."""
    resource = importlib_resources.files(PACKAGED_DATA).joinpath(name)
    if not resource.is_file():
        logger.critical(
            "Packaged dataset %s not found",
            name,
            extra={"event": "dataset.packaged_missing", "dataset": name},
        )
        raise FatalConfigurationError(
            f"Packaged infraction dataset {name} is missing", details={"dataset": name}
        )
    return split_dataset(resource.read_text(encoding="utf-8"))
