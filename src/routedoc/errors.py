from __future__ import annotations

from pathlib import Path


class RoutedocError(Exception):
    """Base class for errors that abort an extraction run."""


class SourceParseError(RoutedocError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse source file {path}: {reason}")


class NoSourceFilesError(RoutedocError):
    def __init__(self, directory: Path):
        self.directory = directory
        super().__init__(f"No controller files found in {directory}")


class InvalidTargetError(RoutedocError):
    def __init__(self, target: Path, reason: str):
        self.target = target
        super().__init__(f"Invalid target {target}: {reason}")


class InvalidDocumentError(RoutedocError):
    def __init__(self, source: Path | str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid OpenAPI document {source}: {reason}")
