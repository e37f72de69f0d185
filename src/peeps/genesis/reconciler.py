"""
Single-writer, many-reader agreement on a shared configuration file.

Several nodes are configured independently with what should be the same
genesis. The first one to get there writes the file; every later one reads it
back and checks it matches what it was configured with. Agreement is decided
on disk, not in memory, so it also holds across processes.

The write is atomic: the content goes to a temporary file in the same
directory, which is then hard-linked to the final name. Linking fails if the
name exists, and a reader can never see a partially written file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Literal, Protocol, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from peeps.types import AlreadyExistsError, ConfigDivergenceError

from .config import Genesis

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

Comparison = Literal["bytes", "structural"]


class ConfigCodec(Protocol[M]):
    """Converts a configuration model to and from its on-disk bytes."""

    def serialize(self, model: M) -> bytes:
        """Encode a model. Must be deterministic."""
        ...

    def deserialize(self, data: bytes) -> M:
        """Decode bytes produced by `serialize`."""
        ...


@dataclass(frozen=True, slots=True)
class JsonCodec(Generic[M]):
    """
    Canonical JSON: camel case aliases, no null fields, sorted keys.

    Sorting makes the bytes independent of field declaration order, so two
    equal models always serialize identically.
    """

    model_type: type[M]

    def serialize(self, model: M) -> bytes:
        data = model.model_dump(mode="json", by_alias=True, exclude_none=True)
        return (json.dumps(data, indent=2, sort_keys=True) + "\n").encode("utf-8")

    def deserialize(self, data: bytes) -> M:
        return self.model_type.model_validate_json(data)


@dataclass(frozen=True, slots=True)
class YamlCodec(Generic[M]):
    """Canonical YAML, for clients that read their configuration as YAML."""

    model_type: type[M]

    def serialize(self, model: M) -> bytes:
        data = model.model_dump(mode="json", by_alias=True, exclude_none=True)
        return yaml.safe_dump(data, sort_keys=True).encode("utf-8")

    def deserialize(self, data: bytes) -> M:
        return self.model_type.model_validate(yaml.safe_load(data))


def create_atomic(path: Path, data: bytes) -> None:
    """
    Create `path` holding `data`, failing if it already exists.

    Raises:
        AlreadyExistsError: If `path` exists, including when another writer
            created it concurrently.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        try:
            os.link(tmp_name, path)
        except FileExistsError:
            raise AlreadyExistsError(path) from None
    finally:
        os.unlink(tmp_name)


@dataclass(frozen=True, slots=True)
class ConfigReconciler(Generic[M]):
    """
    Ensures one shared configuration artifact per path.

    With `bytes` comparison an existing file must match the candidate's
    serialization exactly. With `structural` comparison it is decoded and
    compared as a model, which tolerates formatting differences from files
    written by other tools.
    """

    codec: ConfigCodec[M]
    """Serializer for the artifact."""

    comparison: Comparison = "bytes"
    """How an existing artifact is compared to the candidate."""

    def ensure(self, path: Path | str, candidate: M) -> Path:
        """
        Write `candidate` to `path` unless it exists, otherwise verify it matches.

        Safe to call concurrently: exactly one caller writes, the others compare.

        Returns:
            The artifact path.

        Raises:
            ConfigDivergenceError: If the existing artifact differs from `candidate`.
            OSError: If the file system refuses the read or write.
        """
        path = Path(path)
        encoded = self.codec.serialize(candidate)

        if not path.exists():
            try:
                create_atomic(path, encoded)
            except AlreadyExistsError:
                logger.debug("%s was created concurrently, verifying instead", path)
            else:
                logger.info(
                    "Created shared configuration\n\tLocation: %s\n\tContents: %s",
                    path,
                    encoded.decode("utf-8"),
                )
                return path

        self._verify(path, candidate, encoded)
        return path

    def _verify(self, path: Path, candidate: M, encoded: bytes) -> None:
        existing = path.read_bytes()

        if existing == encoded:
            logger.debug("%s matches the candidate", path)
            return

        if self.comparison == "structural":
            try:
                if self.codec.deserialize(existing) == candidate:
                    logger.debug("%s structurally matches the candidate", path)
                    return
            except (ValidationError, ValueError, yaml.YAMLError) as e:
                logger.error("Existing configuration %s cannot be decoded: %s", path, e)

        raise ConfigDivergenceError(
            path,
            existing.decode("utf-8", errors="replace"),
            encoded.decode("utf-8"),
        )


@dataclass(frozen=True, slots=True)
class GenesisFile:
    """The genesis file shared by every node of one chain."""

    path: Path
    """Location on the file system."""

    def ensure_exists(self, genesis: Genesis) -> Path:
        """Create the file from `genesis`, or verify the existing one matches it."""
        reconciler: ConfigReconciler[Genesis] = ConfigReconciler(JsonCodec(Genesis))
        return reconciler.ensure(self.path, genesis)
