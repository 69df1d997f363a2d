from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_PREFIX_RE = re.compile(r"^[A-Z][A-Z0-9]{1,9}$")


@dataclass(frozen=True)
class WorkflowSettings:
    """Store settings loaded from environment with fail-fast validation."""

    lead_prefix: str = "LEAD"
    quote_prefix: str = "TBD"
    default_actor: str = "System"
    designer_actor: str = "Designer"
    schema_version: str = "2.0.0"
    sequence_width: int = 4

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "WorkflowSettings":
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        return cls(
            lead_prefix=os.getenv("PALLET_LEAD_PREFIX", "LEAD"),
            quote_prefix=os.getenv("PALLET_QUOTE_PREFIX", "TBD"),
            default_actor=os.getenv("PALLET_DEFAULT_ACTOR", "System"),
            designer_actor=os.getenv("PALLET_DESIGNER_ACTOR", "Designer"),
            schema_version=os.getenv("PALLET_SCHEMA_VERSION", "2.0.0"),
            sequence_width=_get_env_int("PALLET_SEQUENCE_WIDTH", default=4, minimum=3, maximum=8),
        ).normalized()

    def normalized(self) -> "WorkflowSettings":
        """Validate and normalize all fields. Raises ValueError on invalid configuration."""
        lead_prefix = self.lead_prefix.strip().upper()
        quote_prefix = self.quote_prefix.strip().upper()
        for name, value in (("PALLET_LEAD_PREFIX", lead_prefix), ("PALLET_QUOTE_PREFIX", quote_prefix)):
            if not _PREFIX_RE.match(value):
                raise ValueError(f"{name} must be 2-10 uppercase letters/digits starting with a letter, got: {value!r}")
        if lead_prefix == quote_prefix:
            raise ValueError("PALLET_LEAD_PREFIX and PALLET_QUOTE_PREFIX must differ")

        default_actor = self.default_actor.strip()
        if not default_actor:
            raise ValueError("PALLET_DEFAULT_ACTOR must be non-empty")
        designer_actor = self.designer_actor.strip()
        if not designer_actor:
            raise ValueError("PALLET_DESIGNER_ACTOR must be non-empty")

        schema_version = self.schema_version.strip()
        if not re.fullmatch(r"\d+\.\d+\.\d+", schema_version):
            raise ValueError(f"PALLET_SCHEMA_VERSION must look like MAJOR.MINOR.PATCH, got: {schema_version!r}")

        if not 3 <= self.sequence_width <= 8:
            raise ValueError(f"PALLET_SEQUENCE_WIDTH must be between 3 and 8, got: {self.sequence_width}")

        return WorkflowSettings(
            lead_prefix=lead_prefix,
            quote_prefix=quote_prefix,
            default_actor=default_actor,
            designer_actor=designer_actor,
            schema_version=schema_version,
            sequence_width=self.sequence_width,
        )


def _get_env_int(name: str, default: int, minimum: int, maximum: int = 10_000_000) -> int:
    """Read a bounded integer from the environment, or ``default`` when unset."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from exc
    if parsed < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got: {parsed}")
    if parsed > maximum:
        raise ValueError(f"{name} must be <= {maximum}, got: {parsed}")
    return parsed
