"""Upload payload validation.

Rules are checked before anything touches storage:
- payload must be non-empty
- payload must not exceed the configured ceiling
- when a magic-header rule applies, the payload must start with it

A magic rule applies when the declared MIME type matches it, or when the
file name's extension maps to that MIME type (a mislabelled *.pdf is still
checked as a PDF).
"""

from __future__ import annotations

import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dealdocs.config import DEFAULT_MAGIC_HEADERS, DEFAULT_MAX_UPLOAD_BYTES
from dealdocs.errors import ValidationError

if TYPE_CHECKING:
    from dealdocs.config import EngineConfig


@dataclass(frozen=True)
class PayloadRules:
    """Per-deployment payload constraints.

    Attributes:
        max_bytes: Maximum accepted payload size.
        magic_headers: Required leading bytes per MIME type.
    """

    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    magic_headers: Mapping[str, bytes] = field(
        default_factory=lambda: dict(DEFAULT_MAGIC_HEADERS)
    )

    @classmethod
    def from_config(cls, config: EngineConfig) -> PayloadRules:
        return cls(max_bytes=config.max_upload_bytes, magic_headers=dict(config.magic_headers))

    def validate(self, file_name: str, file_type: str, data: bytes) -> None:
        """Check a payload against the rules.

        Args:
            file_name: Display name (used for extension-based rules).
            file_type: Declared MIME type.
            data: Payload bytes.

        Raises:
            ValidationError: On empty, oversized or malformed payloads, or a
                blank file name.
        """
        if not file_name or not file_name.strip():
            raise ValidationError("File name is required")
        if not data:
            raise ValidationError("Uploaded file is empty", details={"file_name": file_name})
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"File size exceeds maximum of {self.max_bytes} bytes",
                details={"file_name": file_name, "size": len(data), "max_bytes": self.max_bytes},
            )

        for media_type in self._applicable_types(file_name, file_type):
            header = self.magic_headers[media_type]
            if not data.startswith(header):
                raise ValidationError(
                    f"Invalid {media_type} file - content does not match the declared type",
                    details={"file_name": file_name, "media_type": media_type},
                )

    def _applicable_types(self, file_name: str, file_type: str) -> list[str]:
        declared = (file_type or "").split(";", 1)[0].strip().lower()
        guessed, _ = mimetypes.guess_type(file_name)
        types: list[str] = []
        for media_type in (declared, guessed):
            if media_type and media_type in self.magic_headers and media_type not in types:
                types.append(media_type)
        return types
