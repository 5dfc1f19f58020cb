"""
Configuration for sandboxed storage access.
"""

import codecs

from pydantic import BaseModel, Field, field_validator

from cloudpage.filesystem.listing import parse_sort


class StorageConfig(BaseModel):
    """
    Configuration for per-user storage operations.

    Controls listing defaults, paging limits, mime probing and the text
    encoding used when reading file content.
    """

    model_config = {"extra": "forbid"}

    probe_mime_types: bool = Field(
        default=True,
        description="Detect mime types for listed files (best effort)",
    )

    default_page_size: int = Field(
        default=20,
        ge=1,
        description="Page size used when the caller does not supply one",
    )

    max_page_size: int = Field(
        default=1000,
        ge=1,
        description="Largest page size a listing may request",
    )

    default_sort: str = Field(
        default="name,asc",
        description="Sort token used when the caller does not supply one",
    )

    text_encoding: str = Field(
        default="utf-8",
        description="Encoding used when reading file content as text",
    )

    @field_validator("default_sort")
    @classmethod
    def normalize_sort(cls, v: str) -> str:
        """Rewrite the sort token in canonical "<field>,<direction>" form."""
        key, descending = parse_sort(v)
        return f"{key.value},{'desc' if descending else 'asc'}"

    @field_validator("text_encoding")
    @classmethod
    def check_encoding(cls, v: str) -> str:
        """Reject encodings Python does not know."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown text encoding: {v}")
        return v

    def model_post_init(self, __context) -> None:
        """Validate page size bounds against each other."""
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) exceeds "
                f"max_page_size ({self.max_page_size})"
            )

    def __repr__(self) -> str:
        return (
            f"StorageConfig("
            f"probe_mime_types={self.probe_mime_types}, "
            f"default_page_size={self.default_page_size}, "
            f"max_page_size={self.max_page_size})"
        )
