# src/storage/models.py — v1
"""Storage domain models: FileRef, ResultEntry."""

from __future__ import annotations

import posixpath

from pydantic import BaseModel, ConfigDict, Field


class FileRef(BaseModel):
    """Reference to a stored file with the stat data dedup relies on."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: int
    mtime_ms: int

    @property
    def name(self) -> str:
        return posixpath.basename(self.path.replace("\\", "/"))

    @property
    def stem(self) -> str:
        name = self.name
        return name.rsplit(".", 1)[0] if "." in name else name

    @property
    def extension(self) -> str:
        """Lower-case extension without the dot ("" when absent)."""
        name = self.name
        return name.rsplit(".", 1)[1].lower() if "." in name else ""


class ResultEntry(BaseModel):
    """Persisted record of one processed screenshot.

    The camelCase aliases are the stable on-disk keys of the metadata JSON
    file and of the userData section of the blob.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    original_filename: str = Field(alias="originalFilename")
    screenshot_filename: str = Field(alias="screenshotFilename")
    screenshot_storage_path: str = Field(alias="screenshotStoragePath")
    note_path: str = Field(alias="notePath")
    note_title: str = Field(alias="noteTitle")
    ocr_text: str = Field(default="", alias="ocrText")
    vision_llm_response: str = Field(default="", alias="visionLLMResponse")
    generated_notes: str | None = Field(default=None, alias="generatedNotes")
    title: str
    extracted_tags: list[str] = Field(default_factory=list, alias="extractedTags")
    formatted_tags: str = Field(default="", alias="formattedTags")
    timestamp: str
    metadata_filename: str = Field(alias="metadataFilename")
    metadata_path: str = Field(alias="metadataPath")
    unique_name: str = Field(alias="uniqueName")
    unique_tag: str = Field(default="", alias="uniqueTag")
    hash: str
    size: int
    mtime: int

    def to_json_dict(self) -> dict:
        """On-disk representation (camelCase keys)."""
        return self.model_dump(by_alias=True, exclude_none=True)
