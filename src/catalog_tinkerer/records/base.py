"""Data models for decoded image records.
"""

from pydantic import BaseModel, ConfigDict, Field


class ImageRecord(BaseModel):
    """One decoded visual asset. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display and search key, not guaranteed unique")
    filename: str = Field(description="Suggested filename, unique within one export batch")
    pixel_data: bytes = Field(repr=False, description="Already-encoded image bytes (e.g. PNG)")
    index: int = Field(default=-1, description="Position assigned by the store on insertion")

    @property
    def size(self) -> int:
        """Return the encoded size in bytes."""
        return len(self.pixel_data)
