"""
Serialization component - tolerant read, lossless write of block records.
"""

from .component import (
    DEFAULT_CONFIG,
    STYLE_KEYS,
    deserialize_block,
    deserialize_blocks,
    repair_dangling_references,
    run,
    serialize_block,
    serialize_blocks,
)
from .models import (
    DeserializationWarning,
    DeserializeInput,
    DeserializeOutput,
    RepairOutput,
    SerializationConfig,
    SerializeInput,
    SerializeOutput,
)

__all__ = [
    # Component
    "run",
    # Pure functions
    "deserialize_block",
    "deserialize_blocks",
    "serialize_block",
    "serialize_blocks",
    "repair_dangling_references",
    # Constants
    "DEFAULT_CONFIG",
    "STYLE_KEYS",
    # Models
    "DeserializationWarning",
    "DeserializeInput",
    "DeserializeOutput",
    "RepairOutput",
    "SerializationConfig",
    "SerializeInput",
    "SerializeOutput",
]
