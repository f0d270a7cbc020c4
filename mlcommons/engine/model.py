"""Model and input containers shared by local and remote paths."""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mlcommons.dataframe import DataFrame


@dataclass(frozen=True)
class Model:
    """Trained or externally produced model.

    ``content`` is opaque to callers: learned state for local algorithms, the
    raw document for external formats such as PMML.
    """
    name: str
    version: int
    algorithm: str
    content: bytes
    format: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Persisted document form; content is base64 encoded."""
        return {
            "name": self.name,
            "version": self.version,
            "algorithm": self.algorithm,
            "format": self.format,
            "content": base64.b64encode(self.content).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Model":
        return cls(
            name=data["name"],
            version=int(data.get("version", 1)),
            algorithm=data["algorithm"],
            format=data.get("format"),
            content=base64.b64decode(data["content"]),
        )


@dataclass
class MLInput:
    """Input of a remote prediction.

    Parameters
    - algorithm: Caller-facing algorithm label (``remote`` for connectors)
    - parameters: Runtime parameters substituted into connector templates
    - text_docs: Optional documents turned into parameters by a pre-process function
    - data_frame: Optional tabular input carried along for processors
    """
    algorithm: str = "remote"
    parameters: Dict[str, Any] = field(default_factory=dict)
    text_docs: Optional[List[str]] = None
    data_frame: Optional[DataFrame] = None
