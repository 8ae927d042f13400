"""
Save/download collaborators

The pipeline hands finished artifacts to a sink and never decides where
they end up.
"""

from pathlib import Path
from typing import Dict, Protocol

from models.document import ExportArtifact


class ArtifactSink(Protocol):
    def save(self, artifact: ExportArtifact) -> str:
        """Store the artifact; return where it went"""
        ...


class DirectorySink:
    """Writes artifacts into a directory under their suggested filename"""

    def __init__(self, directory: str = "exports"):
        self.directory = Path(directory)

    def save(self, artifact: ExportArtifact) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / artifact.filename

        # Write to a temp name first so a reader never sees half a PDF
        partial = target.with_suffix(target.suffix + ".part")
        partial.write_bytes(artifact.content)
        partial.replace(target)
        return str(target)


class MemorySink:
    """Keeps artifacts in memory, keyed by filename"""

    def __init__(self):
        self.artifacts: Dict[str, ExportArtifact] = {}

    def save(self, artifact: ExportArtifact) -> str:
        self.artifacts[artifact.filename] = artifact
        return f"memory://{artifact.filename}"
