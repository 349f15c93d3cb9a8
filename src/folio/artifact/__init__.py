"""Artifact persistence."""

from folio.artifact.manifest import InputFingerprint, Manifest, build_manifest
from folio.artifact.store import load_artifact, save_artifact

__all__ = ["InputFingerprint", "Manifest", "build_manifest", "load_artifact", "save_artifact"]
