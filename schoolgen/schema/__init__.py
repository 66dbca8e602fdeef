"""Schema package exports."""

from .images import IMAGE_SPECS, ImageSpec, ImageType, image_spec, is_placeholder, placeholder_url
from .normalize import normalize_artifact, normalize_artifact_payload
from .school import GenerationRequest, SchoolArtifact

__all__ = ["IMAGE_SPECS", "ImageSpec", "ImageType", "image_spec", "is_placeholder", "placeholder_url", "normalize_artifact", "normalize_artifact_payload", "GenerationRequest", "SchoolArtifact"]
