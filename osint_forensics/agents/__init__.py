"""
Built-in Stage Runners Package.

Contains the StageRunner base class and the five placeholder runners:
- Alias Mapping
- Metadata Extraction
- Image & Face Analysis
- Geo/IP Lookup
- Deepfake Detection
"""

from agents.base_runner import StageRunner
from agents.alias_mapping import AliasMappingRunner
from agents.metadata_extraction import MetadataExtractionRunner
from agents.image_face_analysis import ImageFaceAnalysisRunner
from agents.geo_ip_lookup import GeoIpLookupRunner
from agents.deepfake_detection import DeepfakeDetectionRunner

BUILTIN_RUNNERS: list[type[StageRunner]] = [
    AliasMappingRunner,
    MetadataExtractionRunner,
    ImageFaceAnalysisRunner,
    GeoIpLookupRunner,
    DeepfakeDetectionRunner,
]

__all__ = [
    "StageRunner",
    "AliasMappingRunner",
    "MetadataExtractionRunner",
    "ImageFaceAnalysisRunner",
    "GeoIpLookupRunner",
    "DeepfakeDetectionRunner",
    "BUILTIN_RUNNERS",
]
