"""Model artifact export: layers-model bundles, metadata and manifests."""

from medtrain.export.layers_format import LayersModelArtifacts, WeightSpec, encode_layers_model
from medtrain.export.metadata import SurveyModelMetadata, TriageModelMetadata, write_metadata
from medtrain.export.model_package import (
    ArtifactExportError,
    ArtifactWriter,
    ManualArtifactWriter,
    ModelPackagePaths,
    NativeArtifactWriter,
    file_save_handler,
    save_model_package,
    select_artifact_writer,
)
from medtrain.export.verification import PackageVerificationResult, verify_model_package

__all__ = [
    "ArtifactExportError",
    "ArtifactWriter",
    "LayersModelArtifacts",
    "ManualArtifactWriter",
    "ModelPackagePaths",
    "NativeArtifactWriter",
    "PackageVerificationResult",
    "SurveyModelMetadata",
    "TriageModelMetadata",
    "WeightSpec",
    "encode_layers_model",
    "file_save_handler",
    "save_model_package",
    "select_artifact_writer",
    "verify_model_package",
    "write_metadata",
]
