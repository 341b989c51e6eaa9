"""Helpers for inspecting ClusterServiceVersion manifests given as mappings."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

INFRASTRUCTURE_FEATURES_ANNOTATION = "operators.openshift.io/infrastructure-features"
DISCONNECTED_ANNOTATION = "features.operators.openshift.io/disconnected"
FIPS_COMPLIANT_ANNOTATION = "features.operators.openshift.io/fips-compliant"
PROXY_AWARE_ANNOTATION = "features.operators.openshift.io/proxy-aware"
TLS_PROFILES_ANNOTATION = "features.operators.openshift.io/tls-profiles"
TOKEN_AUTH_AWS_ANNOTATION = "features.operators.openshift.io/token-auth-aws"
TOKEN_AUTH_AZURE_ANNOTATION = "features.operators.openshift.io/token-auth-azure"
TOKEN_AUTH_GCP_ANNOTATION = "features.operators.openshift.io/token-auth-gcp"
CNF_ANNOTATION = "features.operators.openshift.io/cnf"
CNI_ANNOTATION = "features.operators.openshift.io/cni"
CSI_ANNOTATION = "features.operators.openshift.io/csi"

_RELATED_IMAGE_PREFIX = "RELATED_IMAGE_"


def supports_disconnected_via_infrastructure_features(infrastructure_features: str) -> bool:
    """Return True if the JSON list of features names "disconnected" (case-insensitive).

    Anything that is not a JSON list of strings yields False.
    """
    try:
        features = json.loads(infrastructure_features)
    except (ValueError, TypeError):
        return False
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        return False
    return any(feature.lower() == "disconnected" for feature in features)


def supports_disconnected(annotation_value: str) -> bool:
    """Return True only for the exact value "true"."""
    return annotation_value == "true"


def _annotations(csv: Mapping[str, Any]) -> Mapping[str, Any]:
    return (csv.get("metadata") or {}).get("annotations") or {}


def has_infrastructure_features_annotation(csv: Mapping[str, Any]) -> bool:
    """Return True if the legacy infrastructure-features annotation is present."""
    return INFRASTRUCTURE_FEATURES_ANNOTATION in _annotations(csv)


def has_disconnected_annotation(csv: Mapping[str, Any]) -> bool:
    """Return True if the disconnected annotation is present, whatever its value."""
    return DISCONNECTED_ANNOTATION in _annotations(csv)


def has_related_images(csv: Mapping[str, Any]) -> bool:
    """Return True if .spec.relatedImages is non-empty."""
    return len((csv.get("spec") or {}).get("relatedImages") or []) > 0


def image_has_digest(reference: str) -> bool:
    """Return True if the image reference is pinned by digest."""
    _, sep, digest = reference.partition("@")
    return bool(sep) and bool(digest)


def related_images_are_pinned(related_images: Iterable[Mapping[str, Any]]) -> bool:
    """Return True if there is at least one related image and all are digest references."""
    images = list(related_images)
    if not images:
        return False
    return all(image_has_digest(ri.get("image", "")) for ri in images)


def _env_references(containers: Iterable[Mapping[str, Any]]) -> list[str]:
    return [
        env.get("name", "")
        for container in containers
        for env in container.get("env") or []
        if env.get("name", "").startswith(_RELATED_IMAGE_PREFIX)
    ]


def related_image_references_in_environment(*args: Mapping[str, Any]) -> list[str]:
    """Return the RELATED_IMAGE_ environment variable names in the given deployment specs."""
    values: list[str] = []
    for deployment in args:
        pod_spec = ((deployment.get("template") or {}).get("spec")) or {}
        values.extend(_env_references(pod_spec.get("containers") or []))
        values.extend(_env_references(pod_spec.get("initContainers") or []))
    return values