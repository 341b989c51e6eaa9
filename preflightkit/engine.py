"""Running checks against an image and describing the checks in each policy."""

from __future__ import annotations

import logging
import re
import time
from datetime import timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Union

from preflightkit.results import Check, ImageReference, Level, Result, Results

logger = logging.getLogger(__name__)


class UnknownPolicyError(ValueError):
    """Raised when a policy name is not one of the known policies."""


class Policy(str, Enum):
    """The sets of checks that can be run against an asset."""

    OPERATOR = "operator"
    CONTAINER = "container"
    ROOT = "root"
    SCRATCH_NON_ROOT = "scratch-nonroot"
    SCRATCH_ROOT = "scratch-root"
    KONFLUX = "konflux"

    @classmethod
    def _missing_(cls, value: object) -> "Policy":
        raise UnknownPolicyError(f"provided policy {value} is unknown")


_POLICY_CHECKS: dict[Policy, tuple[str, ...]] = {
    Policy.OPERATOR: (
        "ScorecardBasicSpecCheck",
        "ScorecardOlmSuiteCheck",
        "DeployableByOLM",
        "ValidateOperatorBundle",
        "BundleImageRefsAreCertified",
        "SecurityContextConstraintsInCSV",
        "AllImageRefsInRelatedImages",
        "FollowsRestrictedNetworkEnablementGuidelines",
        "RequiredAnnotations",
    ),
    Policy.CONTAINER: (
        "HasLicense",
        "HasUniqueTag",
        "LayerCountAcceptable",
        "HasNoProhibitedPackages",
        "HasRequiredLabel",
        "HasNoProhibitedLabels",
        "RunAsNonRoot",
        "HasModifiedFiles",
        "BasedOnUbi",
        "HasProhibitedContainerName",
    ),
    Policy.ROOT: (
        "HasLicense",
        "HasUniqueTag",
        "LayerCountAcceptable",
        "HasNoProhibitedPackages",
        "HasRequiredLabel",
        "HasNoProhibitedLabels",
        "HasModifiedFiles",
        "BasedOnUbi",
        "HasProhibitedContainerName",
    ),
    Policy.SCRATCH_NON_ROOT: (
        "HasLicense",
        "HasUniqueTag",
        "LayerCountAcceptable",
        "HasRequiredLabel",
        "HasNoProhibitedLabels",
        "RunAsNonRoot",
        "HasProhibitedContainerName",
    ),
    Policy.SCRATCH_ROOT: (
        "HasLicense",
        "HasUniqueTag",
        "LayerCountAcceptable",
        "HasRequiredLabel",
        "HasNoProhibitedLabels",
        "HasProhibitedContainerName",
    ),
    Policy.KONFLUX: (
        "HasLicense",
        "HasUniqueTag",
        "LayerCountAcceptable",
        "HasNoProhibitedPackages",
        "HasRequiredLabel",
        "RunAsNonRoot",
        "HasModifiedFiles",
        "BasedOnUbi",
    ),
}

_VERSION_SUFFIX = re.compile(r"(-[0-9].*)")
_PGP_KEY_ID = re.compile(r".*, Key ID (.*)")


def get_bg_name(srcrpm: str) -> str:
    """Return the source package name: everything before the last two "-" fields."""
    parts = srcrpm.split("-")
    if len(parts) < 2:
        raise ValueError(f"not a source rpm name: {srcrpm}")
    return "-".join(parts[:-2])


def srpm_nevra(source_rpm: str, epoch: int) -> str:
    """Return name-epoch:version-release.arch for a source rpm file name."""
    match = _VERSION_SUFFIX.search(source_rpm)
    version = match.group(0) if match else ""
    version = version.removesuffix(".rpm").removeprefix("-")
    return f"{get_bg_name(source_rpm)}-{epoch}:{version}"


def pgp_key_id(pgp: str) -> str:
    """Extract the key id from an rpm signature description, or "" if absent."""
    if not pgp:
        return ""
    match = _PGP_KEY_ID.search(pgp)
    if match is None:
        logger.debug("string did not match the format required: pgp=%s", pgp)
        return ""
    return match.group(1)


def tag_digest_binding_info(provided_identifier: str, resolved_digest: str) -> tuple[str, bool]:
    """Describe how the given tag or digest binds on publication; flag digests as a warning."""
    if provided_identifier.startswith("sha256:"):
        return (
            "You've provided an image by digest. "
            "When submitting this image to Red Hat for certification, "
            "no tag will be associated with this image. "
            "If you would like to associate a tag with this image, "
            "please rerun this tool replacing your image reference with a tag.",
            True,
        )
    return (
        f"This image's tag {provided_identifier} will be paired with digest {resolved_digest} "
        "once this image has been published in accordance "
        "with Red Hat Certification policy. "
        "You may then add or remove any supplemental tags "
        "through your Red Hat Connect portal as you see fit.",
        False,
    )


def sum_layer_size_bytes(layers: Iterable[Mapping[str, Any]]) -> int:
    """Total the "size" of every layer."""
    return sum(int(layer["size"]) for layer in layers)


def convert_labels(labels: Mapping[str, str]) -> list[dict[str, str]]:
    """Turn an image label mapping into a list of name/value records."""
    return [{"name": key, "value": value} for key, value in labels.items()]


def append_unless_optional(results: list[Result], result: Result) -> list[Result]:
    """Return results extended by result, unless its check is optional."""
    if result.metadata.level == Level.OPTIONAL:
        return results
    return [*results, result]


def execute_checks(checks: Iterable[Check], image_ref: ImageReference) -> Results:
    """Run every check against image_ref and sort the outcomes into results."""
    results = Results(tested_image=image_ref.image_uri)
    for check in checks:
        level = check.metadata.level
        if level in (Level.OPTIONAL, Level.WARN):
            logger.info("Check %s is not currently being enforced.", check.name)

        started = time.perf_counter()
        try:
            passed = check.validate(image_ref)
        except Exception as exc:  # a failing validator is recorded, not propagated
            elapsed = timedelta(seconds=time.perf_counter() - started)
            logger.info("check completed: check=%s result=ERROR err=%s", check.name, exc)
            result = Result(check=check, elapsed_time=elapsed).with_error(exc)
            results.errors = append_unless_optional(results.errors, result)
            continue
        elapsed = timedelta(seconds=time.perf_counter() - started)
        result = Result(check=check, elapsed_time=elapsed)

        if not passed:
            if level == Level.WARN:
                logger.info("check completed: check=%s result=WARNING", check.name)
                results.warned = append_unless_optional(results.warned, result)
            else:
                logger.info("check completed: check=%s result=FAILED", check.name)
                results.failed = append_unless_optional(results.failed, result)
            continue

        logger.info("check completed: check=%s result=PASSED", check.name)
        results.passed = append_unless_optional(results.passed, result)

    results.passed_overall = not results.errors and not results.failed
    return results


def check_names_for(policy: Union[Policy, str]) -> list[str]:
    """Return the names of the checks in policy, or an empty list if it is unknown."""
    try:
        resolved = Policy(policy)
    except UnknownPolicyError:
        return []
    return list(_POLICY_CHECKS[resolved])


def operator_policy() -> list[str]:
    """Names of the checks in the operator policy."""
    return check_names_for(Policy.OPERATOR)


def container_policy() -> list[str]:
    """Names of the checks in the container policy."""
    return check_names_for(Policy.CONTAINER)


def scratch_non_root_container_policy() -> list[str]:
    """Names of the checks in the container policy with the scratch exception."""
    return check_names_for(Policy.SCRATCH_NON_ROOT)


def scratch_root_container_policy() -> list[str]:
    """Names of the checks in the container policy with scratch and root exceptions."""
    return check_names_for(Policy.SCRATCH_ROOT)


def root_exception_container_policy() -> list[str]:
    """Names of the checks in the container policy with the root exception."""
    return check_names_for(Policy.ROOT)


def konflux_container_policy() -> list[str]:
    """Names of the checks used in a konflux pipeline."""
    return check_names_for(Policy.KONFLUX)