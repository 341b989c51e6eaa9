"""Certification project lookups, result submission helpers and portal links."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from preflightkit.engine import Policy

logger = logging.getLogger(__name__)

_CONNECT_DOMAIN = "redhat.com"
_SCRATCH_TYPE = "scratch"
_SCRATCH_OS_CONTENT_TYPE = "Scratch Image"


@dataclass
class ProjectContainer:
    """Container settings of a certification project."""

    type: str = ""
    os_content_type: str = ""
    privileged: bool = False
    hosted_registry: bool = False
    docker_config_json: str = ""


@dataclass
class CertProject:
    """A certification project as known to the certification API."""

    id: str = ""
    name: str = ""
    certification_status: str = ""
    container: ProjectContainer = field(default_factory=ProjectContainer)

    def scratch_project(self) -> bool:
        """Return True if the project holds a scratch-image exception."""
        return (
            self.container.type == _SCRATCH_TYPE
            or self.container.os_content_type == _SCRATCH_OS_CONTENT_TYPE
        )


class PyxisClient(Protocol):
    """The part of the certification API client that policy resolution needs."""

    def get_project(self) -> Optional[CertProject]:
        """Return the certification project this client is configured for."""


def get_container_policy_exceptions(client: PyxisClient) -> Policy:
    """Return the container policy that applies to the client's project.

    Scratch and privileged exceptions select the matching reduced policy;
    a project without exceptions gets the standard container policy.
    """
    try:
        project = client.get_project()
    except Exception as exc:
        raise RuntimeError(f"could not retrieve project: {exc}") from exc
    if project is None:
        raise RuntimeError("could not retrieve project: no certification project was returned")
    logger.debug("certification project: name=%s", project.name)

    scratch = project.scratch_project()
    privileged = project.container.privileged
    if scratch and privileged:
        return Policy.SCRATCH_ROOT
    if scratch:
        return Policy.SCRATCH_NON_ROOT
    if privileged:
        return Policy.ROOT
    return Policy.CONTAINER


@dataclass
class NoopSubmitter:
    """A submitter that sends nothing and optionally logs why."""

    emit_log: bool = True
    log: Any = None
    reason: str = ""

    def submit(self) -> None:
        """Log that results are not being submitted, if logging is enabled."""
        if not self.emit_log:
            return
        msg = "Results are not being sent for submission."
        if self.reason:
            msg = f"{msg} Reason: {self.reason}."
        sink = self.log if self.log is not None else logger
        sink.info(msg)


def build_connect_url(project_id: str, pyxis_env: str = "") -> str:
    """Return the portal page of a project for the given API environment."""
    if pyxis_env and pyxis_env != "prod":
        return f"https://connect.{pyxis_env}.{_CONNECT_DOMAIN}/component/view/{project_id}"
    return f"https://connect.{_CONNECT_DOMAIN}/component/view/{project_id}"


def build_images_url(project_id: str, pyxis_env: str = "") -> str:
    """Return the portal page listing a project's images."""
    return f"{build_connect_url(project_id, pyxis_env)}/images"


def build_test_results_url(project_id: str, test_results_id: str, pyxis_env: str = "") -> str:
    """Return the portal page of one set of test results."""
    return (
        f"{build_connect_url(project_id, pyxis_env)}"
        f"/certification/test-results/{test_results_id}"
    )


def build_vulnerabilities_url(project_id: str, image_id: str, pyxis_env: str = "") -> str:
    """Return the portal page of an image's security vulnerabilities."""
    return f"{build_connect_url(project_id, pyxis_env)}/security/vulnerabilities/{image_id}"