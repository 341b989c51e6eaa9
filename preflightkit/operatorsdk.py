"""Running operator-sdk scorecard and reading its report."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

OPERATOR_SDK = "operator-sdk"

Runner = Callable[[list[str]], "subprocess.CompletedProcess[str]"]


class ScorecardError(Exception):
    """Raised when scorecard cannot be run or its output cannot be used."""


@dataclass
class ScorecardOptions:
    """Options for a scorecard invocation."""

    output_format: str = ""
    selector: Optional[list[str]] = None
    result_file: str = ""
    kubeconfig: Optional[bytes] = None
    namespace: str = ""
    service_account: str = ""
    verbose: bool = False
    wait_time: str = ""


@dataclass(frozen=True)
class ScorecardResult:
    """One test result reported by scorecard."""

    name: str = ""
    log: str = ""
    state: str = ""


@dataclass
class ScorecardReport:
    """A parsed scorecard report; items hold each item's status results."""

    stdout: str = ""
    stderr: str = ""
    items: list[list[ScorecardResult]] = field(default_factory=list)

    @property
    def results(self) -> list[ScorecardResult]:
        """All results of all items, in order."""
        return [result for item in self.items for result in item]


@dataclass
class BundleValidateOptions:
    """Options for a bundle validation invocation."""

    log_level: str = ""
    container_engine: str = ""
    selector: Optional[list[str]] = None
    optional_values: Optional[dict[str, str]] = None
    output_format: str = ""
    verbose: bool = False
    wait_time: str = ""


@dataclass(frozen=True)
class BundleValidateOutput:
    """One message from bundle validation."""

    type: str = ""
    message: str = ""


@dataclass
class BundleValidateReport:
    """The outcome of bundle validation."""

    stdout: str = ""
    stderr: str = ""
    passed: bool = False
    outputs: list[BundleValidateOutput] = field(default_factory=list)


def scorecard_config(image: str) -> str:
    """Return the scorecard configuration running both test suites from image."""
    return f"""kind: Configuration
apiversion: scorecard.operatorframework.io/v1alpha3
metadata:
  name: config
stages:
- parallel: true
  tests:
  - image: {image}
    entrypoint:
      - scorecard-test
      - basic-check-spec
    labels:
      suite: basic
      test: basic-check-spec-test
  - image: {image}
    entrypoint:
      - scorecard-test
      - olm-bundle-validation
    labels:
      suite: olm
      test: olm-bundle-validation-test
"""


def _run(args: list[str]) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(args, capture_output=True, text=True, check=False)


def _temp_file(stack: contextlib.ExitStack, content: Union[str, bytes], **kwargs: Any) -> str:
    fd, path = tempfile.mkstemp(**kwargs)
    stack.callback(_remove_quietly, path)
    data = content.encode("utf-8") if isinstance(content, str) else content
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)
    return path


def _remove_quietly(path: str) -> None:
    with contextlib.suppress(OSError):
        os.remove(path)


def _parse_report(stdout: str, stderr: str) -> ScorecardReport:
    try:
        data = json.loads(stdout)
    except ValueError as exc:
        raise ScorecardError(f"failed to run operator-sdk scorecard: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ScorecardError("failed to run operator-sdk scorecard: report is not an object")

    items: list[list[ScorecardResult]] = []
    try:
        for item in data.get("items") or []:
            status = (item or {}).get("status") or {}
            items.append(
                [
                    ScorecardResult(
                        name=entry.get("name", ""),
                        log=entry.get("log", ""),
                        state=entry.get("state", ""),
                    )
                    for entry in status.get("results") or []
                ]
            )
    except (AttributeError, TypeError) as exc:
        raise ScorecardError(f"failed to run operator-sdk scorecard: {exc}") from exc
    return ScorecardReport(stdout=stdout, stderr=stderr, items=items)


class OperatorSdk:
    """Runs operator-sdk commands, saving raw output as artifacts."""

    def __init__(
        self,
        scorecard_image: str,
        runner: Runner = _run,
        artifacts_dir: Optional[Union[str, os.PathLike]] = None,
    ) -> None:
        self.scorecard_image = scorecard_image
        self.runner = runner
        self.artifacts_dir = artifacts_dir

    def _build_args(
        self, image: str, options: ScorecardOptions, stack: contextlib.ExitStack
    ) -> list[str]:
        args = [OPERATOR_SDK, "scorecard", "--output", options.output_format or "json"]
        args.extend(f"--selector={selector}" for selector in options.selector or [])

        if options.kubeconfig is not None:
            try:
                kubeconfig_path = _temp_file(stack, options.kubeconfig)
            except OSError as exc:
                raise ScorecardError(
                    "unable to write a temporary kubeconfig for use with scorecard: "
                    f"{exc}"
                ) from exc
            logger.debug("created temporary kubeconfig for use with scorecard: %s", kubeconfig_path)
            args.extend(["--kubeconfig", kubeconfig_path])

        for flag, value in (
            ("--wait-time", options.wait_time),
            ("--namespace", options.namespace),
            ("--service-account", options.service_account),
        ):
            if value:
                args.extend([flag, value])

        try:
            config_path = _temp_file(
                stack,
                scorecard_config(self.scorecard_image),
                prefix="scorecard-test-config-",
                suffix=".yaml",
            )
        except OSError as exc:
            raise ScorecardError(f"could not create scorecard config file: {exc}") from exc
        args.extend(["--config", config_path])

        if options.verbose:
            args.append("--verbose")
        args.append(image)
        return args

    def _write_result(self, result_file: str, stdout: str) -> None:
        if self.artifacts_dir is None:
            return
        try:
            Path(self.artifacts_dir, result_file).write_text(stdout, encoding="utf-8")
        except OSError as exc:
            raise ScorecardError(
                f"unable to copy result to artifacts directory: {exc}"
            ) from exc

    def scorecard(self, image: str, options: ScorecardOptions) -> ScorecardReport:
        """Run scorecard against a bundle image and return the parsed report.

        A non-zero exit is treated as failed tests unless stderr mentions
        "FATA", which marks a failure of the tool itself.
        """
        if shutil.which(OPERATOR_SDK) is None:
            raise ScorecardError(f"{OPERATOR_SDK}: executable file not found in $PATH")

        with contextlib.ExitStack() as stack:
            args = self._build_args(image, options, stack)
            logger.info("running scorecard with the following invocation: %s", args)
            completed = self.runner(args)

        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        if completed.returncode != 0 and stderr and "FATA" in stderr.upper():
            logger.debug("operator-sdk scorecard failed to run properly; stderr=%s", stderr)
            raise ScorecardError(
                f"failed to run operator-sdk scorecard: exit status {completed.returncode}"
            )

        self._write_result(options.result_file, stdout)
        return _parse_report(stdout, stderr)