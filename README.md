# preflightkit

Building blocks for certifying container images and operator bundles. The
package runs checks against an image reference and sorts the outcomes into
passed, failed, errored and warned results. It formats those results as JSON,
XML or JUnit XML. It also unpacks layer archives, hashes bundle contents, and
picks the check policy for a certification project. It can also run
`operator-sdk scorecard`.

## Installation

```
pip install .
```

The `test` extra installs pytest for running the test suite:

```
pip install .[test]
pytest
```

## Modules

### `preflightkit.results`

The data model:

- `Check` is a named validator with `Metadata` and `HelpText`.
  `Check.validate(image_ref)` calls the validator. It raises `ValueError` when
  the check has no validator.
- `Level` has three values: `DEFAULT`, `OPTIONAL` and `WARN`.
- `ImageReference` describes the image under test.
- `Result` is the outcome of one check. It offers `name()`, `metadata`, `help`
  and `with_error(...)`.
- `Results` holds the overall outcome.

### `preflightkit.engine`

- `execute_checks(checks, image_ref)` runs every check and returns `Results`.
  It sorts each outcome as follows:
  - A check whose validator raises is filed under `errors`.
  - A failing `WARN` check goes to `warned`.
  - Any other failing check goes to `failed`.
  - Passing checks go to `passed`.
  - `OPTIONAL` checks are left out entirely.

  `passed_overall` is true when there are no errors and no failures.
- `Policy` lists the known policies: `OPERATOR`, `CONTAINER`, `ROOT`,
  `SCRATCH_NON_ROOT`, `SCRATCH_ROOT` and `KONFLUX`. Building a `Policy` from an
  unknown value raises `UnknownPolicyError`.
- `check_names_for(policy)` returns the check names in a policy. It returns an
  empty list for an unknown policy. Shortcuts return the same lists:
  - `operator_policy()`
  - `container_policy()`
  - `root_exception_container_policy()`
  - `scratch_non_root_container_policy()`
  - `scratch_root_container_policy()`
  - `konflux_container_policy()`
- Helpers for package and image metadata:
  - `get_bg_name(srcrpm)`
  - `srpm_nevra(source_rpm, epoch)`
  - `pgp_key_id(pgp)`
  - `tag_digest_binding_info(identifier, digest)`
  - `sum_layer_size_bytes(layers)`
  - `convert_labels(labels)`
  - `append_unless_optional(results, result)`

### `preflightkit.archive`

- `untar(dst, fileobj)` expands a tar stream into a directory. It creates
  directories, regular files, symbolic links and hard links.
  - Symbolic links that would resolve outside `dst` are skipped.
  - Links that cannot be created are ignored.
  - An empty stream does nothing.
  - A stream that is not a tar archive raises `tarfile.ReadError`.
- `resolve_link_paths(oldname, newname)` resolves a relative link target
  against the link's directory.
- `generate_bundle_hash(bundle_path, artifacts_dir=None)` hashes a bundle:
  - It takes the md5 of each file, leaving out files named `Dockerfile`.
  - It sorts those sums into a listing and returns the md5 of the listing.
  - If `artifacts_dir` is given, it also writes the listing there as
    `hashes.txt`.

### `preflightkit.formatters`

- `new_by_name(name)` returns one of the built-in formatters: `"json"`,
  `"xml"` or `"junitxml"`. `DEFAULT_FORMAT` is `"json"`.
- `new_formatter(name, extension, fn)` wraps your own function as a
  `ResponseFormatter`.
- `ResponseFormatter.format(results)` returns bytes.

Both functions raise `FormatterError` when the name is unknown or empty.
`get_response(results, library_info)` builds the user-facing dictionary that
the JSON and XML formatters serialise.

### `preflightkit.csvutil`

Helpers that read ClusterServiceVersion manifests given as plain mappings:

- `supports_disconnected(value)`
- `supports_disconnected_via_infrastructure_features(value)`
- `has_disconnected_annotation(csv)`
- `has_infrastructure_features_annotation(csv)`
- `has_related_images(csv)`
- `image_has_digest(reference)`
- `related_images_are_pinned(images)`
- `related_image_references_in_environment(*deployment_specs)`

### `preflightkit.lib`

- `CertProject` and `ProjectContainer` describe a certification project.
  `CertProject.scratch_project()` reports whether the project holds a scratch
  exception.
- `get_container_policy_exceptions(client)` picks a `Policy` from the
  project's scratch and privileged flags. It asks any object with a
  `get_project()` method (see the `PyxisClient` protocol) for the project. It
  raises `RuntimeError` if no project can be obtained.
- `NoopSubmitter.submit()` sends nothing. It only logs why, when `emit_log` is
  set.
- Builders for portal page addresses take an optional environment name:
  - `build_connect_url(...)`
  - `build_images_url(...)`
  - `build_test_results_url(...)`
  - `build_vulnerabilities_url(...)`

### `preflightkit.operatorsdk`

`OperatorSdk(scorecard_image, runner=..., artifacts_dir=None).scorecard(image, ScorecardOptions(...))`
runs `operator-sdk scorecard` and returns a `ScorecardReport`.

- It writes a temporary scorecard configuration, and a temporary kubeconfig if
  one is given. Both files are removed after the run.
- It raises `ScorecardError` in three cases:
  - `operator-sdk` is not on `PATH`.
  - The tool exits non-zero with "FATA" in its stderr.
  - Its output is not a valid report.
- If `artifacts_dir` is set, the raw stdout is saved there under
  `options.result_file`.
- `scorecard_config(image)` returns the configuration text.

### `preflightkit.logsink`

`BufferSink` is a small log sink that writes lines into a shared in-memory
text buffer. You can pass it as the `log` of a `NoopSubmitter`.

## Example

```python
from preflightkit.results import Check, ImageReference
from preflightkit.engine import execute_checks
from preflightkit.formatters import new_by_name

checks = [Check("AlwaysPasses", lambda ref: True)]
results = execute_checks(checks, ImageReference(image_uri="registry.example.com/app:1.0"))
print(new_by_name("junitxml").format(results).decode())
```

## What this package does not do

- It has no command-line program.
- It does not pull images from a registry. You supply the unpacked image and
  an `ImageReference` yourself.
- It does not talk to a cluster, so it cannot deploy operators or read a
  cluster version.
- It does not submit results to the certification API.
- It ships only the names of each policy's checks, not their implementations.
  The checks that `execute_checks` runs are the ones you supply.