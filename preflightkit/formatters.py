"""Formatters that render check results as JSON, XML or JUnit XML."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Mapping

from preflightkit.results import Result, Results

DEFAULT_FORMAT = "json"

LIBRARY_INFO: Mapping[str, str] = {
    "name": "preflightkit",
    "version": "unknown",
    "commit": "unknown",
}

FormatterFunc = Callable[[Results], bytes]


class FormatterError(Exception):
    """Raised when a formatter cannot be created or fails to format results."""


@dataclass(frozen=True)
class ResponseFormatter:
    """A named formatter producing bytes from results."""

    pretty_name: str
    file_extension: str
    formatter_func: FormatterFunc

    def format(self, results: Results) -> bytes:
        """Format results, returning the bytes ready to write."""
        return self.formatter_func(results)


def new_by_name(name: str) -> ResponseFormatter:
    """Return the predefined formatter registered under name."""
    try:
        return _AVAILABLE_FORMATTERS[name]
    except KeyError:
        raise FormatterError(f"The requested formatter is unknown: {name}") from None


def new_formatter(name: str, extension: str, fn: FormatterFunc) -> ResponseFormatter:
    """Build a formatter from a name, a file extension and a formatting function."""
    if not name:
        raise FormatterError(
            "failed to create a new generic formatter: formatter name is required"
        )
    return ResponseFormatter(pretty_name=name, file_extension=extension, formatter_func=fn)


def _elapsed_ms(elapsed: timedelta) -> float:
    return float(elapsed // timedelta(milliseconds=1))


def _check_info(result: Result, *, detailed: bool, errored: bool = False) -> dict[str, Any]:
    metadata = result.metadata
    help_text = result.help
    info: dict[str, Any] = {}
    if result.name():
        info["name"] = result.name()
    info["elapsed_time"] = _elapsed_ms(result.elapsed_time)
    optional_fields: list[tuple[str, str]] = [("description", metadata.description)]
    if detailed or errored:
        optional_fields.append(("help", help_text.message))
    if detailed:
        optional_fields.extend(
            [
                ("suggestion", help_text.suggestion),
                ("knowledgebase_url", metadata.knowledge_base_url),
                ("check_url", metadata.check_url),
            ]
        )
    info.update((key, value) for key, value in optional_fields if value)
    return info


def get_response(results: Results, library_info: Mapping[str, Any]) -> dict[str, Any]:
    """Build the user-facing response structure for results."""
    response: dict[str, Any] = {
        "image": results.tested_image,
        "passed": results.passed_overall,
    }
    if results.certification_hash:
        response["certification_hash"] = results.certification_hash
    response["test_library"] = dict(library_info)

    section: dict[str, Any] = {
        "passed": [_check_info(r, detailed=False) for r in results.passed],
        "failed": [_check_info(r, detailed=True) for r in results.failed],
        "errors": [_check_info(r, detailed=False, errored=True) for r in results.errors],
    }
    warned = [_check_info(r, detailed=True) for r in results.warned]
    if warned:
        section["warning"] = warned
    response["results"] = section
    return response


def _go_float(value: float) -> Any:
    if value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _json_ready(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _json_ready(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_json_ready(item) for item in value]
    if isinstance(value, float):
        return _go_float(value)
    return value


_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def generic_json_formatter(results: Results) -> bytes:
    """Format results as indented JSON."""
    response = get_response(results, LIBRARY_INFO)
    try:
        text = json.dumps(_json_ready(response), indent=4, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise FormatterError(f"error formatting results with formatter json: {exc}") from exc
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def _xml_scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(_go_float(value))
    if isinstance(value, int):
        return str(value)
    return value


def _append_xml(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        for item in value:
            _append_xml(parent, tag, item)
    elif isinstance(value, dict):
        child = ET.SubElement(parent, tag)
        for key, item in value.items():
            _append_xml(child, key, item)
    else:
        ET.SubElement(parent, tag).text = _xml_scalar(value)


def _serialize(root: ET.Element, indent: str, formatter_name: str) -> bytes:
    ET.indent(root, space=indent)
    try:
        text = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    except (TypeError, ValueError) as exc:
        raise FormatterError(
            f"error formatting results with formatter {formatter_name}: {exc}"
        ) from exc
    return text.encode("utf-8")


def generic_xml_formatter(results: Results) -> bytes:
    """Format results as indented XML."""
    response = get_response(results, LIBRARY_INFO)
    root = ET.Element("UserResponse")
    for key, value in response.items():
        _append_xml(root, key, value)
    return _serialize(root, "    ", "xml")


def _fraction(value: int, unit: int) -> str:
    whole, rem = divmod(value, unit)
    if not rem:
        return str(whole)
    digits = str(rem).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def _go_duration(elapsed: timedelta) -> str:
    nanos = ((elapsed.days * 86400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds) * 1000
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000_000_000:
        if nanos < 1000:
            text = f"{nanos}ns"
        elif nanos < 1_000_000:
            text = _fraction(nanos, 1000) + "µs"
        else:
            text = _fraction(nanos, 1_000_000) + "ms"
        return sign + text
    minutes, second_nanos = divmod(nanos, 60 * 1_000_000_000)
    text = _fraction(second_nanos, 1_000_000_000) + "s"
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def _fix_message(result: Result) -> str:
    return f"{result.help.message}: Suggested Fix: {result.help.suggestion}"


def junit_xml_formatter(results: Results) -> bytes:
    """Format results as a JUnit XML test suite."""
    image = get_response(results, LIBRARY_INFO)["image"]
    root = ET.Element("testsuites")
    suite = ET.SubElement(
        root,
        "testsuite",
        {
            "tests": str(
                len(results.errors) + len(results.failed) + len(results.passed) + len(results.warned)
            ),
            "failures": str(len(results.errors) + len(results.failed)),
            "warnings": str(len(results.warned)),
            "time": "0s",
            "name": "Red Hat Certification",
        },
    )

    total = timedelta(0)
    for result in results.passed:
        case = ET.SubElement(
            suite,
            "testcase",
            {
                "classname": image,
                "name": result.name(),
                "time": f"{result.elapsed_time.total_seconds():f}",
            },
        )
        case.text = result.metadata.description
        total += result.elapsed_time

    for tag, message, group in (
        ("failure", "Failed", [*results.errors, *results.failed]),
        ("warning", "Warn", results.warned),
    ):
        for result in group:
            case = ET.SubElement(
                suite,
                "testcase",
                {
                    "classname": image,
                    "name": result.name(),
                    "time": _go_duration(result.elapsed_time),
                },
            )
            ET.SubElement(case, tag, {"message": message, "type": ""}).text = _fix_message(result)
            total += result.elapsed_time

    suite.set("time", f"{total.total_seconds():f}")
    return _serialize(root, "\t", "junitxml")


_AVAILABLE_FORMATTERS: dict[str, ResponseFormatter] = {
    "json": ResponseFormatter("Generic JSON", "json", generic_json_formatter),
    "xml": ResponseFormatter("Generic XML", "xml", generic_xml_formatter),
    "junitxml": ResponseFormatter("JUnit XML", "xml", junit_xml_formatter),
}