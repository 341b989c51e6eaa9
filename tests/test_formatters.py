import json
import xml.etree.ElementTree as ET
from datetime import timedelta

import pytest

from preflightkit.formatters import (
    DEFAULT_FORMAT,
    FormatterError,
    generic_json_formatter,
    generic_xml_formatter,
    get_response,
    junit_xml_formatter,
    new_by_name,
    new_formatter,
)
from preflightkit.results import Check, HelpText, Metadata, Result, Results


def _results(image: str, passed: bool) -> Results:
    return Results(
        tested_image=image,
        passed_overall=passed,
        passed=[Result(Check("passed1"), timedelta(milliseconds=1000))],
        failed=[Result(Check("failed1"), timedelta(milliseconds=1001))],
    )


def _detailed_check(name: str) -> Check:
    return Check(
        name,
        lambda ref: True,
        Metadata(description="description", knowledge_base_url="kburl", check_url="checkurl"),
        HelpText(message="helptext", suggestion="suggestion"),
    )


@pytest.fixture
def junit_results() -> Results:
    return Results(
        tested_image="example.com/repo/image:tag",
        passed_overall=True,
        tested_on={"name": "ClusterName", "version": "Clusterversion"},
        passed=[Result(_detailed_check("PassedCheck"))],
        failed=[Result(_detailed_check("FailedCheck"))],
        errors=[Result(_detailed_check("ErroredCheck"))],
        warned=[
            Result(_detailed_check("WarningCheckPass")),
            Result(_detailed_check("WarningCheckFail")),
        ],
    )


def test_default_format_resolves():
    formatter = new_by_name(DEFAULT_FORMAT)
    assert formatter.pretty_name == "Generic JSON"
    assert formatter.file_extension == "json"


@pytest.mark.parametrize(
    "name, pretty, extension",
    [("json", "Generic JSON", "json"), ("xml", "Generic XML", "xml"), ("junitxml", "JUnit XML", "xml")],
)
def test_known_formatters(name, pretty, extension):
    formatter = new_by_name(name)
    assert (formatter.pretty_name, formatter.file_extension) == (pretty, extension)


def test_unknown_formatter_raises():
    with pytest.raises(FormatterError, match="unknownFormat"):
        new_by_name("unknownFormat")


def test_new_formatter_requires_name():
    with pytest.raises(FormatterError, match="formatter name is required"):
        new_formatter("", "txt", lambda results: b"x")


def test_new_formatter_formats_and_names():
    expected = b"this is a test"
    formatter = new_formatter("testFormatter", "txt", lambda results: expected)
    assert formatter.format(Results()) == expected
    assert formatter.pretty_name == "testFormatter"
    assert formatter.file_extension == "txt"


@pytest.mark.parametrize("image, passed", [("image1", True), ("image2", False)])
def test_generic_json_round_trip(image, passed):
    results = _results(image, passed)
    parsed = json.loads(generic_json_formatter(results))
    assert parsed["image"] == image
    assert parsed["passed"] is passed
    assert parsed["results"]["passed"][0]["name"] == "passed1"
    assert parsed["results"]["passed"][0]["elapsed_time"] == 1000
    assert parsed["results"]["failed"][0]["name"] == "failed1"
    assert parsed["results"]["failed"][0]["elapsed_time"] == 1001
    assert parsed["results"]["errors"] == []


def test_generic_json_omits_empty_fields():
    parsed = json.loads(generic_json_formatter(_results("image1", True)))
    assert "certification_hash" not in parsed
    assert "warning" not in parsed["results"]
    assert "description" not in parsed["results"]["passed"][0]


def test_generic_json_formats_integral_milliseconds_without_fraction():
    text = generic_json_formatter(_results("image1", True)).decode()
    assert '"elapsed_time": 1000,' in text or '"elapsed_time": 1000\n' in text


def test_generic_json_error_is_wrapped():
    with pytest.raises(FormatterError, match="formatter json"):
        generic_json_formatter(Results(tested_image=object()))


@pytest.mark.parametrize("image, passed", [("image1", True), ("image2", False)])
def test_generic_xml_round_trip(image, passed):
    root = ET.fromstring(generic_xml_formatter(_results(image, passed)))
    assert root.tag == "UserResponse"
    assert root.findtext("image") == image
    assert root.findtext("passed") == ("true" if passed else "false")
    assert root.findtext("results/passed/name") == "passed1"
    assert root.findtext("results/passed/elapsed_time") == "1000"
    assert root.findtext("results/failed/name") == "failed1"
    assert root.findtext("results/failed/elapsed_time") == "1001"


def test_generic_xml_error_is_wrapped():
    with pytest.raises(FormatterError, match="formatter xml"):
        generic_xml_formatter(Results(tested_image=object()))


def test_get_response_structure():
    results = Results(
        tested_image="img",
        certification_hash="abc",
        warned=[Result(_detailed_check("w"), timedelta(milliseconds=5))],
        errors=[Result(_detailed_check("e"))],
    )
    response = get_response(results, {"name": "lib", "version": "1"})
    assert response["certification_hash"] == "abc"
    assert response["test_library"] == {"name": "lib", "version": "1"}
    assert response["results"]["warning"] == [
        {
            "name": "w",
            "elapsed_time": 5.0,
            "description": "description",
            "help": "helptext",
            "suggestion": "suggestion",
            "knowledgebase_url": "kburl",
            "check_url": "checkurl",
        }
    ]
    assert response["results"]["errors"] == [
        {"name": "e", "elapsed_time": 0.0, "description": "description", "help": "helptext"}
    ]


def test_junit_contains_checks(junit_results):
    out = junit_xml_formatter(junit_results).decode()
    assert "PassedCheck" in out
    assert "FailedCheck" in out
    assert "ErroredCheck" in out


def test_junit_suite_counts(junit_results):
    root = ET.fromstring(junit_xml_formatter(junit_results))
    suite = root.find("testsuite")
    assert root.tag == "testsuites"
    assert suite.get("tests") == "5"
    assert suite.get("failures") == "2"
    assert suite.get("warnings") == "2"
    assert suite.get("time") == "0.000000"
    assert suite.get("name") == "Red Hat Certification"
    assert suite.find("properties") is None


def test_junit_case_details(junit_results):
    suite = ET.fromstring(junit_xml_formatter(junit_results)).find("testsuite")
    cases = suite.findall("testcase")
    assert [c.get("name") for c in cases] == [
        "PassedCheck",
        "ErroredCheck",
        "FailedCheck",
        "WarningCheckPass",
        "WarningCheckFail",
    ]
    assert cases[0].text == "description"
    assert cases[0].get("time") == "0.000000"
    assert cases[0].get("classname") == "example.com/repo/image:tag"
    failure = cases[2].find("failure")
    assert failure.get("message") == "Failed"
    assert failure.text == "helptext: Suggested Fix: suggestion"
    assert cases[2].get("time") == "0s"
    assert cases[3].find("warning").get("message") == "Warn"


def test_junit_durations():
    results = Results(
        tested_image="img",
        passed=[Result(Check("p"), timedelta(milliseconds=1500))],
        failed=[Result(Check("f"), timedelta(milliseconds=1001))],
        warned=[Result(Check("w"), timedelta(minutes=2))],
    )
    suite = ET.fromstring(junit_xml_formatter(results)).find("testsuite")
    cases = suite.findall("testcase")
    assert cases[0].get("time") == "1.500000"
    assert cases[1].get("time") == "1.001s"
    assert cases[2].get("time") == "2m0s"
    assert suite.get("time") == "122.501000"


def test_junit_by_name_matches_function(junit_results):
    assert new_by_name("junitxml").format(junit_results) == junit_xml_formatter(junit_results)