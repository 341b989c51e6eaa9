import pytest

from preflightkit.csvutil import (
    DISCONNECTED_ANNOTATION,
    INFRASTRUCTURE_FEATURES_ANNOTATION,
    has_disconnected_annotation,
    has_infrastructure_features_annotation,
    has_related_images,
    image_has_digest,
    related_image_references_in_environment,
    related_images_are_pinned,
    supports_disconnected,
    supports_disconnected_via_infrastructure_features,
)

MEMCACHED = {
    "name": "memcached",
    "image": "docker.io/library/memcached@sha256:00b68b00139155817a8b1d69d74865563def06b3af1e6fc79ac541a1b2f6b961",
}
REDIS_PINNED = {
    "name": "redis",
    "image": "mirror.gcr.io/library/redis@sha256:4970a4bbd34f9072b56389e85185204dd07dc86ba74a1be441931d551f74b472",
}


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("false", False), ("TRUE", False), ("abc", False)],
)
def test_supports_disconnected(value, expected):
    assert supports_disconnected(value) is expected


@pytest.mark.parametrize(
    "features, expected",
    [
        ('["DISCONNECTED"]', True),
        ('["disconnected"]', True),
        ('["foo"]', False),
        ("[]", False),
        ("disconnected", False),
    ],
)
def test_supports_disconnected_via_infrastructure_features(features, expected):
    assert supports_disconnected_via_infrastructure_features(features) is expected


def test_disconnected_annotation_missing():
    assert has_disconnected_annotation({"metadata": {"annotations": {}}}) is False


def test_disconnected_annotation_present_regardless_of_value():
    csv = {"metadata": {"annotations": {DISCONNECTED_ANNOTATION: "foo"}}}
    assert has_disconnected_annotation(csv) is True


def test_infrastructure_features_annotation_missing():
    assert has_infrastructure_features_annotation({"metadata": {"annotations": {}}}) is False


def test_infrastructure_features_annotation_present():
    csv = {"metadata": {"annotations": {INFRASTRUCTURE_FEATURES_ANNOTATION: "foo"}}}
    assert has_infrastructure_features_annotation(csv) is True


@pytest.mark.parametrize(
    "images, expected",
    [
        ([MEMCACHED], True),
        ([MEMCACHED, REDIS_PINNED], True),
        ([], False),
    ],
)
def test_has_related_images(images, expected):
    assert has_related_images({"spec": {"relatedImages": images}}) is expected


@pytest.mark.parametrize(
    "images, expected",
    [
        ([MEMCACHED], True),
        ([{"name": "redis", "image": "mirror.gcr.io/library/redis:1.0.0"}], False),
        ([], False),
        ([{"name": "redis", "image": "mirror.gcr.io/library/redis"}], False),
    ],
)
def test_related_images_are_pinned(images, expected):
    assert related_images_are_pinned(images) is expected


def test_image_has_digest():
    assert image_has_digest(MEMCACHED["image"]) is True
    assert image_has_digest("mirror.gcr.io/library/redis:1.0.0") is False


def _deployment(key):
    return {
        "template": {
            "spec": {
                key: [
                    {
                        "env": [
                            {"name": "RELATED_IMAGE_FOO", "value": "foovalue"},
                            {"name": "RELATED_IMAGE_BAR", "value": "barvalue"},
                        ]
                    }
                ]
            }
        }
    }


@pytest.mark.parametrize("key", ["containers", "initContainers"])
def test_related_image_references_in_environment(key):
    actual = related_image_references_in_environment(_deployment(key))
    assert sorted(actual) == sorted(["RELATED_IMAGE_FOO", "RELATED_IMAGE_BAR"])


def test_related_image_references_ignore_other_env():
    deployment = {
        "template": {"spec": {"containers": [{"env": [{"name": "OTHER", "value": "x"}]}]}}
    }
    assert related_image_references_in_environment(deployment) == []