"""
Bucket resolution over pre-parsed patterns must agree with the plain
string construction: build every candidate key for the channel and keep
the ones that exist in the registry.
"""

import pytest

from topicbus.core.bus import TopicBus
from topicbus.core.scheduler import ManualScheduler

PATTERNS = [
    "/**",
    "//**",
    "/a/**",
    "/a/b/**",
    "/a//**",
    "/a/**/**",
    "/*",
    "/a/*",
    "/*/b",
    "/a/*/c",
    "/*/*",
    "/*/**",
    "/a/b",
    "/a/",
    "a/b",
    "a/*",
    "/",
    "",
    "*",
    "**",
]

CHANNELS = [
    "",
    "/",
    "//",
    "/a",
    "/a/",
    "/a/b",
    "/a/b/c",
    "/a/x/c",
    "/a/**/c",
    "/*/*",
    "/*/b",
    "/b/b",
    "a/b",
    "a",
    "*",
]


def candidate_keys(channel):
    segments = channel.split("/")
    if segments[0] == "":
        segments = segments[1:]

    keys = ["/**"]
    path = ""
    for seg in segments:
        path += "/" + seg
        keys.append(path + "/**")

    for i in range(len(segments)):
        keys.append("/" + "/".join("*" if x == i else seg for x, seg in enumerate(segments)))

    keys.append(channel)
    return keys


@pytest.fixture(scope="module")
def bus():
    b = TopicBus(ManualScheduler())
    for pattern in PATTERNS:
        b.subscribe(pattern, lambda *args: None)
    return b


@pytest.mark.parametrize("channel", CHANNELS)
def test_resolution_matches_string_keys(bus, channel):
    expected = [bus.registry.bucket(k) for k in candidate_keys(channel) if bus.registry.bucket(k) is not None]
    actual = bus.resolve_buckets(channel)
    assert [id(b) for b in actual] == [id(b) for b in expected]
