#!/usr/bin/env python3
"""
Unit tests for hosts.py - host classification and descriptor URLs.
"""

import unittest

from registry_gate.errors import InvalidURLError, UnsupportedHostError
from registry_gate.hosts import classify_host, descriptor_url, repository_coordinates
from registry_gate.models import HostKind, ManifestEntry


def entry(url, index=0):
    return ManifestEntry(index=index, url=url)


class TestClassifyHost(unittest.TestCase):
    """Test mapping hosts to providers."""

    def test_github_is_supported(self):
        self.assertEqual(classify_host(entry("https://github.com/a/b.git")), HostKind.GITHUB)

    def test_port_and_credentials_are_ignored(self):
        self.assertEqual(classify_host(entry("https://user@github.com:443/a/b.git")), HostKind.GITHUB)

    def test_other_hosts_are_unsupported(self):
        for url in ["https://gitlab.com/a/b.git",
                    "https://bitbucket.org/a/b.git",
                    "https://www.github.com/a/b.git"]:
            with self.subTest(url=url):
                with self.assertRaises(UnsupportedHostError) as ctx:
                    classify_host(entry(url))
                self.assertEqual(ctx.exception.url, url)

    def test_match_is_exact(self):
        """Test host matching does not fold case."""
        with self.assertRaises(UnsupportedHostError) as ctx:
            classify_host(entry("https://GitHub.com/a/b.git"))
        self.assertEqual(ctx.exception.host, "GitHub.com")

    def test_missing_host_is_invalid_url(self):
        for url in ["github.com/a/b.git", "file:///tmp/a/b.git", "/a/b.git"]:
            with self.subTest(url=url):
                with self.assertRaises(InvalidURLError):
                    classify_host(entry(url))


class TestDescriptorUrl(unittest.TestCase):
    """Test raw descriptor URL construction."""

    def test_github_descriptor_url(self):
        url = descriptor_url(entry("https://github.com/Alice/Foo.git"), HostKind.GITHUB)
        self.assertEqual(url, "https://raw.githubusercontent.com/Alice/Foo/master/Package.swift")

    def test_branch_is_configurable(self):
        url = descriptor_url(entry("https://github.com/apple/swift-nio.git"), HostKind.GITHUB, "main")
        self.assertEqual(url, "https://raw.githubusercontent.com/apple/swift-nio/main/Package.swift")

    def test_only_last_extension_is_stripped(self):
        self.assertEqual(
            repository_coordinates(entry("https://github.com/a/Foo.swift.git")),
            ("a", "Foo.swift"),
        )

    def test_trailing_slash_ignored(self):
        self.assertEqual(repository_coordinates(entry("https://github.com/a/b.git/")), ("a", "b"))

    def test_empty_path_is_invalid(self):
        with self.assertRaises(InvalidURLError):
            repository_coordinates(entry("https://github.com"))


if __name__ == "__main__":
    unittest.main()
